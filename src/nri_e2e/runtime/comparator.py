"""Comparison of NRQL result values against expected results."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..errors import ConfigurationError
from ..spec import ExpectedResult
from .coercion import to_value

ASSERTION_FAILURE = "assertion failure"
TYPE_ASSERTION_FAILURE = "could not assert type from any"


@dataclass
class ComparisonResult:
    passed: bool
    message: str = ""
    measured: Any | None = None
    expected: Any | None = None


def format_range(lower: float | None, upper: float | None) -> str:
    """Render bounds as "[-INF,u]", "[l,INF]" or "[l,u]"."""
    low = "-INF" if lower is None else f"{lower:f}"
    high = "INF" if upper is None else f"{upper:f}"
    return f"[{low},{high}]"


def compare_exact(expected: Any, actual: Any) -> ComparisonResult:
    """Compare two values after coercion; kinds must match as well as values."""
    expected_value = to_value(expected)
    actual_value = to_value(actual)

    if expected_value == actual_value:
        return ComparisonResult(
            passed=True, measured=actual_value.raw, expected=expected_value.raw
        )
    return ComparisonResult(
        passed=False,
        message=f"{ASSERTION_FAILURE} - expected: '{expected_value}', got '{actual_value}'",
        measured=actual_value.raw,
        expected=expected_value.raw,
    )


def compare_bounded(
    actual: Any, lower: float | None = None, upper: float | None = None
) -> ComparisonResult:
    """Check that actual falls within [lower, upper], both ends inclusive.

    A missing bound is open on that side.

    Raises:
        ConfigurationError: If neither bound is given
    """
    if lower is None and upper is None:
        raise ConfigurationError("missing comparison bounds")

    bounds = format_range(lower, upper)
    actual_value = to_value(actual)
    if not actual_value.is_number:
        return ComparisonResult(
            passed=False,
            message=f"{TYPE_ASSERTION_FAILURE}: float (got '{actual_value}')",
            measured=actual_value.raw,
            expected=bounds,
        )

    number = actual_value.raw
    if (lower is None or lower <= number) and (upper is None or number <= upper):
        return ComparisonResult(passed=True, measured=number, expected=bounds)

    return ComparisonResult(
        passed=False,
        message=f"{ASSERTION_FAILURE} - expected value in range {bounds}, got {number:f}",
        measured=number,
        expected=bounds,
    )


def compare_expected(actual: Any, expected: ExpectedResult) -> ComparisonResult:
    """Exact comparison when the expected result has a value, bounded otherwise."""
    if expected.is_exact:
        return compare_exact(expected.value, actual)
    return compare_bounded(actual, expected.lower_bound, expected.upper_bound)
