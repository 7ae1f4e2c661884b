"""NRQL assertions."""

from __future__ import annotations

from typing import Any

from ..errors import ConfigurationError, E2EError, QueryClientError, TransientAssertionError
from ..newrelic import QueryClient
from ..shared.logging import get_logger
from ..spec import NRQLAssertion, Tests, validate_nrql_assertion
from .comparator import compare_expected

logger = get_logger(__name__)

SCENARIO_TAG_PLACEHOLDER = "${SCENARIO_TAG}"

NO_RESULT = "query did not return any result"
NOT_VALID = "query did not return a valid result"
RESULT_NUMBER = "query did not return expected number of results"
NOT_EXPECTED_RESULT = "query did not return expected results"
ERROR_EXPECTED = "an error was expected"


def scoped_query(query: str, tag_key: str, tag_value: str) -> str:
    """Restrict a query to one scenario's telemetry."""
    query = f"{query} WHERE {tag_key} = '{tag_value}'"
    return query.replace(SCENARIO_TAG_PLACEHOLDER, tag_value)


def check_liveness(query: str, rows: list[dict[str, Any]]) -> E2EError | None:
    """At least one row, and no null field other than timestamp in the first one."""
    if not rows:
        return TransientAssertionError(f"{NO_RESULT}: {query}")
    for key, value in rows[0].items():
        if key == "timestamp":
            continue
        if value is None:
            return TransientAssertionError(f"{NOT_VALID}: {query}", data={"key": key})
    return None


class NRQLTester:
    """Runs every NRQL assertion of a scenario and collects the failures."""

    def __init__(self, client: QueryClient, account_id: int):
        self.client = client
        self.account_id = account_id

    def test(self, tests: Tests, tag_key: str, tag_value: str) -> list[E2EError]:
        errors: list[E2EError] = []
        for assertion in tests.nrqls:
            try:
                validate_nrql_assertion(assertion)
            except ConfigurationError as e:
                errors.append(e)
                continue

            error = self._check(assertion, scoped_query(assertion.query, tag_key, tag_value))
            if error is not None:
                errors.append(error)
        return errors

    def _check(self, assertion: NRQLAssertion, query: str) -> E2EError | None:
        logger.debug("running nrql assertion", query=query)
        if assertion.error_expected:
            return self._check_error_expected(query)
        if assertion.expected_results:
            return self._check_expected_results(assertion, query)
        return self._check_default(query)

    def _run(self, query: str) -> list[dict[str, Any]]:
        return self.client.query(self.account_id, query)

    def _check_default(self, query: str) -> E2EError | None:
        try:
            rows = self._run(query)
        except QueryClientError as e:
            return TransientAssertionError(
                f"querying: executing nrql query {query}, {e}", data={"cause": e.message}
            )
        return check_liveness(query, rows)

    def _check_error_expected(self, query: str) -> E2EError | None:
        try:
            rows = self._run(query)
        except QueryClientError as e:
            logger.debug("expected error received", query=query, error=str(e))
            return None
        if check_liveness(query, rows) is not None:
            return None
        return TransientAssertionError(f"running {query!r}: {ERROR_EXPECTED}")

    def _check_expected_results(self, assertion: NRQLAssertion, query: str) -> E2EError | None:
        try:
            rows = self._run(query)
        except QueryClientError as e:
            return TransientAssertionError(
                f"executing nrql query {query}, {e}", data={"cause": e.message}
            )

        expected_results = assertion.expected_results
        if len(rows) != len(expected_results):
            return TransientAssertionError(
                f"{RESULT_NUMBER}: {query}\n"
                f" - expected {len(expected_results)} got {len(rows)}"
            )

        for row, expected in zip(rows, expected_results):
            result = compare_expected(row.get(expected.key), expected)
            if not result.passed:
                return TransientAssertionError(
                    f"{NOT_EXPECTED_RESULT}: {query}\n"
                    f" - for key '{expected.key}': {result.message}",
                    data={"key": expected.key, "measured": result.measured},
                )
        return None
