"""Error taxonomy for nri-e2e.

Every failure the harness reports is an E2EError. The subclasses decide how
the runner treats it:

- ConfigurationError: malformed spec or assertion, fails fast, never retried
- TransientAssertionError: telemetry not (yet) matching, retried
- QueryClientError: backend unreachable or rejecting a query, retried
- InfrastructureError: agent or command failure, aborts the run
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class E2EError(Exception):
    """Base error class for harness errors."""

    message: str
    retryable: bool = False
    data: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message


@dataclass
class ConfigurationError(E2EError):
    """Malformed configuration or assertion definition."""

    retryable: bool = False


@dataclass
class SpecError(ConfigurationError):
    """Spec document could not be read or parsed."""


@dataclass
class TransientAssertionError(E2EError):
    """Telemetry did not (yet) satisfy an assertion."""

    retryable: bool = True


@dataclass
class QueryClientError(E2EError):
    """Query backend failed or rejected the request."""

    retryable: bool = True
    status_code: int | None = None


@dataclass
class InfrastructureError(E2EError):
    """Agent environment or command failure."""

    retryable: bool = False


@dataclass
class CommandError(InfrastructureError):
    """A shell command exited with a non-zero status."""

    command: str = ""
    returncode: int | None = None


@dataclass
class RetriesExhaustedError(E2EError):
    """Assertions still failing after every attempt.

    Only the errors of the last attempt are kept.
    """

    message: str = "assertions failed after retries"
    errors: list[E2EError] = field(default_factory=list)
    attempts: int = 0

    def __str__(self) -> str:
        lines = [f"{self.message} ({self.attempts} attempts):"]
        lines.extend(f" - {error}" for error in self.errors)
        return "\n".join(lines)
