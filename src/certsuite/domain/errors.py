"""Error taxonomy of the conformance engine.

Every error a conformance case can fail with derives from `ConformanceError`.
Errors are scoped to the case that raised them; the suite never lets one
case's failure abort its siblings.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

# ============================================================================
#                           General errors
# ============================================================================


class ConformanceError(Exception):
    """Base class for conformance-engine errors."""


# ============================================================================
#                           Setup errors
# ============================================================================


class ConfigurationError(ConformanceError):
    """Raised when a suite is misconfigured; fatal at setup, never retried."""


class UnknownCapabilityError(ConfigurationError):
    """Raised when a capability name cannot be resolved."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown capability '{name}'.")
        self.name = name


@dataclass(frozen=True)
class GatingSkip:
    """Record of a scenario not registered because of declared limitations.

    Not an error: skipping is the expected outcome for such scenarios.
    """

    suite: str
    scenario: str
    blocked_by: tuple[str, ...]

    def __str__(self) -> str:
        return f"[{self.suite}] {self.scenario} (unsupported: {', '.join(self.blocked_by)})"


# ============================================================================
#                           Execution errors
# ============================================================================


class CreationError(ConformanceError):
    """Raised when the backend rejects a create request; never retried.

    Attributes:
        kind (str): The kind of the rejected resource.
        name (str): The name of the rejected resource.
    """

    def __init__(self, kind: str, name: str, reason: str) -> None:
        super().__init__(f"Failed to create {kind} '{name}': {reason}")
        self.kind = kind
        self.name = name
        self.reason = reason


class WaitTimeoutError(ConformanceError, TimeoutError):
    """Raised when a waiter's predicate is never satisfied before its deadline.

    Attributes:
        description (str): What was being waited for.
        elapsed (float): Seconds spent polling.
        last_observed (object | None): The last state fetched, if any.
    """

    def __init__(
        self, description: str, elapsed: float, last_observed: object | None
    ) -> None:
        super().__init__(
            f"Timed out after {elapsed:.2f}s waiting for {description}; "
            f"last observed state: {last_observed!r}"
        )
        self.description = description
        self.elapsed = elapsed
        self.last_observed = last_observed


class FetchError(ConformanceError):
    """Raised when a waiter cannot read the observed resource."""

    def __init__(self, description: str, attempts: int, cause: Exception) -> None:
        super().__init__(
            f"Failed to fetch {description} after {attempts} attempt(s): {cause}"
        )
        self.description = description
        self.attempts = attempts


class WaitCancelledError(ConformanceError):
    """Raised when the run context is cancelled or its deadline passes."""


class ConflictError(ConformanceError):
    """Raised when an optimistic update still conflicts after every retry."""

    def __init__(self, attempts: int, cause: Exception | None = None) -> None:
        super().__init__(
            f"Update still conflicting after {attempts} attempt(s): {cause}"
        )
        self.attempts = attempts


class UnexpectedError(ConformanceError):
    """Raised when a case fails with an error outside this taxonomy.

    The original exception is chained as ``__cause__``.
    """

    def __init__(self, cause: Exception) -> None:
        super().__init__(f"{type(cause).__name__}: {cause}")


# ============================================================================
#                           Validation errors
# ============================================================================


@dataclass(frozen=True)
class Failure:
    """One violated property: which check failed, and expected vs. actual."""

    check: str
    message: str
    expected: object = None
    actual: object = None

    def __str__(self) -> str:
        text = f"{self.check}: {self.message}"
        if self.expected is not None or self.actual is not None:
            text += f" (expected {self.expected!r}, got {self.actual!r})"
        return text


class ValidationFailure(ConformanceError):
    """Raised by a single validator when its property does not hold."""

    def __init__(
        self, check: str, message: str, expected: object = None, actual: object = None
    ) -> None:
        self.failure = Failure(check, message, expected, actual)
        super().__init__(str(self.failure))


class ValidationError(ConformanceError):
    """Raised once every validator has run and at least one failed.

    Attributes:
        failures (tuple[Failure, ...]): Every violated property, in run order.
    """

    def __init__(self, subject: str, failures: Iterable[Failure]) -> None:
        self.subject = subject
        self.failures = tuple(failures)
        lines = "\n".join(f"  - {f}" for f in self.failures)
        super().__init__(
            f"{len(self.failures)} validation(s) failed for {subject}:\n{lines}"
        )


# ============================================================================
#                           Case errors
# ============================================================================


class CaseFailedError(ConformanceError):
    """Raised when a conformance case fails; wraps the underlying cause.

    The message names the scenario, the generated run id and the capability
    gating that permitted the scenario to run.
    """

    def __init__(
        self,
        suite: str,
        scenario: str,
        run_id: str,
        required: Sequence[str],
        cause: ConformanceError,
    ) -> None:
        gating = ", ".join(required) if required else "none"
        super().__init__(
            f"[{suite}] {scenario} (run id {run_id}, requires: {gating}) "
            f"failed with {type(cause).__name__}: {cause}"
        )
        self.suite = suite
        self.scenario = scenario
        self.run_id = run_id
        self.required = tuple(required)
        self.cause = cause
