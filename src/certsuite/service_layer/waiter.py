"""Polling and retry primitives for eventually consistent backends.

Issuance is asynchronous: after the suite submits a `Certificate`, the backend
reconciles it at its own pace. The functions here observe that state without
busy-looping and without waiting forever.

- `poll_until`: generic fetch/predicate loop bounded by a timeout.
- `wait_until_ready`: waits for a certificate to reach a terminal Ready state
  at (or after) the generation recorded at submission.
- `wait_for_artifact_data`: waits for a secret's certificate bytes to be
  repopulated after they were cleared.
- `retry_on_conflict`: bounded optimistic re-read-and-reapply combinator.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar, cast

from certsuite.domain.errors import ConflictError, FetchError, WaitTimeoutError
from certsuite.domain.resources import (
    CONDITION_ISSUING,
    CONDITION_READY,
    TLS_CERT_KEY,
    Certificate,
    ConditionStatus,
    ResourceKind,
    Secret,
)
from certsuite.interfaces.resource_client import (
    Conflict,
    ResourceClient,
    ResourceClientError,
)

from .context import RunContext

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_POLL_INTERVAL = 0.5
DEFAULT_FETCH_RETRIES = 3
DEFAULT_CONFLICT_ATTEMPTS = 5
DEFAULT_CONFLICT_DELAY = 0.01


@dataclass(frozen=True)
class WaitSettings:
    """Timeouts and budgets for waiting on the backend, in seconds.

    Attributes:
        issuance_timeout: Bound for single-step issuance.
        extended_timeout: Bound for issuance needing two sequential validation
            rounds (e.g. a wildcard name plus its apex).
        poll_interval: Fixed delay between polls.
        fetch_retries: Consecutive read failures tolerated while polling.
        conflict_attempts: Attempt budget for conflicting updates.
        conflict_delay: Delay between conflicting update attempts.
    """

    issuance_timeout: float = 8 * 60
    extended_timeout: float = 10 * 60
    poll_interval: float = DEFAULT_POLL_INTERVAL
    fetch_retries: int = DEFAULT_FETCH_RETRIES
    conflict_attempts: int = DEFAULT_CONFLICT_ATTEMPTS
    conflict_delay: float = DEFAULT_CONFLICT_DELAY


class _BackoffLog:
    """Debug-log only the 1st, 2nd, 4th, 8th, ... call to avoid flooding."""

    def __init__(self) -> None:
        self._calls = 0

    def __call__(self, msg: str, *args: object) -> None:
        self._calls += 1
        if self._calls & (self._calls - 1) == 0:
            logger.debug(msg, *args)


def poll_until(  # pylint: disable=too-many-arguments
    fetch: Callable[[], T],
    predicate: Callable[[T], bool],
    *,
    timeout: float,
    description: str,
    interval: float = DEFAULT_POLL_INTERVAL,
    fetch_retries: int = DEFAULT_FETCH_RETRIES,
    ctx: RunContext | None = None,
    summarize: Callable[[T], object] = repr,
    clock: Callable[[], float] = time.monotonic,
) -> T:
    """Re-fetch a resource until ``predicate`` holds or ``timeout`` elapses.

    The first fetch happens immediately; later fetches are spaced by
    ``interval`` (shortened so the final poll lands on the deadline).

    Args:
        fetch: Reads the current state. `ResourceClientError` is treated as a
            transient read failure.
        predicate: Returns True once the state is acceptable.
        timeout: Seconds before giving up.
        description: What is being waited for; used in logs and errors.
        interval: Seconds between polls.
        fetch_retries: Consecutive read failures tolerated before failing.
        ctx: Run context; cancellation aborts the wait promptly.
        summarize: Renders an observed state for debug logs.
        clock: Monotonic clock, injectable for tests.

    Returns:
        The first fetched state for which ``predicate`` returned True.

    Raises:
        WaitTimeoutError: If the deadline elapses; carries the last state.
        FetchError: If more than ``fetch_retries`` reads fail in a row.
        WaitCancelledError: If ``ctx`` is cancelled.
    """
    ctx = ctx or RunContext()
    log_backoff = _BackoffLog()
    start = clock()
    deadline = start + timeout
    last: T | None = None
    failures = 0

    while True:
        ctx.raise_if_cancelled()
        try:
            last = fetch()
        except ResourceClientError as e:
            failures += 1
            if failures > fetch_retries:
                raise FetchError(description, failures, e) from e
            logger.debug("Transient error reading %s: %s", description, e)
        else:
            failures = 0
            if predicate(last):
                return last
            log_backoff("Still waiting for %s; observed: %s", description, summarize(last))

        remaining = deadline - clock()
        if remaining <= 0:
            raise WaitTimeoutError(description, clock() - start, last)
        ctx.sleep(min(interval, remaining))


def is_issued(generation: int) -> Callable[[Certificate], bool]:
    """Build the issuance predicate for a certificate submitted at ``generation``.

    The predicate holds once the Ready condition is decided (True or False),
    was observed at ``generation`` or later, and no issuance is in progress.
    Rejecting older observed generations prevents accepting a stale Ready
    recorded before the latest spec change.
    """

    def _check(certificate: Certificate) -> bool:
        ready = certificate.status.condition(CONDITION_READY)
        if ready is None or ready.status is ConditionStatus.UNKNOWN:
            return False
        if ready.observed_generation < generation:
            return False
        issuing = certificate.status.condition(CONDITION_ISSUING)
        return issuing is None or issuing.status is not ConditionStatus.TRUE

    return _check


def _summarize_certificate(certificate: Certificate) -> object:
    return [
        (c.type, c.status.value, c.observed_generation, c.reason)
        for c in certificate.status.conditions
    ]


def wait_until_ready(  # pylint: disable=too-many-arguments
    client: ResourceClient,
    certificate: Certificate,
    *,
    timeout: float,
    predicate: Callable[[Certificate], bool] | None = None,
    settings: WaitSettings = WaitSettings(),
    ctx: RunContext | None = None,
) -> Certificate:
    """Wait for ``certificate`` to reach a terminal Ready state.

    Args:
        client: Client used to re-read the certificate.
        certificate: The certificate as returned by the create/update call;
            its ``metadata.generation`` is the submission generation.
        timeout: Seconds before giving up.
        predicate: Overrides the default `is_issued` predicate.
        settings: Poll interval and fetch retry budget.
        ctx: Run context.

    Returns:
        The certificate as first observed in a terminal state.
    """
    generation = certificate.metadata.generation
    namespace, name = certificate.namespace, certificate.name

    def _fetch() -> Certificate:
        return cast(Certificate, client.get(ResourceKind.CERTIFICATE, namespace, name))

    return poll_until(
        _fetch,
        predicate or is_issued(generation),
        timeout=timeout,
        description=(
            f"Certificate '{namespace}/{name}' to be ready "
            f"(generation >= {generation})"
        ),
        interval=settings.poll_interval,
        fetch_retries=settings.fetch_retries,
        ctx=ctx,
        summarize=_summarize_certificate,
    )


def wait_for_artifact_data(  # pylint: disable=too-many-arguments
    client: ResourceClient,
    namespace: str,
    name: str,
    *,
    timeout: float,
    settings: WaitSettings = WaitSettings(),
    ctx: RunContext | None = None,
) -> Secret:
    """Wait for a secret's certificate bytes to become non-empty.

    Used to detect re-issuance after the certificate data was deliberately
    cleared.
    """

    def _fetch() -> Secret:
        return cast(Secret, client.get(ResourceKind.SECRET, namespace, name))

    return poll_until(
        _fetch,
        lambda secret: bool(secret.data.get(TLS_CERT_KEY)),
        timeout=timeout,
        description=f"Secret '{namespace}/{name}' to contain certificate data",
        interval=settings.poll_interval,
        fetch_retries=settings.fetch_retries,
        ctx=ctx,
        summarize=lambda secret: sorted(k for k, v in secret.data.items() if v),
    )


def retry_on_conflict(  # pylint: disable=too-many-arguments
    read: Callable[[], T],
    mutate: Callable[[T], T],
    write: Callable[[T], T],
    *,
    attempts: int = DEFAULT_CONFLICT_ATTEMPTS,
    delay: float = DEFAULT_CONFLICT_DELAY,
    ctx: RunContext | None = None,
) -> T:
    """Apply ``mutate`` to the latest state, retrying on write conflicts.

    Each attempt re-reads the current state, reapplies ``mutate`` and writes
    the result. ``mutate`` must therefore be idempotent and side-effect-free.
    Errors other than `Conflict` propagate immediately.

    Returns:
        Whatever ``write`` returned for the successful attempt.

    Raises:
        ConflictError: If every one of ``attempts`` writes conflicted.
    """
    if attempts < 1:
        raise ValueError(f"attempts must be >= 1, got {attempts}")
    ctx = ctx or RunContext()
    last_conflict: Conflict | None = None
    for attempt in range(1, attempts + 1):
        ctx.raise_if_cancelled()
        try:
            return write(mutate(read()))
        except Conflict as e:
            last_conflict = e
            logger.debug("Write conflict (attempt %d/%d): %s", attempt, attempts, e)
            if attempt < attempts:
                ctx.sleep(delay)
    raise ConflictError(attempts, last_conflict)
