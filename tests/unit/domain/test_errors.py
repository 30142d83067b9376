"""Unit tests for the conformance error taxonomy."""

import pytest

from certsuite.domain.errors import (
    CaseFailedError,
    ConfigurationError,
    ConflictError,
    ConformanceError,
    CreationError,
    Failure,
    FetchError,
    GatingSkip,
    UnknownCapabilityError,
    ValidationError,
    ValidationFailure,
    WaitCancelledError,
    WaitTimeoutError,
)


@pytest.mark.parametrize(
    "error",
    [
        ConfigurationError("x"),
        UnknownCapabilityError("x"),
        CreationError("Certificate", "c", "denied"),
        WaitTimeoutError("c to be ready", 1.0, None),
        FetchError("c", 3, RuntimeError("boom")),
        WaitCancelledError("stop"),
        ConflictError(5),
        ValidationFailure("check", "bad"),
        ValidationError("c", [Failure("check", "bad")]),
    ],
    ids=lambda e: type(e).__name__,
)
def test_every_error_is_a_conformance_error(error):
    assert isinstance(error, ConformanceError)


def test_timeout_is_also_a_builtin_timeout():
    assert issubclass(WaitTimeoutError, TimeoutError)


def test_timeout_and_cancellation_are_distinct():
    """Callers can tell a timeout from a cancellation."""
    assert not issubclass(WaitCancelledError, WaitTimeoutError)
    assert not issubclass(WaitTimeoutError, WaitCancelledError)


def test_timeout_carries_last_observed_state():
    e = WaitTimeoutError("Certificate 'ns/c' to be ready", 2.5, {"ready": False})
    assert e.last_observed == {"ready": False}
    assert e.elapsed == 2.5
    assert "2.50s" in str(e)
    assert "{'ready': False}" in str(e)


def test_failure_str_includes_expected_and_actual():
    assert str(Failure("check", "bad")) == "check: bad"
    assert str(Failure("check", "bad", expected=1, actual=2)) == (
        "check: bad (expected 1, got 2)"
    )


def test_validation_error_lists_every_failure():
    failures = [Failure("a", "first"), Failure("b", "second")]
    e = ValidationError("Certificate 'ns/c'", failures)
    assert e.failures == tuple(failures)
    assert "2 validation(s) failed for Certificate 'ns/c'" in str(e)
    assert "  - a: first" in str(e)
    assert "  - b: second" in str(e)


def test_validation_failure_wraps_a_failure():
    e = ValidationFailure("check", "bad", expected="x", actual="y")
    assert e.failure == Failure("check", "bad", "x", "y")


def test_case_failed_names_scenario_run_id_and_gating():
    cause = WaitTimeoutError("c", 1.0, None)
    e = CaseFailedError("acme", "should issue", "abc123", ["Duration", "OnlySAN"], cause)
    text = str(e)
    assert "[acme] should issue" in text
    assert "run id abc123" in text
    assert "requires: Duration, OnlySAN" in text
    assert "WaitTimeoutError" in text
    assert e.cause is cause
    assert e.required == ("Duration", "OnlySAN")


def test_case_failed_without_gating_says_none():
    e = CaseFailedError("acme", "s", "id", [], ConflictError(1))
    assert "requires: none" in str(e)


def test_gating_skip_str():
    skip = GatingSkip("acme", "should issue", ("Duration", "OnlySAN"))
    assert str(skip) == "[acme] should issue (unsupported: Duration, OnlySAN)"
