"""Authorization-matrix suite.

Certifies that the aggregated ``view``/``edit``/``admin`` roles grant the
expected verbs on the issuer resource types: ``view`` may only read, while
``edit`` and ``admin`` may also write. Each (role, verb, resource) triple is
one case, registered through the same complete/define/gate flow as the
certificate suite and executed by `certsuite.suite.run_cases`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from certsuite.domain.errors import (
    CaseFailedError,
    ConfigurationError,
    Failure,
    GatingSkip,
    ValidationError,
    WaitCancelledError,
)
from certsuite.interfaces.access_reviewer import AccessReviewer
from certsuite.service_layer.context import RunContext

logger = logging.getLogger(__name__)

READ_VERBS = ("get", "list", "watch")
WRITE_VERBS = ("create", "delete", "deletecollection", "patch", "update")
ROLES = ("view", "edit", "admin")
RESOURCES = ("issuers", "certificates", "certificaterequests")


@dataclass(frozen=True)
class AccessExpectation:
    """Whether ``role`` should be allowed ``verb`` on ``resource``."""

    role: str
    verb: str
    resource: str
    allowed: bool

    def describe(self) -> str:
        verb = "delete collections of" if self.verb == "deletecollection" else self.verb
        should = "should" if self.allowed else "shouldn't"
        return (
            f"with namespace {self.role} access {should} be able to "
            f"{verb} {self.resource}"
        )

    @property
    def review_id(self) -> str:
        """Stable identifier of this access review, e.g. ``review-view-get-issuers``."""
        return f"review-{self.role}-{self.verb}-{self.resource}"


def access_matrix(resources: Iterable[str] = RESOURCES) -> list[AccessExpectation]:
    """Return the expected grants of every role on ``resources``."""
    return [
        AccessExpectation(role, verb, resource, role != "view" or verb in READ_VERBS)
        for resource in resources
        for role in ROLES
        for verb in WRITE_VERBS + READ_VERBS
    ]


class RBACSuite:
    """Authorization suite for one issuer type.

    Args:
        reviewer: Answers access reviews for the cluster under test.
        name: Display name of the issuer type.
        resources: Resource types the issuer serves; matrix rows for any
            other resource are skipped.
    """

    def __init__(
        self,
        reviewer: AccessReviewer,
        *,
        name: str = "",
        resources: Iterable[str] | None = None,
    ) -> None:
        self.reviewer = reviewer
        self.name = name
        self.resources = None if resources is None else frozenset(resources)
        self.completed = False
        self.skipped: list[GatingSkip] = []
        self._cases: list[AccessCase] | None = None

    def complete(self) -> None:
        """Validate settings and default the resource set; idempotent."""
        if self.completed:
            return
        if not self.name:
            raise ConfigurationError("RBAC suite name must be set.")
        if self.resources is None:
            self.resources = frozenset(RESOURCES)
        self.completed = True

    def define(self) -> list[AccessCase]:
        """Register one case per served matrix row; repeat calls return the same cases."""
        if self._cases is not None:
            return list(self._cases)
        self.complete()
        assert self.resources is not None

        cases = []
        for expectation in access_matrix():
            if expectation.resource in self.resources:
                cases.append(AccessCase(self, expectation))
                continue
            skip = GatingSkip(self.name, expectation.describe(), (expectation.resource,))
            self.skipped.append(skip)
            logger.debug("Skipping %s", skip)
        self._cases = cases
        return list(cases)


class AccessCase:
    """One row of the authorization matrix."""

    def __init__(self, suite: RBACSuite, expectation: AccessExpectation) -> None:
        self.suite = suite
        self.expectation = expectation

    @property
    def id(self) -> str:
        return f"{self.suite.name}/{self.expectation.describe()}"

    def run(self, ctx: RunContext | None = None) -> bool:
        """Review access and compare with the expectation.

        Raises:
            CaseFailedError: If the reviewer's answer differs.
        """
        e = self.expectation
        if ctx is not None and ctx.cancelled:
            cancelled = WaitCancelledError("run cancelled before access review")
            raise CaseFailedError(
                self.suite.name, e.describe(), e.review_id, (), cancelled
            )
        allowed = self.suite.reviewer.has_access(e.role, e.verb, e.resource)
        logger.debug("%s %s %s -> %s", e.role, e.verb, e.resource, allowed)
        if allowed != e.allowed:
            cause = ValidationError(
                f"role '{e.role}'",
                [
                    Failure(
                        "has_access",
                        f"unexpected access to {e.verb} {e.resource}",
                        expected=e.allowed,
                        actual=allowed,
                    )
                ],
            )
            raise CaseFailedError(
                self.suite.name, e.describe(), e.review_id, (), cause
            ) from cause
        return allowed
