"""Conformance suite for certificate issuers.

A `Suite` certifies one issuer. It is constructed with partial settings,
completed once (`complete`), and then expanded into independent
`ConformanceCase` objects (`define`), one per catalog scenario that the
issuer's declared limitations allow. Cases share nothing mutable besides the
completed, read-only suite configuration, so `run_cases` may execute them on
any number of worker threads.

Lifecycle::

    Uninitialized --complete()--> Completed --define()--> Defined

Each case labels everything it creates with a unique cleanup label and
deletes every labelled resource once it finishes, pass or fail.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Protocol

from certsuite.adapters.namers import ULIDNamer
from certsuite.catalog import CATALOG, BuildContext, Execution, Scenario, build_certificate
from certsuite.domain.capabilities import CapabilitySet
from certsuite.domain.errors import (
    CaseFailedError,
    ConfigurationError,
    ConformanceError,
    FetchError,
    GatingSkip,
    UnexpectedError,
)
from certsuite.domain.resources import (
    Certificate,
    CertificateSpec,
    ObjectMeta,
    ObjectReference,
    ResourceKind,
)
from certsuite.interfaces.namer import Namer
from certsuite.interfaces.resource_client import (
    NotFound,
    ResourceClient,
    ResourceClientError,
)
from certsuite.service_layer.context import RunContext
from certsuite.service_layer.waiter import WaitSettings
from certsuite.validation.certificates import ValidationFunc
from certsuite.validation.composer import validators_for

logger = logging.getLogger(__name__)

DEFAULT_DOMAIN_SUFFIX = "example.com"
CLEANUP_LABEL_PREFIX = "certsuite-cleanup-"


def certificate_template(namespace: str, suffix: str, cleanup_label: str) -> Certificate:
    """Return the namespace-scoped request every scenario starts from."""
    name = f"testcert-{suffix}"
    return Certificate(
        metadata=ObjectMeta(name=name, namespace=namespace, labels={cleanup_label: "true"}),
        spec=CertificateSpec(secret_name=f"{name}-tls"),
    )


class Suite:
    """Conformance suite for a single issuer.

    Args:
        client: Client for the resource store the issuer watches.
        name: Display name of the issuer type.
        issuer_ref: Reference to the issuer under test.
        namespace: Namespace every case creates its resources in.
        domain_suffix: Parent domain for generated DNS names.
        unsupported_capabilities: Capabilities the issuer declares it lacks.
        namer: Source of unique names; defaults to `ULIDNamer`.
        settings: Timeouts and retry budgets.

    Once `complete` has run, assigning any configuration attribute raises
    `ConfigurationError`.
    """

    _CONFIG = frozenset(
        {
            "name",
            "issuer_ref",
            "namespace",
            "domain_suffix",
            "unsupported_capabilities",
            "namer",
            "settings",
        }
    )

    def __init__(  # pylint: disable=too-many-arguments
        self,
        client: ResourceClient,
        *,
        name: str = "",
        issuer_ref: ObjectReference | None = None,
        namespace: str = "",
        domain_suffix: str = "",
        unsupported_capabilities: CapabilitySet | None = None,
        namer: Namer | None = None,
        settings: WaitSettings | None = None,
    ) -> None:
        self.completed = False
        self.client = client
        self.name = name
        self.issuer_ref = issuer_ref
        self.namespace = namespace
        self.domain_suffix = domain_suffix
        self.unsupported_capabilities = unsupported_capabilities
        self.namer = namer
        self.settings = settings
        self.skipped: list[GatingSkip] = []
        self._cases: list[ConformanceCase] | None = None

    def __setattr__(self, key: str, value: object) -> None:
        if key in self._CONFIG and getattr(self, "completed", False):
            raise ConfigurationError(
                f"Suite '{self.name}' is complete; '{key}' can no longer be changed."
            )
        super().__setattr__(key, value)

    def complete(self) -> None:
        """Validate required settings and fill in defaults; idempotent.

        Raises:
            ConfigurationError: If the name, issuer reference or namespace
                is missing.
        """
        if self.completed:
            return
        if not self.name:
            raise ConfigurationError("Suite name must be set.")
        if self.issuer_ref is None or not self.issuer_ref.name:
            raise ConfigurationError(f"Suite '{self.name}': issuer_ref must be set.")
        if not self.namespace:
            raise ConfigurationError(f"Suite '{self.name}': namespace must be set.")
        if not self.domain_suffix:
            self.domain_suffix = DEFAULT_DOMAIN_SUFFIX
        self.unsupported_capabilities = CapabilitySet(
            self.unsupported_capabilities or ()
        ).frozen()
        if self.namer is None:
            self.namer = ULIDNamer()
        if self.settings is None:
            self.settings = WaitSettings()
        self.completed = True
        logger.debug(
            "Completed suite %s (issuer %s, namespace %s, unsupported %s)",
            self.name,
            self.issuer_ref,
            self.namespace,
            list(self.unsupported_capabilities),
        )

    def supports(self, scenario: Scenario) -> bool:
        """Return True iff ``scenario`` needs no declared-unsupported capability."""
        self.complete()
        assert self.unsupported_capabilities is not None
        return scenario.runs_without(self.unsupported_capabilities)

    def define(self, catalog: Iterable[Scenario] = CATALOG) -> list[ConformanceCase]:
        """Register one case per gated scenario; repeat calls return the same cases."""
        if self._cases is not None:
            return list(self._cases)
        self.complete()
        assert self.unsupported_capabilities is not None

        validators = tuple(validators_for(self.unsupported_capabilities))
        cases: list[ConformanceCase] = []
        for scenario in catalog:
            if self.supports(scenario):
                cases.append(ConformanceCase(self, scenario, validators))
                continue
            skip = GatingSkip(
                self.name,
                scenario.name,
                tuple(sorted(c.value for c in scenario.blocked_by(self.unsupported_capabilities))),
            )
            self.skipped.append(skip)
            logger.debug("Skipping %s", skip)
        self._cases = cases
        return list(cases)


class ConformanceCase:
    """One registered scenario of a completed suite.

    Attributes:
        suite: The owning, completed suite.
        scenario: The catalog row this case executes.
        validators: Scenario extras followed by the composed validators.
    """

    def __init__(
        self,
        suite: Suite,
        scenario: Scenario,
        composed: Sequence[ValidationFunc],
    ) -> None:
        self.suite = suite
        self.scenario = scenario
        self.validators = tuple(scenario.extra_validators) + tuple(composed)

    @property
    def id(self) -> str:
        return f"{self.suite.name}/{self.scenario.name}"

    def __repr__(self) -> str:
        return f"ConformanceCase({self.id!r})"

    def run(self, ctx: RunContext | None = None) -> Certificate:
        """Execute the scenario against the suite's issuer.

        Returns:
            The final, validated certificate.

        Raises:
            CaseFailedError: Wrapping the first fatal error of the case.
        """
        ctx = ctx or RunContext()
        suite = self.suite
        assert suite.namer is not None and suite.settings is not None

        run_id = suite.namer.suffix()
        cleanup_label = f"{CLEANUP_LABEL_PREFIX}{run_id}"
        build = BuildContext(suite.namer, suite.domain_suffix)
        certificate = build_certificate(
            certificate_template(suite.namespace, run_id, cleanup_label),
            self.scenario.mutators,
            build,
        ).with_spec(issuer_ref=suite.issuer_ref)

        execution = Execution(
            client=suite.client,
            build=build,
            settings=suite.settings,
            ctx=ctx,
            timeout=self.scenario.timeout.seconds(suite.settings),
            validators=self.validators,
        )
        required = sorted(c.value for c in self.scenario.required_capabilities)

        logger.info("[%s] %s (run id %s)", suite.name, self.scenario.name, run_id)
        try:
            return self.scenario.procedure(execution, certificate)
        except ConformanceError as e:
            raise CaseFailedError(suite.name, self.scenario.name, run_id, required, e) from e
        except ResourceClientError as e:
            cause = FetchError(f"resources of case {run_id}", 1, e)
            raise CaseFailedError(
                suite.name, self.scenario.name, run_id, required, cause
            ) from e
        except Exception as e:  # pylint: disable=broad-except
            logger.exception("[%s] %s raised an unexpected error", suite.name, run_id)
            raise CaseFailedError(
                suite.name, self.scenario.name, run_id, required, UnexpectedError(e)
            ) from e
        finally:
            self._cleanup(cleanup_label, certificate.spec.secret_name)

    def _cleanup(self, label: str, secret_name: str) -> None:
        client, namespace = self.suite.client, self.suite.namespace
        for kind in (ResourceKind.CERTIFICATE, ResourceKind.SECRET):
            try:
                deleted = client.delete_all_labelled(kind, namespace, label)
            except ResourceClientError as e:
                logger.warning("Cleanup of %s labelled %s failed: %s", kind.value, label, e)
            else:
                logger.debug("Deleted %d %s(s) labelled %s", deleted, kind.value, label)
        try:
            client.delete(ResourceKind.SECRET, namespace, secret_name)
        except NotFound:
            logger.debug("Secret %s/%s already gone", namespace, secret_name)
        except ResourceClientError as e:
            logger.warning("Cleanup of Secret %s/%s failed: %s", namespace, secret_name, e)


# ============================================================================
#                              Runner
# ============================================================================


class Case(Protocol):
    """Anything `run_cases` can execute."""

    @property
    def id(self) -> str: ...

    def run(self, ctx: RunContext | None = None) -> object: ...


@dataclass(frozen=True)
class CaseResult:
    """Outcome of one case."""

    case_id: str
    elapsed: float
    error: CaseFailedError | None = None

    @property
    def passed(self) -> bool:
        return self.error is None


def _run_one(case: Case, ctx: RunContext) -> CaseResult:
    start = time.monotonic()
    try:
        case.run(ctx)
    except CaseFailedError as e:
        logger.error("FAIL %s: %s", case.id, e)
        return CaseResult(case.id, time.monotonic() - start, e)
    logger.info("PASS %s", case.id)
    return CaseResult(case.id, time.monotonic() - start)


def run_cases(
    cases: Iterable[Case], workers: int = 1, ctx: RunContext | None = None
) -> list[CaseResult]:
    """Run ``cases`` on up to ``workers`` threads; results keep input order.

    A failing case never stops its siblings.
    """
    if workers < 1:
        raise ValueError(f"workers must be >= 1, got {workers}")
    ctx = ctx or RunContext()
    cases = list(cases)
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="certsuite") as pool:
        return list(pool.map(lambda case: _run_one(case, ctx), cases))
