"""Scenario catalog for certificate issuers.

Every scenario is a declarative row: the capabilities it needs, the mutators
that shape its `Certificate` request, and any assertions beyond the composed
validator list. Which rows run against a backend is decided by a single
intersection test (see `Scenario.runs_without`), so one table certifies many
backends with different limitations.

Two lifecycle scenarios interleave several waits and cannot be expressed as
a single issuance; they carry a hand-written ``procedure`` but are gated
exactly like the table rows.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import TypeAlias, cast

from certsuite.domain.capabilities import Capability, CapabilitySet
from certsuite.domain.errors import (
    CreationError,
    Failure,
    ValidationError,
)
from certsuite.domain.resources import (
    TLS_CERT_KEY,
    Certificate,
    KeyAlgorithm,
    KeyUsage,
    ResourceKind,
    Secret,
)
from certsuite.interfaces.namer import DNS_LABEL_MAX_LENGTH, Namer
from certsuite.interfaces.resource_client import ResourceClient, ResourceClientError
from certsuite.service_layer.context import RunContext
from certsuite.service_layer.waiter import (
    WaitSettings,
    retry_on_conflict,
    wait_for_artifact_data,
    wait_until_ready,
)
from certsuite.validation import certificates as v
from certsuite.validation.certificates import ValidationFunc, validate

logger = logging.getLogger(__name__)

SHARED_IP_ADDRESS = "127.0.0.1"
SHARED_EMAIL_ADDRESS = "alice@example.com"
SHARED_URI = "spiffe://cluster.local/ns/sandbox/sa/foo"
REQUESTED_DURATION = timedelta(hours=896)


class TimeoutClass(Enum):
    """How long a scenario may wait for issuance."""

    STANDARD = "standard"
    EXTENDED = "extended"

    def seconds(self, settings: WaitSettings) -> float:
        """Resolve this class against ``settings``."""
        if self is TimeoutClass.EXTENDED:
            return settings.extended_timeout
        return settings.issuance_timeout


@dataclass(frozen=True)
class BuildContext:
    """Everything a mutator may draw on besides the certificate itself."""

    namer: Namer
    domain_suffix: str

    def subdomain(self, length: int = 10) -> str:
        """Return a random subdomain of the configured domain suffix."""
        return self.namer.subdomain(self.domain_suffix, length)

    def common_name(self) -> str:
        """Return a random, non-DNS common name."""
        return f"test-common-name-{self.namer.random_string(10)}"


@dataclass(frozen=True)
class Execution:
    """Collaborators a procedure runs against for one case."""

    client: ResourceClient
    build: BuildContext
    settings: WaitSettings
    ctx: RunContext
    timeout: float
    validators: tuple[ValidationFunc, ...]


Mutator: TypeAlias = Callable[[Certificate, BuildContext], Certificate]
Procedure: TypeAlias = Callable[[Execution, Certificate], Certificate]


# ============================================================================
#                              Mutators
# ============================================================================


def with_random_dns_name(length: int = 10) -> Mutator:
    """Append one random subdomain to the DNS names."""

    def _mutate(cert: Certificate, build: BuildContext) -> Certificate:
        return cert.with_spec(dns_names=cert.spec.dns_names + (build.subdomain(length),))

    return _mutate


def with_random_wildcard(include_apex: bool = False) -> Mutator:
    """Append a random wildcard name and, optionally, its apex."""

    def _mutate(cert: Certificate, build: BuildContext) -> Certificate:
        apex = build.subdomain()
        names = (f"*.{apex}", apex) if include_apex else (f"*.{apex}",)
        return cert.with_spec(dns_names=cert.spec.dns_names + names)

    return _mutate


def with_random_common_name(cert: Certificate, build: BuildContext) -> Certificate:
    return cert.with_spec(common_name=build.common_name())


def with_dns_common_name(copy_to_dns_names: bool) -> Mutator:
    """Set a DNS-shaped common name, optionally also requested as a SAN."""

    def _mutate(cert: Certificate, build: BuildContext) -> Certificate:
        common_name = build.subdomain()
        dns_names = cert.spec.dns_names
        if copy_to_dns_names:
            dns_names = (common_name,) + dns_names
        return cert.with_spec(common_name=common_name, dns_names=dns_names)

    return _mutate


def with_literal_subject(cert: Certificate, build: BuildContext) -> Certificate:
    host = f"*.{build.namer.random_string(10)}.foo-long.bar.com"
    return cert.with_spec(
        literal_subject=f"CN={host},OU=FooLong,OU=Bar,OU=Baz,OU=Dept.,O=Corp.",
        dns_names=(host,),
    )


def with_key_algorithm(algorithm: KeyAlgorithm) -> Mutator:
    def _mutate(cert: Certificate, build: BuildContext) -> Certificate:
        del build
        return cert.with_spec(key_algorithm=algorithm)

    return _mutate


def with_fields(**changes: object) -> Mutator:
    """Set fixed spec fields."""

    def _mutate(cert: Certificate, build: BuildContext) -> Certificate:
        del build
        return cert.with_spec(**changes)

    return _mutate


def build_certificate(
    template: Certificate, mutators: Iterable[Mutator], build: BuildContext
) -> Certificate:
    """Apply ``mutators`` to ``template`` in declaration order."""
    cert = template
    for mutate in mutators:
        cert = mutate(cert, build)
    return cert


# ============================================================================
#                              Procedures
# ============================================================================


def _create(run: Execution, certificate: Certificate) -> Certificate:
    logger.info("Creating a Certificate '%s/%s'", certificate.namespace, certificate.name)
    try:
        return run.client.create(certificate)
    except ResourceClientError as e:
        raise CreationError(certificate.kind.value, certificate.name, str(e)) from e


def _secret_for(run: Execution, certificate: Certificate) -> Secret:
    return cast(
        Secret,
        run.client.get(
            ResourceKind.SECRET, certificate.namespace, certificate.spec.secret_name
        ),
    )


def _await_and_validate(run: Execution, submitted: Certificate) -> Certificate:
    logger.info("Waiting for the Certificate '%s' to be issued", submitted.name)
    issued = wait_until_ready(
        run.client, submitted, timeout=run.timeout, settings=run.settings, ctx=run.ctx
    )
    logger.info("Validating the issued Certificate '%s'", issued.name)
    validate(issued, _secret_for(run, issued), run.validators)
    return issued


def issue_and_validate(run: Execution, certificate: Certificate) -> Certificate:
    """Create, await issuance, validate. The default procedure."""
    return _await_and_validate(run, _create(run, certificate))


def reissue_with_same_private_key(run: Execution, certificate: Certificate) -> Certificate:
    """Clear the issued certificate data and expect re-issuance with the same key."""
    issued = issue_and_validate(run, certificate)
    first = v.decode_leaf(_secret_for(run, issued))

    logger.info("Deleting the certificate data of Secret '%s'", issued.spec.secret_name)
    retry_on_conflict(
        lambda: _secret_for(run, issued),
        lambda secret: secret.with_data(**{TLS_CERT_KEY.replace(".", "_"): b""}),
        run.client.update,
        attempts=run.settings.conflict_attempts,
        delay=run.settings.conflict_delay,
        ctx=run.ctx,
    )

    logger.info("Waiting for the Secret '%s' to be re-populated", issued.spec.secret_name)
    secret = wait_for_artifact_data(
        run.client,
        issued.namespace,
        issued.spec.secret_name,
        timeout=run.timeout,
        settings=run.settings,
        ctx=run.ctx,
    )
    second = v.decode_leaf(secret)
    if v.public_key_bytes(first.public_key()) != v.public_key_bytes(second.public_key()):
        raise ValidationError(
            f"Certificate '{issued.namespace}/{issued.name}'",
            [
                Failure(
                    "reissue_with_same_private_key",
                    "re-issued certificate is not signed for the same private key",
                )
            ],
        )
    return issued


def update_with_new_dns_name(run: Execution, certificate: Certificate) -> Certificate:
    """Append a DNS name to an issued certificate and expect re-issuance."""
    issued = issue_and_validate(run, certificate)
    new_name = run.build.subdomain()

    def _append(current: Certificate) -> Certificate:
        if new_name in current.spec.dns_names:
            return current
        return current.with_spec(dns_names=current.spec.dns_names + (new_name,))

    logger.info("Updating the Certificate '%s' with DNS name %s", issued.name, new_name)
    updated = retry_on_conflict(
        lambda: cast(
            Certificate,
            run.client.get(ResourceKind.CERTIFICATE, issued.namespace, issued.name),
        ),
        _append,
        run.client.update,
        attempts=run.settings.conflict_attempts,
        delay=run.settings.conflict_delay,
        ctx=run.ctx,
    )
    return _await_and_validate(run, updated)


# ============================================================================
#                              Catalog
# ============================================================================


@dataclass(frozen=True)
class Scenario:
    """One row of the catalog."""

    name: str
    required_capabilities: frozenset[Capability]
    mutators: tuple[Mutator, ...] = ()
    extra_validators: tuple[ValidationFunc, ...] = ()
    timeout: TimeoutClass = TimeoutClass.STANDARD
    procedure: Procedure = issue_and_validate

    def runs_without(self, unsupported: CapabilitySet) -> bool:
        """True iff none of the required capabilities are unsupported."""
        return not unsupported.intersection(self.required_capabilities)

    def blocked_by(self, unsupported: CapabilitySet) -> frozenset[Capability]:
        """Return the required capabilities that are declared unsupported."""
        return unsupported.intersection(self.required_capabilities)


def scenario(
    name: str,
    *required: Capability,
    mutators: Iterable[Mutator] = (),
    extra_validators: Iterable[ValidationFunc] = (),
    timeout: TimeoutClass = TimeoutClass.STANDARD,
    procedure: Procedure = issue_and_validate,
) -> Scenario:
    return Scenario(
        name=name,
        required_capabilities=frozenset(required),
        mutators=tuple(mutators),
        extra_validators=tuple(extra_validators),
        timeout=timeout,
        procedure=procedure,
    )


C = Capability

CATALOG: tuple[Scenario, ...] = (
    scenario(
        "should issue a basic, defaulted certificate for a single distinct DNS Name",
        C.ONLY_SAN,
        mutators=[with_random_dns_name()],
    ),
    scenario(
        "should issue a CA certificate with the CA basicConstraint set",
        C.ISSUE_CA,
        mutators=[with_fields(is_ca=True), with_random_dns_name()],
    ),
    scenario(
        "should issue an ECDSA, defaulted certificate for a single distinct DNS Name",
        C.ECDSA,
        C.ONLY_SAN,
        mutators=[with_key_algorithm(KeyAlgorithm.ECDSA), with_random_dns_name()],
    ),
    scenario(
        "should issue an Ed25519, defaulted certificate for a single distinct DNS Name",
        C.ONLY_SAN,
        C.ED25519,
        mutators=[with_key_algorithm(KeyAlgorithm.ED25519), with_random_dns_name()],
    ),
    scenario(
        "should issue a basic, defaulted certificate for a single Common Name",
        C.COMMON_NAME,
        mutators=[with_random_common_name],
    ),
    scenario(
        "should issue a basic, defaulted certificate for a single distinct DNS Name "
        "with a literal subject",
        C.LITERAL_SUBJECT,
        mutators=[with_literal_subject],
        extra_validators=[v.expect_literal_subject_to_match],
    ),
    scenario(
        "should issue an ECDSA, defaulted certificate for a single Common Name",
        C.ECDSA,
        C.COMMON_NAME,
        mutators=[with_key_algorithm(KeyAlgorithm.ECDSA), with_random_common_name],
    ),
    scenario(
        "should issue an Ed25519, defaulted certificate for a single Common Name",
        C.ED25519,
        C.COMMON_NAME,
        mutators=[with_key_algorithm(KeyAlgorithm.ED25519), with_random_common_name],
    ),
    scenario(
        "should issue a certificate that defines an IP Address",
        C.IP_ADDRESSES,
        mutators=[with_fields(ip_addresses=(SHARED_IP_ADDRESS,))],
    ),
    scenario(
        "should issue a certificate that defines a DNS Name and IP Address",
        C.ONLY_SAN,
        C.IP_ADDRESSES,
        mutators=[with_fields(ip_addresses=(SHARED_IP_ADDRESS,)), with_random_dns_name()],
    ),
    scenario(
        "should issue a certificate that defines a Common Name and IP Address",
        C.COMMON_NAME,
        C.IP_ADDRESSES,
        mutators=[with_random_common_name, with_fields(ip_addresses=(SHARED_IP_ADDRESS,))],
    ),
    scenario(
        "should issue a certificate that defines an Email Address",
        C.EMAIL_SANS,
        C.ONLY_SAN,
        mutators=[with_fields(email_addresses=(SHARED_EMAIL_ADDRESS,))],
    ),
    scenario(
        "should issue a certificate that defines a Common Name and URI SAN",
        C.URI_SANS,
        C.COMMON_NAME,
        mutators=[with_random_common_name, with_fields(uris=(SHARED_URI,))],
    ),
    scenario(
        "should issue a certificate that defines a 2 distinct DNS Names with one "
        "copied to the Common Name",
        C.COMMON_NAME,
        mutators=[with_random_dns_name(), with_dns_common_name(copy_to_dns_names=True)],
    ),
    scenario(
        "should issue a certificate that defines a distinct DNS Name and another "
        "distinct Common Name",
        C.COMMON_NAME,
        mutators=[with_dns_common_name(copy_to_dns_names=False), with_random_dns_name()],
    ),
    scenario(
        "should issue a certificate that defines a DNS Name and sets a duration",
        C.DURATION,
        C.ONLY_SAN,
        mutators=[with_random_dns_name(), with_fields(duration=REQUESTED_DURATION)],
    ),
    scenario(
        "should issue a certificate that defines a wildcard DNS Name",
        C.WILDCARDS,
        C.ONLY_SAN,
        mutators=[with_random_wildcard()],
    ),
    scenario(
        "should issue a certificate that includes only a URISANs name",
        C.URI_SANS,
        C.ONLY_SAN,
        mutators=[with_fields(uris=(SHARED_URI,))],
    ),
    scenario(
        "should issue a certificate that includes arbitrary key usages",
        C.KEY_USAGES,
        C.ONLY_SAN,
        mutators=[
            with_random_dns_name(),
            with_fields(
                usages=(
                    KeyUsage.DIGITAL_SIGNATURE,
                    KeyUsage.DATA_ENCIPHERMENT,
                    KeyUsage.SERVER_AUTH,
                    KeyUsage.CLIENT_AUTH,
                )
            ),
        ],
        extra_validators=[
            v.expect_ext_key_usage_client_auth,
            v.expect_ext_key_usage_server_auth,
            v.expect_key_usage_digital_signature,
            v.expect_key_usage_data_encipherment,
        ],
    ),
    scenario(
        "should issue another certificate with the same private key if the existing "
        "certificate data is deleted",
        C.REUSE_PRIVATE_KEY,
        C.ONLY_SAN,
        mutators=[with_random_dns_name()],
        procedure=reissue_with_same_private_key,
    ),
    scenario(
        "should issue a certificate that defines a long domain",
        C.ONLY_SAN,
        C.LONG_DOMAIN,
        mutators=[with_random_dns_name(DNS_LABEL_MAX_LENGTH)],
    ),
    scenario(
        "should allow updating an existing certificate with a new DNS Name",
        C.ONLY_SAN,
        mutators=[with_random_dns_name()],
        procedure=update_with_new_dns_name,
    ),
    scenario(
        "should issue a certificate that defines a wildcard DNS Name and its apex "
        "DNS Name",
        C.WILDCARDS,
        C.ONLY_SAN,
        mutators=[with_random_wildcard(include_apex=True)],
        timeout=TimeoutClass.EXTENDED,
    ),
)
