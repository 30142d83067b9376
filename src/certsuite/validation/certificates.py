"""Validators for issued certificates.

A validator is a pure function ``(certificate, secret) -> None`` that raises
`ValidationFailure` when the property it checks does not hold. Validators
never mutate their inputs and share no state, so any list of them can be run
in any order; `validate` runs them all and reports every failure at once.

X.509 parsing uses the `cryptography` package.
"""

from __future__ import annotations

import ipaddress
from collections.abc import Callable, Iterable
from datetime import timedelta
from typing import TypeAlias

from cryptography import x509
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa
from cryptography.hazmat.primitives.asymmetric.types import (
    PrivateKeyTypes,
    PublicKeyTypes,
)
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from certsuite.domain.errors import Failure, ValidationError, ValidationFailure
from certsuite.domain.resources import (
    CA_CERT_KEY,
    CERTIFICATE_NAME_ANNOTATION,
    CONDITION_READY,
    DEFAULT_CERTIFICATE_DURATION,
    ISSUER_GROUP_ANNOTATION,
    ISSUER_KIND_ANNOTATION,
    ISSUER_NAME_ANNOTATION,
    TLS_CERT_KEY,
    TLS_PRIVATE_KEY_KEY,
    Certificate,
    ConditionStatus,
    KeyAlgorithm,
    Secret,
)

ValidationFunc: TypeAlias = Callable[[Certificate, Secret], None]

DURATION_FUZZ = timedelta(seconds=30)

_KEY_TYPES = {
    KeyAlgorithm.RSA: rsa.RSAPrivateKey,
    KeyAlgorithm.ECDSA: ec.EllipticCurvePrivateKey,
    KeyAlgorithm.ED25519: ed25519.Ed25519PrivateKey,
}


# ============================================================================
#                              Runner
# ============================================================================


def validate(
    certificate: Certificate, secret: Secret, validators: Iterable[ValidationFunc]
) -> None:
    """Run every validator and raise once if any failed.

    Failures are collected rather than short-circuited so that one run
    reports every violated property. A validator that cannot even parse the
    issued material (a malformed extension, an unsupported key type) counts
    as failed under its own name.

    Raises:
        ValidationError: Carrying each `Failure`, in validator order.
    """
    failures = []
    for validator in validators:
        try:
            validator(certificate, secret)
        except ValidationFailure as e:
            failures.append(e.failure)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            failures.append(
                Failure(validator.__name__, f"issued material cannot be evaluated: {e}")
            )
    if failures:
        raise ValidationError(
            f"Certificate '{certificate.namespace}/{certificate.name}'", failures
        )


# ============================================================================
#                              Decoding helpers
# ============================================================================


def decode_chain(secret: Secret, key: str = TLS_CERT_KEY) -> list[x509.Certificate]:
    """Decode every PEM certificate stored under ``key`` in ``secret``.

    Raises:
        ValidationFailure: If the data is missing or not valid PEM.
    """
    data = secret.data.get(key)
    if not data:
        raise ValidationFailure(
            "decode_chain", f"no certificate data found under '{key}'"
        )
    try:
        return x509.load_pem_x509_certificates(data)
    except ValueError as e:
        raise ValidationFailure(
            "decode_chain", f"data under '{key}' is not a PEM certificate: {e}"
        ) from e


def decode_leaf(secret: Secret) -> x509.Certificate:
    """Decode the leaf (first) certificate of the secret's chain."""
    return decode_chain(secret)[0]


def decode_private_key(secret: Secret) -> PrivateKeyTypes:
    """Decode the PEM private key stored in ``secret``.

    Raises:
        ValidationFailure: If the key is missing or cannot be parsed.
    """
    data = secret.data.get(TLS_PRIVATE_KEY_KEY)
    if not data:
        raise ValidationFailure("decode_private_key", "no private key data found")
    try:
        return serialization.load_pem_private_key(data, password=None)
    except (ValueError, TypeError) as e:
        raise ValidationFailure(
            "decode_private_key", f"private key cannot be parsed: {e}"
        ) from e


def public_key_bytes(key: PublicKeyTypes) -> bytes:
    """Return the DER SubjectPublicKeyInfo of ``key``, for comparisons."""
    return key.public_bytes(
        serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo
    )


def _san(cert: x509.Certificate) -> x509.SubjectAlternativeName | None:
    try:
        return cert.extensions.get_extension_for_class(
            x509.SubjectAlternativeName
        ).value
    except x509.ExtensionNotFound:
        return None


def _san_values(cert: x509.Certificate, general_name: type) -> list:
    san = _san(cert)
    return [] if san is None else list(san.get_values_for_type(general_name))


def _subject_values(name: x509.Name, oid: x509.ObjectIdentifier) -> list[str]:
    return [str(attr.value) for attr in name.get_attributes_for_oid(oid)]


def _expected_subject(certificate: Certificate) -> x509.Name | None:
    if not certificate.spec.literal_subject:
        return None
    return x509.Name.from_rfc4514_string(certificate.spec.literal_subject)


def _issued_by(child: x509.Certificate, parent: x509.Certificate) -> bool:
    try:
        child.verify_directly_issued_by(parent)
    except (ValueError, TypeError, InvalidSignature):
        return False
    return True


# ============================================================================
#                              Baseline validators
# ============================================================================


def expect_valid_keys_in_secret(certificate: Certificate, secret: Secret) -> None:
    """Both the certificate and the private key must be present."""
    missing = [k for k in (TLS_CERT_KEY, TLS_PRIVATE_KEY_KEY) if not secret.data.get(k)]
    if missing:
        raise ValidationFailure(
            "expect_valid_keys_in_secret",
            f"secret '{secret.name}' for '{certificate.name}' lacks data",
            expected=[TLS_CERT_KEY, TLS_PRIVATE_KEY_KEY],
            actual=sorted(k for k, v in secret.data.items() if v),
        )


def expect_valid_certificate(certificate: Certificate, secret: Secret) -> None:
    """The certificate data must decode as PEM X.509."""
    del certificate
    decode_chain(secret)


def expect_valid_private_key_data(certificate: Certificate, secret: Secret) -> None:
    """The private key must parse, match the requested algorithm and the leaf."""
    key = decode_private_key(secret)
    algorithm = certificate.spec.key_algorithm or KeyAlgorithm.RSA
    if not isinstance(key, _KEY_TYPES[algorithm]):
        raise ValidationFailure(
            "expect_valid_private_key_data",
            "private key has the wrong algorithm",
            expected=algorithm.value,
            actual=type(key).__name__,
        )
    leaf = decode_leaf(secret)
    if public_key_bytes(key.public_key()) != public_key_bytes(leaf.public_key()):
        raise ValidationFailure(
            "expect_valid_private_key_data",
            "private key does not match the certificate's public key",
        )


def expect_dns_names_to_match(certificate: Certificate, secret: Secret) -> None:
    """The DNS SANs must equal the requested names.

    Issuers that copy the common name into the SANs are tolerated.
    """
    actual = set(_san_values(decode_leaf(secret), x509.DNSName))
    expected = set(certificate.spec.dns_names)
    with_cn = expected | ({certificate.spec.common_name} - {""})
    if actual not in (expected, with_cn):
        raise ValidationFailure(
            "expect_dns_names_to_match",
            "DNS names do not match",
            expected=sorted(expected),
            actual=sorted(actual),
        )


def expect_organization_to_match(certificate: Certificate, secret: Secret) -> None:
    """The subject organizations must equal the requested ones."""
    subject = _expected_subject(certificate)
    if subject is not None:
        expected = _subject_values(subject, NameOID.ORGANIZATION_NAME)
    else:
        expected = list(certificate.spec.organizations)
    actual = _subject_values(decode_leaf(secret).subject, NameOID.ORGANIZATION_NAME)
    if sorted(actual) != sorted(expected):
        raise ValidationFailure(
            "expect_organization_to_match",
            "organizations do not match",
            expected=sorted(expected),
            actual=sorted(actual),
        )


def expect_valid_common_name(certificate: Certificate, secret: Secret) -> None:
    """The subject common name must be the requested one.

    When no common name was requested, any common name present must repeat
    one of the certificate's SANs.
    """
    leaf = decode_leaf(secret)
    actual = _subject_values(leaf.subject, NameOID.COMMON_NAME)
    subject = _expected_subject(certificate)
    if subject is not None:
        expected = _subject_values(subject, NameOID.COMMON_NAME)
    else:
        expected = [certificate.spec.common_name] if certificate.spec.common_name else []

    if expected:
        if actual != expected:
            raise ValidationFailure(
                "expect_valid_common_name",
                "common name does not match",
                expected=expected,
                actual=actual,
            )
        return

    san = _san(leaf)
    sans = set() if san is None else {str(v) for v in _all_san_values(san)}
    stray = [cn for cn in actual if cn not in sans]
    if stray:
        raise ValidationFailure(
            "expect_valid_common_name",
            "unrequested common name is not one of the SANs",
            expected=sorted(sans),
            actual=stray,
        )


def _all_san_values(san: x509.SubjectAlternativeName) -> list:
    values: list = []
    for general_name in (
        x509.DNSName,
        x509.IPAddress,
        x509.RFC822Name,
        x509.UniformResourceIdentifier,
    ):
        values.extend(san.get_values_for_type(general_name))
    return values


def expect_valid_basic_constraints(certificate: Certificate, secret: Secret) -> None:
    """The CA basic constraint must be set exactly when a CA was requested."""
    leaf = decode_leaf(secret)
    try:
        is_ca = leaf.extensions.get_extension_for_class(x509.BasicConstraints).value.ca
    except x509.ExtensionNotFound:
        is_ca = False
    if is_ca != certificate.spec.is_ca:
        raise ValidationFailure(
            "expect_valid_basic_constraints",
            "CA basic constraint does not match",
            expected=certificate.spec.is_ca,
            actual=is_ca,
        )


def expect_valid_not_after_date(certificate: Certificate, secret: Secret) -> None:
    """The reported expiry must equal the certificate's ``notAfter``."""
    actual = decode_leaf(secret).not_valid_after_utc
    reported = certificate.status.not_after
    if reported is None or reported != actual:
        raise ValidationFailure(
            "expect_valid_not_after_date",
            "status notAfter does not match the certificate",
            expected=actual,
            actual=reported,
        )


def expect_valid_annotations(certificate: Certificate, secret: Secret) -> None:
    """The secret must carry the bookkeeping annotations of its certificate."""
    expected = {CERTIFICATE_NAME_ANNOTATION: certificate.name}
    issuer_ref = certificate.spec.issuer_ref
    if issuer_ref is not None:
        expected[ISSUER_NAME_ANNOTATION] = issuer_ref.name
        if issuer_ref.kind:
            expected[ISSUER_KIND_ANNOTATION] = issuer_ref.kind
        if issuer_ref.group:
            expected[ISSUER_GROUP_ANNOTATION] = issuer_ref.group
    annotations = secret.metadata.annotations
    actual = {key: annotations.get(key) for key in expected}
    if actual != expected:
        raise ValidationFailure(
            "expect_valid_annotations",
            "secret annotations do not match",
            expected=expected,
            actual=actual,
        )


def expect_condition_ready_observed_generation(
    certificate: Certificate, secret: Secret
) -> None:
    """Ready must be True at the certificate's current generation."""
    del secret
    ready = certificate.status.condition(CONDITION_READY)
    generation = certificate.metadata.generation
    if (
        ready is None
        or ready.status is not ConditionStatus.TRUE
        or ready.observed_generation < generation
    ):
        raise ValidationFailure(
            "expect_condition_ready_observed_generation",
            "Ready condition is not True at the current generation",
            expected=(ConditionStatus.TRUE.value, generation),
            actual=None if ready is None else (ready.status.value, ready.observed_generation),
        )


# ============================================================================
#                              Capability-gated validators
# ============================================================================


def expect_uris_to_match(certificate: Certificate, secret: Secret) -> None:
    """The URI SANs must equal the requested URIs."""
    actual = sorted(_san_values(decode_leaf(secret), x509.UniformResourceIdentifier))
    expected = sorted(certificate.spec.uris)
    if actual != expected:
        raise ValidationFailure(
            "expect_uris_to_match", "URIs do not match", expected=expected, actual=actual
        )


def expect_emails_to_match(certificate: Certificate, secret: Secret) -> None:
    """The email SANs must equal the requested addresses."""
    actual = sorted(_san_values(decode_leaf(secret), x509.RFC822Name))
    expected = sorted(certificate.spec.email_addresses)
    if actual != expected:
        raise ValidationFailure(
            "expect_emails_to_match",
            "email addresses do not match",
            expected=expected,
            actual=actual,
        )


def expect_ip_addresses_to_match(certificate: Certificate, secret: Secret) -> None:
    """The IP SANs must equal the requested addresses."""
    actual = sorted(str(ip) for ip in _san_values(decode_leaf(secret), x509.IPAddress))
    expected = sorted(str(ipaddress.ip_address(ip)) for ip in certificate.spec.ip_addresses)
    if actual != expected:
        raise ValidationFailure(
            "expect_ip_addresses_to_match",
            "IP addresses do not match",
            expected=expected,
            actual=actual,
        )


def expect_correct_trust_chain(certificate: Certificate, secret: Secret) -> None:
    """The certificate chain must verify up to a CA stored in the secret."""
    del certificate
    chain = decode_chain(secret)
    roots = decode_chain(secret, CA_CERT_KEY)
    for child, parent in zip(chain, chain[1:]):
        if not _issued_by(child, parent):
            raise ValidationFailure(
                "expect_correct_trust_chain",
                "certificate chain is out of order or broken",
                expected=child.issuer.rfc4514_string(),
                actual=parent.subject.rfc4514_string(),
            )
    top = chain[-1]
    if top not in roots and not any(_issued_by(top, root) for root in roots):
        raise ValidationFailure(
            "expect_correct_trust_chain",
            f"chain is not issued by any certificate in '{CA_CERT_KEY}'",
            expected=top.issuer.rfc4514_string(),
            actual=[root.subject.rfc4514_string() for root in roots],
        )


def expect_ca_root_certificate(certificate: Certificate, secret: Secret) -> None:
    """The stored CA must be a self-signed root."""
    del certificate
    root = decode_chain(secret, CA_CERT_KEY)[0]
    if root.subject != root.issuer or not _issued_by(root, root):
        raise ValidationFailure(
            "expect_ca_root_certificate",
            f"'{CA_CERT_KEY}' is not a self-signed root certificate",
            expected=root.subject.rfc4514_string(),
            actual=root.issuer.rfc4514_string(),
        )


def expect_duration_to_match(certificate: Certificate, secret: Secret) -> None:
    """The validity period must equal the requested (or default) duration."""
    leaf = decode_leaf(secret)
    actual = leaf.not_valid_after_utc - leaf.not_valid_before_utc
    expected = certificate.spec.duration or DEFAULT_CERTIFICATE_DURATION
    if abs(actual - expected) > DURATION_FUZZ:
        raise ValidationFailure(
            "expect_duration_to_match",
            f"validity period differs by more than {DURATION_FUZZ}",
            expected=expected,
            actual=actual,
        )


# ============================================================================
#                              Scenario-specific validators
# ============================================================================


def _key_usage(secret: Secret) -> x509.KeyUsage | None:
    try:
        return decode_leaf(secret).extensions.get_extension_for_class(x509.KeyUsage).value
    except x509.ExtensionNotFound:
        return None


def _extended_key_usages(secret: Secret) -> list[x509.ObjectIdentifier]:
    try:
        return list(
            decode_leaf(secret)
            .extensions.get_extension_for_class(x509.ExtendedKeyUsage)
            .value
        )
    except x509.ExtensionNotFound:
        return []


def expect_key_usage_digital_signature(certificate: Certificate, secret: Secret) -> None:
    """The key usage extension must allow digital signatures."""
    del certificate
    usage = _key_usage(secret)
    if usage is None or not usage.digital_signature:
        raise ValidationFailure(
            "expect_key_usage_digital_signature", "digital signature usage missing"
        )


def expect_key_usage_data_encipherment(certificate: Certificate, secret: Secret) -> None:
    """The key usage extension must allow data encipherment."""
    del certificate
    usage = _key_usage(secret)
    if usage is None or not usage.data_encipherment:
        raise ValidationFailure(
            "expect_key_usage_data_encipherment", "data encipherment usage missing"
        )


def expect_ext_key_usage_server_auth(certificate: Certificate, secret: Secret) -> None:
    """The extended key usages must include server auth."""
    del certificate
    if ExtendedKeyUsageOID.SERVER_AUTH not in _extended_key_usages(secret):
        raise ValidationFailure(
            "expect_ext_key_usage_server_auth", "server auth extended usage missing"
        )


def expect_ext_key_usage_client_auth(certificate: Certificate, secret: Secret) -> None:
    """The extended key usages must include client auth."""
    del certificate
    if ExtendedKeyUsageOID.CLIENT_AUTH not in _extended_key_usages(secret):
        raise ValidationFailure(
            "expect_ext_key_usage_client_auth", "client auth extended usage missing"
        )


def expect_literal_subject_to_match(certificate: Certificate, secret: Secret) -> None:
    """The subject must equal the requested RFC 4514 literal, RDN for RDN."""
    expected = _expected_subject(certificate)
    actual = decode_leaf(secret).subject
    if expected is None or actual != expected:
        raise ValidationFailure(
            "expect_literal_subject_to_match",
            "subject does not match the literal subject",
            expected=certificate.spec.literal_subject,
            actual=actual.rfc4514_string(),
        )
