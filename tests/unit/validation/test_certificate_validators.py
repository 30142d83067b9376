"""Unit tests for the certificate validators.

Artifacts are produced by the test-only `FakeCA`, then either validated as
issued or tampered with to break exactly one property.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import timedelta

import pytest
from cryptography.hazmat.primitives.asymmetric import ed25519, rsa

from certsuite.domain.errors import ValidationError, ValidationFailure
from certsuite.domain.resources import (
    CA_CERT_KEY,
    CERTIFICATE_NAME_ANNOTATION,
    CONDITION_READY,
    TLS_CERT_KEY,
    TLS_PRIVATE_KEY_KEY,
    Certificate,
    CertificateSpec,
    Condition,
    ConditionStatus,
    KeyAlgorithm,
    KeyUsage,
    ObjectMeta,
    ObjectReference,
    Secret,
)
from certsuite.validation import certificates as v
from certsuite.validation import validate, validators_for
from tests.fixtures.fake_issuer import FakeCA, _pem_key, issue_offline

# pylint: disable=redefined-outer-name

REF = ObjectReference(name="ca", kind="Issuer", group="test.certsuite.io")


def request(**spec: object) -> Certificate:
    return Certificate(
        metadata=ObjectMeta("c", "ns", generation=1),
        spec=CertificateSpec(secret_name="c-tls", issuer_ref=REF, **spec),
    )


@pytest.fixture(scope="module")
def ca() -> FakeCA:
    return FakeCA()


def assert_fails(validator, certificate, secret, check: str | None = None) -> None:
    with pytest.raises(ValidationFailure) as exc_info:
        validator(certificate, secret)
    assert exc_info.value.failure.check == (check or validator.__name__)


# ============================================================================
#                              Happy paths
# ============================================================================


def test_fully_featured_certificate_passes_every_validator(ca):
    cert, secret = issue_offline(
        request(
            common_name="app.example.com",
            dns_names=("app.example.com", "api.example.com"),
            ip_addresses=("127.0.0.1",),
            email_addresses=("alice@example.com",),
            uris=("spiffe://cluster.local/ns/sandbox/sa/foo",),
            organizations=("Corp.",),
            duration=timedelta(hours=896),
        ),
        ca=ca,
    )
    validate(cert, secret, validators_for())


@pytest.mark.parametrize("algorithm", [KeyAlgorithm.ECDSA, KeyAlgorithm.ED25519])
def test_requested_key_algorithms_pass(ca, algorithm):
    cert, secret = issue_offline(
        request(dns_names=("a.example.com",), key_algorithm=algorithm), ca=ca
    )
    validate(cert, secret, validators_for())


def test_ca_certificate_passes(ca):
    cert, secret = issue_offline(request(dns_names=("a.example.com",), is_ca=True), ca=ca)
    v.expect_valid_basic_constraints(cert, secret)


def test_literal_subject_passes(ca):
    literal = "CN=*.abc.foo-long.bar.com,OU=FooLong,OU=Bar,OU=Baz,OU=Dept.,O=Corp."
    cert, secret = issue_offline(
        request(literal_subject=literal, dns_names=("*.abc.foo-long.bar.com",)), ca=ca
    )
    v.expect_literal_subject_to_match(cert, secret)
    v.expect_organization_to_match(cert, secret)
    v.expect_valid_common_name(cert, secret)


def test_key_usages_pass(ca):
    usages = (
        KeyUsage.DIGITAL_SIGNATURE,
        KeyUsage.DATA_ENCIPHERMENT,
        KeyUsage.SERVER_AUTH,
        KeyUsage.CLIENT_AUTH,
    )
    cert, secret = issue_offline(request(dns_names=("a.example.com",), usages=usages), ca=ca)
    for validator in (
        v.expect_key_usage_digital_signature,
        v.expect_key_usage_data_encipherment,
        v.expect_ext_key_usage_server_auth,
        v.expect_ext_key_usage_client_auth,
    ):
        validator(cert, secret)


def test_common_name_copied_into_sans_is_tolerated(ca):
    _, secret = issue_offline(
        request(common_name="cn.example.com", dns_names=("a.example.com", "cn.example.com")),
        ca=ca,
    )
    asked = request(common_name="cn.example.com", dns_names=("a.example.com",))
    v.expect_dns_names_to_match(asked, secret)


def test_ip_addresses_are_compared_normalized(ca):
    cert, secret = issue_offline(request(ip_addresses=("0:0:0:0:0:0:0:1",)), ca=ca)
    v.expect_ip_addresses_to_match(cert, secret)


def test_duration_within_fuzz_passes(ca):
    cert, secret = issue_offline(
        request(dns_names=("a.example.com",)),
        ca=ca,
        duration=timedelta(days=90, seconds=10),
    )
    v.expect_duration_to_match(cert, secret)


# ============================================================================
#                              Violations
# ============================================================================


@pytest.fixture
def issued(ca) -> tuple[Certificate, Secret]:
    return issue_offline(request(dns_names=("a.example.com",)), ca=ca)


def test_missing_private_key(issued):
    cert, secret = issued
    assert_fails(v.expect_valid_keys_in_secret, cert, secret.with_data(tls_key=b""))


def test_garbage_certificate_data(issued):
    cert, secret = issued
    assert_fails(
        v.expect_valid_certificate, cert, secret.with_data(tls_crt=b"junk"), "decode_chain"
    )


def test_wrong_key_algorithm(ca):
    cert, secret = issue_offline(request(dns_names=("a.example.com",)), ca=ca)
    asked = cert.with_spec(key_algorithm=KeyAlgorithm.ECDSA)
    assert_fails(v.expect_valid_private_key_data, asked, secret)


def test_private_key_not_matching_certificate(issued):
    cert, secret = issued
    other = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    assert_fails(
        v.expect_valid_private_key_data, cert, secret.with_data(tls_key=_pem_key(other))
    )


def test_unparseable_private_key(issued):
    cert, secret = issued
    assert_fails(
        v.expect_valid_private_key_data,
        cert,
        secret.with_data(tls_key=b"not a key"),
        "decode_private_key",
    )


def test_dns_names_mismatch(issued):
    cert, secret = issued
    assert_fails(
        v.expect_dns_names_to_match, cert.with_spec(dns_names=("b.example.com",)), secret
    )


def test_organization_mismatch(issued):
    cert, secret = issued
    assert_fails(v.expect_organization_to_match, cert.with_spec(organizations=("X",)), secret)


def test_common_name_mismatch(issued):
    cert, secret = issued
    assert_fails(v.expect_valid_common_name, cert.with_spec(common_name="other"), secret)


def test_unrequested_common_name_must_be_a_san(ca):
    _, secret = issue_offline(
        request(common_name="stray", dns_names=("a.example.com",)), ca=ca
    )
    assert_fails(v.expect_valid_common_name, request(dns_names=("a.example.com",)), secret)


def test_basic_constraints_mismatch(issued):
    cert, secret = issued
    assert_fails(v.expect_valid_basic_constraints, cert.with_spec(is_ca=True), secret)


def test_reported_not_after_mismatch(issued):
    cert, secret = issued
    shifted = cert.with_status(not_after=cert.status.not_after + timedelta(seconds=1))
    assert_fails(v.expect_valid_not_after_date, shifted, secret)
    assert_fails(v.expect_valid_not_after_date, cert.with_status(not_after=None), secret)


def test_missing_annotations(issued):
    cert, secret = issued
    bare = replace(secret, metadata=replace(secret.metadata, annotations={}))
    assert_fails(v.expect_valid_annotations, cert, bare)
    renamed = replace(
        secret,
        metadata=replace(secret.metadata, annotations={CERTIFICATE_NAME_ANNOTATION: "x"}),
    )
    assert_fails(v.expect_valid_annotations, cert, renamed)


@pytest.mark.parametrize(
    "condition",
    [
        None,
        Condition(CONDITION_READY, ConditionStatus.FALSE, observed_generation=1),
        Condition(CONDITION_READY, ConditionStatus.TRUE, observed_generation=0),
    ],
    ids=["absent", "false", "stale"],
)
def test_ready_condition_violations(issued, condition):
    cert, secret = issued
    conditions = () if condition is None else (condition,)
    assert_fails(
        v.expect_condition_ready_observed_generation,
        cert.with_status(conditions=conditions),
        secret,
    )


def test_uri_email_and_ip_mismatches(issued):
    cert, secret = issued
    assert_fails(v.expect_uris_to_match, cert.with_spec(uris=("spiffe://x",)), secret)
    assert_fails(
        v.expect_emails_to_match, cert.with_spec(email_addresses=("a@b.c",)), secret
    )
    assert_fails(
        v.expect_ip_addresses_to_match, cert.with_spec(ip_addresses=("10.0.0.1",)), secret
    )


def test_trust_chain_without_ca(issued):
    cert, secret = issued
    no_ca = replace(secret, data={k: d for k, d in secret.data.items() if k != CA_CERT_KEY})
    assert_fails(v.expect_correct_trust_chain, cert, no_ca, "decode_chain")


def test_trust_chain_from_unrelated_ca(issued):
    cert, secret = issued
    assert_fails(
        v.expect_correct_trust_chain, cert, secret.with_data(ca_crt=FakeCA().pem)
    )


def test_trust_chain_out_of_order(ca, issued):
    cert, secret = issued
    reversed_chain = ca.pem + secret.data[TLS_CERT_KEY]
    assert_fails(v.expect_correct_trust_chain, cert, secret.with_data(tls_crt=reversed_chain))


def test_trust_chain_with_intermediate_in_order(ca, issued):
    cert, secret = issued
    chain = secret.data[TLS_CERT_KEY] + ca.pem
    v.expect_correct_trust_chain(cert, secret.with_data(tls_crt=chain))


def test_ca_root_must_be_self_signed(issued):
    cert, secret = issued
    assert_fails(
        v.expect_ca_root_certificate, cert, secret.with_data(ca_crt=secret.data[TLS_CERT_KEY])
    )


def test_duration_mismatch(ca):
    cert, secret = issue_offline(
        request(dns_names=("a.example.com",)), ca=ca, duration=timedelta(days=365)
    )
    assert_fails(v.expect_duration_to_match, cert, secret)


def test_missing_key_usages(issued):
    cert, secret = issued
    assert_fails(v.expect_key_usage_data_encipherment, cert, secret)
    assert_fails(v.expect_ext_key_usage_server_auth, cert, secret)
    assert_fails(v.expect_ext_key_usage_client_auth, cert, secret)


def test_literal_subject_mismatch(issued):
    cert, secret = issued
    asked = cert.with_spec(literal_subject="CN=other,O=Corp.")
    assert_fails(v.expect_literal_subject_to_match, asked, secret)


def test_default_key_algorithm_is_rsa(ca):
    cert, secret = issue_offline(
        request(dns_names=("a.example.com",), key_algorithm=KeyAlgorithm.ED25519), ca=ca
    )
    key = v.decode_private_key(secret)
    assert isinstance(key, ed25519.Ed25519PrivateKey)
    with pytest.raises(ValidationFailure) as exc_info:
        v.expect_valid_private_key_data(cert.with_spec(key_algorithm=None), secret)
    assert exc_info.value.failure.expected == "RSA"


# ============================================================================
#                              validate()
# ============================================================================


def test_validate_reports_every_failure_in_order(issued):
    cert, secret = issued
    broken = cert.with_spec(dns_names=("b.example.com",), is_ca=True)
    with pytest.raises(ValidationError) as exc_info:
        validate(broken, secret, validators_for())
    checks = [f.check for f in exc_info.value.failures]
    assert checks == ["expect_dns_names_to_match", "expect_valid_basic_constraints"]
    assert "Certificate 'ns/c'" in str(exc_info.value)


def test_validate_with_no_validators_passes(issued):
    cert, secret = issued
    validate(cert, secret.with_data(tls_crt=b""), [])


def test_validators_do_not_mutate_inputs(issued):
    cert, secret = issued
    data = dict(secret.data)
    validate(cert, secret, validators_for())
    assert secret.data == data
    assert TLS_PRIVATE_KEY_KEY in secret.data


def test_validate_reports_unparsable_extensions_as_failures(ca):
    cert, secret = issue_offline(
        request(dns_names=("a.example.com",)), ca=ca, malformed_sans=True
    )
    with pytest.raises(ValidationError) as exc_info:
        validate(cert, secret, validators_for())
    failures = {f.check: f for f in exc_info.value.failures}
    assert "cannot be evaluated" in failures["expect_dns_names_to_match"].message
    assert "expect_valid_private_key_data" not in failures


def test_validate_keeps_going_after_a_validator_crashes(issued):
    cert, secret = issued

    def expect_parsable_policy(certificate, secret):
        raise ValueError("error parsing asn1 value")

    with pytest.raises(ValidationError) as exc_info:
        validate(
            cert.with_spec(is_ca=True),
            secret,
            [expect_parsable_policy, v.expect_valid_basic_constraints],
        )
    checks = [f.check for f in exc_info.value.failures]
    assert checks == ["expect_parsable_policy", "expect_valid_basic_constraints"]
