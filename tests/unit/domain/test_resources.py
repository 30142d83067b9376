"""Unit tests for resource documents."""

from certsuite.domain.resources import (
    CONDITION_ISSUING,
    CONDITION_READY,
    Certificate,
    CertificateSpec,
    CertificateStatus,
    Condition,
    ConditionStatus,
    ObjectMeta,
    ObjectReference,
    ResourceKind,
    Secret,
)


def _certificate() -> Certificate:
    return Certificate(
        metadata=ObjectMeta(name="c", namespace="ns"),
        spec=CertificateSpec(secret_name="c-tls"),
    )


def test_kinds_are_class_level():
    assert Certificate.kind is ResourceKind.CERTIFICATE
    assert Secret.kind is ResourceKind.SECRET


def test_object_reference_str():
    assert str(ObjectReference("ca", "ClusterIssuer", "cert-manager.io")) == (
        "cert-manager.io/ClusterIssuer/ca"
    )


def test_with_spec_returns_a_copy():
    cert = _certificate()
    changed = cert.with_spec(dns_names=("a.example.com",))
    assert changed.spec.dns_names == ("a.example.com",)
    assert cert.spec.dns_names == ()
    assert changed.metadata is cert.metadata


def test_with_status_returns_a_copy():
    cert = _certificate()
    ready = Condition(CONDITION_READY, ConditionStatus.TRUE, observed_generation=1)
    changed = cert.with_status(conditions=(ready,))
    assert changed.status.condition(CONDITION_READY) == ready
    assert cert.status.condition(CONDITION_READY) is None


def test_condition_lookup_by_type():
    issuing = Condition(CONDITION_ISSUING, ConditionStatus.TRUE)
    ready = Condition(CONDITION_READY, ConditionStatus.FALSE)
    status = CertificateStatus(conditions=(issuing, ready))
    assert status.condition(CONDITION_ISSUING) is issuing
    assert status.condition(CONDITION_READY) is ready
    assert status.condition("Other") is None


def test_secret_with_data_maps_underscores_to_dots():
    secret = Secret(ObjectMeta("s", "ns"), data={"tls.crt": b"x", "tls.key": b"k"})
    cleared = secret.with_data(tls_crt=b"")
    assert cleared.data == {"tls.crt": b"", "tls.key": b"k"}
    assert secret.data["tls.crt"] == b"x"


def test_shortcuts():
    cert = _certificate()
    assert (cert.name, cert.namespace) == ("c", "ns")
    secret = Secret(ObjectMeta("s", "ns"))
    assert (secret.name, secret.namespace) == ("s", "ns")
