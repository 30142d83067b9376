"""Typed resource documents exchanged with the backend under test.

Two kinds of resource take part in issuance: the `Certificate` request the
suite submits, and the `Secret` artifact the backend produces. Both carry
`ObjectMeta` so a `ResourceClient` can store, version and label them
uniformly; `ResourceKind` tags which variant an object is.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import ClassVar, TypeAlias

# Well-known secret data keys
TLS_CERT_KEY = "tls.crt"
TLS_PRIVATE_KEY_KEY = "tls.key"
CA_CERT_KEY = "ca.crt"

# Well-known secret annotations
CERTIFICATE_NAME_ANNOTATION = "cert-manager.io/certificate-name"
ISSUER_NAME_ANNOTATION = "cert-manager.io/issuer-name"
ISSUER_KIND_ANNOTATION = "cert-manager.io/issuer-kind"
ISSUER_GROUP_ANNOTATION = "cert-manager.io/issuer-group"

DEFAULT_CERTIFICATE_DURATION = timedelta(days=90)


class ResourceKind(Enum):
    """The resource kinds a `ResourceClient` must handle."""

    CERTIFICATE = "Certificate"
    SECRET = "Secret"


class KeyAlgorithm(Enum):
    """Private key algorithms a certificate may request."""

    RSA = "RSA"
    ECDSA = "ECDSA"
    ED25519 = "Ed25519"


class KeyUsage(Enum):
    """Key usages and extended key usages a certificate may request."""

    DIGITAL_SIGNATURE = "digital signature"
    KEY_ENCIPHERMENT = "key encipherment"
    DATA_ENCIPHERMENT = "data encipherment"
    CERT_SIGN = "cert sign"
    SERVER_AUTH = "server auth"
    CLIENT_AUTH = "client auth"


class ConditionStatus(Enum):
    """Tri-state condition status; `UNKNOWN` means not yet decided."""

    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


CONDITION_READY = "Ready"
CONDITION_ISSUING = "Issuing"


@dataclass(frozen=True)
class ObjectReference:
    """Reference to the issuer under certification (``group/kind/name``)."""

    name: str
    kind: str = ""
    group: str = ""

    def __str__(self) -> str:
        return f"{self.group}/{self.kind}/{self.name}"


@dataclass(frozen=True)
class ObjectMeta:
    """Bookkeeping common to every resource.

    ``generation`` changes only when the spec changes; ``resource_version``
    changes on every write and is used for optimistic concurrency.
    """

    name: str
    namespace: str
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    generation: int = 0
    resource_version: str = ""


@dataclass(frozen=True)
class Condition:
    """A status condition reported by the backend."""

    type: str
    status: ConditionStatus
    observed_generation: int = 0
    reason: str = ""
    message: str = ""


@dataclass(frozen=True)
class CertificateSpec:
    """What the suite asks the issuer for."""

    secret_name: str
    issuer_ref: ObjectReference | None = None
    common_name: str = ""
    dns_names: tuple[str, ...] = ()
    ip_addresses: tuple[str, ...] = ()
    email_addresses: tuple[str, ...] = ()
    uris: tuple[str, ...] = ()
    organizations: tuple[str, ...] = ()
    literal_subject: str = ""
    key_algorithm: KeyAlgorithm | None = None
    duration: timedelta | None = None
    usages: tuple[KeyUsage, ...] = ()
    is_ca: bool = False


@dataclass(frozen=True)
class CertificateStatus:
    """What the issuer reports back."""

    conditions: tuple[Condition, ...] = ()
    not_before: datetime | None = None
    not_after: datetime | None = None

    def condition(self, condition_type: str) -> Condition | None:
        """Return the condition of ``condition_type``, if present."""
        for condition in self.conditions:
            if condition.type == condition_type:
                return condition
        return None


@dataclass(frozen=True)
class Certificate:
    """The request resource submitted to the backend under test."""

    kind: ClassVar[ResourceKind] = ResourceKind.CERTIFICATE

    metadata: ObjectMeta
    spec: CertificateSpec
    status: CertificateStatus = field(default_factory=CertificateStatus)

    @property
    def name(self) -> str:
        """Shortcut for ``metadata.name``."""
        return self.metadata.name

    @property
    def namespace(self) -> str:
        """Shortcut for ``metadata.namespace``."""
        return self.metadata.namespace

    def with_spec(self, **changes: object) -> Certificate:
        """Return a copy with ``changes`` applied to the spec."""
        return replace(self, spec=replace(self.spec, **changes))

    def with_status(self, **changes: object) -> Certificate:
        """Return a copy with ``changes`` applied to the status."""
        return replace(self, status=replace(self.status, **changes))


@dataclass(frozen=True)
class Secret:
    """The artifact store entry produced by the backend."""

    kind: ClassVar[ResourceKind] = ResourceKind.SECRET

    metadata: ObjectMeta
    data: dict[str, bytes] = field(default_factory=dict)

    @property
    def name(self) -> str:
        """Shortcut for ``metadata.name``."""
        return self.metadata.name

    @property
    def namespace(self) -> str:
        """Shortcut for ``metadata.namespace``."""
        return self.metadata.namespace

    def with_data(self, **changes: bytes) -> Secret:
        """Return a copy with the given data keys replaced.

        Keys are passed with dots replaced by underscores, e.g.
        ``with_data(tls_crt=b"")``.
        """
        data = dict(self.data)
        data.update({k.replace("_", "."): v for k, v in changes.items()})
        return replace(self, data=data)


Resource: TypeAlias = Certificate | Secret
