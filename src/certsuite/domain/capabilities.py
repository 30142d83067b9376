"""Capabilities a certificate issuer may or may not support.

A capability names an optional behavior of an issuance backend (setting a
duration, issuing wildcard names, storing the CA in the produced secret, ...).
Backends declare the capabilities they lack up front; the suite then skips the
scenarios and validators that would exercise them.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from enum import Enum

from .errors import ConfigurationError, UnknownCapabilityError


class Capability(Enum):
    """Optional issuer behaviors that scenarios and validators can depend on."""

    IP_ADDRESSES = "IPAddresses"
    DURATION = "Duration"
    WILDCARDS = "Wildcards"
    ECDSA = "ECDSA"
    ED25519 = "Ed25519"
    REUSE_PRIVATE_KEY = "ReusePrivateKey"
    URI_SANS = "URISANs"
    EMAIL_SANS = "EmailSANs"
    COMMON_NAME = "CommonName"
    KEY_USAGES = "KeyUsages"
    ONLY_SAN = "OnlySAN"
    SAVE_CA_TO_SECRET = "SaveCAToSecret"
    SAVE_ROOT_CA_TO_SECRET = "SaveRootCAToSecret"
    ISSUE_CA = "IssueCA"
    LONG_DOMAIN = "LongDomain"
    LITERAL_SUBJECT = "LiteralCertificateSubject"

    def __str__(self) -> str:
        return self.value


_BY_NAME = {c.value.lower(): c for c in Capability} | {
    c.name.lower(): c for c in Capability
}


def parse_capability(text: str) -> Capability:
    """Convert a user-supplied capability name into a `Capability`.

    Both the wire value (``"URISANs"``) and the enum member name
    (``"URI_SANS"``) are accepted, case-insensitively.

    Raises:
        UnknownCapabilityError: If ``text`` names no known capability.
    """
    try:
        return _BY_NAME[text.strip().lower()]
    except KeyError as e:
        raise UnknownCapabilityError(text) from e


class CapabilitySet:
    """A grow-only set of capabilities.

    Only membership tests and additions are supported; nothing is ever
    removed. Iteration follows the declaration order of `Capability` so that
    listings are stable.
    """

    __slots__ = ("_members",)

    def __init__(self, capabilities: Iterable[Capability] = ()) -> None:
        self._members: set[Capability] = set()
        for capability in capabilities:
            self.add(capability)

    def add(self, capability: Capability) -> None:
        """Add ``capability`` to the set (no-op if already present)."""
        self._members.add(capability)

    def frozen(self) -> FrozenCapabilitySet:
        """Return a read-only copy of this set."""
        return FrozenCapabilitySet(self)

    def contains(self, capability: Capability) -> bool:
        """Return True if ``capability`` is in the set."""
        return capability in self._members

    def intersection(self, capabilities: Iterable[Capability]) -> frozenset[Capability]:
        """Return the members that also appear in ``capabilities``."""
        return frozenset(c for c in capabilities if c in self._members)

    def __contains__(self, capability: object) -> bool:
        return capability in self._members

    def __iter__(self) -> Iterator[Capability]:
        return (c for c in Capability if c in self._members)

    def __len__(self) -> int:
        return len(self._members)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, CapabilitySet):
            return self._members == other._members
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"CapabilitySet([{', '.join(c.value for c in self)}])"


class FrozenCapabilitySet(CapabilitySet):
    """A `CapabilitySet` that rejects additions once constructed.

    A completed suite holds one of these so its declared limitations cannot
    change between gating and validation.
    """

    __slots__ = ("_sealed",)

    def __init__(self, capabilities: Iterable[Capability] = ()) -> None:
        self._sealed = False
        super().__init__(capabilities)
        self._sealed = True

    def add(self, capability: Capability) -> None:
        if self._sealed:
            raise ConfigurationError(
                f"Cannot add {capability.value}: the capability set is frozen."
            )
        super().add(capability)

    def __repr__(self) -> str:
        return f"FrozenCapabilitySet([{', '.join(c.value for c in self)}])"
