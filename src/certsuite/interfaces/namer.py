"""Interface for namers.

A namer supplies every generated name a scenario needs: the unique suffix that
keeps one case's resources from colliding with another's, and the random DNS
labels used in requested subdomains. Passing it explicitly keeps scenario
builders pure.
"""

import abc

# pylint: disable=too-few-public-methods

DNS_LABEL_MAX_LENGTH = 63


class Namer(abc.ABC):
    """Contract for a generator of unique, DNS-safe names."""

    @abc.abstractmethod
    def random_string(self, length: int) -> str:
        """Return ``length`` lowercase alphanumeric characters.

        Successive calls on the same instance never return the same value.
        """

    def suffix(self) -> str:
        """Return a unique suffix for the resources of one case."""
        return self.random_string(10)

    def subdomain(self, domain: str, length: int = 10) -> str:
        """Return a random subdomain of ``domain`` with a ``length`` label."""
        if not 0 < length <= DNS_LABEL_MAX_LENGTH:
            raise ValueError(
                f"DNS label length must be 1..{DNS_LABEL_MAX_LENGTH}, got {length}"
            )
        return f"{self.random_string(length)}.{domain}"
