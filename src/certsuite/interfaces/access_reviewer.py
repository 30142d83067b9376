"""Interface for access reviewers.

An access reviewer answers one question: is ``role`` granted ``verb`` on
``resource``? The RBAC sub-suite uses it to certify the roles an issuer
installation ships, the same way the main suite certifies issuance.
"""

import abc

# pylint: disable=too-few-public-methods


class AccessReviewer(abc.ABC):
    """Contract for a side-effect-free authorization check."""

    @abc.abstractmethod
    def has_access(self, role: str, verb: str, resource: str) -> bool:
        """Return True if ``role`` may perform ``verb`` on ``resource``.

        Args:
            role: Role name, e.g. ``"view"``.
            verb: API verb, e.g. ``"create"``.
            resource: Plural resource name, e.g. ``"issuers"``.
        """
