"""In-memory access reviewer.

Evaluates role rules held in a plain mapping, with role aggregation: a role
may list other roles it includes (``admin`` includes ``edit``, ``edit``
includes ``view``), and inherits their grants.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from certsuite.interfaces.access_reviewer import AccessReviewer

WILDCARD = "*"


@dataclass(frozen=True)
class RoleRules:
    """Grants of a single role.

    Attributes:
        grants: Mapping of plural resource name to granted verbs. A verb of
            ``"*"`` grants every verb on that resource.
        includes: Names of roles whose grants this role aggregates.
    """

    grants: Mapping[str, frozenset[str]] = field(default_factory=dict)
    includes: tuple[str, ...] = ()


def rules(
    grants: Mapping[str, Iterable[str]], includes: Iterable[str] = ()
) -> RoleRules:
    """Build `RoleRules` from plain iterables."""
    return RoleRules(
        grants={resource: frozenset(verbs) for resource, verbs in grants.items()},
        includes=tuple(includes),
    )


class StaticAccessReviewer(AccessReviewer):
    """`AccessReviewer` over a fixed role table.

    The table is copied at construction and never mutated, so `has_access`
    is pure and safe to call from any thread.
    """

    def __init__(self, roles: Mapping[str, RoleRules]) -> None:
        self._roles = dict(roles)

    def has_access(self, role: str, verb: str, resource: str) -> bool:
        return self._has_access(role, verb, resource, seen=frozenset())

    def _has_access(
        self, role: str, verb: str, resource: str, seen: frozenset[str]
    ) -> bool:
        # cyclic includes are ignored rather than recursed into forever
        if role in seen or role not in self._roles:
            return False
        role_rules = self._roles[role]
        verbs = role_rules.grants.get(resource, frozenset())
        if verb in verbs or WILDCARD in verbs:
            return True
        return any(
            self._has_access(included, verb, resource, seen | {role})
            for included in role_rules.includes
        )
