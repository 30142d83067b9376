"""Fixtures providing access reviewers with known role tables.

`make_reviewer` and `make_permissive_reviewer` double as ``module:factory``
targets for the CLI's ``--reviewer`` option.
"""

import pytest

from certsuite.adapters.access import StaticAccessReviewer, rules
from certsuite.rbac import READ_VERBS, RESOURCES

# pylint: disable=redefined-outer-name


def make_reviewer() -> StaticAccessReviewer:
    """Aggregated roles as a correct installation ships them."""
    return StaticAccessReviewer(
        {
            "view": rules({resource: READ_VERBS for resource in RESOURCES}),
            "edit": rules({resource: ["*"] for resource in RESOURCES}, includes=["view"]),
            "admin": rules({}, includes=["edit"]),
        }
    )


def make_permissive_reviewer() -> StaticAccessReviewer:
    """Misconfigured roles: ``view`` may also create issuers."""
    return StaticAccessReviewer(
        {
            "view": rules(
                {resource: READ_VERBS for resource in RESOURCES}
                | {"issuers": [*READ_VERBS, "create"]}
            ),
            "edit": rules({resource: ["*"] for resource in RESOURCES}, includes=["view"]),
            "admin": rules({}, includes=["edit"]),
        }
    )


@pytest.fixture
def reviewer() -> StaticAccessReviewer:
    """A reviewer for correctly aggregated roles."""
    return make_reviewer()


@pytest.fixture
def permissive_reviewer() -> StaticAccessReviewer:
    """A reviewer whose ``view`` role grants too much."""
    return make_permissive_reviewer()
