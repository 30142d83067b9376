"""Fixtures for AccessReviewer contract tests."""

from collections.abc import Iterable

import pytest

from certsuite.interfaces.access_reviewer import AccessReviewer
from tests.fixtures.access import make_reviewer


@pytest.fixture(params=["static"])
def access_reviewer(request: pytest.FixtureRequest) -> Iterable[AccessReviewer]:
    """Return an AccessReviewer loaded with correctly aggregated roles."""
    match request.param:
        case "static":
            yield make_reviewer()
        case _:
            raise ValueError(f"unknown access reviewer type: {request.param}")
