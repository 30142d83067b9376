"""Fixtures for Namer contract tests."""

from collections.abc import Iterable

import pytest

from certsuite.adapters.namers import SeededNamer, ULIDNamer
from certsuite.interfaces.namer import Namer


@pytest.fixture(params=["ulid", "seeded"])
def namer(request: pytest.FixtureRequest) -> Iterable[Namer]:
    """Return a fresh Namer instance for the requested backend."""
    match request.param:
        case "ulid":
            yield ULIDNamer()
        case "seeded":
            yield SeededNamer(seed=0)
        case _:
            raise ValueError(f"unknown namer type: {request.param}")
