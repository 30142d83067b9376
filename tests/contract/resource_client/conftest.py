"""Fixtures for ResourceClient contract tests."""

from collections.abc import Iterable

import pytest

from certsuite.adapters.memory import InMemoryResourceClient
from certsuite.interfaces.resource_client import ResourceClient
from tests.fixtures.fake_issuer import FlakyClient


@pytest.fixture(params=["memory", "delegating"])
def resource_client(request: pytest.FixtureRequest) -> Iterable[ResourceClient]:
    """Return a fresh, empty ResourceClient for the requested backend.

    Supported params:
      - `"memory"` → InMemoryResourceClient
      - `"delegating"` → FlakyClient over InMemoryResourceClient, injecting
        no conflicts

    Extend by adding new identifiers to `params` and branching below.
    """
    match request.param:
        case "memory":
            yield InMemoryResourceClient()
        case "delegating":
            yield FlakyClient(InMemoryResourceClient(), conflicts=0)
        case _:
            raise ValueError(f"unknown resource client type: {request.param}")
