"""Fixtures for end-to-end CLI tests.

Provides a CliRunner, an isolated filesystem for flight-recorder files, and
an environment cleared of the ``CERTSUITE_*`` defaults a developer shell may
export.
"""

import pytest
from click.testing import CliRunner

# pylint: disable=redefined-outer-name

LEAKY_ENV_VARS = (
    "CERTSUITE_NAMESPACE",
    "CERTSUITE_DOMAIN_SUFFIX",
    "CERTSUITE_LOGGER_LEVELS",
    "CERTSUITE_FLIGHT_RECORDER",
    "CERTSUITE_FORCE_FLUSH_FLIGHT_RECORDER",
)


@pytest.fixture
def runner():
    """Return a Click CliRunner; stderr (console logs) is captured separately."""
    return CliRunner()


@pytest.fixture
def fs(runner):
    """Provide an isolated filesystem context for tests using CliRunner.

    Uses runner.isolated_filesystem() to ensure filesystem side-effects are
    confined to the test.
    """
    with runner.isolated_filesystem():
        yield


@pytest.fixture
def cli_env(monkeypatch):
    """Clear environment defaults that would leak into command resolution."""
    for name in LEAKY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
