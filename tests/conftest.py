"""Global pytest fixtures for CERTSUITE."""

pytest_plugins = [
    "tests.fixtures.backends",
    "tests.fixtures.access",
]
