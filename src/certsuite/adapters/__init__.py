"""Adapters (infrastructure) for CERTSUITE.

Provide concrete implementations of the ports in `certsuite.interfaces`:
resource clients, namers and access reviewers.

Dependency rule: may import `certsuite.domain` and `certsuite.interfaces`;
neither of those may import this package.
"""
