"""Service layer for CERTSUITE.

Implements the primitives scenarios are built from: the cancellable run
context, polling waiters and the bounded conflict-retry combinator.

Dependency rule: may import `certsuite.domain` and `certsuite.interfaces`, but
not `certsuite.adapters` or `certsuite.entrypoints`.
"""
