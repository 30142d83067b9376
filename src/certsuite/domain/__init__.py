"""Domain layer for CERTSUITE.

Contains the vocabulary of the conformance engine: capabilities, the typed
resource documents exchanged with a backend, and the error taxonomy. This
package is deliberately technology-agnostic.

Dependency rule: do not import from `certsuite.adapters` or
`certsuite.entrypoints`.
"""
