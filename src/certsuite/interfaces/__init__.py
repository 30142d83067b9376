"""Interfaces (application boundary) for CERTSUITE.

Defines the framework-free contracts the conformance engine consumes: the
resource client used to talk to the backend under test, the namer used to
generate unique names, and the access reviewer used by the RBAC sub-suite.

Dependency rule: may import `certsuite.domain` only. It may be imported by
`certsuite.service_layer`, `certsuite.adapters` and the suite modules.
"""
