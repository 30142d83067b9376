"""Entrypoints (inbound adapters) for CERTSUITE.

Expose the suite to the outside world through the CLI. Parse and validate
inputs, build a `RunConfig`, and present results.

Dependency rule: may import anything in `certsuite`; nothing imports this
package.
"""
