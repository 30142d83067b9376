"""CERTSUITE test suite.

Folder taxonomy
- unit/         : Isolated, fast checks of a single module/class/function.
- contract/     : Shared behavior/invariants enforced across multiple implementations.
- e2e/          : The whole suite and CLI run against the in-process fake issuer.
- fixtures/     : Shared fixtures and test doubles (no tests here).

General guidance
- Keep unit fast and deterministic; prefer fakes over mocks at boundaries.
- Contract parametrizes implementations to ensure consistent behavior.
- e2e asserts user-observable results, not internals.
- Property-based tests live with the layer they exercise and use @pytest.mark.property.
- Markers: unit, contract, e2e, property, slow
"""
