"""Post-issuance assertions.

- `certificates`: the individual validators and the `validate` runner.
- `composer`: `validators_for`, picking validators by declared capabilities.
"""

from .certificates import ValidationFunc, validate
from .composer import validators_for

__all__ = ["ValidationFunc", "validate", "validators_for"]
