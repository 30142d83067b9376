"""CERTSUITE

A conformance suite for certificate issuers. It certifies that a pluggable
issuance backend behaves correctly, while tolerating limitations the backend
declares up front as unsupported capabilities.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
