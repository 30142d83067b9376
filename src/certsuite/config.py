"""Configuration utilities for CERTSUITE.

This module centralizes small helpers and constants related to run
configuration: environment defaults, parsing of issuer references and
capability lists, and the immutable `RunConfig` the CLI hands to the core.
"""

from __future__ import annotations

import importlib
import os
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from certsuite.domain.capabilities import CapabilitySet, parse_capability
from certsuite.domain.errors import ConfigurationError
from certsuite.domain.resources import ObjectReference
from certsuite.interfaces.resource_client import ResourceClient
from certsuite.service_layer.waiter import WaitSettings
from certsuite.suite import DEFAULT_DOMAIN_SUFFIX, Suite

NAMESPACE_ENV = "CERTSUITE_NAMESPACE"  # pragma: no mutate
DOMAIN_SUFFIX_ENV = "CERTSUITE_DOMAIN_SUFFIX"  # pragma: no mutate

_SEPARATORS = re.compile(r"[,\s]+")


class NamespaceNotSetError(ConfigurationError):
    """Raised when no namespace was given and CERTSUITE_NAMESPACE is not set."""


def get_namespace() -> str:
    """Get the default namespace from the environment.

    Returns:
        The value of the `CERTSUITE_NAMESPACE` environment variable.

    Raises:
        NamespaceNotSetError: If `CERTSUITE_NAMESPACE` is not set.
    """
    if not (namespace := os.environ.get(NAMESPACE_ENV)):
        raise NamespaceNotSetError(f"{NAMESPACE_ENV} is not set")
    return namespace


def get_domain_suffix() -> str:
    """Get the domain suffix from the environment, or the default."""
    return os.environ.get(DOMAIN_SUFFIX_ENV) or DEFAULT_DOMAIN_SUFFIX


def parse_issuer_ref(text: str) -> ObjectReference:
    """Parse a ``group/kind/name`` issuer reference.

    Raises:
        ConfigurationError: If ``text`` does not have exactly three
            non-empty parts.
    """
    parts = text.split("/")
    if len(parts) != 3 or not all(parts):
        raise ConfigurationError(
            f"Invalid issuer reference '{text}'; expected 'group/kind/name'."
        )
    group, kind, name = parts
    return ObjectReference(name=name, kind=kind, group=group)


def parse_capabilities(values: Iterable[str]) -> CapabilitySet:
    """Parse capability names given as repeated and/or comma-separated values.

    Raises:
        UnknownCapabilityError: If any name is not a known capability.
    """
    return CapabilitySet(
        parse_capability(token)
        for value in values
        for token in _SEPARATORS.split(value)
        if token
    )


def load_factory(spec: str) -> Any:
    """Import the object named by a ``module:attribute`` string.

    Raises:
        ConfigurationError: If the string is malformed or the import fails.
    """
    module_name, sep, attribute = spec.partition(":")
    if not sep or not module_name or not attribute:
        raise ConfigurationError(f"Invalid factory '{spec}'; expected 'module:attribute'.")
    try:
        target: Any = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"Cannot import '{module_name}': {e}") from e
    for part in attribute.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as e:
            raise ConfigurationError(f"'{spec}' does not exist.") from e
    return target


@dataclass(frozen=True)
class RunConfig:
    """Everything one certification run needs, resolved once by the CLI.

    Attributes:
        namespace: Namespace the cases create their resources in.
        issuer_refs: The issuers to certify; one suite each.
        unsupported: Capabilities every issuer declares it lacks.
        domain_suffix: Parent domain for generated DNS names.
        settings: Timeouts and retry budgets.
        name: Display name; defaults to the issuer reference. With several
            references each suite is named ``<name>/<reference>`` so case ids
            stay unique.
    """

    namespace: str
    issuer_refs: tuple[ObjectReference, ...]
    unsupported: frozenset = frozenset()
    domain_suffix: str = DEFAULT_DOMAIN_SUFFIX
    settings: WaitSettings = field(default_factory=WaitSettings)
    name: str = ""

    def suites(self, client: ResourceClient) -> list[Suite]:
        """Build and complete one `Suite` per issuer reference."""
        suites = []
        for ref in self.issuer_refs:
            suite = Suite(
                client,
                name=self._suite_name(ref),
                issuer_ref=ref,
                namespace=self.namespace,
                domain_suffix=self.domain_suffix,
                unsupported_capabilities=CapabilitySet(self.unsupported),
                settings=self.settings,
            )
            suite.complete()
            suites.append(suite)
        return suites

    def _suite_name(self, ref: ObjectReference) -> str:
        if not self.name:
            return str(ref)
        if len(self.issuer_refs) > 1:
            return f"{self.name}/{ref}"
        return self.name
