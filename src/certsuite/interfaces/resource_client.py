"""Resource client interface.

This module defines the narrow, backend-agnostic CRUD+watch contract the
conformance engine uses to talk to the system under test. The same client
stores both the `Certificate` requests the suite submits and the `Secret`
artifacts the issuer produces.

Exports
-------
Exceptions
    - ResourceClientError: Base class for client errors.
    - NotFound:            Requested object is absent.
    - AlreadyExists:       An object with the same name already exists.
    - Conflict:            Optimistic-concurrency violation (stale version).

Abstract interfaces
    - ResourceClient: ``create``/``get``/``update``/``delete`` plus
      ``delete_all_labelled`` for cleanup and ``watch`` for change streams.

Concurrency
-----------
``update`` MUST reject an object whose ``metadata.resource_version`` is not the
current one by raising `Conflict`. Callers that hit a conflict re-read and
reapply (see `certsuite.service_layer.waiter.retry_on_conflict`).
"""

from __future__ import annotations

import abc
from collections.abc import Iterator
from typing import TypeVar

from certsuite.domain.resources import Resource, ResourceKind

R = TypeVar("R", bound=Resource)


class ResourceClientError(Exception):
    """Raised when there is a resource client error."""


class NotFound(ResourceClientError):
    """Raised when a resource does not exist."""

    def __init__(self, kind: ResourceKind, namespace: str, name: str) -> None:
        super().__init__(f"{kind.value} '{namespace}/{name}' not found.")
        self.kind = kind
        self.namespace = namespace
        self.name = name


class AlreadyExists(ResourceClientError):
    """Raised when creating a resource whose name is already taken."""

    def __init__(self, kind: ResourceKind, namespace: str, name: str) -> None:
        super().__init__(f"{kind.value} '{namespace}/{name}' already exists.")
        self.kind = kind
        self.namespace = namespace
        self.name = name


class Conflict(ResourceClientError):
    """Raised when an update carries a stale resource version."""

    def __init__(
        self, kind: ResourceKind, namespace: str, name: str, resource_version: str
    ) -> None:
        super().__init__(
            f"{kind.value} '{namespace}/{name}' was modified; "
            f"resource version '{resource_version}' is stale."
        )
        self.kind = kind
        self.namespace = namespace
        self.name = name
        self.resource_version = resource_version


class ResourceClient(abc.ABC):
    """Namespace-scoped CRUD+watch access to resources of any `ResourceKind`."""

    @abc.abstractmethod
    def create(self, obj: R) -> R:
        """Create a resource.

        Args:
            obj: The resource to create. Its ``metadata.generation`` and
                ``metadata.resource_version`` are ignored and assigned by the
                client.

        Returns:
            The stored resource, with generation and resource version set.

        Raises:
            AlreadyExists: If a resource of the same kind, namespace and name
                already exists.
            ResourceClientError: If the backend rejects the resource.
        """

    @abc.abstractmethod
    def get(self, kind: ResourceKind, namespace: str, name: str) -> Resource:
        """Return the current state of a resource.

        Raises:
            NotFound: If the resource does not exist.
        """

    @abc.abstractmethod
    def update(self, obj: R) -> R:
        """Replace a resource, guarded by its resource version.

        The generation is bumped only when the resource's spec (or, for
        secrets, its data) changes.

        Returns:
            The stored resource, with a fresh resource version.

        Raises:
            NotFound: If the resource does not exist.
            Conflict: If ``obj.metadata.resource_version`` is stale.
        """

    @abc.abstractmethod
    def delete(self, kind: ResourceKind, namespace: str, name: str) -> None:
        """Delete a resource.

        Raises:
            NotFound: If the resource does not exist.
        """

    @abc.abstractmethod
    def delete_all_labelled(
        self, kind: ResourceKind, namespace: str, label: str
    ) -> int:
        """Delete every resource of ``kind`` in ``namespace`` carrying ``label``.

        Returns:
            The number of resources deleted.
        """

    @abc.abstractmethod
    def watch(
        self, kind: ResourceKind, namespace: str, timeout: float
    ) -> Iterator[Resource]:
        """Yield resources of ``kind`` in ``namespace`` as they are written.

        The iterator ends once ``timeout`` seconds pass without a new write.
        """
