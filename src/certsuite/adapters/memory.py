"""In-memory `ResourceClient` backend.

This module provides a tiny resource store meant for **tests**, examples and
local development. Objects are kept entirely in RAM; there is no persistence
across process restarts.

Key behaviors
-------------
- **Generations**: ``create`` sets ``generation`` to 1. ``update`` bumps it only
  when a certificate's spec or a secret's data changes, so status and label
  writes never invalidate an observed generation.
- **Resource versions**: every write assigns a fresh, store-wide increasing
  ``resource_version``. ``update`` with a stale version raises `Conflict`; an
  empty version means an unconditional write.
- **Watch**: every write is appended to a change log; ``watch`` follows it
  from the moment it is called.
- **Thread-safety**: all reads and writes happen under a single
  `threading.Condition`, so concurrent writers are serialized and watchers are
  woken on every write.
"""

from __future__ import annotations

import itertools
import threading
from collections.abc import Iterator
from dataclasses import replace

from certsuite.domain.resources import Certificate, Resource, ResourceKind
from certsuite.interfaces.resource_client import (
    AlreadyExists,
    Conflict,
    NotFound,
    R,
    ResourceClient,
)

__all__ = ["InMemoryResourceClient"]

Key = tuple[ResourceKind, str, str]


def _key(obj: Resource) -> Key:
    return (obj.kind, obj.namespace, obj.name)


def _desired_state(obj: Resource) -> object:
    """Return the part of ``obj`` whose changes bump the generation."""
    if isinstance(obj, Certificate):
        return obj.spec
    return obj.data


class InMemoryResourceClient(ResourceClient):
    """Thread-safe in-memory `ResourceClient`.

    Note:
        Non-durable; the change log consumed by `watch` grows without bound,
        which is fine for a test run but not for a long-lived process.
    """

    def __init__(self) -> None:
        self._objects: dict[Key, Resource] = {}
        self._log: list[Resource] = []
        self._versions = itertools.count(1)
        self._changed = threading.Condition()

    # --- writes ---

    def _install(self, obj: R, generation: int) -> R:
        stored = replace(
            obj,
            metadata=replace(
                obj.metadata,
                generation=generation,
                resource_version=str(next(self._versions)),
            ),
        )
        self._objects[_key(stored)] = stored
        self._log.append(stored)
        self._changed.notify_all()
        return stored

    def create(self, obj: R) -> R:
        with self._changed:
            if _key(obj) in self._objects:
                raise AlreadyExists(obj.kind, obj.namespace, obj.name)
            return self._install(obj, generation=1)

    def update(self, obj: R) -> R:
        with self._changed:
            current = self._objects.get(_key(obj))
            if current is None:
                raise NotFound(obj.kind, obj.namespace, obj.name)
            requested_version = obj.metadata.resource_version
            if requested_version and requested_version != current.metadata.resource_version:
                raise Conflict(obj.kind, obj.namespace, obj.name, requested_version)
            generation = current.metadata.generation
            if _desired_state(obj) != _desired_state(current):
                generation += 1
            return self._install(obj, generation=generation)

    def delete(self, kind: ResourceKind, namespace: str, name: str) -> None:
        with self._changed:
            if self._objects.pop((kind, namespace, name), None) is None:
                raise NotFound(kind, namespace, name)
            self._changed.notify_all()

    def delete_all_labelled(
        self, kind: ResourceKind, namespace: str, label: str
    ) -> int:
        with self._changed:
            doomed = [
                key
                for key, obj in self._objects.items()
                if key[0] is kind and key[1] == namespace and label in obj.metadata.labels
            ]
            for key in doomed:
                del self._objects[key]
            if doomed:
                self._changed.notify_all()
            return len(doomed)

    # --- reads ---

    def get(self, kind: ResourceKind, namespace: str, name: str) -> Resource:
        with self._changed:
            try:
                return self._objects[(kind, namespace, name)]
            except KeyError as e:
                raise NotFound(kind, namespace, name) from e

    def list_all(self, kind: ResourceKind, namespace: str) -> list[Resource]:
        """Return every stored resource of ``kind`` in ``namespace``."""
        with self._changed:
            return [
                obj
                for key, obj in self._objects.items()
                if key[0] is kind and key[1] == namespace
            ]

    def watch(
        self, kind: ResourceKind, namespace: str, timeout: float
    ) -> Iterator[Resource]:
        with self._changed:
            cursor = len(self._log)
        while True:
            with self._changed:
                if not self._changed.wait_for(
                    lambda: len(self._log) > cursor, timeout=timeout
                ):
                    return
                pending = self._log[cursor:]
                cursor = len(self._log)
            for obj in pending:
                if obj.kind is kind and obj.namespace == namespace:
                    yield obj
