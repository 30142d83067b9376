"""Unit tests for behaviors specific to `InMemoryResourceClient`."""

import threading
import time

import pytest

from certsuite.adapters.memory import InMemoryResourceClient
from certsuite.domain.resources import (
    Certificate,
    CertificateSpec,
    ObjectMeta,
    ResourceKind,
    Secret,
)

# pylint: disable=redefined-outer-name


def _certificate(name: str = "c", namespace: str = "ns") -> Certificate:
    return Certificate(ObjectMeta(name, namespace), CertificateSpec(secret_name=f"{name}-tls"))


@pytest.fixture
def store() -> InMemoryResourceClient:
    return InMemoryResourceClient()


def test_list_all_is_scoped_by_kind_and_namespace(store):
    store.create(_certificate("a"))
    store.create(_certificate("b", namespace="other"))
    store.create(Secret(ObjectMeta("a-tls", "ns")))
    assert [c.name for c in store.list_all(ResourceKind.CERTIFICATE, "ns")] == ["a"]


def test_resource_versions_increase_store_wide(store):
    a = store.create(_certificate("a"))
    s = store.create(Secret(ObjectMeta("s", "ns")))
    b = store.update(a.with_spec(common_name="x"))
    versions = [int(o.metadata.resource_version) for o in (a, s, b)]
    assert versions == sorted(versions)
    assert len(set(versions)) == 3


def test_secret_generation_tracks_data(store):
    secret = store.create(Secret(ObjectMeta("s", "ns"), data={"tls.crt": b"a"}))
    relabelled = store.update(
        Secret(
            ObjectMeta(
                "s",
                "ns",
                labels={"x": "y"},
                resource_version=secret.metadata.resource_version,
            ),
            data={"tls.crt": b"a"},
        )
    )
    assert relabelled.metadata.generation == 1
    changed = store.update(relabelled.with_data(tls_crt=b"b"))
    assert changed.metadata.generation == 2


def test_watch_yields_writes_after_it_starts(store):
    store.create(_certificate("before"))
    seen: list[str] = []

    def _watch():
        for obj in store.watch(ResourceKind.CERTIFICATE, "ns", timeout=0.3):
            seen.append(obj.name)

    watcher = threading.Thread(target=_watch)
    watcher.start()
    time.sleep(0.05)
    store.create(_certificate("after"))
    store.create(Secret(ObjectMeta("ignored", "ns")))
    watcher.join(timeout=5)
    assert seen == ["after"]


def test_watch_ends_after_idle_timeout(store):
    assert list(store.watch(ResourceKind.SECRET, "ns", timeout=0.05)) == []
