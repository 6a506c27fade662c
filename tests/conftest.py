"""Shared fixtures for registry tests."""

import pytest

from casregistry.components import Registry
from casregistry.digest import compute_sha256
from casregistry.routes import create_app
from casregistry.storage import MemoryBlobBackend, MemoryKeyValueStore


@pytest.fixture()
def registry() -> Registry:
    return Registry(MemoryKeyValueStore(), MemoryKeyValueStore(), MemoryBlobBackend())


@pytest.fixture()
def app(registry):
    app = create_app(registry=registry)
    app.config["TESTING"] = True
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def push_blob(registry):
    """Store a blob directly and return its digest."""

    def _push(repository: str, data: bytes) -> str:
        digest = compute_sha256(data)
        registry.blobs.put(repository, digest, data)
        return digest

    return _push
