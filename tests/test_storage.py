"""Tests for the backing store implementations."""

from pathlib import Path

import pytest

from casregistry.config import Config
from casregistry.storage import (
    FileBlobBackend,
    FileKeyValueStore,
    MemoryBlobBackend,
    MemoryKeyValueStore,
    create_backends,
)


@pytest.fixture(params=["memory", "file"])
def kv(request, tmp_path: Path):
    if request.param == "memory":
        return MemoryKeyValueStore()
    return FileKeyValueStore(str(tmp_path / "kv"))


@pytest.fixture(params=["memory", "file"])
def blob_backend(request, tmp_path: Path):
    if request.param == "memory":
        return MemoryBlobBackend()
    return FileBlobBackend(str(tmp_path / "blobs"))


def test_kv_get_missing_returns_none(kv) -> None:
    assert kv.get("library/nginx:latest") is None


def test_kv_put_get_delete(kv) -> None:
    kv.put("library/nginx:latest", "sha256:abc")
    assert kv.get("library/nginx:latest") == "sha256:abc"
    kv.delete("library/nginx:latest")
    assert kv.get("library/nginx:latest") is None


def test_kv_delete_missing_is_noop(kv) -> None:
    kv.delete("nope")


def test_kv_list_prefix_sorted_and_limited(kv) -> None:
    for tag in ["c", "a", "e", "b", "d"]:
        kv.put(f"app:{tag}", "x")
    kv.put("other:a", "x")
    assert kv.list("app:", 10) == ["app:a", "app:b", "app:c", "app:d", "app:e"]
    assert kv.list("app:", 2) == ["app:a", "app:b"]
    assert kv.list("app:", 2, start_after="app:b") == ["app:c", "app:d"]
    assert kv.list("app:", 10, start_after="app:e") == []


def test_kv_keys_with_slashes_and_colons(kv) -> None:
    kv.put("library/nginx@sha256:abc", "{}")
    assert kv.get("library/nginx@sha256:abc") == "{}"
    assert kv.list("library/nginx@", 10) == ["library/nginx@sha256:abc"]


def test_blob_backend_roundtrip(blob_backend) -> None:
    assert blob_backend.get("k") is None
    assert blob_backend.exists("k") is False
    blob_backend.put("k", b"\x00\x01\x02")
    assert blob_backend.get("k") == b"\x00\x01\x02"
    assert blob_backend.exists("k") is True
    blob_backend.delete("k")
    assert blob_backend.get("k") is None
    blob_backend.delete("k")


def test_file_backend_survives_reopen(tmp_path: Path) -> None:
    root = str(tmp_path / "blobs")
    FileBlobBackend(root).put("app@sha256:1", b"data")
    assert FileBlobBackend(root).get("app@sha256:1") == b"data"


def test_create_backends_memory() -> None:
    cfg = Config()
    cfg.STORAGE_BACKEND = "memory"
    manifest_kv, tag_kv, blob_backend = create_backends(cfg)
    assert isinstance(manifest_kv, MemoryKeyValueStore)
    assert isinstance(tag_kv, MemoryKeyValueStore)
    assert manifest_kv is not tag_kv
    assert isinstance(blob_backend, MemoryBlobBackend)


def test_create_backends_filesystem(tmp_path: Path) -> None:
    cfg = Config()
    cfg.STORAGE_BACKEND = "filesystem"
    cfg.STORAGE_PATH = str(tmp_path)
    manifest_kv, tag_kv, blob_backend = create_backends(cfg)
    assert isinstance(manifest_kv, FileKeyValueStore)
    assert isinstance(blob_backend, FileBlobBackend)
    assert (tmp_path / "blobs").is_dir()


def test_create_backends_unknown() -> None:
    cfg = Config()
    cfg.STORAGE_BACKEND = "s3"
    with pytest.raises(ValueError):
        create_backends(cfg)


LONG_REPOSITORY = "/".join(["a" * 63] * 4)


def test_file_backends_accept_longest_repository_name(tmp_path: Path) -> None:
    assert len(LONG_REPOSITORY) == 255
    digest = "sha256:" + "0" * 64

    blobs = FileBlobBackend(str(tmp_path / "blobs"))
    blobs.put(f"{LONG_REPOSITORY}@{digest}", b"layer")
    blobs.put(f"{LONG_REPOSITORY}%%0f6a2a8e-upload", b"scratch")
    assert blobs.get(f"{LONG_REPOSITORY}@{digest}") == b"layer"
    assert blobs.exists(f"{LONG_REPOSITORY}%%0f6a2a8e-upload")

    kv = FileKeyValueStore(str(tmp_path / "kv"))
    kv.put(f"{LONG_REPOSITORY}@{digest}", "{}")
    kv.put(f"{LONG_REPOSITORY}:latest", digest)
    assert kv.get(f"{LONG_REPOSITORY}:latest") == digest
    assert kv.list(f"{LONG_REPOSITORY}:", 10) == [f"{LONG_REPOSITORY}:latest"]


def test_file_kv_list_skips_deleted_keys(tmp_path: Path) -> None:
    kv = FileKeyValueStore(str(tmp_path / "kv"))
    kv.put("app:a", "x")
    kv.put("app:b", "y")
    kv.delete("app:a")
    assert kv.list("app:", 10) == ["app:b"]
    names = [p.name for p in (tmp_path / "kv").iterdir()]
    assert len(names) == 2
    assert sum(name.endswith(".key") for name in names) == 1
