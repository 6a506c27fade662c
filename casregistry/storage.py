"""
Backing store module for the container registry.

Defines the two narrow storage contracts the registry depends on and ships
in-memory and filesystem implementations of each:

    - KeyValueStore: manifests and tags (text values, ordered prefix listing)
    - BlobBackend: blob bytes and upload-session scratch data

Absence of a key is reported as None, never as an exception. Only genuine
I/O failures (OSError) propagate to callers.
"""

import hashlib
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)

KEY_SUFFIX = ".key"


class KeyValueStore(ABC):
    """Key-value store used for manifests and tags."""

    @abstractmethod
    def put(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def get(self, key: str) -> str | None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...

    @abstractmethod
    def list(self, prefix: str, limit: int, start_after: str | None = None) -> list[str]:
        """
        List keys starting with ``prefix`` in ascending order.

        Args:
            prefix: Key prefix to match
            limit: Maximum number of keys to return
            start_after: When given, only keys strictly greater than it are returned

        Returns:
            At most ``limit`` matching keys, sorted
        """


class BlobBackend(ABC):
    """Byte store used for blobs and upload-session scratch data."""

    @abstractmethod
    def put(self, key: str, data: bytes) -> None:
        ...

    @abstractmethod
    def get(self, key: str) -> bytes | None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...

    def exists(self, key: str) -> bool:
        return self.get(key) is not None


def _select_keys(keys, prefix: str, limit: int, start_after: str | None) -> list[str]:
    selected = sorted(
        key for key in keys
        if key.startswith(prefix) and (start_after is None or key > start_after)
    )
    return selected[:max(limit, 0)]


# -------------------------------
# In-memory backends
# -------------------------------


class MemoryKeyValueStore(KeyValueStore):
    """Dict-backed key-value store for development and testing."""

    def __init__(self):
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()

    def put(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def list(self, prefix: str, limit: int, start_after: str | None = None) -> list[str]:
        with self._lock:
            keys = list(self._data)
        return _select_keys(keys, prefix, limit, start_after)


class MemoryBlobBackend(BlobBackend):
    """Dict-backed blob backend for development and testing."""

    def __init__(self):
        self._data: dict[str, bytes] = {}
        self._lock = threading.Lock()

    def put(self, key: str, data: bytes) -> None:
        with self._lock:
            self._data[key] = bytes(data)

    def get(self, key: str) -> bytes | None:
        with self._lock:
            return self._data.get(key)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def exists(self, key: str) -> bool:
        with self._lock:
            return key in self._data


# -------------------------------
# Filesystem backends
# -------------------------------


class _FileStore:
    """
    One file per key under a root directory.

    Each value lives in a file named by the sha256 of its key, next to a
    "<name>.key" sidecar holding the original key for listing. Filenames stay
    a fixed 64 characters however long the repository name is. Writes go
    through a temporary file in the same directory followed by os.replace,
    so readers never see a partially written value.
    """

    def __init__(self, root: str):
        self._root = root
        os.makedirs(self._root, exist_ok=True)
        logger.debug(f"File store rooted at {self._root}")

    @property
    def root(self) -> str:
        return self._root

    def _path(self, key: str) -> str:
        return os.path.join(self._root, hashlib.sha256(key.encode("utf-8")).hexdigest())

    def _replace(self, path: str, data: bytes) -> None:
        fd, tmp_path = tempfile.mkstemp(dir=self._root, prefix=".tmp-")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def _write(self, key: str, data: bytes) -> None:
        path = self._path(key)
        # Sidecar first: a listed key always has its name recorded.
        self._replace(path + KEY_SUFFIX, key.encode("utf-8"))
        self._replace(path, data)

    def _read(self, key: str) -> bytes | None:
        try:
            with open(self._path(key), "rb") as f:
                return f.read()
        except FileNotFoundError:
            return None

    def _remove(self, key: str) -> None:
        path = self._path(key)
        for target in (path, path + KEY_SUFFIX):
            try:
                os.unlink(target)
            except FileNotFoundError:
                pass

    def _keys(self) -> list[str]:
        keys = []
        for name in os.listdir(self._root):
            if not name.endswith(KEY_SUFFIX) or name.startswith(".tmp-"):
                continue
            sidecar = os.path.join(self._root, name)
            if not os.path.isfile(sidecar[:-len(KEY_SUFFIX)]):
                continue
            try:
                with open(sidecar, "rb") as f:
                    keys.append(f.read().decode("utf-8"))
            except FileNotFoundError:
                continue
        return keys


class FileKeyValueStore(_FileStore, KeyValueStore):
    """Filesystem key-value store; values are stored UTF-8 encoded."""

    def put(self, key: str, value: str) -> None:
        self._write(key, value.encode("utf-8"))

    def get(self, key: str) -> str | None:
        data = self._read(key)
        return None if data is None else data.decode("utf-8")

    def delete(self, key: str) -> None:
        self._remove(key)

    def list(self, prefix: str, limit: int, start_after: str | None = None) -> list[str]:
        return _select_keys(self._keys(), prefix, limit, start_after)


class FileBlobBackend(_FileStore, BlobBackend):
    """Filesystem blob backend."""

    def put(self, key: str, data: bytes) -> None:
        self._write(key, data)

    def get(self, key: str) -> bytes | None:
        return self._read(key)

    def delete(self, key: str) -> None:
        self._remove(key)

    def exists(self, key: str) -> bool:
        return os.path.isfile(self._path(key))


def create_backends(cfg) -> tuple[KeyValueStore, KeyValueStore, BlobBackend]:
    """
    Build the manifest store, tag store and blob backend selected by configuration.

    Args:
        cfg: Config instance (uses STORAGE_BACKEND and STORAGE_PATH)

    Returns:
        Tuple of (manifest key-value store, tag key-value store, blob backend)

    Raises:
        ValueError: If STORAGE_BACKEND names an unknown implementation
    """
    backend = cfg.STORAGE_BACKEND.lower()
    if backend == "memory":
        logger.info("Using in-memory storage backends")
        return MemoryKeyValueStore(), MemoryKeyValueStore(), MemoryBlobBackend()
    if backend == "filesystem":
        root = cfg.STORAGE_PATH
        logger.info(f"Using filesystem storage backends under {root}")
        return (
            FileKeyValueStore(os.path.join(root, "manifests")),
            FileKeyValueStore(os.path.join(root, "tags")),
            FileBlobBackend(os.path.join(root, "blobs")),
        )
    raise ValueError(f"Unknown storage backend: {cfg.STORAGE_BACKEND}")
