"""
Chunked blob upload sessions.

A session accumulates bytes in the blob backend under
"<repository>%%<session_id>" until it is finalized, at which point the
accumulated bytes are digest-checked and promoted into the blob store.

Lifecycle per (repository, session_id):

    Created       create() returned an id, nothing stored yet
    Accumulating  at least one chunk appended and persisted
    Finalized     digest verified, blob promoted, scratch state deleted

Sessions have no expiry and no explicit abort: an abandoned session keeps
its scratch data until it is finalized.

Appending is a read-modify-write against the backend, so every append and
finalize for the same session runs under a lock scoped to that session.
"""

import logging
import threading
import uuid
from contextlib import contextmanager

from .blobs import BlobStore
from .digest import compute_sha256
from .errors import DigestInvalid
from .storage import BlobBackend

logger = logging.getLogger(__name__)


def session_key(repository: str, session_id: str) -> str:
    return f"{repository}%%{session_id}"


class _SessionLocks:
    """Reference-counted locks keyed by session; entries vanish once unused."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, list] = {}

    @contextmanager
    def hold(self, key: str):
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = [threading.Lock(), 0]
                self._locks[key] = entry
            entry[1] += 1
        lock = entry[0]
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def __len__(self):
        with self._guard:
            return len(self._locks)


class UploadSessionManager:
    """Manages the create / append / finalize lifecycle of blob uploads."""

    def __init__(self, backend: BlobBackend, blobs: BlobStore):
        self._backend = backend
        self._blobs = blobs
        self._locks = _SessionLocks()

    def create(self, repository: str) -> str:
        """
        Allocate a new upload session.

        Nothing is written to the backend: a session with no stored state is
        treated as an empty upload.

        Returns:
            Opaque session identifier (uuid4 string)
        """
        session_id = str(uuid.uuid4())
        logger.info(f"Creating new upload: repository='{repository}', session={session_id}")
        return session_id

    def _append_locked(self, key: str, chunk: bytes) -> bytes:
        sofar = self._backend.get(key) or b""
        return sofar + chunk

    def append_chunk(self, repository: str, session_id: str, chunk: bytes) -> int:
        """
        Append a chunk to the session and persist the accumulated bytes.

        Args:
            repository: Repository the upload belongs to
            session_id: Session identifier returned by create()
            chunk: Bytes to append (may be empty)

        Returns:
            Total accumulated length after the append
        """
        key = session_key(repository, session_id)
        with self._locks.hold(key):
            total = self._append_locked(key, chunk)
            self._backend.put(key, total)
        logger.debug(f"Upload {session_id}: appended {len(chunk)} bytes, total {len(total)} bytes")
        return len(total)

    def finalize(self, repository: str, session_id: str, chunk: bytes, expected_digest: str) -> tuple[str, int]:
        """
        Append the last chunk, verify the digest and promote the blob.

        Args:
            repository: Repository the upload belongs to
            session_id: Session identifier returned by create()
            chunk: Final chunk (empty when all bytes were already appended)
            expected_digest: Digest claimed by the client

        Returns:
            Tuple of (verified digest, blob length in bytes), both taken
            under the session lock

        Raises:
            DigestInvalid: If the accumulated bytes do not hash to expected_digest.
                The session is left exactly as it was before this call, so the
                client can retry.
        """
        key = session_key(repository, session_id)
        with self._locks.hold(key):
            total = self._append_locked(key, chunk)
            got_digest = compute_sha256(total)
            if got_digest != expected_digest:
                logger.warning(f"Upload {session_id}: digest mismatch: {got_digest} != {expected_digest}")
                raise DigestInvalid()
            self._blobs.put(repository, expected_digest, total)
            self._backend.delete(key)
        logger.info(f"Upload {session_id} finalized: {repository}@{expected_digest}, size: {len(total)} bytes")
        return expected_digest, len(total)

    def length(self, repository: str, session_id: str) -> int:
        """Return the number of bytes accumulated so far (0 for a fresh session)."""
        data = self._backend.get(session_key(repository, session_id))
        return 0 if data is None else len(data)
