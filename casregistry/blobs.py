"""
Content-addressable blob store for the container registry.

Blobs are kept in the blob backend under "<repository>@<digest>". This layer
is a plain byte store: it never hashes. Callers re-verify the digest of what
they read (see Registry.get_blob).
"""

import logging

from .errors import BlobUnknown
from .storage import BlobBackend

logger = logging.getLogger(__name__)


def blob_key(repository: str, digest: str) -> str:
    return f"{repository}@{digest}"


class BlobStore:
    """Immutable blobs keyed by (repository, digest)."""

    def __init__(self, backend: BlobBackend):
        self._backend = backend

    def put(self, repository: str, digest: str, data: bytes) -> None:
        logger.debug(f"Storing blob {repository}@{digest}, size: {len(data)} bytes")
        self._backend.put(blob_key(repository, digest), data)

    def get(self, repository: str, digest: str) -> bytes:
        """
        Fetch blob bytes.

        Raises:
            BlobUnknown: If no blob is stored under the key
        """
        data = self._backend.get(blob_key(repository, digest))
        if data is None:
            logger.debug(f"Blob not found: {repository}@{digest}")
            raise BlobUnknown()
        return data

    def delete(self, repository: str, digest: str) -> None:
        """Remove a blob. Deleting an absent blob is not an error."""
        self._backend.delete(blob_key(repository, digest))

    def exists(self, repository: str, digest: str) -> bool:
        return self._backend.exists(blob_key(repository, digest))
