"""
Registry facade wiring the storage components together.

All backing stores are passed in explicitly, so independent Registry
instances (for example one per test) never share state.
"""

import json
import logging

from .blobs import BlobStore
from .digest import compute_sha256
from .errors import BlobUnknown, DigestInvalid
from .manifests import ManifestStore, ManifestValidator
from .storage import BlobBackend, KeyValueStore, create_backends
from .tags import TagRegistry
from .uploads import UploadSessionManager
from .validation import parse_reference

logger = logging.getLogger(__name__)


class Registry:
    """
    Push, pull and delete operations over blobs, manifests and tags.

    Attributes:
        blobs: Content-addressable blob store
        uploads: Chunked upload session manager
        validator: Manifest validator (checks references against ``blobs``)
        manifests: Manifest store
        tags: Tag registry
    """

    def __init__(self, manifest_kv: KeyValueStore, tag_kv: KeyValueStore, blob_backend: BlobBackend):
        self.blobs = BlobStore(blob_backend)
        self.uploads = UploadSessionManager(blob_backend, self.blobs)
        self.validator = ManifestValidator(self.blobs)
        self.manifests = ManifestStore(manifest_kv)
        self.tags = TagRegistry(tag_kv)

    @classmethod
    def from_config(cls, cfg) -> "Registry":
        manifest_kv, tag_kv, blob_backend = create_backends(cfg)
        return cls(manifest_kv, tag_kv, blob_backend)

    # -------------------------------
    # Manifests
    # -------------------------------

    def put_manifest(self, repository: str, reference: str, media_type: str, body: bytes) -> str:
        """
        Validate and store a manifest, tagging it when pushed by tag.

        Args:
            repository: Target repository
            reference: Digest or tag from the request path
            media_type: Declared media type (Content-Type)
            body: Raw manifest bytes

        Returns:
            Digest of the stored manifest

        Raises:
            NameInvalid: Malformed reference
            DigestInvalid: Pushed by digest and the body hashes differently
            ManifestInvalid / ManifestBlobUnknown: Validation failed
        """
        kind, value = parse_reference(reference)
        digest = compute_sha256(body)

        if kind == "digest" and digest != value:
            logger.warning(f"Manifest digest mismatch: {digest} != {value}")
            raise DigestInvalid()

        self.validator.validate(repository, media_type, body).raise_for_error()

        self.manifests.put_by_digest(repository, digest, body)
        if kind == "tag":
            self.tags.set(repository, value, digest)
        logger.info(f"Manifest stored: {repository}@{digest} ({media_type})")
        return digest

    def get_manifest(self, repository: str, reference: str) -> tuple[bytes, str, str]:
        """
        Fetch a manifest by digest or tag.

        Returns:
            Tuple of (body, digest, media type from the document)

        Raises:
            NameInvalid: Malformed reference
            ManifestUnknown: No such tag or manifest (including dangling tags)
            DigestInvalid: Stored body no longer matches its digest
        """
        kind, value = parse_reference(reference)
        digest = self.tags.resolve(repository, value) if kind == "tag" else value
        body = self.manifests.get_and_verify(repository, digest)
        media_type = json.loads(body).get("mediaType")
        return body, digest, media_type

    def delete_manifest(self, repository: str, reference: str) -> None:
        """Delete a manifest by digest, or a tag by name (the manifest stays)."""
        kind, value = parse_reference(reference)
        if kind == "tag":
            self.tags.delete(repository, value)
        else:
            self.manifests.delete(repository, value)
        logger.info(f"Deleted {kind}: {repository} {value}")

    # -------------------------------
    # Blobs
    # -------------------------------

    def get_blob(self, repository: str, digest: str) -> bytes:
        """
        Fetch a blob and re-verify its digest.

        Raises:
            BlobUnknown: Blob absent
            DigestInvalid: Stored bytes no longer match the digest
        """
        data = self.blobs.get(repository, digest)
        got_digest = compute_sha256(data)
        if got_digest != digest:
            logger.warning(f"Stored blob digest mismatch: {got_digest} != {digest}")
            raise DigestInvalid()
        return data

    def put_blob(self, repository: str, digest: str, data: bytes) -> None:
        """
        Store a blob uploaded in a single request.

        Raises:
            DigestInvalid: Data does not hash to digest
        """
        got_digest = compute_sha256(data)
        if got_digest != digest:
            logger.warning(f"Blob digest mismatch: {got_digest} != {digest}")
            raise DigestInvalid()
        self.blobs.put(repository, digest, data)
        logger.info(f"Blob stored: {repository}@{digest}, size: {len(data)} bytes")

    def delete_blob(self, repository: str, digest: str) -> None:
        """
        Delete a blob.

        Raises:
            BlobUnknown: Blob absent
        """
        if not self.blobs.exists(repository, digest):
            raise BlobUnknown()
        self.blobs.delete(repository, digest)
        logger.info(f"Blob deleted: {repository}@{digest}")
