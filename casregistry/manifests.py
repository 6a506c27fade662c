"""
Manifest validation and storage for the container registry.

Two manifest variants are accepted, discriminated by the declared media type:

    Image manifest   {schemaVersion, mediaType, config: Descriptor, layers: [Descriptor]}
    Index manifest   {schemaVersion, mediaType, manifests: [Descriptor]}

Image manifests must only reference blobs already present in the same
repository. Index manifests are not checked against stored manifests, since
multi-platform pushes upload the index and its children in either order.
"""

import json
import logging
from dataclasses import dataclass

from .blobs import BlobStore
from .digest import compute_sha256
from .errors import DigestInvalid, ManifestBlobUnknown, ManifestInvalid, ManifestUnknown, RegistryError
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

OCI_IMAGE_MANIFEST = "application/vnd.oci.image.manifest.v1+json"
DOCKER_MANIFEST_V2 = "application/vnd.docker.distribution.manifest.v2+json"
OCI_IMAGE_INDEX = "application/vnd.oci.image.index.v1+json"
DOCKER_MANIFEST_LIST = "application/vnd.docker.distribution.manifest.list.v2+json"

IMAGE_MEDIA_TYPES = frozenset({OCI_IMAGE_MANIFEST, DOCKER_MANIFEST_V2})
INDEX_MEDIA_TYPES = frozenset({OCI_IMAGE_INDEX, DOCKER_MANIFEST_LIST})


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating a manifest body: either a parsed document or one error."""

    document: dict | None = None
    error: RegistryError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


def _descriptor_digest(descriptor) -> str | None:
    if isinstance(descriptor, dict) and isinstance(descriptor.get("digest"), str):
        return descriptor["digest"]
    return None


def _invalid(message: str) -> ValidationResult:
    logger.warning(f"Manifest invalid: {message}")
    return ValidationResult(error=ManifestInvalid(message))


class ManifestValidator:
    """Checks manifest bodies against media type, schema and referenced blobs."""

    def __init__(self, blobs: BlobStore):
        self._blobs = blobs

    def validate(self, repository: str, media_type: str, body: bytes) -> ValidationResult:
        """
        Validate a manifest body against its declared media type.

        Args:
            repository: Repository the manifest is pushed to
            media_type: Media type declared by the client (Content-Type)
            body: Raw manifest bytes

        Returns:
            ValidationResult with the parsed document on success, or with the
            first failure found: ManifestInvalid for unsupported media type,
            unparsable JSON, wrong schemaVersion, mediaType mismatch or a
            malformed structure; ManifestBlobUnknown naming the first
            referenced blob (config first, then layers in order) that is
            not in the repository.
        """
        if media_type not in IMAGE_MEDIA_TYPES and media_type not in INDEX_MEDIA_TYPES:
            return _invalid(f"unsupported media type: {media_type}")

        try:
            document = json.loads(body.decode("utf-8"))
        except (ValueError, UnicodeDecodeError) as e:
            return _invalid(f"malformed JSON: {e}")
        if not isinstance(document, dict):
            return _invalid("manifest must be a JSON object")

        schema_version = document.get("schemaVersion")
        if schema_version != 2:
            return _invalid(f"unsupported schemaVersion {schema_version}")

        if document.get("mediaType") != media_type:
            return _invalid(f"mediaType mismatch; {media_type} vs {document.get('mediaType')}")

        if media_type in INDEX_MEDIA_TYPES:
            if not isinstance(document.get("manifests"), list):
                return _invalid("index manifest requires a manifests list")
            logger.debug(f"Index manifest accepted without reference checks: {repository}")
            return ValidationResult(document=document)

        config_digest = _descriptor_digest(document.get("config"))
        if config_digest is None:
            return _invalid("image manifest requires a config descriptor with a digest")
        layers = document.get("layers")
        if not isinstance(layers, list):
            return _invalid("image manifest requires a layers list")
        references = [config_digest]
        for layer in layers:
            layer_digest = _descriptor_digest(layer)
            if layer_digest is None:
                return _invalid("every layer descriptor requires a digest")
            references.append(layer_digest)

        for digest in references:
            if not self._blobs.exists(repository, digest):
                logger.warning(f"Manifest references unknown blob: {repository}@{digest}")
                return ValidationResult(error=ManifestBlobUnknown(digest))

        logger.debug(f"Image manifest validated: {repository}, {len(layers)} layers")
        return ValidationResult(document=document)


def manifest_key(repository: str, digest: str) -> str:
    return f"{repository}@{digest}"


class ManifestStore:
    """Manifest bodies keyed by (repository, digest)."""

    def __init__(self, kv: KeyValueStore):
        self._kv = kv

    def put_by_digest(self, repository: str, digest: str, body: bytes) -> None:
        """Store a manifest body. Rewriting the same digest stores identical content."""
        self._kv.put(manifest_key(repository, digest), body.decode("utf-8"))
        logger.debug(f"Stored manifest {repository}@{digest}, size: {len(body)} bytes")

    def get_and_verify(self, repository: str, digest: str) -> bytes:
        """
        Fetch a manifest body and re-check its digest.

        Raises:
            ManifestUnknown: If nothing is stored under the key
            DigestInvalid: If the stored body does not hash to the digest
        """
        stored = self._kv.get(manifest_key(repository, digest))
        if stored is None:
            logger.info(f"Manifest not found: {repository}@{digest}")
            raise ManifestUnknown()
        body = stored.encode("utf-8")
        got_digest = compute_sha256(body)
        if got_digest != digest:
            logger.warning(f"Stored manifest digest mismatch: {got_digest} != {digest}")
            raise DigestInvalid()
        return body

    def delete(self, repository: str, digest: str) -> None:
        """
        Remove a manifest.

        Raises:
            ManifestUnknown: If nothing is stored under the key
        """
        key = manifest_key(repository, digest)
        if self._kv.get(key) is None:
            logger.info(f"Manifest not found: {repository}@{digest}")
            raise ManifestUnknown()
        self._kv.delete(key)

    def exists(self, repository: str, digest: str) -> bool:
        return self._kv.get(manifest_key(repository, digest)) is not None
