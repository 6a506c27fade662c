"""
Content-addressable container image registry.

Server side of the OCI Distribution / Docker Registry v2 push and pull
protocol: content-addressable blob storage, validated image and index
manifests, mutable tags with paginated listing, and resumable chunked blob
uploads.

Features:
    - Digest verification on every write and every read
    - Chunked uploads serialized per session
    - Referential integrity for image manifests (config and layers must exist)
    - Index manifests accepted before their children (multi-arch push order)
    - Pluggable backing stores (in-memory, filesystem)
    - Configurable via environment variables

See README.md for full documentation.
"""

__version__ = "0.1.0"

# Import key components for convenience
from .config import Config
from .digest import compute_sha256, digest_matches, is_valid_digest
from .errors import (
    RegistryError,
    ManifestUnknown,
    ManifestInvalid,
    ManifestTooLarge,
    ManifestBlobUnknown,
    DigestInvalid,
    NameInvalid,
    BlobUnknown,
)
from .storage import (
    KeyValueStore,
    BlobBackend,
    MemoryKeyValueStore,
    MemoryBlobBackend,
    FileKeyValueStore,
    FileBlobBackend,
    create_backends,
)
from .blobs import BlobStore
from .uploads import UploadSessionManager
from .manifests import ManifestValidator, ManifestStore, ValidationResult
from .tags import TagRegistry, TagPage
from .components import Registry
from .routes import create_app

__all__ = [
    "Config",
    "compute_sha256",
    "digest_matches",
    "is_valid_digest",
    "RegistryError",
    "ManifestUnknown",
    "ManifestInvalid",
    "ManifestTooLarge",
    "ManifestBlobUnknown",
    "DigestInvalid",
    "NameInvalid",
    "BlobUnknown",
    "KeyValueStore",
    "BlobBackend",
    "MemoryKeyValueStore",
    "MemoryBlobBackend",
    "FileKeyValueStore",
    "FileBlobBackend",
    "create_backends",
    "BlobStore",
    "UploadSessionManager",
    "ManifestValidator",
    "ManifestStore",
    "ValidationResult",
    "TagRegistry",
    "TagPage",
    "Registry",
    "create_app",
]
