"""
Registry error taxonomy.

Each error carries the protocol-visible code and the HTTP status it maps to.
The Flask error handler in routes.py renders them as
``{"errors": [{"code": ..., "message": ...}]}``.
"""


class RegistryError(Exception):
    """Base exception for protocol-visible registry failures."""

    code = "UNKNOWN"
    status = 500
    default_message = "Unknown error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"errors": [{"code": self.code, "message": self.message}]}


class ManifestUnknown(RegistryError):
    """Digest or tag has no stored manifest."""

    code = "MANIFEST_UNKNOWN"
    status = 404
    default_message = "Manifest not found"


class ManifestInvalid(RegistryError):
    """Manifest body failed parsing, media type or schema checks."""

    code = "MANIFEST_INVALID"
    status = 404
    default_message = "Manifest invalid"


class ManifestTooLarge(ManifestInvalid):
    """Manifest body exceeds the configured size ceiling."""

    status = 413
    default_message = "Manifest too large"


class ManifestBlobUnknown(RegistryError):
    """An image manifest references a blob that is not in the repository."""

    code = "MANIFEST_BLOB_UNKNOWN"
    status = 400

    def __init__(self, digest: str):
        self.digest = digest
        super().__init__(f"Manifest blob {digest} unknown")


class DigestInvalid(RegistryError):
    """Computed digest does not match the claimed or keyed digest."""

    code = "DIGEST_INVALID"
    status = 400
    default_message = "Digest mismatch"


class NameInvalid(RegistryError):
    """Repository name or manifest reference is malformed."""

    code = "NAME_INVALID"
    status = 400
    default_message = "Name is malformed"


class BlobUnknown(RegistryError):
    """Requested blob is absent."""

    code = "BLOB_UNKNOWN"
    status = 404
    default_message = "Blob not found"
