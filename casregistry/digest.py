"""
Digest service for the container registry.

Computes and compares canonical content digests over byte sequences.
"""

import hashlib
import re

DIGEST_PATTERN = re.compile(r"^sha256:[a-f0-9]{64}$")


def compute_sha256(data: bytes) -> str:
    """
    Compute SHA256 digest in OCI/Docker format.

    Args:
        data: Bytes to hash

    Returns:
        String in format "sha256:<64 hex chars>"

    Example:
        >>> compute_sha256(b"hello")
        'sha256:2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824'
    """
    h = hashlib.sha256()
    h.update(data)
    return "sha256:" + h.hexdigest()


def digest_matches(data: bytes, expected: str) -> bool:
    """Return True when ``data`` hashes to ``expected``."""
    return compute_sha256(data) == expected


def is_valid_digest(value: str) -> bool:
    """
    Check a digest string against the accepted format.

    Format:
        Must match: sha256:<64 lowercase hex characters>
    """
    return bool(value) and DIGEST_PATTERN.match(value) is not None
