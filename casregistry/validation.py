"""
Input validation module for the container registry.

Provides validation functions for repository names, tags and manifest references.
"""

import logging
import re

from flask import current_app, has_app_context

from .config import config
from .digest import is_valid_digest
from .errors import NameInvalid

logger = logging.getLogger(__name__)

REPOSITORY_COMPONENT = r"[a-z0-9]+(?:[._-][a-z0-9]+)*"
REPOSITORY_PATTERN = re.compile(rf"^{REPOSITORY_COMPONENT}(?:/{REPOSITORY_COMPONENT})*$")
TAG_PATTERN = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9._-]*$")


def _limit(name: str) -> int:
    """Read a length limit from the running app, or the global config outside one."""
    if has_app_context() and name in current_app.config:
        return current_app.config[name]
    return getattr(config, name)


def validate_repository_name(name: str) -> None:
    """
    Validate a repository name.

    Args:
        name: Repository name to validate (e.g., "library/nginx")

    Raises:
        NameInvalid: If the name is empty, too long, or malformed

    Validation Rules:
        - Must be 1-{MAX_REPOSITORY_NAME_LENGTH} characters (configurable)
        - Slash-separated path components
        - Each component is lowercase alphanumerics, optionally joined by
          single dots, hyphens or underscores

    Examples:
        >>> validate_repository_name("library/nginx")  # OK
        >>> validate_repository_name("my-app")  # OK
        >>> validate_repository_name("Library/nginx")  # Raises NameInvalid (uppercase)
    """
    max_length = _limit("MAX_REPOSITORY_NAME_LENGTH")
    if not name or len(name) > max_length:
        logger.warning(f"Invalid repository name length: {len(name or '')}")
        raise NameInvalid(f"Invalid repository name: must be 1-{max_length} characters")

    if not REPOSITORY_PATTERN.match(name):
        logger.warning(f"Invalid repository name format: {name}")
        raise NameInvalid("Invalid repository name: lowercase path components separated by slashes required")

    logger.debug(f"Repository name validated: {name}")


def validate_tag(tag: str) -> None:
    """
    Validate container image tag.

    Args:
        tag: Tag name to validate

    Raises:
        NameInvalid: If tag is invalid

    Validation Rules:
        - Must be 1-{MAX_TAG_LENGTH} characters (configurable)
        - Only alphanumeric characters, dots (.), hyphens (-), and underscores (_)
        - May not start with a dot or hyphen
    """
    max_length = _limit("MAX_TAG_LENGTH")
    if not tag or len(tag) > max_length:
        logger.warning(f"Invalid tag length: {len(tag or '')}")
        raise NameInvalid(f"Invalid tag: must be 1-{max_length} characters")

    if not TAG_PATTERN.match(tag):
        logger.warning(f"Invalid tag format: {tag}")
        raise NameInvalid("Invalid tag: only alphanumeric, dots, hyphens, and underscores allowed")

    logger.debug(f"Tag validated: {tag}")


def parse_reference(reference: str) -> tuple[str, str]:
    """
    Classify a manifest reference as a digest or a tag.

    Args:
        reference: The <ref> path segment of a manifest URL

    Returns:
        ("digest", reference) or ("tag", reference)

    Raises:
        NameInvalid: If the reference contains a colon but is not a valid
            sha256 digest, or is not a valid tag

    Examples:
        >>> parse_reference("latest")
        ('tag', 'latest')
        >>> parse_reference("md5:abc")  # Raises NameInvalid
    """
    if is_valid_digest(reference):
        return "digest", reference
    if ":" in reference:
        logger.warning(f"Invalid manifest reference: {reference}")
        raise NameInvalid()
    validate_tag(reference)
    return "tag", reference
