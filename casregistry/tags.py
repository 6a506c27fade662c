"""
Tag registry: mutable (repository, tag) -> manifest digest pointers.

Tags are stored in the key-value store under "<repository>:<tag>". Concurrent
pushes of the same tag are last-writer-wins.
"""

import logging
from dataclasses import dataclass, field

from .errors import ManifestUnknown
from .storage import KeyValueStore

logger = logging.getLogger(__name__)


def tag_key(repository: str, tag: str) -> str:
    return f"{repository}:{tag}"


@dataclass
class TagPage:
    """One page of a tag listing."""

    names: list[str] = field(default_factory=list)
    has_more: bool = False
    next_cursor: str | None = None


class TagRegistry:
    def __init__(self, kv: KeyValueStore):
        self._kv = kv

    def resolve(self, repository: str, tag: str) -> str:
        """
        Return the digest a tag points at.

        Raises:
            ManifestUnknown: If the tag does not exist
        """
        digest = self._kv.get(tag_key(repository, tag))
        if digest is None:
            logger.info(f"{repository}:{tag} not found")
            raise ManifestUnknown()
        logger.debug(f"{repository}:{tag} -> {digest}")
        return digest

    def set(self, repository: str, tag: str, digest: str) -> None:
        self._kv.put(tag_key(repository, tag), digest)
        logger.info(f"Tag set: {repository}:{tag} -> {digest}")

    def delete(self, repository: str, tag: str) -> None:
        """
        Remove a tag.

        Raises:
            ManifestUnknown: If the tag does not exist
        """
        key = tag_key(repository, tag)
        if self._kv.get(key) is None:
            logger.info(f"{repository}:{tag} not found")
            raise ManifestUnknown()
        self._kv.delete(key)
        logger.info(f"Tag deleted: {repository}:{tag}")

    def list(self, repository: str, limit: int, last: str | None = None) -> TagPage:
        """
        List tag names of a repository in ascending order.

        Args:
            repository: Repository whose tags to list
            limit: Page size
            last: Resume strictly after this tag name when given

        Returns:
            TagPage; when has_more is True, next_cursor is the last name on
            this page and can be passed back as ``last``.

        Example:
            Tags [a, b, c, d, e] with limit=2 page as
            [a, b] -> [c, d] -> [e] (has_more False only on the last page).
            A non-positive limit is treated as 1.
        """
        limit = max(limit, 1)
        prefix = tag_key(repository, "")
        start_after = tag_key(repository, last) if last else None
        keys = self._kv.list(prefix, limit + 1, start_after=start_after)
        names = [key[len(prefix):] for key in keys[:limit]]
        has_more = len(keys) > limit
        next_cursor = names[-1] if has_more and names else None
        return TagPage(names=names, has_more=has_more, next_cursor=next_cursor)
