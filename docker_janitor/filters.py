import logging
from typing import List, Optional, Tuple
from .conf import Filters
from .image import DeletionEntry, ImageRecord

logger = logging.getLogger(__name__)


def split_repo_tag(repo_tag: str) -> Optional[Tuple[str, str]]:
    """
    Split a repository tag at its last colon.

    fullname: my.repo.com:9000/base/system:latest
    name:     my.repo.com:9000/base/system
    tag:      latest

    Args:
        repo_tag (str): The "name:tag" string.

    Returns:
        Optional[Tuple[str, str]]: (name, tag), or None when the string has no colon.

    Example:
        >>> split_repo_tag("my.repo.com:9000/base/system:latest")
        ('my.repo.com:9000/base/system', 'latest')
        >>> split_repo_tag("invalid") is None
        True
    """
    name, sep, tag = repo_tag.rpartition(":")
    if not sep:
        return None
    return name, tag


def is_excluded(filters: Filters, repo_tag: str, name: str, tag: str) -> bool:
    if repo_tag in filters.fullnames:
        logger.debug(f'Image "{repo_tag}" was fully filtered')
        return True
    for name_filter in sorted(filters.names):
        if name_filter in name:
            logger.debug(f'Name "{name}" was filtered with "{name_filter}" filter')
            return True
    for tag_filter in sorted(filters.tags):
        if tag_filter in tag:
            logger.debug(f'Tag "{tag}" was filtered with "{tag_filter}" filter')
            return True
    return False


def select_deletable_tags(filters: Filters, image: ImageRecord) -> List[DeletionEntry]:
    """
    Select the repository tags of an image that no filter protects.

    Rules are checked in order, the first match keeps the tag: the full tag
    equals a fullname filter, the name contains a name filter, the tag contains
    a tag filter. Tags without a colon are invalid and skipped. Every selected
    tag carries the full image size.

    Args:
        filters (Filters): The exclusion rules.
        image (ImageRecord): The candidate image.

    Returns:
        List[DeletionEntry]: One entry per deletable tag, sorted by tag.

    Example:
        >>> image = ImageRecord(id="sha256:1", repo_tags=["a/b:latest", "a/b:old"], size=10)
        >>> [e.tag for e in select_deletable_tags(Filters(tags={"latest"}), image)]
        ['a/b:old']
    """
    entries = []
    for repo_tag in sorted(set(image.repo_tags)):
        parts = split_repo_tag(repo_tag)
        if parts is None:
            logger.debug(f"Tag {repo_tag}, has invalid format")
            continue
        name, tag = parts
        logger.debug(f"Image {repo_tag} has parts: {name}, {tag}")
        if is_excluded(filters, repo_tag, name, tag):
            continue
        entries.append(DeletionEntry(image_id=image.id, tag=repo_tag, size=image.size))
    return entries
