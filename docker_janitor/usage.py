import logging
from typing import Dict, Iterable, Iterator, Mapping, Optional
from .image import ContainerRecord, ImageRecord, index_images

logger = logging.getLogger(__name__)


class UsageSet(Mapping):
    """
    Images that must be kept because a container depends on them.

    Maps an image ID to the ID of one container that justifies keeping it (the
    witness). Only the first witness found is recorded.

    Example:
        >>> usage = UsageSet()
        >>> usage.mark("sha256:a", "c1")
        >>> usage.mark("sha256:a", "c2")
        >>> usage["sha256:a"]
        'c1'
    """

    def __init__(self):
        self._witnesses: Dict[str, str] = {}

    def __getitem__(self, image_id: str) -> str:
        return self._witnesses[image_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._witnesses)

    def __len__(self) -> int:
        return len(self._witnesses)

    def __repr__(self) -> str:
        return f"UsageSet({self._witnesses!r})"

    def mark(self, image_id: str, container_id: str) -> bool:
        """Record usage of an image; return False if it was already marked."""
        if image_id in self._witnesses:
            return False
        self._witnesses[image_id] = container_id
        return True

    def witness(self, image_id: str) -> Optional[str]:
        return self._witnesses.get(image_id)


def ancestors(image_id: str, index: Mapping[str, ImageRecord]) -> Iterator[str]:
    """
    Yield the IDs of the ancestors of an image, nearest first.

    The walk stops at the first parent ID that is empty or unknown to the index
    (root of the layer chain, or a parent already removed by the runtime). It is
    bounded by the index size so corrupted parent pointers cannot loop forever.

    Args:
        image_id (str): The image to start from (not yielded itself).
        index (Mapping[str, ImageRecord]): ID -> image lookup for this cycle.

    Yields:
        str: Ancestor image IDs.
    """
    current = index.get(image_id)
    steps = 0
    while current is not None and current.parent_id:
        if steps >= len(index):
            logger.warning(
                f"Parent chain of {image_id} is longer than the number of images, "
                f"stopping at {current.id}"
            )
            return
        parent = index.get(current.parent_id)
        if parent is None:
            return
        yield parent.id
        current = parent
        steps += 1


def compute_used_images(
    images: Iterable[ImageRecord], containers: Iterable[ContainerRecord]
) -> UsageSet:
    """
    Compute the set of images in use by containers, ancestors included.

    Every container marks its own image and every ancestor of that image with
    the container's ID. Containers whose image could not be resolved contribute
    nothing.

    Args:
        images (Iterable[ImageRecord]): All images on the host.
        containers (Iterable[ContainerRecord]): All containers, running or stopped.

    Returns:
        UsageSet: Image ID -> witness container ID.

    Example:
        >>> images = [ImageRecord(id="m1"), ImageRecord(id="m2", parent_id="m1")]
        >>> usage = compute_used_images(images, [ContainerRecord(id="c1", image_id="m2")])
        >>> sorted(usage)
        ['m1', 'm2']
    """
    index = index_images(list(images))
    usage = UsageSet()
    for container in containers:
        if not container.image_id:
            logger.debug(f"Container {container.id} has no resolvable image, skipping")
            continue
        usage.mark(container.image_id, container.id)
        for parent_id in ancestors(container.image_id, index):
            usage.mark(parent_id, container.id)
    return usage
