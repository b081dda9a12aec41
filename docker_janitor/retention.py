import datetime
import logging
from enum import Enum
from pydantic import BaseModel, ConfigDict
from typing import Iterable, List, Optional, Tuple
from .conf import CleanerOptions
from .filters import select_deletable_tags
from .image import ContainerRecord, DeletionEntry, ImageRecord
from .timedate import utc_now
from .usage import UsageSet, compute_used_images

logger = logging.getLogger(__name__)


class Verdict(str, Enum):
    DANGLING = "dangling"
    USED = "used"
    TOO_FRESH = "too_fresh"
    FILTERED = "filtered"
    DELETE = "delete"


class ImageDecision(BaseModel):
    """
    What happens to one image in a cleaning cycle.

    Attributes:
        image_id (str): The image the decision is about.
        verdict (Verdict): Why the image is kept, or DELETE.
        entries (Tuple[DeletionEntry, ...]): Removals to perform, only set for DELETE.
        witness (Optional[str]): Container keeping the image, only set for USED.
    """

    model_config = ConfigDict(frozen=True)

    image_id: str
    verdict: Verdict
    entries: Tuple[DeletionEntry, ...] = ()
    witness: Optional[str] = None

    @property
    def delete(self) -> bool:
        return self.verdict == Verdict.DELETE


class RetentionPlan(BaseModel):
    """
    The outcome of the retention decision for every image on the host.

    Attributes:
        prune_all_unused (bool): Neither freshness nor filters are configured; unused
            images are removed with a single runtime prune instead of per-entry removals.
        decisions (Tuple[ImageDecision, ...]): One decision per image, ordered by image ID.
    """

    model_config = ConfigDict(frozen=True)

    prune_all_unused: bool = False
    decisions: Tuple[ImageDecision, ...] = ()

    @property
    def deletions(self) -> List[ImageDecision]:
        return [decision for decision in self.decisions if decision.delete]

    @property
    def entries(self) -> List[DeletionEntry]:
        return [entry for decision in self.deletions for entry in decision.entries]

    def verdict_of(self, image_id: str) -> Optional[Verdict]:
        for decision in self.decisions:
            if decision.image_id == image_id:
                return decision.verdict
        return None


def decide_image(
    image: ImageRecord,
    usage: UsageSet,
    options: CleanerOptions,
    cutoff: Optional[datetime.datetime],
) -> ImageDecision:
    """
    Decide the fate of a single image.

    Dangling images are left to the dangling prune. A used image is kept. An
    unused image created at or after ``cutoff`` is kept as too fresh. Otherwise
    the whole image is deleted when no filters are configured, or each tag not
    protected by a filter is deleted; an image whose tags are all protected is kept.

    Args:
        image (ImageRecord): The image to decide on.
        usage (UsageSet): Images in use this cycle.
        options (CleanerOptions): Filters and freshness configuration.
        cutoff (Optional[datetime.datetime]): Freshness limit, None when disabled.

    Returns:
        ImageDecision: The decision.
    """
    if image.dangling:
        return ImageDecision(image_id=image.id, verdict=Verdict.DANGLING)

    witness = usage.witness(image.id)
    if witness is not None:
        logger.debug(f"Skip, image {image.id} is used by container {witness}")
        return ImageDecision(image_id=image.id, verdict=Verdict.USED, witness=witness)

    logger.debug(f"Image {image.id}, with tags: {','.join(image.repo_tags)}")
    if cutoff is not None and image.created >= cutoff:
        logger.debug(f"Deletion skipped on image {image.id}: too fresh")
        return ImageDecision(image_id=image.id, verdict=Verdict.TOO_FRESH)

    if not options.filters_enabled:
        entries = [DeletionEntry(image_id=image.id, size=image.size)]
    else:
        entries = select_deletable_tags(options.filters, image)

    if not entries:
        logger.debug(f"Image {image.id} filtered out and will not be deleted")
        return ImageDecision(image_id=image.id, verdict=Verdict.FILTERED)
    logger.debug(f"Deleting {len(entries)} tags for image {image.id}")
    return ImageDecision(
        image_id=image.id, verdict=Verdict.DELETE, entries=tuple(entries)
    )


def decide_retention(
    images: Iterable[ImageRecord],
    containers: Iterable[ContainerRecord],
    options: CleanerOptions,
    now: Optional[datetime.datetime] = None,
) -> RetentionPlan:
    """
    Compute which images and tags may be deleted.

    The computation has no side effects and depends only on its arguments, so
    two calls with the same inventory, options and ``now`` yield the same plan.

    Args:
        images (Iterable[ImageRecord]): All images on the host.
        containers (Iterable[ContainerRecord]): All containers, with resolved image IDs.
        options (CleanerOptions): Filters and freshness configuration.
        now (Optional[datetime.datetime]): Reference time, defaults to the current UTC time.

    Returns:
        RetentionPlan: A decision for every image.

    Example:
        >>> image = ImageRecord(id="sha256:x", repo_tags=["a/b:latest"], size=5)
        >>> plan = decide_retention([image], [], CleanerOptions(clear_images=True))
        >>> [e.reference for e in plan.entries]
        ['sha256:x']
    """
    images = list(images)
    usage = compute_used_images(images, containers)
    cutoff = None
    if options.freshness_enabled:
        now = now or utc_now()
        cutoff = now - options.freshness
        logger.debug(
            f"Images that were created in the last {options.freshness} will be skipped. "
            f"Images on host: {len(images)}"
        )

    decisions = tuple(
        decide_image(image, usage, options, cutoff)
        for image in sorted(images, key=lambda record: record.id)
    )
    return RetentionPlan(
        prune_all_unused=not options.freshness_enabled and not options.filters_enabled,
        decisions=decisions,
    )
