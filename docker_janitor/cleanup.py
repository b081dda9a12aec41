import datetime
import logging
import docker
from pydantic import BaseModel
from typing import Optional
from .conf import CleanerOptions
from .executor import DeletionExecutor
from .image import Inventory
from .retention import RetentionPlan, decide_retention
from .string import format_megabytes

logger = logging.getLogger(__name__)


class CycleReport(BaseModel):
    """
    Metrics of one cleaning cycle.

    Attributes:
        interval_reclaimed (int): Bytes reclaimed during this cycle.
        deleted_count (int): Images (or image tags) removed during this cycle. In dry-run
            mode, the number of images that would have been removed.
        total_reclaimed (int): Bytes reclaimed since the cleaner was created.
        plan (Optional[RetentionPlan]): Image decisions, None when images are not cleaned.
    """

    interval_reclaimed: int = 0
    deleted_count: int = 0
    total_reclaimed: int = 0
    plan: Optional[RetentionPlan] = None

    @property
    def changed(self) -> bool:
        return self.interval_reclaimed > 0 or self.deleted_count > 0


def print_result(report: CycleReport):
    logger.info(
        f"Total cleaned from start: {format_megabytes(report.total_reclaimed)}; "
        f"iteration cleaned: {format_megabytes(report.interval_reclaimed)}; "
        f"deleted count: {report.deleted_count}"
    )


class DockerCleanup:
    """
    Runs cleaning cycles against a Docker host.

    One cycle prunes the enabled object kinds, then removes unused images:
    dangling images are always pruned first, then either every unused image is
    pruned at once (no freshness, no filters) or the retention plan is applied
    entry by entry. Dry-run computes and logs the same decisions without
    removing anything.

    The cleaner owns the running total of reclaimed bytes; it only grows.

    Attributes:
        _options (CleanerOptions): What the cycles are allowed to do.
        _inventory (Inventory): Source of images and containers.
        _executor (DeletionExecutor): Applies removals.
        _total_reclaimed (int): Bytes reclaimed since creation.

    Example:
        >>> cleaner = DockerCleanup(CleanerOptions(clear_images=True, once=True))
        >>> report = cleaner.run_cycle()
    """

    def __init__(
        self,
        options: CleanerOptions,
        client: Optional[docker.DockerClient] = None,
        inventory: Optional[Inventory] = None,
        executor: Optional[DeletionExecutor] = None,
        total_reclaimed: int = 0,
    ):
        if inventory is None or executor is None:
            client = client or docker.from_env()
        self._options = options
        self._inventory = inventory or Inventory(client=client)
        self._executor = executor or DeletionExecutor(
            client=client, show_progress=options.show_progress
        )
        self._total_reclaimed = total_reclaimed

    @property
    def options(self) -> CleanerOptions:
        return self._options

    @property
    def total_reclaimed(self) -> int:
        return self._total_reclaimed

    def __call__(self) -> CycleReport:
        return self.run_cycle()

    def _prune_objects(self):
        dry_run = self._options.dry_run
        if self._options.clear_containers:
            logger.debug("Pruning unused containers")
            if not dry_run:
                self._executor.prune_containers()
        if self._options.clear_volumes:
            logger.debug("Pruning unused volumes")
            if not dry_run:
                self._executor.prune_volumes()
        if self._options.clear_networks:
            logger.debug("Pruning unused networks")
            if not dry_run:
                self._executor.prune_networks()

    def plan(self, now: Optional[datetime.datetime] = None) -> RetentionPlan:
        """
        Collect the inventory and compute the retention plan without applying it.

        Args:
            now (Optional[datetime.datetime]): Reference time for the freshness check.

        Returns:
            RetentionPlan: The decisions for every image on the host.
        """
        images = self._inventory.list_images()
        containers = self._inventory.list_containers()
        return decide_retention(images, containers, self._options, now=now)

    def _clean_images(self, report: CycleReport, now: Optional[datetime.datetime]):
        dry_run = self._options.dry_run

        # Dangling images go first, before the inventory is listed.
        if dry_run:
            logger.info("[Dry-run] Would prune dangling images")
        else:
            pruned = self._executor.prune_images(dangling_only=True)
            report.interval_reclaimed += pruned.space_reclaimed
            report.deleted_count += len(pruned.deleted)

        plan = self.plan(now=now)
        report.plan = plan

        if plan.prune_all_unused:
            logger.debug("Pruning all unused images")
            if dry_run:
                for decision in plan.deletions:
                    logger.info(f"[Dry-run] Would delete image {decision.image_id}")
                report.deleted_count += len(plan.deletions)
            else:
                pruned = self._executor.prune_images(dangling_only=False)
                report.interval_reclaimed += pruned.space_reclaimed
                report.deleted_count += len(pruned.deleted)
            return

        for decision in plan.deletions:
            if dry_run:
                references = ", ".join(entry.reference for entry in decision.entries)
                logger.info(f"[Dry-run] Would delete {references}")
            else:
                report.interval_reclaimed += self._executor.delete_tags(
                    list(decision.entries)
                )
            report.deleted_count += 1

    def run_cycle(self, now: Optional[datetime.datetime] = None) -> CycleReport:
        """
        Run one cleaning cycle to completion.

        Args:
            now (Optional[datetime.datetime]): Reference time for the freshness check.

        Returns:
            CycleReport: What this cycle reclaimed, and the running total.
        """
        report = CycleReport()
        self._prune_objects()
        if not self._options.clear_images:
            report.total_reclaimed = self._total_reclaimed
            return report

        self._clean_images(report, now)
        self._total_reclaimed += report.interval_reclaimed
        report.total_reclaimed = self._total_reclaimed
        if report.changed:
            print_result(report)
        else:
            logger.debug("Nothing has been deleted in this iteration")
        return report
