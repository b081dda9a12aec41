import logging
import docker
from tqdm import tqdm
from pydantic import BaseModel, Field
from typing import List, Optional
from .image import RUNTIME_ERRORS, DeletionEntry

logger = logging.getLogger(__name__)


class PruneReport(BaseModel):
    """
    Result of a runtime prune call.

    Attributes:
        space_reclaimed (int): Bytes freed by the runtime.
        deleted (List[str]): References the runtime reported as untagged or deleted.
    """

    space_reclaimed: int = 0
    deleted: List[str] = Field(default_factory=list)

    @classmethod
    def from_response(cls, response: Optional[dict], key: str) -> "PruneReport":
        response = response or {}
        deleted = []
        for item in response.get(key) or []:
            if isinstance(item, dict):
                deleted.append(item.get("Deleted") or item.get("Untagged") or "")
            else:
                deleted.append(str(item))
        return cls(
            space_reclaimed=int(response.get("SpaceReclaimed") or 0), deleted=deleted
        )


class DeletionExecutor:
    """
    Applies cleaning decisions through the Docker API.

    Every call is synchronous. A failing call is logged and reported as having
    reclaimed nothing; it never interrupts the remaining work.

    Attributes:
        _client (docker.DockerClient): The Docker client instance.
        _show_progress (bool): Display a progress bar while deleting tags.
    """

    def __init__(
        self, client: Optional[docker.DockerClient] = None, show_progress: bool = False
    ):
        self._client = client or docker.from_env()
        self._show_progress = show_progress

    def delete_tag(self, entry: DeletionEntry) -> int:
        """
        Remove one tag, or a whole image when the entry has no tag.

        The removal is forced and does not prune untagged parents. Removing a tag
        that other tags or containers still reference only untags it.

        Args:
            entry (DeletionEntry): The removal to perform.

        Returns:
            int: The image size when the runtime deleted the layer, 0 when it only
            untagged it or when the call failed.

        Example:
            >>> executor.delete_tag(DeletionEntry(image_id="sha256:1", tag="a/b:old", size=10))
            10
        """
        reference = entry.reference
        try:
            logger.debug(f"Removing image {reference}")
            response = self._client.api.remove_image(
                reference, force=True, noprune=True
            )
        except RUNTIME_ERRORS as e:
            logger.error(f"Can't remove image {entry.image_id}, err: {e}")
            return 0

        reclaimed = 0
        for item in response or []:
            if item.get("Deleted"):
                logger.debug(
                    f"Deleted: {item['Deleted']}; Space reclaimed: {entry.size}"
                )
                reclaimed = entry.size
            else:
                logger.debug(f"Untagged: {item.get('Untagged')}")
        return reclaimed

    def delete_tags(self, entries: List[DeletionEntry]) -> int:
        """
        Remove the given entries one after the other.

        Args:
            entries (List[DeletionEntry]): The removals to perform.

        Returns:
            int: Total bytes reclaimed.
        """
        total = 0
        for entry in tqdm(
            entries, desc="Deleting image tags", disable=not self._show_progress
        ):
            total += self.delete_tag(entry)
        return total

    def prune_images(self, dangling_only: bool) -> PruneReport:
        """
        Prune images, same as "docker image prune" (or "docker image prune -a").

        Args:
            dangling_only (bool): Only remove images without tags.

        Returns:
            PruneReport: What the runtime removed; empty when the call failed.
        """
        try:
            response = self._client.images.prune(filters={"dangling": dangling_only})
        except RUNTIME_ERRORS as e:
            logger.error(f"Failed to prune unused images, err: {e}")
            return PruneReport()
        report = PruneReport.from_response(response, "ImagesDeleted")
        logger.debug(
            f"Pruned {len(report.deleted)} images (dangling only: {dangling_only}), "
            f"reclaimed {report.space_reclaimed} bytes"
        )
        return report

    def prune_containers(self) -> PruneReport:
        try:
            response = self._client.containers.prune()
        except RUNTIME_ERRORS as e:
            logger.error(f"Failed to prune unused containers, err: {e}")
            return PruneReport()
        return PruneReport.from_response(response, "ContainersDeleted")

    def prune_volumes(self) -> PruneReport:
        try:
            response = self._client.volumes.prune()
        except RUNTIME_ERRORS as e:
            logger.error(f"Failed to delete unused volumes, err: {e}")
            return PruneReport()
        return PruneReport.from_response(response, "VolumesDeleted")

    def prune_networks(self) -> PruneReport:
        try:
            response = self._client.networks.prune()
        except RUNTIME_ERRORS as e:
            logger.error(f"Failed to prune unused networks, err: {e}")
            return PruneReport()
        return PruneReport.from_response(response, "NetworksDeleted")
