import datetime
import logging
import docker
import docker.errors
import requests.exceptions
from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Optional, Tuple
from .timedate import parse_docker_timestamp

logger = logging.getLogger(__name__)

NONE_TAG = "<none>:<none>"
# Transport failures (daemon restarting, client timeout) surface as requests errors.
RUNTIME_ERRORS = (docker.errors.DockerException, requests.exceptions.RequestException)


class ImageRecord(BaseModel):
    """
    An image present on the host, as reported by the runtime.

    Attributes:
        id (str): Content addressed image ID ("sha256:...").
        repo_tags (Tuple[str, ...]): Repository tags ("name:tag"). Empty for dangling images.
        parent_id (str): ID of the image this one was built from, "" for a root image.
        size (int): Image size in bytes.
        created (datetime.datetime): Creation time in UTC.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    repo_tags: Tuple[str, ...] = ()
    parent_id: str = ""
    size: int = 0
    created: datetime.datetime = Field(
        default_factory=lambda: datetime.datetime.fromtimestamp(
            0, tz=datetime.timezone.utc
        )
    )

    @property
    def dangling(self) -> bool:
        return len(self.repo_tags) == 0

    @classmethod
    def from_summary(cls, summary: dict) -> "ImageRecord":
        """
        Build a record from an image summary returned by ``APIClient.images``.

        Args:
            summary (dict): A summary with "Id", "ParentId", "RepoTags", "Size" and "Created".

        Returns:
            ImageRecord: The parsed record. "<none>:<none>" placeholders are dropped.

        Example:
            >>> ImageRecord.from_summary({"Id": "sha256:1", "RepoTags": ["<none>:<none>"]}).dangling
            True
        """
        tags = tuple(
            tag for tag in (summary.get("RepoTags") or []) if tag and tag != NONE_TAG
        )
        return cls(
            id=summary["Id"],
            repo_tags=tags,
            parent_id=summary.get("ParentId") or "",
            size=int(summary.get("Size") or 0),
            created=parse_docker_timestamp(summary.get("Created") or 0),
        )


class ContainerRecord(BaseModel):
    """
    A container on the host together with the image it was created from.

    ``image_id`` is None when the container could not be inspected.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    image_id: Optional[str] = None


class DeletionEntry(BaseModel):
    """
    A single removal the executor has to perform.

    An entry without ``tag`` removes the whole image by ID, including all its tags.
    An entry with ``tag`` removes that reference only; the layer goes away when it
    was the last reference. ``size`` is always the full size of the image.
    """

    model_config = ConfigDict(frozen=True)

    image_id: str
    tag: str = ""
    size: int = 0

    @property
    def reference(self) -> str:
        return self.tag or self.image_id


def index_images(images: List[ImageRecord]) -> Dict[str, ImageRecord]:
    return {image.id: image for image in images}


class Inventory:
    """
    Collects the images and containers currently known to the runtime.

    Listing and inspect failures are logged and produce no information instead
    of aborting the cleaning cycle.

    Attributes:
        _client (docker.DockerClient): The Docker client instance.
    """

    def __init__(self, client: Optional[docker.DockerClient] = None):
        self._client = client or docker.from_env()

    def list_images(self) -> List[ImageRecord]:
        """
        List all images on the host, intermediate layers included.

        Returns:
            List[ImageRecord]: The images, or an empty list if the runtime call fails.
        """
        try:
            summaries = self._client.api.images(all=True)
        except RUNTIME_ERRORS as e:
            logger.error(f"Failed to list docker images on host, err: {e}")
            return []
        images = []
        for summary in summaries:
            try:
                images.append(ImageRecord.from_summary(summary))
            except (KeyError, ValueError) as e:
                logger.error(f"Skipping malformed image summary {summary!r}: {e}")
        logger.debug(f"Images on host: {len(images)}")
        return images

    def inspect_container_image(self, container_id: str) -> Optional[str]:
        try:
            inspected = self._client.api.inspect_container(container_id)
        except RUNTIME_ERRORS as e:
            logger.debug(f"error getting container info for {container_id}: {e}")
            return None
        return inspected.get("Image") or None

    def list_containers(self) -> List[ContainerRecord]:
        """
        List all containers, running or stopped, and resolve the image each one uses.

        Returns:
            List[ContainerRecord]: The containers, or an empty list if the runtime call fails.
        """
        try:
            containers = self._client.containers.list(all=True, sparse=True)
        except RUNTIME_ERRORS as e:
            logger.error(f"Failed to list docker containers on host, err: {e}")
            return []
        return [
            ContainerRecord(
                id=container.id, image_id=self.inspect_container_image(container.id)
            )
            for container in containers
        ]
