import datetime
import pytest
import docker
from unittest.mock import MagicMock
from docker_janitor.image import ContainerRecord, ImageRecord

NOW = datetime.datetime(2024, 6, 1, 12, 0, 0, tzinfo=datetime.timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_image():
    """Factory for images created `age` before NOW (30 days by default)."""

    def _make_image(
        image_id, tags=(), parent_id="", size=1000, age=datetime.timedelta(days=30)
    ):
        return ImageRecord(
            id=image_id,
            repo_tags=tuple(tags),
            parent_id=parent_id,
            size=size,
            created=NOW - age,
        )

    return _make_image


@pytest.fixture
def make_container():
    def _make_container(container_id, image_id=None):
        return ContainerRecord(id=container_id, image_id=image_id)

    return _make_container


@pytest.fixture
def docker_client():
    """Fixture to create a mock Docker client with a mock low-level API client."""
    client = MagicMock(spec=docker.DockerClient)
    client.api = MagicMock(spec=docker.APIClient)
    client.api.images.return_value = []
    client.containers.list.return_value = []
    client.images.prune.return_value = {"ImagesDeleted": None, "SpaceReclaimed": 0}
    return client


@pytest.fixture
def image_summary():
    """Factory for raw image summaries as returned by APIClient.images."""

    def _image_summary(image_id, tags=None, parent_id="", size=1000, created=0):
        return {
            "Id": image_id,
            "ParentId": parent_id,
            "RepoTags": tags,
            "Size": size,
            "Created": created,
        }

    return _image_summary
