import datetime
import logging
from pydantic import BaseModel, Field, field_validator
from typing import Optional, Set
from .string import split_csv

logger = logging.getLogger(__name__)


class Filters(BaseModel):
    """
    Filters holds the exclusion rules that protect image tags from deletion.

    A repository tag such as "my.repo.com:9000/base/system:latest" is split at the
    last colon into the name "my.repo.com:9000/base/system" and the tag "latest".
    The tag is kept when its full string is listed in ``fullnames``, when its name
    contains any entry of ``names``, or when its tag contains any entry of ``tags``.
    Matching is case-sensitive.

    Attributes:
        fullnames (Set[str]): Exact "name:tag" strings to keep.
        names (Set[str]): Substrings of the name portion to keep.
        tags (Set[str]): Substrings of the tag portion to keep.

    Example:
        >>> filters = Filters(tags={"latest"})
        >>> filters.enabled
        True
        >>> Filters().enabled
        False
    """

    fullnames: Set[str] = Field(
        default_factory=set,
        title="Fullname Filters",
        description="Exact image references (repo[:port]/path:tag) excluded from cleaning",
    )
    names: Set[str] = Field(
        default_factory=set,
        title="Name Filters",
        description="Substrings of image names (repo[:port]/path) excluded from cleaning",
    )
    tags: Set[str] = Field(
        default_factory=set,
        title="Tag Filters",
        description="Substrings of image tags excluded from cleaning",
    )

    @field_validator("fullnames", "names", "tags", mode="after")
    @classmethod
    def _drop_empty(cls, value: Set[str]) -> Set[str]:
        # An empty substring would match every tag.
        return {item for item in value if item}

    @property
    def enabled(self) -> bool:
        return bool(self.fullnames or self.names or self.tags)

    @classmethod
    def from_strings(
        cls, fullnames: str = "", names: str = "", tags: str = ""
    ) -> "Filters":
        """
        Build filters from comma separated strings, as passed on the command line.

        Args:
            fullnames (str): e.g. "registry.domain:9000/path/name:v1.0.0,ubuntu:20.04".
            names (str): e.g. "registry.domain/path/name,ubuntu,myimage".
            tags (str): e.g. "latest,stable,5.22".

        Returns:
            Filters: The parsed filters.

        Example:
            >>> Filters.from_strings(tags="latest,stable").tags == {"latest", "stable"}
            True
        """
        filters = cls()
        for fullname in sorted(split_csv(fullnames)):
            filters.add_fullname(fullname)
        for name in sorted(split_csv(names)):
            filters.add_name(name)
        for tag in sorted(split_csv(tags)):
            filters.add_tag(tag)
        return filters

    def add_fullname(self, fullname: str):
        logger.info(f"Adding fullname filter '{fullname}'")
        if fullname:
            self.fullnames.add(fullname)

    def add_name(self, name: str):
        logger.info(f"Adding name filter '{name}'")
        if name:
            self.names.add(name)

    def add_tag(self, tag: str):
        logger.info(f"Adding tag filter '{tag}'")
        if tag:
            self.tags.add(tag)


class CleanerOptions(BaseModel):
    """
    CleanerOptions defines what a cleaning cycle is allowed to do.

    Attributes:
        dry_run (bool): Compute and log decisions without removing anything.
        clear_containers (bool): Prune stopped containers, same as "docker container prune".
        clear_volumes (bool): Prune unused volumes, same as "docker volume prune".
        clear_networks (bool): Prune unused networks, same as "docker network prune".
        clear_images (bool): Remove unused images, same as "docker image prune -a".
        filters (Filters): Exclusion rules for image tags.
        freshness (Optional[datetime.timedelta]): Images created within this period are kept.
            None disables the freshness check.
        interval (datetime.timedelta): Time between two cleaning cycles.
        once (bool): Run a single cycle and exit.
        show_progress (bool): Show a progress bar while deleting image tags.

    Example:
        >>> options = CleanerOptions(clear_images=True)
        >>> options.freshness_enabled, options.filters_enabled
        (False, False)
    """

    dry_run: bool = Field(
        default=False,
        title="Dry Run",
        description="Do not change anything, just print what would be done",
    )
    clear_containers: bool = Field(
        default=False,
        title="Clear Containers",
        description="Clear unused containers",
    )
    clear_volumes: bool = Field(
        default=False, title="Clear Volumes", description="Clear unused volumes"
    )
    clear_networks: bool = Field(
        default=False, title="Clear Networks", description="Clear unused networks"
    )
    clear_images: bool = Field(
        default=False, title="Clear Images", description="Clear unused images"
    )
    filters: Filters = Field(
        default_factory=Filters,
        title="Filters",
        description="Images excluded from cleaning",
    )
    freshness: Optional[datetime.timedelta] = Field(
        default=None,
        title="Freshness",
        description="Keep images that were created in the given time period",
    )
    interval: datetime.timedelta = Field(
        default=datetime.timedelta(hours=12),
        title="Interval",
        description="Interval to check on unused elements",
    )
    once: bool = Field(
        default=False,
        title="Once",
        description="Execute clean task once and exit",
    )
    show_progress: bool = Field(
        default=False,
        title="Show Progress",
        description="Display a progress bar while deleting image tags",
    )

    @field_validator("interval")
    @classmethod
    def _positive_interval(cls, value: datetime.timedelta) -> datetime.timedelta:
        if value.total_seconds() <= 0:
            raise ValueError(f"Interval must be positive, got {value}")
        return value

    @field_validator("freshness")
    @classmethod
    def _non_negative_freshness(
        cls, value: Optional[datetime.timedelta]
    ) -> Optional[datetime.timedelta]:
        if value is not None and value.total_seconds() < 0:
            raise ValueError(f"Freshness must not be negative, got {value}")
        return value

    @property
    def freshness_enabled(self) -> bool:
        return self.freshness is not None

    @property
    def filters_enabled(self) -> bool:
        return self.filters.enabled

    @property
    def any_cleaner_enabled(self) -> bool:
        return (
            self.clear_containers
            or self.clear_volumes
            or self.clear_networks
            or self.clear_images
        )
