__version__ = "0.1.0"

from .conf import CleanerOptions, Filters
from .image import ContainerRecord, DeletionEntry, ImageRecord, Inventory
from .usage import UsageSet, compute_used_images
from .filters import select_deletable_tags
from .retention import ImageDecision, RetentionPlan, Verdict, decide_retention
from .executor import DeletionExecutor, PruneReport
from .cleanup import CycleReport, DockerCleanup
from .runtime import IntervalScheduler, OnceScheduler, Scheduler


__all__ = [
    "CleanerOptions",
    "Filters",
    "ImageRecord",
    "ContainerRecord",
    "DeletionEntry",
    "Inventory",
    "UsageSet",
    "compute_used_images",
    "select_deletable_tags",
    "Verdict",
    "ImageDecision",
    "RetentionPlan",
    "decide_retention",
    "DeletionExecutor",
    "PruneReport",
    "CycleReport",
    "DockerCleanup",
    "Scheduler",
    "OnceScheduler",
    "IntervalScheduler",
]
