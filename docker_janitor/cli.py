#!/usr/bin/env python3
"""
Docker Janitor Command Line Interface
Periodically prunes unused containers, volumes, networks and images on a Docker host.
Every option can also be set with the environment variable named in its help text.
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

import docker
import docker.errors
from pydantic import ValidationError

from docker_janitor import __version__
from docker_janitor.cleanup import DockerCleanup
from docker_janitor.conf import CleanerOptions, Filters
from docker_janitor.runtime import IntervalScheduler, OnceScheduler, Scheduler
from docker_janitor.timedate import format_duration, parse_duration

logger = logging.getLogger(__name__)

LOG_FORMAT = "[%(asctime)s.%(msecs)03d] [%(levelname)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
TRUE_VALUES = {"1", "t", "true", "y", "yes", "on"}
FALSE_VALUES = {"0", "f", "false", "n", "no", "off"}


def get_env(key: str, default: str) -> str:
    return os.environ.get(key, default)


def get_env_bool(key: str, default: bool) -> bool:
    """
    Read a boolean environment variable.

    Unset or unparsable values fall back to ``default``.

    Example:
        >>> os.environ["DRY_RUN"] = "true"
        >>> get_env_bool("DRY_RUN", False)
        True
    """
    value = os.environ.get(key)
    if value is None:
        return default
    value = value.strip().lower()
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    return default


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docker-janitor",
        description="Clean unused Docker containers, volumes, networks and images",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    flags = [
        ("--once", "ONCE", "Execute clean task once and exit"),
        ("--debug", "DEBUG", "Set log level to debug"),
        (
            "--dry-run",
            "DRY_RUN",
            "Do not change anything, just print what would be done",
        ),
        (
            "--clear-containers",
            "CLEAR_CONTAINERS",
            'Clear unused containers, same as "docker container prune"',
        ),
        (
            "--clear-networks",
            "CLEAR_NETWORKS",
            'Clear unused networks, same as "docker network prune"',
        ),
        (
            "--clear-volumes",
            "CLEAR_VOLUMES",
            'Clear unused volumes, same as "docker volume prune"',
        ),
        (
            "--clear-images",
            "CLEAR_IMAGES",
            'Clear unused images, same as "docker image prune -a"',
        ),
        (
            "--progress",
            "PROGRESS",
            "Show a progress bar while deleting image tags",
        ),
    ]
    for flag, env, help_text in flags:
        parser.add_argument(
            flag,
            action=argparse.BooleanOptionalAction,
            default=get_env_bool(env, False),
            help=f"{help_text} (env: {env})",
        )

    parser.add_argument(
        "--exclude-fullnames",
        default=get_env("EXCLUDE_FULLNAMES", ""),
        metavar="repo[:port]/path:tag[,...]",
        help="Comma separated list of image fullnames to exclude from cleaning, "
        "e.g. registry.domain:9000/path/name:v1.0.0. "
        "Only used with --clear-images (env: EXCLUDE_FULLNAMES)",
    )
    parser.add_argument(
        "--exclude-names",
        default=get_env("EXCLUDE_NAMES", ""),
        metavar="repo[:port]/path[,...]",
        help="Comma separated list of image name substrings to exclude from cleaning, "
        "e.g. registry.domain/path/name,ubuntu,myimage. "
        "Only used with --clear-images (env: EXCLUDE_NAMES)",
    )
    parser.add_argument(
        "--exclude-tags",
        default=get_env("EXCLUDE_TAGS", ""),
        metavar="tag[,tag...]",
        help="Comma separated list of image tag substrings to exclude from cleaning, "
        "e.g. latest,stable,5.22. Only used with --clear-images (env: EXCLUDE_TAGS)",
    )
    parser.add_argument(
        "--freshness",
        default=get_env("FRESHNESS", ""),
        help="Keep images that were created in the given time period, e.g. 24h. "
        "Empty by default (env: FRESHNESS)",
    )
    parser.add_argument(
        "--interval",
        default=get_env("INTERVAL", "12h"),
        help="Interval to check on unused elements (env: INTERVAL)",
    )
    return parser


def setup_logging(debug: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        force=True,
    )
    if debug:
        logger.debug("Enabling debug output")


def build_options(args: argparse.Namespace) -> CleanerOptions:
    """
    Turn parsed arguments into cleaner options.

    Args:
        args (argparse.Namespace): Result of ``build_parser().parse_args()``.

    Returns:
        CleanerOptions: The validated options.

    Raises:
        ValueError: If the interval or the freshness cannot be parsed.
    """
    logger.debug(f"excludeFullnames {args.exclude_fullnames!r}")
    logger.debug(f"excludeNames {args.exclude_names!r}")
    logger.debug(f"excludeTags {args.exclude_tags!r}")
    filters = Filters.from_strings(
        fullnames=args.exclude_fullnames,
        names=args.exclude_names,
        tags=args.exclude_tags,
    )
    if not filters.enabled:
        logger.debug("No filters passed, remove all unused images")

    try:
        interval = parse_duration(args.interval)
    except ValueError as e:
        raise ValueError(f"Couldn't parse interval, err: {e}") from e

    freshness = None
    if args.freshness.strip():
        try:
            freshness = parse_duration(args.freshness)
        except ValueError as e:
            raise ValueError(f"Couldn't parse freshness, err: {e}") from e
    else:
        logger.debug("Freshness isn't set, delete all unused images")

    try:
        return CleanerOptions(
            dry_run=args.dry_run,
            clear_containers=args.clear_containers,
            clear_volumes=args.clear_volumes,
            clear_networks=args.clear_networks,
            clear_images=args.clear_images,
            filters=filters,
            freshness=freshness,
            interval=interval,
            once=args.once,
            show_progress=args.progress,
        )
    except ValidationError as e:
        raise ValueError(str(e)) from e


def create_client() -> docker.DockerClient:
    return docker.from_env(version=get_env("DOCKER_API_VERSION", "auto"))


def create_scheduler(options: CleanerOptions) -> Scheduler:
    if options.once:
        return OnceScheduler()
    return IntervalScheduler(interval=options.interval)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(debug=args.debug)

    try:
        options = build_options(args)
    except ValueError as e:
        logger.critical(str(e))
        return 1

    if not options.any_cleaner_enabled:
        logger.info("No cleaner options provided, exit.")
        return 0

    if options.dry_run:
        logger.info("Dry-run option provided, nothing will be deleted")

    freshness = format_duration(options.freshness) if options.freshness_enabled else ""
    logger.info(f"Cleaner started: version {__version__}")
    logger.info(
        f"Checking unused docker objects every {format_duration(options.interval)}, "
        f'with freshness {freshness or "disabled"} and filters: '
        f'"{args.exclude_names}", "{args.exclude_tags}", "{args.exclude_fullnames}"'
    )

    try:
        client = create_client()
    except docker.errors.DockerException as e:
        logger.critical(f"Failed to initiate client, err: {e}")
        return 1

    cleaner = DockerCleanup(options, client=client)
    try:
        create_scheduler(options).run(cleaner.run_cycle)
    except KeyboardInterrupt:
        logger.info("Interrupted, exit")
    return 0


if __name__ == "__main__":
    sys.exit(main())
