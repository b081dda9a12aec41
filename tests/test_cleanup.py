import datetime
import logging
import requests.exceptions
import pytest
from unittest.mock import MagicMock
from docker_janitor.cleanup import CycleReport, DockerCleanup, print_result
from docker_janitor.conf import CleanerOptions, Filters
from docker_janitor.executor import DeletionExecutor, PruneReport
from docker_janitor.image import DeletionEntry, Inventory
from docker_janitor.retention import Verdict


@pytest.fixture
def inventory(make_image, make_container):
    """Inventory with one used image, one old unused image and one fresh image."""
    inventory = MagicMock(spec=Inventory)
    inventory.list_images.return_value = [
        make_image("used", tags=["app:1"], size=100),
        make_image("old", tags=["app:0", "app:latest"], size=200),
        make_image("fresh", tags=["app:2"], size=300, age=datetime.timedelta(hours=1)),
    ]
    inventory.list_containers.return_value = [make_container("c1", "used")]
    return inventory


@pytest.fixture
def executor():
    executor = MagicMock(spec=DeletionExecutor)
    executor.prune_images.return_value = PruneReport()
    executor.delete_tags.side_effect = lambda entries: sum(e.size for e in entries)
    return executor


def make_cleaner(inventory, executor, **kwargs):
    return DockerCleanup(
        CleanerOptions(**kwargs), inventory=inventory, executor=executor
    )


class TestObjectPruning:
    def test_enabled_kinds_are_pruned(self, inventory, executor):
        cleaner = make_cleaner(
            inventory,
            executor,
            clear_containers=True,
            clear_volumes=True,
            clear_networks=True,
        )
        cleaner.run_cycle()
        executor.prune_containers.assert_called_once_with()
        executor.prune_volumes.assert_called_once_with()
        executor.prune_networks.assert_called_once_with()
        executor.prune_images.assert_not_called()
        inventory.list_images.assert_not_called()

    def test_disabled_kinds_are_skipped(self, inventory, executor):
        make_cleaner(inventory, executor, clear_volumes=True).run_cycle()
        executor.prune_containers.assert_not_called()
        executor.prune_networks.assert_not_called()
        executor.prune_volumes.assert_called_once_with()

    def test_dry_run_prunes_nothing(self, inventory, executor):
        cleaner = make_cleaner(
            inventory,
            executor,
            dry_run=True,
            clear_containers=True,
            clear_volumes=True,
            clear_networks=True,
        )
        cleaner.run_cycle()
        executor.prune_containers.assert_not_called()
        executor.prune_volumes.assert_not_called()
        executor.prune_networks.assert_not_called()


class TestImageCleaning:
    def test_global_prune_without_rules(self, inventory, executor, now):
        executor.prune_images.side_effect = [
            PruneReport(space_reclaimed=10, deleted=["sha256:d"]),
            PruneReport(space_reclaimed=500, deleted=["sha256:a", "sha256:b"]),
        ]
        report = make_cleaner(inventory, executor, clear_images=True).run_cycle(now=now)
        assert [call.kwargs for call in executor.prune_images.call_args_list] == [
            {"dangling_only": True},
            {"dangling_only": False},
        ]
        executor.delete_tags.assert_not_called()
        assert report.interval_reclaimed == 510
        assert report.deleted_count == 3
        assert report.total_reclaimed == 510
        assert report.plan.prune_all_unused is True

    def test_dangling_pruned_before_listing(self, inventory, executor, now):
        order = []
        executor.prune_images.side_effect = lambda dangling_only: (
            order.append("prune") or PruneReport()
        )
        inventory.list_images.side_effect = lambda: order.append("list") or []
        make_cleaner(
            inventory, executor, clear_images=True, filters=Filters(tags={"x"})
        ).run_cycle(now=now)
        assert order == ["prune", "list"]

    def test_freshness_keeps_recent_images(self, inventory, executor, now):
        cleaner = make_cleaner(
            inventory,
            executor,
            clear_images=True,
            freshness=datetime.timedelta(days=1),
        )
        report = cleaner.run_cycle(now=now)
        executor.prune_images.assert_called_once_with(dangling_only=True)
        executor.delete_tags.assert_called_once_with(
            [DeletionEntry(image_id="old", size=200)]
        )
        assert report.plan.verdict_of("used") == Verdict.USED
        assert report.plan.verdict_of("fresh") == Verdict.TOO_FRESH
        assert report.interval_reclaimed == 200
        assert report.deleted_count == 1

    def test_filters_delete_per_tag(self, inventory, executor, now):
        cleaner = make_cleaner(
            inventory,
            executor,
            clear_images=True,
            filters=Filters(tags={"latest"}),
            freshness=datetime.timedelta(days=1),
        )
        report = cleaner.run_cycle(now=now)
        executor.delete_tags.assert_called_once_with(
            [DeletionEntry(image_id="old", tag="app:0", size=200)]
        )
        assert report.deleted_count == 1

    def test_total_accumulates_across_cycles(self, inventory, executor, now):
        cleaner = make_cleaner(
            inventory,
            executor,
            clear_images=True,
            freshness=datetime.timedelta(days=1),
        )
        first = cleaner.run_cycle(now=now)
        second = cleaner.run_cycle(now=now)
        assert first.interval_reclaimed == 200
        assert second.interval_reclaimed == 200
        assert second.total_reclaimed == 400
        assert cleaner.total_reclaimed == 400

    def test_initial_total_is_carried(self, inventory, executor, now):
        cleaner = DockerCleanup(
            CleanerOptions(clear_images=True, freshness=datetime.timedelta(days=1)),
            inventory=inventory,
            executor=executor,
            total_reclaimed=1000,
        )
        assert cleaner.run_cycle(now=now).total_reclaimed == 1200

    def test_callable_runs_a_cycle(self, inventory, executor):
        cleaner = make_cleaner(inventory, executor, clear_images=True)
        assert isinstance(cleaner(), CycleReport)


class TestDryRun:
    @pytest.mark.parametrize(
        "kwargs",
        [
            {},
            {"freshness": datetime.timedelta(days=1)},
            {"filters": Filters(tags={"latest"})},
        ],
    )
    def test_same_plan_without_deletions(self, inventory, executor, now, kwargs):
        real = make_cleaner(inventory, executor, clear_images=True, **kwargs)
        real_report = real.run_cycle(now=now)

        dry_executor = MagicMock(spec=DeletionExecutor)
        dry = make_cleaner(
            inventory, dry_executor, clear_images=True, dry_run=True, **kwargs
        )
        dry_report = dry.run_cycle(now=now)

        assert dry_report.plan == real_report.plan
        dry_executor.delete_tags.assert_not_called()
        dry_executor.delete_tag.assert_not_called()
        dry_executor.prune_images.assert_not_called()
        assert dry_report.interval_reclaimed == 0

    def test_dry_run_counts_would_be_deletions(self, inventory, executor, now):
        dry = make_cleaner(inventory, executor, clear_images=True, dry_run=True)
        report = dry.run_cycle(now=now)
        assert report.deleted_count == 2

    def test_dry_run_announces_dangling_prune(self, inventory, executor, now, caplog):
        dry = make_cleaner(inventory, executor, clear_images=True, dry_run=True)
        with caplog.at_level(logging.INFO):
            dry.run_cycle(now=now)
        assert "[Dry-run] Would prune dangling images" in caplog.text
        executor.prune_images.assert_not_called()


class TestReporting:
    def test_summary_logged_when_changed(self, inventory, executor, now, caplog):
        cleaner = make_cleaner(
            inventory,
            executor,
            clear_images=True,
            freshness=datetime.timedelta(days=1),
        )
        with caplog.at_level(logging.INFO):
            cleaner.run_cycle(now=now)
        assert "deleted count: 1" in caplog.text

    def test_no_summary_when_nothing_changed(self, inventory, executor, now, caplog):
        inventory.list_images.return_value = []
        cleaner = make_cleaner(
            inventory,
            executor,
            clear_images=True,
            freshness=datetime.timedelta(days=1),
        )
        with caplog.at_level(logging.INFO):
            cleaner.run_cycle(now=now)
        assert "Total cleaned from start" not in caplog.text

    def test_print_result_format(self, caplog):
        report = CycleReport(
            interval_reclaimed=2_500_000, deleted_count=3, total_reclaimed=12_345_678
        )
        with caplog.at_level(logging.INFO):
            print_result(report)
        assert (
            "Total cleaned from start: 12.35MB; iteration cleaned: 2.50MB; deleted count: 3"
            in caplog.text
        )


class TestRuntimeFailures:
    def test_unreachable_daemon_ends_cycle_cleanly(self, docker_client, now):
        error = requests.exceptions.ConnectionError("refused")
        docker_client.images.prune.side_effect = error
        docker_client.containers.prune.side_effect = error
        docker_client.api.images.side_effect = error
        docker_client.containers.list.side_effect = error
        cleaner = DockerCleanup(
            CleanerOptions(
                clear_containers=True,
                clear_images=True,
                freshness=datetime.timedelta(days=1),
            ),
            client=docker_client,
        )
        report = cleaner.run_cycle(now=now)
        assert report.interval_reclaimed == 0
        assert report.deleted_count == 0
        assert report.plan.decisions == ()
