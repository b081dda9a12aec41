import datetime
import pytest
from docker_janitor.timedate import (
    format_duration,
    parse_docker_timestamp,
    parse_duration,
    utc_now,
)


class TestParseDuration:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("12h", datetime.timedelta(hours=12)),
            ("1h30m", datetime.timedelta(minutes=90)),
            ("90s", datetime.timedelta(seconds=90)),
            ("500ms", datetime.timedelta(milliseconds=500)),
            ("1.5h", datetime.timedelta(minutes=90)),
            ("2d", datetime.timedelta(days=2)),
            ("1w", datetime.timedelta(weeks=1)),
            ("0", datetime.timedelta(0)),
            (" 24h ", datetime.timedelta(hours=24)),
        ],
    )
    def test_valid(self, value, expected):
        assert parse_duration(value) == expected

    @pytest.mark.parametrize("value", ["", "abc", "12", "h", "12x", "1h 30m", "-1h"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_duration(value)


class TestFormatDuration:
    def test_hours(self):
        assert format_duration(datetime.timedelta(hours=12)) == "12h0m0s"

    def test_minutes(self):
        assert format_duration(datetime.timedelta(seconds=90)) == "1m30s"

    def test_seconds(self):
        assert format_duration(datetime.timedelta(seconds=5)) == "5s"

    @pytest.mark.parametrize(
        "duration, expected",
        [
            (datetime.timedelta(milliseconds=500), "500ms"),
            (datetime.timedelta(microseconds=1500), "1.5ms"),
            (datetime.timedelta(microseconds=250), "250µs"),
            (datetime.timedelta(seconds=1.5), "1.5s"),
            (datetime.timedelta(seconds=90.25), "1m30.25s"),
            (datetime.timedelta(0), "0s"),
        ],
    )
    def test_sub_second_remainders(self, duration, expected):
        assert format_duration(duration) == expected

    def test_round_trips_through_parse(self):
        assert format_duration(parse_duration("500ms")) == "500ms"


class TestParseDockerTimestamp:
    def test_unix_seconds(self):
        assert parse_docker_timestamp(1577880000) == datetime.datetime(
            2020, 1, 1, 12, 0, 0, tzinfo=datetime.timezone.utc
        )

    def test_rfc3339_with_nanoseconds(self):
        parsed = parse_docker_timestamp("2024-05-01T10:00:00.123456789Z")
        assert parsed == datetime.datetime(
            2024, 5, 1, 10, 0, 0, 123456, tzinfo=datetime.timezone.utc
        )

    def test_rfc3339_with_offset(self):
        parsed = parse_docker_timestamp("2024-05-01T12:00:00+02:00")
        assert parsed == datetime.datetime(2024, 5, 1, 10, 0, tzinfo=datetime.timezone.utc)

    def test_invalid(self):
        with pytest.raises(ValueError):
            parse_docker_timestamp("")


def test_utc_now_is_aware():
    assert utc_now().tzinfo is not None
