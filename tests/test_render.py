from datetime import datetime, timezone

import pytest
from structlog.testing import capture_logs

from quotaline.config import DisplayConfig
from quotaline.models import SessionInput, UsageSnapshot
from quotaline.render import (
    build_status_line,
    format_reset_date,
    format_reset_time,
    format_tokens,
    render_bar,
    render_usage,
    round_up_to_minute,
    warn_anomalies,
)

GREEN = "\033[32m"
YELLOW = "\033[33m"
ORANGE = "\033[38;5;208m"
RED = "\033[31m"
RESET = "\033[0m"


class TestFormatTokens:
    def test_below_thousand(self) -> "None":
        assert format_tokens(0) == "0"
        assert format_tokens(500) == "500"
        assert format_tokens(999) == "999"

    def test_thousands(self) -> "None":
        assert format_tokens(1000) == "1.0k"
        assert format_tokens(1500) == "1.5k"
        assert format_tokens(123456) == "123.5k"


class TestRenderUsage:
    @pytest.mark.parametrize(
        ("usage", "expected"),
        [
            (0.0, f"{GREEN}0.0% [                    ]{RESET}"),
            (1.0, f"{GREEN}1.0% [▂                   ]{RESET}"),
            (2.0, f"{GREEN}2.0% [▃                   ]{RESET}"),
            (3.0, f"{GREEN}3.0% [▅                   ]{RESET}"),
            (4.0, f"{GREEN}4.0% [▆                   ]{RESET}"),
            (5.0, f"{GREEN}5.0% [█                   ]{RESET}"),
            (24.9, f"{GREEN}24.9% [████▇               ]{RESET}"),
            (25.0, f"{YELLOW}25.0% [█████               ]{RESET}"),
            (33.0, f"{YELLOW}33.0% [██████▅             ]{RESET}"),
            (37.0, f"{YELLOW}37.0% [███████▃            ]{RESET}"),
            (49.9, f"{YELLOW}49.9% [█████████▇          ]{RESET}"),
            (50.0, f"{ORANGE}50.0% [██████████          ]{RESET}"),
            (67.0, f"{ORANGE}67.0% [█████████████▃      ]{RESET}"),
            (74.9, f"{ORANGE}74.9% [██████████████▇     ]{RESET}"),
            (75.0, f"{RED}75.0% [███████████████     ]{RESET}"),
            (88.0, f"{RED}88.0% [█████████████████▅  ]{RESET}"),
            (99.0, f"{RED}99.0% [███████████████████▆]{RESET}"),
            (99.9, f"{RED}99.9% [███████████████████▇]{RESET}"),
            (100.0, f"{RED}100.0% [████████████████████]{RESET}"),
            (105.0, f"{RED}105.0% [████████████████████]{RESET}"),
            (-5.0, f"{GREEN}-5.0% [                    ]{RESET}"),
        ],
    )
    def test_default_width(self, usage: "float", expected: "str") -> "None":
        assert render_usage(usage) == expected

    def test_smallest_remainder_glyph(self) -> "None":
        # 0.5% of 20 cells is 0.1 of a cell, below 1/6
        assert render_bar(0.5) == "▁" + " " * 19

    def test_custom_width(self) -> "None":
        assert render_bar(50.0, width=10) == "█████     "
        assert render_usage(100.0, width=4) == f"{RED}100.0% [████]{RESET}"

    def test_zero_width(self) -> "None":
        assert render_usage(42.0, width=0) == f"{YELLOW}42.0% []{RESET}"

    def test_bar_always_has_requested_width(self) -> "None":
        for usage in (0.0, 0.1, 12.3, 50.0, 66.6, 99.99, 100.0, 250.0, -1.0):
            assert len(render_bar(usage, width=20)) == 20

    def test_idempotent(self) -> "None":
        assert render_usage(45.0) == render_usage(45.0)


class TestRoundUpToMinute:
    def test_exact_minute_unchanged(self) -> "None":
        moment = datetime(2026, 1, 5, 10, 30, tzinfo=timezone.utc)
        assert round_up_to_minute(moment) == moment

    def test_one_second_rounds_up(self) -> "None":
        moment = datetime(2026, 1, 5, 10, 30, 1, tzinfo=timezone.utc)
        assert round_up_to_minute(moment) == datetime(2026, 1, 5, 10, 31, tzinfo=timezone.utc)

    def test_microseconds_round_up(self) -> "None":
        moment = datetime(2026, 1, 5, 10, 30, 0, 1, tzinfo=timezone.utc)
        assert round_up_to_minute(moment) == datetime(2026, 1, 5, 10, 31, tzinfo=timezone.utc)

    def test_rolls_over_hour_and_day(self) -> "None":
        assert round_up_to_minute(
            datetime(2026, 1, 5, 10, 59, 30, tzinfo=timezone.utc)
        ) == datetime(2026, 1, 5, 11, 0, tzinfo=timezone.utc)
        assert round_up_to_minute(
            datetime(2026, 1, 5, 23, 59, 59, tzinfo=timezone.utc)
        ) == datetime(2026, 1, 6, 0, 0, tzinfo=timezone.utc)


@pytest.mark.usefixtures("utc_timezone")
class TestFormatResetTime:
    def test_rounds_up_to_next_minute(self) -> "None":
        assert format_reset_time("2026-01-05T10:30:01Z") == "10:31"

    def test_exact_minute(self) -> "None":
        assert format_reset_time("2026-01-05T10:30:00Z") == "10:30"

    def test_fractional_seconds_and_offset(self) -> "None":
        assert format_reset_time("2026-01-05T10:30:00.250000+00:00") == "10:31"
        assert format_reset_time("2026-01-05T19:30:00+09:00") == "10:30"

    def test_empty_and_invalid(self) -> "None":
        assert format_reset_time("") == ""
        assert format_reset_time("invalid") == ""
        # no offset, cannot be placed in local time
        assert format_reset_time("2026-01-05T10:30:00") == ""

    def test_with_date(self) -> "None":
        assert format_reset_date("2026-01-29T04:59:59Z") == "01/29 05:00"
        assert format_reset_date("2026-01-05T23:59:30Z") == "01/06 00:00"

    def test_with_date_empty_and_invalid(self) -> "None":
        assert format_reset_date("") == ""
        assert format_reset_date("not-a-date") == ""


class TestWarnAnomalies:
    def test_warns_out_of_range(self) -> "None":
        snapshot = UsageSnapshot(utilization=105.0, weekly_utilization=-1.0)
        with capture_logs() as logs:
            warn_anomalies(snapshot)

        assert [(log["window"], log["value"]) for log in logs] == [
            ("5h", 105.0),
            ("week", -1.0),
        ]
        assert all(log["log_level"] == "warning" for log in logs)

    def test_silent_in_range(self) -> "None":
        with capture_logs() as logs:
            warn_anomalies(UsageSnapshot(utilization=0.0, weekly_utilization=100.0))
        assert logs == []


@pytest.mark.usefixtures("utc_timezone")
class TestBuildStatusLine:
    SESSION = SessionInput(model_name="Sonnet 4", input_tokens=1000, output_tokens=500)
    SNAPSHOT = UsageSnapshot(
        resets_at="2026-01-27T10:00:00Z",
        utilization=45.0,
        weekly_utilization=20.0,
        weekly_resets_at="2026-01-29T04:59:59Z",
        cached_at=1,
    )

    def test_all_fields(self) -> "None":
        line = build_status_line(self.SESSION, self.SNAPSHOT, DisplayConfig())
        assert line == " | ".join(
            [
                "quotaline",
                "Model: Sonnet 4",
                "Total Tokens: 1.5k",
                f"5h: {render_usage(45.0)}",
                "resets: 10:00",
                f"week: {render_usage(20.0)}",
                "resets: 01/29 05:00",
            ]
        )

    def test_missing_reset_times_show_na(self) -> "None":
        line = build_status_line(self.SESSION, UsageSnapshot.empty(), DisplayConfig())
        assert line.count("resets: N/A") == 2
        assert f"5h: {render_usage(0.0)}" in line

    def test_disabled_fields_are_omitted(self) -> "None":
        display = DisplayConfig(
            show_app_name=False,
            show_tokens=False,
            show_5h_resets=False,
            show_week_usage=False,
            show_week_resets=False,
        )
        line = build_status_line(self.SESSION, self.SNAPSHOT, display)
        assert line == f"Model: Sonnet 4 | 5h: {render_usage(45.0)}"

    def test_bar_width_applies_to_both_windows(self) -> "None":
        display = DisplayConfig(bar_width=10)
        line = build_status_line(self.SESSION, self.SNAPSHOT, display)
        assert render_usage(45.0, 10) in line
        assert render_usage(20.0, 10) in line

    def test_out_of_range_value_displayed_as_is(self) -> "None":
        snapshot = UsageSnapshot(resets_at="2026-01-27T10:00:00Z", utilization=105.0)
        line = build_status_line(self.SESSION, snapshot, DisplayConfig())
        assert "105.0%" in line

    def test_idempotent(self) -> "None":
        first = build_status_line(self.SESSION, self.SNAPSHOT, DisplayConfig())
        second = build_status_line(self.SESSION, self.SNAPSHOT, DisplayConfig())
        assert first == second
