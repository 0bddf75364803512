from datetime import datetime, timedelta

import structlog

from quotaline.config import DisplayConfig
from quotaline.models import SessionInput, UsageSnapshot

logger = structlog.get_logger()

APP_LABEL = "quotaline"
DEFAULT_BAR_WIDTH = 20

COLOR_RESET = "\033[0m"
COLOR_GREEN = "\033[32m"
COLOR_YELLOW = "\033[33m"
COLOR_ORANGE = "\033[38;5;208m"
COLOR_RED = "\033[31m"

# each tuple is (upper bound in percent, color), checked in order
USAGE_COLORS: "list[tuple[float, str]]" = [
    (25.0, COLOR_GREEN),
    (50.0, COLOR_YELLOW),
    (75.0, COLOR_ORANGE),
]

FULL_BLOCK = "█"
SHADE_STEPS = 6
# partial cell glyphs from fullest to emptiest, each paired with the
# minimum remainder it represents; the last one covers any remainder > 0
SHADE_RAMP: "list[tuple[float, str]]" = [
    (5.0 / SHADE_STEPS, "▇"),
    (4.0 / SHADE_STEPS, "▆"),
    (3.0 / SHADE_STEPS, "▅"),
    (2.0 / SHADE_STEPS, "▃"),
    (1.0 / SHADE_STEPS, "▂"),
]
SHADE_MIN = "▁"

NOT_AVAILABLE = "N/A"


def format_tokens(tokens: "int") -> "str":
    """
    formats a token count, switching to thousands with one
    decimal from 1000 upwards: 500 -> "500", 1500 -> "1.5k".
    """
    if tokens >= 1000:
        return f"{tokens / 1000:.1f}k"
    return str(tokens)


def usage_color(usage: "float") -> "str":
    for bound, color in USAGE_COLORS:
        if usage < bound:
            return color
    return COLOR_RED


def _shade(fraction: "float") -> "str":
    for threshold, glyph in SHADE_RAMP:
        if fraction >= threshold:
            return glyph
    if fraction > 0:
        return SHADE_MIN
    return ""


def render_bar(usage: "float", width: "int" = DEFAULT_BAR_WIDTH) -> "str":
    """
    renders the bar body: whole cells as full blocks, the remainder
    as one partial glyph, padded with spaces to width. The bar length
    is clamped to [0, width]; the usage value itself is not.
    """
    cells = max(usage / 100.0 * width, 0.0)
    filled = min(int(cells), width)

    shade = ""
    if filled < width:
        shade = _shade(cells - filled)

    empty = width - filled - len(shade)
    return FULL_BLOCK * filled + shade + " " * empty


def render_usage(usage: "float", width: "int" = DEFAULT_BAR_WIDTH) -> "str":
    """
    renders "NN.N% [bar]" wrapped in a single color span chosen by
    the usage tier.
    """
    return f"{usage_color(usage)}{usage:.1f}% [{render_bar(usage, width)}]{COLOR_RESET}"


def round_up_to_minute(moment: "datetime") -> "datetime":
    truncated = moment.replace(second=0, microsecond=0)
    if moment > truncated:
        return truncated + timedelta(minutes=1)
    return truncated


def _parse_reset(resets_at: "str") -> "datetime | None":
    if not resets_at:
        return None
    try:
        moment = datetime.fromisoformat(resets_at)
    except ValueError:
        return None
    # a reset time without an offset cannot be placed in local time
    if moment.tzinfo is None:
        return None
    return round_up_to_minute(moment).astimezone()


def format_reset_time(resets_at: "str") -> "str":
    """
    formats an ISO-8601 reset time as local HH:MM, rounded up to the
    next whole minute. Returns "" when the value is empty or invalid.
    """
    moment = _parse_reset(resets_at)
    if moment is None:
        return ""
    return moment.strftime("%H:%M")


def format_reset_date(resets_at: "str") -> "str":
    """
    same as format_reset_time but as local "MM/DD HH:MM".
    """
    moment = _parse_reset(resets_at)
    if moment is None:
        return ""
    return moment.strftime("%m/%d %H:%M")


def warn_anomalies(snapshot: "UsageSnapshot") -> "None":
    """
    logs a warning for usage values outside 0..100. The values are
    displayed unchanged.
    """
    for window, value in (
        ("5h", snapshot.utilization),
        ("week", snapshot.weekly_utilization),
    ):
        if value < 0 or value > 100:
            logger.warning("unexpected_usage_value", window=window, value=value)


def build_status_line(
    session: "SessionInput",
    snapshot: "UsageSnapshot",
    display: "DisplayConfig",
) -> "str":
    """
    assembles the pipe-delimited status line from the enabled fields.
    """
    parts: "list[str]" = []

    if display.show_app_name:
        parts.append(APP_LABEL)
    if display.show_model:
        parts.append(f"Model: {session.model_name}")
    if display.show_tokens:
        parts.append(f"Total Tokens: {format_tokens(session.total_tokens)}")
    if display.show_5h_usage:
        parts.append(f"5h: {render_usage(snapshot.utilization, display.bar_width)}")
    if display.show_5h_resets:
        parts.append(f"resets: {format_reset_time(snapshot.resets_at) or NOT_AVAILABLE}")
    if display.show_week_usage:
        parts.append(
            f"week: {render_usage(snapshot.weekly_utilization, display.bar_width)}"
        )
    if display.show_week_resets:
        parts.append(
            f"resets: {format_reset_date(snapshot.weekly_resets_at) or NOT_AVAILABLE}"
        )

    return " | ".join(parts)
