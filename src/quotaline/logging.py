import logging
import os
import sys
from typing import Any

import structlog


def add_process_id(
    logger: "Any", method_name: "str", event_dict: "dict[str, Any]"
) -> "dict[str, Any]":
    """
    tags every event with the process id. The host starts a new
    process on each render, and overlapping runs share one cache
    file, so the pid is what tells their log lines apart.
    """
    event_dict.setdefault("pid", os.getpid())
    return event_dict


def setup_logging(level: "str") -> "None":
    """
    configures structlog for a short-lived process whose stdout is
    the status line itself: events are rendered without colors to
    stderr, and anything below level (default warning) is dropped so
    that a normal render leaves the host's diagnostics quiet.
    """
    numeric_level = getattr(logging, level.upper(), logging.WARNING)
    logging.basicConfig(
        format="%(message)s",
        level=numeric_level,
        stream=sys.stderr,
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            add_process_id,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
