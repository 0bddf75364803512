import argparse
from pathlib import Path

from quotaline.config import Config


def parse_args(argv: "list[str] | None" = None) -> "Config":
    config = Config.from_env()

    parser = argparse.ArgumentParser(
        prog="quotaline",
        description="Status line with token counts and usage quota bars",
    )
    parser.add_argument(
        "--cache.file",
        dest="cache_file",
        type=Path,
        default=None,
        help="Usage cache file (default: <config dir>/cache.json)",
    )
    parser.add_argument(
        "--config.file",
        dest="config_file",
        type=Path,
        default=None,
        help="Display settings file (default: <config dir>/config.json)",
    )
    parser.add_argument(
        "--api.endpoint",
        dest="api_endpoint",
        default=config.api_endpoint,
        help="Usage API endpoint",
    )
    parser.add_argument(
        "--log.level",
        dest="log_level",
        default=config.log_level,
        choices=["debug", "info", "warning", "error"],
        help="Log level (default: warning)",
    )

    args = parser.parse_args(argv)
    config.cache_file = args.cache_file
    config.config_file = args.config_file
    config.api_endpoint = args.api_endpoint
    config.log_level = args.log_level
    return config
