import asyncio
import sys
from typing import TextIO

import structlog

from quotaline.activity import HistoryActivity
from quotaline.cli import parse_args
from quotaline.config import Config, DisplayConfig
from quotaline.credentials import default_token_source
from quotaline.errors import ConfigError, InputError, QuotalineError
from quotaline.freshness import FreshnessPolicy
from quotaline.logging import setup_logging
from quotaline.models import SessionInput, UsageSnapshot
from quotaline.provider.anthropic import AnthropicUsageProvider
from quotaline.render import build_status_line, warn_anomalies
from quotaline.resolver import SnapshotResolver
from quotaline.store import SnapshotStore, migrate_legacy_cache

logger = structlog.get_logger()


def build_resolver(config: "Config") -> "SnapshotResolver":
    """
    wires the production collaborators: keychain/file credentials,
    the history file as activity signal and the on-disk cache.
    """
    provider = AnthropicUsageProvider(
        token_source=default_token_source(config.credentials_path),
        endpoint=config.api_endpoint,
    )
    policy = FreshnessPolicy(activity_signal=HistoryActivity(config.history_path))
    return SnapshotResolver(SnapshotStore(config.cache_path), provider, policy)


def load_display_config(config: "Config") -> "DisplayConfig":
    try:
        return DisplayConfig.load(config.config_path)
    except ConfigError as err:
        logger.warning(
            "config_load_failed",
            path=str(config.config_path),
            error=str(err),
        )
        return DisplayConfig()


async def _resolve(resolver: "SnapshotResolver") -> "UsageSnapshot":
    try:
        return await resolver.resolve()
    finally:
        await resolver.close()


def run(
    stdin: "TextIO",
    stdout: "TextIO",
    config: "Config",
    display: "DisplayConfig",
    resolver: "SnapshotResolver",
) -> "None":
    """
    renders one status line. Raises InputError when stdin cannot be
    parsed; every other failure degrades to an empty snapshot.
    """
    session = SessionInput.from_json(stdin.read())

    if config.uses_default_cache:
        try:
            migrate_legacy_cache(config.legacy_cache_path, config.cache_path)
        except OSError as err:
            logger.warning("cache_migration_failed", error=str(err))

    try:
        snapshot = asyncio.run(_resolve(resolver))
    except QuotalineError as err:
        logger.info("usage_unavailable", error=str(err))
        snapshot = UsageSnapshot.empty()

    warn_anomalies(snapshot)
    stdout.write(build_status_line(session, snapshot, display) + "\n")
    stdout.flush()


def main(argv: "list[str] | None" = None) -> "None":
    config = parse_args(argv)
    setup_logging(config.log_level)

    display = load_display_config(config)
    resolver = build_resolver(config)

    try:
        run(sys.stdin, sys.stdout, config, display, resolver)
    except InputError as err:
        raise SystemExit(str(err)) from err


if __name__ == "__main__":
    main()
