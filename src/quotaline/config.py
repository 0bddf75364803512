import json
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from quotaline.errors import ConfigError
from quotaline.provider.anthropic import USAGE_ENDPOINT

APP_NAME = "quotaline"


def _default_config_dir() -> "Path":
    # follows the XDG base directory layout
    xdg_config = os.environ.get("XDG_CONFIG_HOME", "")
    if xdg_config:
        return Path(xdg_config) / APP_NAME
    return Path.home() / ".config" / APP_NAME


@dataclass
class Config:
    config_dir: "Path" = field(default_factory=_default_config_dir)
    # the host's own state directory (history, credentials)
    claude_dir: "Path" = field(default_factory=lambda: Path.home() / ".claude")
    # explicit locations; None means the default under config_dir
    cache_file: "Path | None" = None
    config_file: "Path | None" = None
    log_level: "str" = "warning"
    api_endpoint: "str" = USAGE_ENDPOINT

    @classmethod
    def from_env(cls) -> "Config":
        return cls(
            config_dir=_default_config_dir(),
            log_level=os.environ.get("QUOTALINE_LOG_LEVEL", "warning").lower(),
        )

    @property
    def cache_path(self) -> "Path":
        return self.cache_file or self.config_dir / "cache.json"

    @property
    def config_path(self) -> "Path":
        return self.config_file or self.config_dir / "config.json"

    @property
    def uses_default_cache(self) -> "bool":
        return self.cache_file is None

    @property
    def legacy_cache_path(self) -> "Path":
        return self.claude_dir / ".usage_cache.json"

    @property
    def history_path(self) -> "Path":
        return self.claude_dir / "history.jsonl"

    @property
    def credentials_path(self) -> "Path":
        return self.claude_dir / ".credentials.json"


@dataclass
class DisplayConfig:
    """
    DisplayConfig holds the user's choice of status line fields
    and the progress bar width, read from config.json.
    """

    show_app_name: "bool" = True
    show_model: "bool" = True
    show_tokens: "bool" = True
    show_5h_usage: "bool" = True
    show_5h_resets: "bool" = True
    show_week_usage: "bool" = True
    show_week_resets: "bool" = True
    bar_width: "int" = 20

    @classmethod
    def load(cls, path: "Path") -> "DisplayConfig":
        """
        merges the JSON object at path over the defaults. A missing
        file yields the defaults and unknown keys are ignored.
        """
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return cls()
        except OSError as err:
            raise ConfigError(f"cannot read {path}: {err}") from err

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as err:
            raise ConfigError(f"invalid JSON in {path}: {err}") from err

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: "Any") -> "DisplayConfig":
        if not isinstance(data, dict):
            raise ConfigError("display config must be a JSON object")

        values: "dict[str, Any]" = {}
        for f in fields(cls):
            if f.name not in data:
                continue
            value = data[f.name]
            if f.name == "bar_width":
                if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                    raise ConfigError(f"bar_width must be a non-negative integer, got {value!r}")
            elif not isinstance(value, bool):
                raise ConfigError(f"{f.name} must be a boolean, got {value!r}")
            values[f.name] = value

        return cls(**values)
