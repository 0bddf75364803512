import json
import math
from dataclasses import asdict, dataclass
from typing import Any

from quotaline.errors import CacheDecodeError, InputError

# 9999-12-31T23:59:59Z, the last second datetime can represent
MAX_TIMESTAMP = 253_402_300_799


@dataclass(frozen=True, slots=True)
class UsageSnapshot:
    """
    UsageSnapshot is the single usage record persisted in the
    cache file. A snapshot is never mutated; each refresh builds
    a new one.
    """

    # ISO-8601 reset time of the 5 hour window, empty when absent
    resets_at: "str" = ""
    utilization: "float" = 0.0
    weekly_utilization: "float" = 0.0
    weekly_resets_at: "str" = ""
    # unix timestamp of capture, 0 means never populated
    cached_at: "int" = 0

    @classmethod
    def empty(cls) -> "UsageSnapshot":
        return cls()

    @property
    def is_well_formed(self) -> "bool":
        return self.cached_at != 0 and self.resets_at != ""

    @classmethod
    def from_dict(cls, data: "Any") -> "UsageSnapshot":
        """
        decodes a cache document. Missing keys fall back to zero
        values so older cache files without the weekly fields load.
        """
        if not isinstance(data, dict):
            raise CacheDecodeError("cache document is not a JSON object")

        try:
            return cls(
                resets_at=_as_str(data.get("resets_at", "")),
                utilization=_as_float(data.get("utilization", 0.0)),
                weekly_utilization=_as_float(data.get("weekly_utilization", 0.0)),
                weekly_resets_at=_as_str(data.get("weekly_resets_at", "")),
                cached_at=_as_timestamp(data.get("cached_at", 0)),
            )
        except TypeError as err:
            raise CacheDecodeError(f"invalid cache field: {err}") from err

    def to_dict(self) -> "dict[str, Any]":
        return asdict(self)


@dataclass(frozen=True, slots=True)
class SessionInput:
    """
    SessionInput is the subset of the host's stdin document
    that the status line needs.
    """

    model_name: "str" = ""
    input_tokens: "int" = 0
    output_tokens: "int" = 0

    @property
    def total_tokens(self) -> "int":
        return self.input_tokens + self.output_tokens

    @classmethod
    def from_json(cls, raw: "str") -> "SessionInput":
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as err:
            raise InputError(f"failed to read input: {err}") from err

        if not isinstance(data, dict):
            raise InputError("failed to read input: document is not a JSON object")

        model = data.get("model") or {}
        context = data.get("context_window") or {}
        if not isinstance(model, dict) or not isinstance(context, dict):
            raise InputError("failed to read input: unexpected document shape")

        try:
            return cls(
                model_name=_as_str(model.get("display_name") or ""),
                input_tokens=_as_int(context.get("total_input_tokens") or 0),
                output_tokens=_as_int(context.get("total_output_tokens") or 0),
            )
        except TypeError as err:
            raise InputError(f"failed to read input: {err}") from err


def _as_str(value: "Any") -> "str":
    if not isinstance(value, str):
        raise TypeError(f"expected string, got {type(value).__name__}")
    return value


def _as_float(value: "Any") -> "float":
    # bool is an int subclass but never a valid number here
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"expected number, got {type(value).__name__}")
    try:
        number = float(value)
    except OverflowError as err:
        raise TypeError("number out of range") from err
    # json accepts NaN and Infinity literals, neither is a usage value
    if not math.isfinite(number):
        raise TypeError(f"expected finite number, got {number}")
    return number


def _as_int(value: "Any") -> "int":
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"expected integer, got {type(value).__name__}")
    return value


def _as_timestamp(value: "Any") -> "int":
    timestamp = _as_int(value)
    if abs(timestamp) > MAX_TIMESTAMP:
        raise TypeError("cached_at timestamp out of range")
    return timestamp
