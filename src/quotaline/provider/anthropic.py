import math
import time
from typing import Any, Callable

import httpx
import structlog

from quotaline.errors import UsageFetchError
from quotaline.models import UsageSnapshot
from quotaline.provider.base import TokenSource

logger = structlog.get_logger()

USAGE_ENDPOINT = "https://api.anthropic.com/api/oauth/usage"
API_BETA = "oauth-2025-04-20"
REQUEST_TIMEOUT_SECONDS = 10.0


def _parse_window(data: "Any", key: "str") -> "tuple[str, float]":
    """
    extracts (resets_at, utilization) from one usage window. Absent
    windows and null fields read as empty values.
    """
    window = data.get(key) or {}
    if not isinstance(window, dict):
        raise UsageFetchError(f"unexpected {key} window in API response")

    resets_at = window.get("resets_at") or ""
    utilization = window.get("utilization") or 0.0
    if not isinstance(resets_at, str):
        raise UsageFetchError(f"unexpected {key}.resets_at in API response")
    if isinstance(utilization, bool) or not isinstance(utilization, (int, float)):
        raise UsageFetchError(f"unexpected {key}.utilization in API response")

    try:
        number = float(utilization)
    except OverflowError as err:
        raise UsageFetchError(f"{key}.utilization out of range in API response") from err
    # NaN and Infinity decode without error but are not usage values
    if not math.isfinite(number):
        raise UsageFetchError(f"non-finite {key}.utilization in API response")

    return resets_at, number


class AnthropicUsageProvider:
    """
    AnthropicUsageProvider implements the UsageProvider protocol on top
    of the OAuth usage endpoint. Each fetch performs a single GET with
    a fresh bearer token; failures are never retried.
    """

    def __init__(
        self,
        token_source: "TokenSource",
        endpoint: "str" = USAGE_ENDPOINT,
        client: "httpx.AsyncClient | None" = None,
        clock: "Callable[[], float]" = time.time,
    ) -> "None":
        self._token_source = token_source
        self._endpoint = endpoint
        self._clock = clock
        self._owns_client = client is None
        # headers are set per request since an injected client
        # carries its own defaults
        self._client: "httpx.AsyncClient" = client or httpx.AsyncClient(
            timeout=REQUEST_TIMEOUT_SECONDS,
        )

    async def close(self) -> "None":
        """
        closes the underlying HTTP client when this provider created it.
        """
        if self._owns_client:
            await self._client.aclose()

    async def fetch_snapshot(self) -> "UsageSnapshot":
        token = self._token_source()

        logger.debug("usage_fetch", url=self._endpoint)
        try:
            resp = await self._client.get(
                self._endpoint,
                headers={
                    "Authorization": f"Bearer {token}",
                    "Content-Type": "application/json",
                    "anthropic-beta": API_BETA,
                },
            )
        except (httpx.HTTPError, httpx.InvalidURL) as err:
            # InvalidURL is not an HTTPError subclass
            raise UsageFetchError(f"API request failed: {err}") from err

        if resp.status_code != 200:
            raise UsageFetchError(
                f"API request failed: status {resp.status_code}",
                status_code=resp.status_code,
            )

        try:
            data = resp.json()
        except ValueError as err:
            raise UsageFetchError(f"invalid API response body: {err}") from err

        if not isinstance(data, dict):
            raise UsageFetchError("API response is not a JSON object")

        resets_at, utilization = _parse_window(data, "five_hour")
        weekly_resets_at, weekly_utilization = _parse_window(data, "seven_day")

        # an empty reset time means the payload carries no usable data
        if not resets_at:
            raise UsageFetchError("API response contains no valid data")

        snapshot = UsageSnapshot(
            resets_at=resets_at,
            utilization=utilization,
            weekly_utilization=weekly_utilization,
            weekly_resets_at=weekly_resets_at,
            cached_at=int(self._clock()),
        )
        logger.debug(
            "usage_fetch_done",
            utilization=snapshot.utilization,
            weekly_utilization=snapshot.weekly_utilization,
        )
        return snapshot
