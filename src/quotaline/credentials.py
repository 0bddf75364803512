import json
import subprocess
from pathlib import Path
from typing import Any, Callable

import structlog

from quotaline.errors import CredentialsError
from quotaline.provider.base import TokenSource

logger = structlog.get_logger()

KEYCHAIN_SERVICE = "Claude Code-credentials"
KEYCHAIN_TIMEOUT_SECONDS = 5.0


def _extract_access_token(raw: "str | bytes", origin: "str") -> "str":
    """
    pulls claudeAiOauth.accessToken out of a credentials blob.
    """
    try:
        data: "Any" = json.loads(raw)
    except json.JSONDecodeError as err:
        raise CredentialsError(f"invalid credentials JSON from {origin}: {err}") from err

    oauth = data.get("claudeAiOauth") if isinstance(data, dict) else None
    token = oauth.get("accessToken") if isinstance(oauth, dict) else None
    if not isinstance(token, str) or not token:
        raise CredentialsError(f"access token is empty in {origin}")

    return token


class KeychainTokenSource:
    """
    KeychainTokenSource reads the OAuth credentials blob stored in
    the macOS keychain through the `security` command line tool.
    """

    def __init__(
        self,
        service: "str" = KEYCHAIN_SERVICE,
        runner: "Callable[..., subprocess.CompletedProcess[str]] | None" = None,
    ) -> "None":
        self._service = service
        self._runner = runner or subprocess.run

    def __call__(self) -> "str":
        try:
            result = self._runner(
                ["security", "find-generic-password", "-s", self._service, "-w"],
                capture_output=True,
                text=True,
                timeout=KEYCHAIN_TIMEOUT_SECONDS,
                check=True,
            )
        except (OSError, subprocess.SubprocessError) as err:
            raise CredentialsError(f"keychain lookup failed: {err}") from err

        return _extract_access_token(result.stdout, "keychain")


class FileTokenSource:
    def __init__(self, path: "Path") -> "None":
        self._path = path

    def __call__(self) -> "str":
        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as err:
            raise CredentialsError(f"cannot read {self._path}: {err}") from err

        return _extract_access_token(raw, str(self._path))


class ChainedTokenSource:
    """
    ChainedTokenSource tries each source in order and returns the
    first token obtained. Failures of earlier sources are not
    surfaced unless every source fails.
    """

    def __init__(self, *sources: "TokenSource") -> "None":
        if not sources:
            raise ValueError("at least one token source is required")
        self._sources = sources

    def __call__(self) -> "str":
        last_error: "CredentialsError | None" = None

        for source in self._sources:
            try:
                return source()
            except CredentialsError as err:
                logger.debug(
                    "token_source_failed",
                    source=type(source).__name__,
                    error=str(err),
                )
                last_error = err

        raise CredentialsError(f"no access token available: {last_error}") from last_error


def default_token_source(credentials_file: "Path") -> "ChainedTokenSource":
    """
    keychain first, then the plain credentials file.
    """
    return ChainedTokenSource(KeychainTokenSource(), FileTokenSource(credentials_file))
