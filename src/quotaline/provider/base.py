from typing import Protocol

from quotaline.models import UsageSnapshot


class TokenSource(Protocol):
    """
    TokenSource returns a bearer token for the usage API or raises
    CredentialsError when none can be obtained.
    """

    def __call__(self) -> "str": ...


class UsageProvider(Protocol):
    """
    UsageProvider stands as the protocol the resolver relies on to
    obtain a brand new snapshot from a remote source.
    """

    async def fetch_snapshot(self) -> "UsageSnapshot": ...

    async def close(self) -> "None": ...
