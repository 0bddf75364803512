import json
import os
import tempfile
from pathlib import Path

import structlog

from quotaline.errors import CacheDecodeError
from quotaline.models import UsageSnapshot

logger = structlog.get_logger()


class SnapshotStore:
    """
    SnapshotStore persists exactly one UsageSnapshot as a JSON file.

    Writes go to a temporary sibling that is renamed over the target,
    so concurrent invocations reading the file see either the previous
    snapshot or the complete new one. Overlapping writers are not
    coordinated: the last rename wins.
    """

    def __init__(self, path: "Path") -> "None":
        self._path = path

    @property
    def path(self) -> "Path":
        return self._path

    def load(self) -> "UsageSnapshot":
        """
        reads the snapshot. OSError is raised for I/O failures and
        CacheDecodeError for content that is not a valid snapshot.
        """
        with open(self._path, encoding="utf-8") as handle:
            try:
                data = json.load(handle)
            except (json.JSONDecodeError, UnicodeDecodeError) as err:
                raise CacheDecodeError(f"invalid cache file {self._path}: {err}") from err

        return UsageSnapshot.from_dict(data)

    def save(self, snapshot: "UsageSnapshot") -> "None":
        self._path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent,
            prefix=f".{self._path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(snapshot.to_dict(), handle, indent=2)
                handle.write("\n")
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self._path)
        except BaseException:
            # never leave a stray temp file behind
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise

        logger.debug("cache_saved", path=str(self._path))


def migrate_legacy_cache(legacy_path: "Path", new_path: "Path") -> "bool":
    """
    moves a cache file from its legacy location to new_path. Only
    runs when the legacy file exists and new_path does not. Returns
    True when the file was moved.
    """
    if not legacy_path.exists() or new_path.exists():
        return False

    new_path.parent.mkdir(parents=True, exist_ok=True)
    os.replace(legacy_path, new_path)
    logger.info("legacy_cache_migrated", source=str(legacy_path), target=str(new_path))
    return True
