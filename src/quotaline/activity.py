import os
from pathlib import Path


def modified_at(path: "Path") -> "float | None":
    """
    returns the file's modification time as a unix timestamp, or
    None when it cannot be stat'ed (missing file, permissions).
    """
    try:
        return os.stat(path).st_mtime
    except OSError:
        return None


class HistoryActivity:
    """
    HistoryActivity reports the last time the host appended to its
    prompt history. A write newer than the cached snapshot means the
    user has been active and quota usage has probably moved.
    """

    def __init__(self, path: "Path") -> "None":
        self._path = path

    @property
    def path(self) -> "Path":
        return self._path

    def __call__(self) -> "float | None":
        return modified_at(self._path)
