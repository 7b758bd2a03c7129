"""Module for a release ledger persisted to a local directory.

Each revision is stored as one YAML record:

```
<root>/
  my-demo-app/
    v1.yaml
    v2.yaml
    .lock      # present while an operation holds the release lock
```

A record contains the chart reference, the resolved values, the rendered
manifests, the status, the timestamp and the description, which is enough to
roll back to any revision without rendering the chart again.
"""

import logging
import os
from pathlib import Path
import re
import tempfile
from typing import cast

from releasectl.exceptions import InputException, NameLocked

from .ledger import ReleaseLedger
from .release import Release

_LOGGER = logging.getLogger(__name__)

LOCK_FILE = ".lock"
_RECORD_PATTERN = re.compile(r"^v(\d+)\.yaml$")


class FileLedger(ReleaseLedger):
    """Release ledger that stores one file per release revision."""

    def __init__(self, root: Path) -> None:
        """Initialize the FileLedger."""
        super().__init__()
        self._root = root

    @property
    def root(self) -> Path:
        """Directory holding the release records."""
        return self._root

    def _release_dir(self, name: str) -> Path:
        if not name or "/" in name or name.startswith("."):
            raise InputException(f"Invalid release name for ledger: {name!r}")
        return self._root / name

    def _read_history(self, name: str) -> list[Release]:
        release_dir = self._release_dir(name)
        if not release_dir.is_dir():
            return []
        records: list[tuple[int, Path]] = []
        for path in release_dir.iterdir():
            if match := _RECORD_PATTERN.match(path.name):
                records.append((int(match.group(1)), path))
        return [
            cast(Release, Release.parse_yaml(path.read_text()))
            for _, path in sorted(records)
        ]

    def _write(self, release: Release) -> None:
        release_dir = self._release_dir(release.name)
        release_dir.mkdir(parents=True, exist_ok=True)
        path = release_dir / f"v{release.revision}.yaml"
        fd, tmp_name = tempfile.mkstemp(dir=release_dir, prefix=".tmp-")
        try:
            with os.fdopen(fd, "w") as tmp_file:
                tmp_file.write(release.yaml())
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        _LOGGER.debug("Wrote release record %s", path)

    def _names(self) -> list[str]:
        if not self._root.is_dir():
            return []
        return [
            path.name
            for path in self._root.iterdir()
            if path.is_dir() and not path.name.startswith(".")
        ]

    def _acquire(self, name: str) -> None:
        release_dir = self._release_dir(name)
        release_dir.mkdir(parents=True, exist_ok=True)
        try:
            fd = os.open(release_dir / LOCK_FILE, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError as err:
            raise NameLocked(name) from err
        with os.fdopen(fd, "w") as lock_file:
            lock_file.write(str(os.getpid()))

    def _release(self, name: str) -> None:
        (self._release_dir(name) / LOCK_FILE).unlink(missing_ok=True)
