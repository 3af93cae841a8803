from __future__ import annotations

import logging
import os

from imagepipe.domain.errors import FileSystemError

log = logging.getLogger(__name__)


def remove_file(path: str) -> FileSystemError | None:
    """Best-effort unlink. Failures are logged and returned, never raised."""
    try:
        os.remove(path)
    except OSError as exc:
        log.warning("Could not delete %s: %s", path, exc)
        return FileSystemError(path, exc.strerror or str(exc))
    log.debug("Deleted %s", path)
    return None


def remove_files(paths: list[str]) -> list[FileSystemError]:
    """Attempt every removal independently and collect the failures."""
    failures = []
    for path in paths:
        failure = remove_file(path)
        if failure is not None:
            failures.append(failure)
    return failures
