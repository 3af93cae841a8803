from __future__ import annotations

import logging
import os
import re
import secrets
import time
from dataclasses import dataclass
from pathlib import Path

from imagepipe.domain.errors import FileSystemError
from imagepipe.domain.services.file_cleanup import remove_file

log = logging.getLogger(__name__)

_UNSAFE = re.compile(r"[^a-zA-Z0-9.-]")


def sanitize_filename(filename: str) -> str:
    cleaned = _UNSAFE.sub("_", filename)
    cleaned = re.sub(r"_{2,}", "_", cleaned)
    return cleaned[:100]


@dataclass
class StoredFile:
    path: str
    filename: str
    size: int


class LocalFileStorage:
    """Upload directory on local disk, published under ``/uploads``.

    Originals and derived files share the directory, so every file is
    reachable by its base name.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def save_upload(
        self, data: bytes, original_filename: str, extension: str | None = None
    ) -> StoredFile:
        """Write ``data`` under a fresh random name.

        ``extension`` overrides the one taken from ``original_filename``.
        """
        if extension is None:
            extension = os.path.splitext(sanitize_filename(original_filename))[1].lower()
        filename = f"{int(time.time() * 1000)}-{secrets.token_hex(16)}{extension}"
        full_path = self.root / filename
        with open(full_path, "xb") as fh:
            fh.write(data)
        log.info("Stored upload %s (%d bytes)", filename, len(data))
        return StoredFile(path=str(full_path), filename=filename, size=len(data))

    def delete(self, path: str) -> FileSystemError | None:
        return remove_file(path)

    @staticmethod
    def url_for(path: str, base_url: str) -> str:
        return f"{base_url.rstrip('/')}/uploads/{os.path.basename(path)}"
