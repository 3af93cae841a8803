from __future__ import annotations

import os
import re
import secrets
import time
from typing import Any

from imagepipe.domain.errors import PathCollisionError

_UNSAFE = re.compile(r"[^A-Za-z0-9.-]")
_MAX_STEM = 48


class DerivedPathNamer:
    """Names derived files next to their input.

    ``<dir>/<stem>_<operation>_<k-v_...>_<ns timestamp>_<random hex><ext>``
    """

    def name(
        self,
        input_path: str,
        operation: str,
        params: dict[str, Any],
        new_extension: str | None = None,
    ) -> str:
        directory, base = os.path.split(input_path)
        stem, ext = os.path.splitext(base)
        if new_extension:
            ext = "." + new_extension.lstrip(".")
        summary = "_".join(
            f"{key}-{self._clean(value)}" for key, value in params.items() if value is not None
        )
        parts = [self._clean(stem)[:_MAX_STEM], operation]
        if summary:
            parts.append(summary)
        parts.append(str(time.time_ns()))
        parts.append(secrets.token_hex(4))
        path = os.path.join(directory, "_".join(parts) + ext)
        if os.path.exists(path):
            raise PathCollisionError(f"Derived path already exists: {path}")
        return path

    @staticmethod
    def _clean(value: Any) -> str:
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        return _UNSAFE.sub("_", str(value))
