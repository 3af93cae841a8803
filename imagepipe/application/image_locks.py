from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class ImageLockRegistry:
    """Hands out one lock per image id.

    Holding the lock around "run pipeline, append records" keeps concurrent
    transforms of the same image from overwriting each other's records.
    """

    def __init__(self) -> None:
        self._locks: dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    @contextmanager
    def hold(self, image_id: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(image_id, threading.Lock())
        with lock:
            yield

    def forget(self, image_id: str) -> None:
        with self._guard:
            self._locks.pop(image_id, None)
