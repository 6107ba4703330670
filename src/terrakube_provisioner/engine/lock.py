"""Exclusive lock on the local state file."""

from __future__ import annotations

import fcntl
import logging
from pathlib import Path
from typing import IO, TYPE_CHECKING

from terrakube_provisioner.engine.errors import StateLockError

if TYPE_CHECKING:
    from types import TracebackType

logger = logging.getLogger(__name__)


class StateLock:
    """Hold ``flock(LOCK_EX)`` on ``<state>.lock`` for the duration of a ``with`` block.

    A second process blocks until the first releases the lock.
    """

    def __init__(self, state_path: Path) -> None:
        self._lock_path = Path(f"{state_path}.lock")
        self._file: IO[str] | None = None

    @property
    def path(self) -> Path:
        return self._lock_path

    def __enter__(self) -> StateLock:
        self._lock_path.parent.mkdir(parents=True, exist_ok=True)
        lock_file = self._lock_path.open("a+", encoding="utf-8")
        try:
            try:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
            except BlockingIOError:
                logger.info("Waiting for state lock %s", self._lock_path)
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
        except OSError as e:
            lock_file.close()
            raise StateLockError(f"Cannot lock {self._lock_path}: {e}") from e
        self._file = lock_file
        logger.debug("State lock acquired: %s", self._lock_path)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._file is None:
            return
        try:
            fcntl.flock(self._file.fileno(), fcntl.LOCK_UN)
        finally:
            self._file.close()
            self._file = None
        logger.debug("State lock released: %s", self._lock_path)
