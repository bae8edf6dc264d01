"""Advisory lock guarding a plugins root against concurrent runs."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from common.errors import LockError
from constants import Constants

logger = logging.getLogger(__name__)


class RunLock:
    """Exclusive lock file held for the duration of a run.

    The lock file is created with O_CREAT|O_EXCL so a second run against the
    same root fails fast instead of interleaving writes. A lock left behind
    by a crashed run must be removed by hand; its content names the pid.
    """

    def __init__(self, root: Path):
        self.path = Path(root) / Constants.LOCK_FILE
        self._fd: Optional[int] = None

    def acquire(self) -> None:
        try:
            self._fd = os.open(str(self.path), os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError as exc:
            owner = ""
            try:
                owner = self.path.read_text(encoding="utf-8").strip()
            except OSError:
                pass
            raise LockError(
                f"Plugins root is locked by another run ({owner or 'unknown owner'}); "
                f"remove '{self.path}' if that run is gone",
                subject=str(self.path),
            ) from exc
        except OSError as exc:
            raise LockError(f"Cannot create lock file '{self.path}': {exc}", subject=str(self.path)) from exc
        os.write(self._fd, f"pid={os.getpid()}\n".encode("utf-8"))
        logger.debug("Acquired run lock %s", self.path)

    def release(self) -> None:
        if self._fd is None:
            return
        os.close(self._fd)
        self._fd = None
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        logger.debug("Released run lock %s", self.path)

    def __enter__(self) -> "RunLock":
        self.acquire()
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()
