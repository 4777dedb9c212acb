#!/usr/bin/env python3
"""
Single-instance process lock backed by a pid file.

The pid file is created with O_EXCL, so of two processes racing past a
stale-lock check only one gets to write it.
"""
import logging
import os
from typing import Callable, Optional

import psutil

log = logging.getLogger(__name__)


class LockHeldError(Exception):
    """Another live process owns the lock."""

    def __init__(self, path: str, pid: int):
        self.path = path
        self.pid = pid
        super().__init__(f"Lock {path} is held by running process {pid}")


def is_process_alive(pid: int) -> bool:
    """Liveness probe: True only when pid is confirmed running."""
    try:
        if not psutil.pid_exists(pid):
            return False
        return psutil.Process(pid).status() != psutil.STATUS_ZOMBIE
    except (psutil.Error, ValueError, OverflowError):
        return False


class ProcessLock:
    """Pid-file lock. Unlocked -> Locked -> Unlocked."""

    def __init__(self, path: str, probe: Callable[[int], bool] = is_process_alive, pid: Optional[int] = None):
        self.path = path
        self.probe = probe
        self.pid = pid if pid is not None else os.getpid()
        self.locked = False

    def read_owner(self) -> Optional[int]:
        """Pid recorded in the lock file, None when absent or unreadable."""
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return int(f.read().strip())
        except FileNotFoundError:
            return None
        except (ValueError, OSError) as e:
            log.warning(f"⚠️  Unreadable lock file {self.path}: {e}")
            return None

    def _owner_alive(self, pid: int) -> bool:
        try:
            return bool(self.probe(pid))
        except Exception as e:
            log.warning(f"⚠️  Cannot check process {pid}: {e}")
            return False

    def acquire(self):
        if os.path.exists(self.path):
            owner = self.read_owner()
            if owner is not None and owner != self.pid and self._owner_alive(owner):
                raise LockHeldError(self.path, owner)
            log.info(f"🧹 Removing stale lock {self.path} (pid {owner})")
            self._remove()

        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        try:
            fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o644)
        except FileExistsError:
            raise LockHeldError(self.path, self.read_owner() or 0) from None
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(f"{self.pid}\n")

        self.locked = True
        log.info(f"🔒 Lock created: {self.path} (pid {self.pid})")

    def release(self):
        if not self.locked:
            return
        # Leave the file alone if a newer process has replaced it
        if self.read_owner() == self.pid:
            self._remove()
            log.info(f"🔓 Lock removed: {self.path}")
        self.locked = False

    def _remove(self):
        try:
            os.unlink(self.path)
        except FileNotFoundError:
            pass

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False
