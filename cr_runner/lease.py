"""Single-instance run lease backed by a pid marker file."""

from __future__ import annotations

import logging
import os
import signal
import threading
from contextlib import AbstractContextManager
from pathlib import Path
from types import FrameType
from typing import Any, Dict, Optional

import psutil

from cr_common.errors import RunLockError

logger = logging.getLogger(__name__)

_GUARDED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def read_holder(path: Path) -> Optional[int]:
    """Pid recorded in a lease marker, or None when absent or unreadable."""
    try:
        return int(Path(path).read_text().strip())
    except (OSError, ValueError):
        return None


def holder_alive(path: Path) -> bool:
    pid = read_holder(path)
    return pid is not None and psutil.pid_exists(pid)


def _raise_on_signal(signum: int, frame: FrameType | None) -> None:
    if signum == signal.SIGINT:
        raise KeyboardInterrupt
    raise SystemExit(128 + signum)


class RunLease(AbstractContextManager["RunLease"]):
    """Exclusive lease on a marker file holding the owner's pid.

    The marker is created atomically, so two instances cannot both acquire
    it. ``force`` replaces an existing marker. On exit the marker is removed
    whatever the outcome; SIGINT and SIGTERM are turned into exceptions while
    the lease is held so release still runs.
    """

    def __init__(
        self,
        path: Path,
        *,
        force: bool = False,
        pid: Optional[int] = None,
        handle_signals: bool = True,
    ) -> None:
        self.path = Path(path)
        self.force = force
        self.pid = pid if pid is not None else os.getpid()
        self.handle_signals = handle_signals
        self._prev_handlers: Dict[int, Any] = {}
        self.held = False

    def acquire(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if self.force:
            self.path.unlink(missing_ok=True)
        try:
            fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o644)
        except FileExistsError as exc:
            holder = read_holder(self.path)
            raise RunLockError(
                f"benchmark already running (pid {holder})",
                context={"path": self.path, "pid": holder},
                cause=exc,
            )
        with os.fdopen(fd, "w") as handle:
            handle.write(f"{self.pid}\n")
        self.held = True
        logger.debug("Acquired run lease %s (pid %s)", self.path, self.pid)

    def release(self) -> None:
        self.path.unlink(missing_ok=True)
        self.held = False
        logger.debug("Released run lease %s", self.path)

    def _install_signal_handlers(self) -> None:
        if not self.handle_signals:
            return
        if threading.current_thread() is not threading.main_thread():
            return
        for signum in _GUARDED_SIGNALS:
            self._prev_handlers[signum] = signal.getsignal(signum)
            signal.signal(signum, _raise_on_signal)

    def _restore_signal_handlers(self) -> None:
        for signum, handler in self._prev_handlers.items():
            signal.signal(signum, handler)
        self._prev_handlers.clear()

    def __enter__(self) -> "RunLease":
        self.acquire()
        self._install_signal_handlers()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            self._restore_signal_handlers()
        finally:
            self.release()
