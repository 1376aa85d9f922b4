"""Wait for an escalation run started by another process."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, Optional

from cr_common.models.target import WaitOutcome
from cr_runner.lease import holder_alive
from cr_runner.run_record import SUCCESS_MARKER

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 5.0


def _mtime(path: Path) -> Optional[float]:
    try:
        return path.stat().st_mtime
    except FileNotFoundError:
        return None


def _is_current(success: Path, lease_path: Path) -> bool:
    """True when ``success`` exists and was written by the current lease holder."""
    written = _mtime(success)
    if written is None:
        return False
    leased = _mtime(lease_path)
    return leased is None or written >= leased


def wait_for_completion(
    results_dir: Path,
    lease_path: Path,
    *,
    timeout: Optional[float] = None,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> WaitOutcome:
    """Block until the run succeeds, its process exits, or ``timeout`` elapses.

    Polling stops as soon as the lease holder is gone; a missing success
    marker at that point is a failure. A marker older than the lease file
    belongs to an earlier run and is ignored.
    """
    success = Path(results_dir) / SUCCESS_MARKER
    lease_path = Path(lease_path)
    deadline = None if timeout is None else clock() + timeout
    while True:
        if _is_current(success, lease_path):
            return WaitOutcome.COMPLETED
        if not holder_alive(lease_path):
            if _is_current(success, lease_path):
                return WaitOutcome.COMPLETED
            logger.info("Run holding %s is gone without %s", lease_path, success)
            return WaitOutcome.PROCESS_GONE
        if deadline is not None and clock() >= deadline:
            return WaitOutcome.STILL_RUNNING
        sleep(poll_interval)
