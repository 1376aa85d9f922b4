"""Public API surface for cr_runner."""

from cr_runner.escalation import (
    CAPACITY_SETTINGS,
    CockroachWorkload,
    EscalationController,
    EscalationSettings,
    PassRule,
    SubprocessExecutor,
    WorkloadExecutor,
    default_increment,
    last_line,
    plan_levels,
)
from cr_runner.lease import RunLease, holder_alive, read_holder
from cr_runner.run_record import LevelResult, RunRecord, RunStatus, SUCCESS_MARKER
from cr_runner.waiter import wait_for_completion

__all__ = [
    "CAPACITY_SETTINGS",
    "CockroachWorkload",
    "EscalationController",
    "EscalationSettings",
    "LevelResult",
    "PassRule",
    "RunLease",
    "RunRecord",
    "RunStatus",
    "SUCCESS_MARKER",
    "SubprocessExecutor",
    "WorkloadExecutor",
    "default_increment",
    "holder_alive",
    "last_line",
    "plan_levels",
    "read_holder",
    "wait_for_completion",
]
