"""Adaptive load ramp: raise active warehouses until the workload saturates."""

from __future__ import annotations

import logging
import re
import shutil
import subprocess
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Sequence

from cr_common.errors import CRError, ConfigurationError, RemoteCommandError, error_to_payload
from cr_common.logging import bind_log_context, unbind_log_context
from cr_runner.run_record import (
    SUCCESS_MARKER,
    LevelResult,
    RunRecord,
    RunStatus,
)

logger = logging.getLogger(__name__)

DEFAULT_WAREHOUSES = 3500
DEFAULT_ACTIVE = 2500
DEFAULT_DURATION = "30m"
RAMP = "1m"

_NUMERIC_PREFIX = re.compile(r"[-+]?(\d+\.?\d*|\.\d+)([eE][-+]?\d+)?")

CAPACITY_SETTINGS = (
    "SET CLUSTER SETTING kv.bulk_ingest.max_index_buffer_size = '2gib';",
    "SET CLUSTER SETTING kv.bulk_io_write.concurrent_addsstable_requests = 10;",
    "SET CLUSTER SETTING schemachanger.backfiller.max_buffer_size = '5GiB';",
    "SET CLUSTER SETTING kv.snapshot_recovery.max_rate = '128 MiB';",
    "SET CLUSTER SETTING kv.snapshot_rebalance.max_rate = '128 MiB';",
)


def default_increment(start: int, maximum: int) -> int:
    """Increment used when none is configured: a quarter of the range, at least 1."""
    return max(1, (maximum - start) // 4)


def plan_levels(start: int, maximum: int, increment: Optional[int] = None) -> List[int]:
    """Concurrency levels from ``start`` to ``maximum`` inclusive.

    An increment of 0 runs a single level at ``maximum``.
    """
    if increment is None:
        increment = default_increment(start, maximum)
    if increment < 0:
        raise ConfigurationError(
            "increment must be >= 0", context={"increment": increment}
        )
    if increment == 0:
        return [maximum]
    if start > maximum:
        raise ConfigurationError(
            "active warehouses exceed total warehouses",
            context={"active": start, "warehouses": maximum},
        )
    return list(range(start, maximum + 1, increment))


@dataclass(frozen=True)
class PassRule:
    """Throughput must exceed a floor and latency stay under a ceiling.

    Columns are 1-based, whitespace separated, read from the report's last
    line.
    """

    throughput_column: int = 3
    throughput_min: float = 85.0
    latency_column: int = 7
    latency_max: float = 10000.0

    def evaluate(self, line: str) -> bool:
        fields = line.split()
        throughput = _column_value(fields, self.throughput_column)
        latency = _column_value(fields, self.latency_column)
        return throughput > self.throughput_min and latency < self.latency_max

    def describe(self) -> str:
        return (
            f"col{self.throughput_column}>{self.throughput_min:g} and "
            f"col{self.latency_column}<{self.latency_max:g}"
        )


def _column_value(fields: Sequence[str], column: int) -> float:
    """Numeric prefix of a 1-based column (``97.2%`` reads as 97.2); 0 if absent."""
    if column < 1 or column > len(fields):
        return 0.0
    match = _NUMERIC_PREFIX.match(fields[column - 1])
    return float(match.group(0)) if match else 0.0


def last_line(report: Path) -> str:
    """Last non-empty line of a report, or an empty string."""
    try:
        lines = Path(report).read_text(encoding="utf-8", errors="replace").splitlines()
    except OSError:
        return ""
    for line in reversed(lines):
        if line.strip():
            return line
    return ""


class WorkloadExecutor(Protocol):
    """Runs a command to completion, optionally redirecting stdout to a file."""

    def __call__(
        self,
        argv: Sequence[str],
        *,
        stdout_path: Optional[Path] = None,
        cwd: Optional[Path] = None,
    ) -> None: ...


class SubprocessExecutor:
    def __call__(
        self,
        argv: Sequence[str],
        *,
        stdout_path: Optional[Path] = None,
        cwd: Optional[Path] = None,
    ) -> None:
        logger.debug("exec: %s", " ".join(argv))
        if stdout_path is not None:
            with open(stdout_path, "w", encoding="utf-8") as out:
                proc = subprocess.run(list(argv), stdout=out, cwd=cwd, check=False)
        else:
            proc = subprocess.run(list(argv), cwd=cwd, check=False)
        if proc.returncode != 0:
            raise RemoteCommandError(
                f"{argv[0]} exited with code {proc.returncode}",
                context={"argv": list(argv), "returncode": proc.returncode},
            )


class CockroachWorkload:
    """The TPC-C workload driven through the cockroach binary."""

    def __init__(
        self,
        binary: Path,
        executor: Optional[WorkloadExecutor] = None,
        cwd: Optional[Path] = None,
    ) -> None:
        self.binary = Path(binary)
        self.executor: WorkloadExecutor = executor or SubprocessExecutor()
        self.cwd = cwd

    def configure_for_import(self, pgurl: str) -> None:
        self.executor(
            [str(self.binary), "sql", "--insecure", "--url", pgurl, "-e", "\n".join(CAPACITY_SETTINGS)],
            cwd=self.cwd,
        )

    def import_fixtures(self, warehouses: int, pgurl: str) -> None:
        self.executor(
            [
                str(self.binary),
                "workload",
                "fixtures",
                "import",
                "tpcc",
                f"--warehouses={warehouses}",
                pgurl,
            ],
            cwd=self.cwd,
        )

    def run_level(
        self,
        warehouses: int,
        active: int,
        duration: str,
        pgurls: Sequence[str],
        report: Path,
    ) -> None:
        self.executor(
            [
                str(self.binary),
                "workload",
                "run",
                "tpcc",
                f"--warehouses={warehouses}",
                f"--active-warehouses={active}",
                f"--ramp={RAMP}",
                f"--duration={duration}",
                *pgurls,
            ],
            stdout_path=report,
            cwd=self.cwd,
        )


@dataclass
class EscalationSettings:
    """Inputs of one escalation run."""

    pgurls: List[str]
    warehouses: int = DEFAULT_WAREHOUSES
    active: int = DEFAULT_ACTIVE
    increment: Optional[int] = None
    duration: str = DEFAULT_DURATION
    skip_load: bool = False
    rule: PassRule = field(default_factory=PassRule)

    def levels(self) -> List[int]:
        return plan_levels(self.active, self.warehouses, self.increment)


class EscalationController:
    """Load once, then run increasing levels until the pass rule fails."""

    def __init__(
        self,
        settings: EscalationSettings,
        workload: CockroachWorkload,
        results_dir: Path,
        *,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        if not settings.pgurls:
            raise ConfigurationError("list of pgurls required")
        self.settings = settings
        self.workload = workload
        self.results_dir = Path(results_dir)
        self.clock = clock
        self.record = RunRecord(warehouses=settings.warehouses)

    @property
    def success_marker(self) -> Path:
        return self.results_dir / SUCCESS_MARKER

    def report_path(self, active: int) -> Path:
        return self.results_dir / f"tpcc-results-{active}.txt"

    def prepare_results_dir(self) -> None:
        """Start from an empty results directory."""
        if self.results_dir.exists():
            shutil.rmtree(self.results_dir)
        self.results_dir.mkdir(parents=True)

    def load(self) -> None:
        pgurl = self.settings.pgurls[0]
        logger.info("configuring the cluster for fast import...")
        self.workload.configure_for_import(pgurl)
        logger.info("importing %d warehouses...", self.settings.warehouses)
        self.workload.import_fixtures(self.settings.warehouses, pgurl)
        logger.info("done importing")

    def run_level(self, active: int) -> LevelResult:
        bind_log_context(active_warehouses=active)
        logger.info("Running TPCC: %d", active)
        report = self.report_path(active)
        s = self.settings
        self.workload.run_level(s.warehouses, active, s.duration, s.pgurls, report)
        line = last_line(report)
        passed = s.rule.evaluate(line)
        logger.info(
            "Level %d %s (%s)", active, "passed" if passed else "failed", s.rule.describe()
        )
        return LevelResult(active=active, passed=passed, report=report, last_line=line)

    def run(self) -> RunRecord:
        """Run the load stage and the ramp; returns the final run record."""
        record = self.record
        record.started_at = self.clock()
        record.planned_levels = self.settings.levels()
        record.save(self.results_dir)
        try:
            if not self.settings.skip_load:
                self.load()
            exhausted = True
            for active in record.planned_levels:
                result = self.run_level(active)
                record.levels.append(result)
                record.save(self.results_dir)
                if not result.passed:
                    exhausted = False
                    break
        except CRError as exc:
            self._finish(RunStatus.FAILED, error=error_to_payload(exc))
            raise
        except BaseException:
            self._finish(RunStatus.FAILED)
            raise
        finally:
            unbind_log_context("active_warehouses")

        if exhausted:
            self._finish(RunStatus.COMPLETED)
        elif record.passed_levels:
            self._finish(RunStatus.SATURATED)
        else:
            self._finish(RunStatus.FAILED)
        return record

    def _finish(self, status: RunStatus, error: Optional[dict] = None) -> None:
        record = self.record
        record.status = status
        record.finished_at = self.clock()
        record.error = error
        record.success = status in (RunStatus.COMPLETED, RunStatus.SATURATED)
        record.save(self.results_dir)
        if record.success:
            self.success_marker.touch()
        logger.info(
            "Escalation finished: %s (passed levels: %s)", status.value, record.passed_levels
        )
