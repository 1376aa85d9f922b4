from datetime import datetime

import pytest

from cr_common.errors import ConfigurationError, RemoteCommandError
from cr_runner.escalation import (
    EscalationController,
    EscalationSettings,
    PassRule,
    last_line,
    plan_levels,
)
from cr_runner.run_record import RunRecord, RunStatus


pytestmark = pytest.mark.unit_runner

PGURLS = ["postgres://n1", "postgres://n2", "postgres://n3"]


def report_line(efficiency: str, p95: str) -> str:
    return f"  1800.0s    31250.4  {efficiency}   410.2    302.0    600.0    {p95}   2000.0   5000.0"


def _controller(workload, tmp_path, **overrides):
    settings = EscalationSettings(pgurls=PGURLS, **overrides)
    controller = EscalationController(
        settings,
        workload,
        tmp_path / "tpcc-results",
        clock=lambda: datetime(2022, 10, 12, 9, 0, 0),
    )
    controller.prepare_results_dir()
    return controller


def test_plan_levels():
    assert plan_levels(2500, 3500) == [2500, 2750, 3000, 3250, 3500]
    assert plan_levels(2500, 3000, 250) == [2500, 2750, 3000]
    assert plan_levels(1000, 1100, 300) == [1000]
    assert plan_levels(2500, 3500, 0) == [3500]
    assert plan_levels(2500, 2502) == [2500, 2501, 2502]
    assert plan_levels(2500, 2500) == [2500]
    with pytest.raises(ConfigurationError):
        plan_levels(3600, 3500)
    with pytest.raises(ConfigurationError):
        plan_levels(2500, 3500, -1)


@pytest.mark.parametrize(
    "line, expected",
    [
        ("a b 86 d e f 9000", True),
        ("a b 84 d e f 9500", False),
        ("a b 86 d e f 10000", False),
        ("a b 97.2% d e f 402.7", True),
        ("a b 86", False),
        ("", False),
        ("a b n/a d e f 100", False),
    ],
)
def test_pass_rule(line, expected):
    assert PassRule().evaluate(line) is expected


def test_last_line_skips_trailing_blanks(tmp_path):
    report = tmp_path / "r.txt"
    report.write_text("first\nsecond\n\n  \n")
    assert last_line(report) == "second"
    assert last_line(tmp_path / "missing.txt") == ""


def test_empty_pgurls_rejected(workload, tmp_path):
    with pytest.raises(ConfigurationError, match="list of pgurls required"):
        EscalationController(EscalationSettings(pgurls=[]), workload, tmp_path)


def test_stops_at_first_failing_level_and_keeps_success(executor, workload, tmp_path):
    executor.lines = {2500: report_line("86.0%", "9000.0"), 2750: report_line("84.0%", "9500.0")}
    controller = _controller(workload, tmp_path, warehouses=3000, increment=250)
    record = controller.run()

    assert [run[5] for run in executor.runs()] == [
        "--active-warehouses=2500",
        "--active-warehouses=2750",
    ]
    assert record.status is RunStatus.SATURATED
    assert record.passed_levels == [2500]
    assert record.success
    assert controller.success_marker.exists()
    assert (tmp_path / "tpcc-results" / "tpcc-results-2750.txt").exists()
    assert not (tmp_path / "tpcc-results" / "tpcc-results-3000.txt").exists()
    assert RunRecord.load(tmp_path / "tpcc-results").status is RunStatus.SATURATED


def test_first_level_failure_writes_no_success(executor, workload, tmp_path):
    executor.lines = {2500: report_line("40.0%", "12000.0")}
    controller = _controller(workload, tmp_path)
    record = controller.run()
    assert record.status is RunStatus.FAILED
    assert not record.success
    assert not controller.success_marker.exists()
    assert len(executor.runs()) == 1


def test_every_level_passing_completes(executor, workload, tmp_path):
    executor.lines = {
        level: report_line("95.0%", "800.0") for level in plan_levels(2500, 3500)
    }
    controller = _controller(workload, tmp_path)
    record = controller.run()
    assert record.status is RunStatus.COMPLETED
    assert record.passed_levels == [2500, 2750, 3000, 3250, 3500]
    assert controller.success_marker.exists()


def test_load_stage_precedes_levels(executor, workload, tmp_path):
    executor.lines = {3500: report_line("95.0%", "800.0")}
    _controller(workload, tmp_path, increment=0, duration="5m").run()

    sql, fixtures, run = executor.calls
    assert sql[1:3] == ["sql", "--insecure"]
    assert sql[4] == "postgres://n1"
    assert "SET CLUSTER SETTING kv.snapshot_rebalance.max_rate = '128 MiB';" in sql[-1]
    assert fixtures[1:] == [
        "workload",
        "fixtures",
        "import",
        "tpcc",
        "--warehouses=3500",
        "postgres://n1",
    ]
    assert run[1:] == [
        "workload",
        "run",
        "tpcc",
        "--warehouses=3500",
        "--active-warehouses=3500",
        "--ramp=1m",
        "--duration=5m",
        *PGURLS,
    ]


def test_skip_load(executor, workload, tmp_path):
    executor.lines = {3500: report_line("95.0%", "800.0")}
    _controller(workload, tmp_path, increment=0, skip_load=True).run()
    assert [call[1] for call in executor.calls] == ["workload"]
    assert len(executor.runs()) == 1


def test_workload_error_marks_run_failed(executor, workload, tmp_path):
    executor.fail_on = "fixtures"
    controller = _controller(workload, tmp_path)
    with pytest.raises(RemoteCommandError):
        controller.run()
    record = RunRecord.load(tmp_path / "tpcc-results")
    assert record.status is RunStatus.FAILED
    assert record.error["error_type"] == "RemoteCommandError"
    assert not controller.success_marker.exists()


def test_prepare_results_dir_clears_previous_run(workload, tmp_path):
    results = tmp_path / "tpcc-results"
    results.mkdir()
    (results / "success").touch()
    (results / "tpcc-results-2500.txt").write_text("old")
    _controller(workload, tmp_path)
    assert list(results.iterdir()) == []
