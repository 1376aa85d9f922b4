from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pytest

from cr_common.errors import RemoteCommandError
from cr_runner.escalation import CockroachWorkload

HEADER = "_elapsed_______tpmC____efc__avg(ms)__p50(ms)__p90(ms)__p95(ms)__p99(ms)_pMax(ms)"


class FakeExecutor:
    """Stand-in for the cockroach binary; writes canned reports per level."""

    def __init__(self, lines: Optional[Dict[int, str]] = None) -> None:
        self.lines = lines or {}
        self.calls: List[List[str]] = []
        self.fail_on: Optional[str] = None

    def __call__(
        self,
        argv: Sequence[str],
        *,
        stdout_path: Optional[Path] = None,
        cwd: Optional[Path] = None,
    ) -> None:
        argv = list(argv)
        self.calls.append(argv)
        if self.fail_on and self.fail_on in argv:
            raise RemoteCommandError(f"{argv[0]} exited with code 1", context={"argv": argv})
        if stdout_path is not None:
            active = int(next(a for a in argv if a.startswith("--active-warehouses=")).split("=")[1])
            stdout_path.write_text(f"{HEADER}\n{self.lines.get(active, '')}\n")

    def runs(self) -> List[List[str]]:
        return [call for call in self.calls if call[1:3] == ["workload", "run"]]


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def workload(executor: FakeExecutor) -> CockroachWorkload:
    return CockroachWorkload(Path("/home/ubuntu/cockroach"), executor)
