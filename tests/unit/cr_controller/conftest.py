import subprocess
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

import pytest

from cr_common.models.target import RenderContext
from cr_controller.adapters.roachprod import ClusterManager, CommandResult


class FakeRunner:
    """Record roachprod invocations and answer with canned output."""

    def __init__(self) -> None:
        self.calls: List[List[str]] = []
        self.timeouts: List[Optional[float]] = []
        self.outputs: Dict[str, str] = {
            "ip": "10.0.0.4\n",
            "pgurl": "postgres://n1 postgres://n2 postgres://n3\n",
        }
        self.fail_when: Callable[[List[str]], bool] = lambda argv: False
        self.timeout_when: Callable[[List[str]], bool] = lambda argv: False
        self.uploaded: Dict[str, List[str]] = {}

    def __call__(
        self, argv: Sequence[str], *, timeout: Optional[float] = None
    ) -> CommandResult:
        argv = list(argv)
        self.calls.append(argv)
        self.timeouts.append(timeout)
        if self.timeout_when(argv):
            raise subprocess.TimeoutExpired(argv, timeout or 0)
        if argv[1] == "put" and Path(argv[3]).is_dir():
            local = Path(argv[3])
            self.uploaded[argv[4]] = sorted(
                path.relative_to(local).as_posix() for path in local.rglob("*") if path.is_file()
            )
        if self.fail_when(argv):
            return CommandResult(argv=argv, returncode=1)
        stdout = self.outputs.get(argv[1], "")
        if argv[1] == "run" and "/mnt/data" in " ".join(argv):
            stdout = self.outputs.get("stores", "")
        return CommandResult(argv=argv, returncode=0, stdout=stdout)

    def commands(self, subcommand: str) -> List[List[str]]:
        return [call for call in self.calls if call[1] == subcommand]


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def cluster(runner: FakeRunner) -> ClusterManager:
    return ClusterManager(runner)


@pytest.fixture
def context() -> RenderContext:
    return RenderContext(
        cloud="gce",
        group="us-east1",
        cluster="cldrprt23-n2-standard-8-3921870431",
        lifetime="24h",
        machine_type="n2-standard-8",
        scripts_dir="./scripts",
        bench_args={"tpcc": "-W 2500"},
        deployment_args={"gce-zones": "us-east1-b", "local-ssd": ""},
        deployment_flags='--gce-zones="us-east1-b" --local-ssd',
    )
