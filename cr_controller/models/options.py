"""Driver options: bootstrap steps, requested benchmarks and overrides."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from cr_common.errors import ConfigurationError

ALL = "all"
DEFAULT_NODES = 4


class BootstrapStep(str, Enum):
    """Cluster lifecycle steps preceding benchmark execution."""

    CREATE = "create"
    UPLOAD = "upload"
    SETUP = "setup"


class BenchmarkKind(str, Enum):
    """Benchmarks a driver can start, in their canonical order."""

    CPU = "cpu"
    IO = "io"
    NET = "net"
    TPCC = "tpcc"


def parse_bootstrap(values: Iterable[str]) -> FrozenSet[BootstrapStep]:
    """Expand ``-b`` values; ``all`` selects every step."""
    steps: set[BootstrapStep] = set()
    for value in values:
        if value == ALL:
            steps.update(BootstrapStep)
            continue
        try:
            steps.add(BootstrapStep(value))
        except ValueError:
            raise ConfigurationError(
                f"Invalid -b value '{value}'", context={"flag": "-b", "value": value}
            )
    return frozenset(steps)


def parse_benchmarks(values: Iterable[str]) -> List[BenchmarkKind]:
    """Expand ``-w`` values in request order; repeated kinds run once."""
    kinds: List[BenchmarkKind] = []
    for value in values:
        if value == ALL:
            expanded = list(BenchmarkKind)
        else:
            try:
                expanded = [BenchmarkKind(value)]
            except ValueError:
                raise ConfigurationError(
                    f"Invalid -w value '{value}'", context={"flag": "-w", "value": value}
                )
        for kind in expanded:
            if kind not in kinds:
                kinds.append(kind)
    return kinds


def default_extra_args(bench_args: Mapping[str, str]) -> Dict[BenchmarkKind, str]:
    """Per-benchmark extra arguments baked into the generated script."""
    return {kind: bench_args[kind.value] for kind in BenchmarkKind if kind.value in bench_args}


class DriverOptions(BaseModel):
    """What a single driver invocation should do."""

    model_config = ConfigDict(frozen=True)

    bootstrap: FrozenSet[BootstrapStep] = frozenset()
    benchmarks: List[BenchmarkKind] = Field(default_factory=list)
    resume: bool = False
    destroy: bool = False
    nodes: int = Field(default=DEFAULT_NODES, ge=2, description="Cluster size")
    cockroach_binary: Optional[Path] = Field(
        default=None, description="Local binary uploaded instead of the staged release"
    )
    extra_args: Dict[BenchmarkKind, str] = Field(default_factory=dict)

    def wants(self, step: BootstrapStep) -> bool:
        return step in self.bootstrap

    def extra_for(self, kind: BenchmarkKind) -> str:
        return self.extra_args.get(kind, "")
