"""Per-target data shared between script generation and execution."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field


class WaitOutcome(str, Enum):
    """Result of waiting on a started benchmark."""

    COMPLETED = "completed"
    STILL_RUNNING = "still_running"
    PROCESS_GONE = "process_gone"


class RenderContext(BaseModel):
    """Everything a generated driver script needs to know about its target.

    The generator fills ``deployment_flags`` after evaluating the templated
    deployment arguments; template evaluation sees the context without it.
    """

    model_config = ConfigDict(frozen=True)

    cloud: str = Field(description="Cloud provider name")
    group: str = Field(description="Target group (region, account) within the provider")
    cluster: str = Field(description="Sanitized transient cluster identity")
    lifetime: str = Field(description="Cluster lifetime passed to the cluster manager")
    machine_type: str = Field(description="Machine shape for every node")
    scripts_dir: str = Field(description="Local directory uploaded to the cluster")
    bench_args: Dict[str, str] = Field(default_factory=dict)
    deployment_args: Dict[str, str] = Field(default_factory=dict)
    deployment_flags: str = ""

    def template_vars(self) -> dict[str, Any]:
        """Names visible to templated argument values."""
        return {
            "cloud": self.cloud,
            "group": self.group,
            "cluster": self.cluster,
            "lifetime": self.lifetime,
            "machine_type": self.machine_type,
            "scripts_dir": self.scripts_dir,
            "bench_args": dict(self.bench_args),
        }

    def deployment_argv(self) -> list[str]:
        """Cluster-create flags, one argv entry per deployment argument.

        Values are passed through verbatim; empty values become bare switches.
        """
        return [
            f"--{key}={value}" if value else f"--{key}"
            for key, value in sorted(self.deployment_args.items())
        ]
