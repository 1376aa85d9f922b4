"""Report configuration (clouds, machine shapes and their argument maps)."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_REPORT_VERSION = "20221012"


def _stringify(values: Optional[Dict[str, object]]) -> Optional[Dict[str, str]]:
    if values is None:
        return None
    out: Dict[str, str] = {}
    for key, val in values.items():
        if isinstance(val, bool):
            out[str(key)] = "true" if val else "false"
        elif val is None:
            out[str(key)] = ""
        else:
            out[str(key)] = str(val)
    return out


class MachineConfig(BaseModel):
    """Overrides for a single machine shape."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    roachprod_args: Optional[Dict[str, str]] = Field(
        default=None, description="Cluster-creation flags overriding the cloud defaults"
    )
    bench_args: Optional[Dict[str, str]] = Field(
        default=None, description="Benchmark arguments overriding the cloud defaults"
    )

    @field_validator("roachprod_args", "bench_args", mode="before")
    @classmethod
    def _coerce_values(cls, value: Optional[Dict[str, object]]) -> Optional[Dict[str, str]]:
        return _stringify(value)


class CloudConfig(BaseModel):
    """A cloud provider and the machine shapes benchmarked on it."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    cloud: str = Field(description="Cloud provider name as understood by roachprod")
    group: str = Field(default="", description="Target group used to scope cluster identities")
    roachprod_args: Dict[str, str] = Field(default_factory=dict)
    bench_args: Dict[str, str] = Field(default_factory=dict)
    machine_types: Dict[str, MachineConfig] = Field(default_factory=dict)

    @field_validator("roachprod_args", "bench_args", mode="before")
    @classmethod
    def _coerce_values(cls, value: Optional[Dict[str, object]]) -> Dict[str, str]:
        return _stringify(value) or {}

    @field_validator("machine_types", mode="before")
    @classmethod
    def _allow_empty_machines(cls, value: object) -> object:
        if value is None:
            return {}
        if isinstance(value, dict):
            return {name: cfg if cfg is not None else {} for name, cfg in value.items()}
        return value

    @model_validator(mode="after")
    def _validate_cloud(self) -> "CloudConfig":
        if not self.cloud or not self.cloud.strip():
            raise ValueError("CloudConfig: 'cloud' must be non-empty")
        return self

    def base_path(self, output_root: Path, report_version: str) -> Path:
        return Path(output_root) / report_version / self.cloud

    def script_dir(self, output_root: Path, report_version: str) -> Path:
        return self.base_path(output_root, report_version) / "scripts"

    def log_dir(self, output_root: Path, report_version: str) -> Path:
        return self.base_path(output_root, report_version) / "logs"


class ReportConfig(BaseModel):
    """Top-level configuration for a cloud report."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    report_version: str = Field(
        default=DEFAULT_REPORT_VERSION,
        min_length=1,
        description="Format version mixed into every cluster identity",
    )
    output_root: Path = Field(default=Path("report-data"))
    clouds: List[CloudConfig] = Field(default_factory=list)

    @model_validator(mode="after")
    def _validate_unique_clouds(self) -> "ReportConfig":
        seen: set[str] = set()
        for cloud in self.clouds:
            if cloud.cloud in seen:
                raise ValueError(f"ReportConfig: duplicate cloud entry {cloud.cloud!r}")
            seen.add(cloud.cloud)
        return self
