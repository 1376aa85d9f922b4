"""Structured record of an escalation run, persisted beside its reports."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

RECORD_FILE = "run_record.json"
SUCCESS_MARKER = "success"


class RunStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    SATURATED = "saturated"
    FAILED = "failed"


class LevelResult(BaseModel):
    """Outcome of one concurrency level."""

    active: int
    passed: bool
    report: Path
    last_line: str = ""


class RunRecord(BaseModel):
    """Status, timings and result paths of one escalation run."""

    status: RunStatus = RunStatus.RUNNING
    started_at: datetime = Field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None
    warehouses: int = 0
    planned_levels: List[int] = Field(default_factory=list)
    levels: List[LevelResult] = Field(default_factory=list)
    success: bool = False
    error: Optional[Dict[str, Any]] = None

    @property
    def passed_levels(self) -> List[int]:
        return [level.active for level in self.levels if level.passed]

    def save(self, results_dir: Path) -> Path:
        path = Path(results_dir) / RECORD_FILE
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return path

    @classmethod
    def load(cls, results_dir: Path) -> "RunRecord":
        path = Path(results_dir) / RECORD_FILE
        return cls.model_validate_json(path.read_text(encoding="utf-8"))
