from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional

from sim_pipeline.core import RunProvenance, atomic_write_json

from .stage import StageResult
from .types import PipelineRun


@dataclass(slots=True)
class RunReport:
    run_id: str
    started_at_utc: str
    finished_at_utc: str
    state: str  # "done" | "failed"
    exit_code: int
    duration_ms: int
    provenance: RunProvenance

    stages: list[StageResult] = field(default_factory=list)
    transitions: list[str] = field(default_factory=list)
    playback_requested: bool = False
    playback_pid: Optional[int] = None
    events_jsonl: Optional[str] = None
    meta: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def write_json(self, path: Path) -> None:
        atomic_write_json(Path(path), self.to_dict())


def build_run_report(
    *,
    run: PipelineRun,
    provenance: RunProvenance,
    finished_at_utc: str,
    duration_ms: int,
    events_jsonl: str | None,
    meta: dict[str, Any] | None = None,
) -> RunReport:
    return RunReport(
        run_id=run.run_id,
        started_at_utc=provenance.started_at_utc,
        finished_at_utc=finished_at_utc,
        state=run.state.value,
        exit_code=run.exit_code,
        duration_ms=duration_ms,
        provenance=provenance,
        stages=list(run.stages),
        transitions=list(run.transitions),
        playback_requested=run.playback_requested,
        playback_pid=run.playback_pid,
        events_jsonl=events_jsonl,
        meta=meta or {},
    )
