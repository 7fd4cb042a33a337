from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from .stage import StageResult


class RunState(str, Enum):
    IDLE = "idle"
    BUILDING = "building"
    OPTIMIZING = "optimizing"
    SIMULATING = "simulating"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class ArtifactRef:
    """
    A reference to an artifact produced by a stage.
    """

    path: str
    bytes: int
    sha256: str
    content_type: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Event:
    """
    Structured event emitted by the pipeline.
    """

    type: str
    ts_utc: str
    run_id: str
    stage: Optional[str] = None
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class PipelineRun:
    """
    Transient state of one end-to-end execution.
    """

    run_id: str
    playback_requested: bool = False
    state: RunState = RunState.IDLE
    exit_code: int = 0
    playback_pid: Optional[int] = None
    transitions: list[str] = field(default_factory=list)
    stages: list["StageResult"] = field(default_factory=list)
    report_path: Optional[Path] = None

    def enter(self, state: RunState) -> None:
        if self.state in (RunState.DONE, RunState.FAILED):
            raise RuntimeError(f"Run already finished in state {self.state.value}")
        self.transitions.append(f"{self.state.value}->{state.value}")
        self.state = state
