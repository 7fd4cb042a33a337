from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from rich.console import Console

from sim_pipeline.core import ArtifactLayout, ILogger, PipelineConfig, sha256_file
from sim_pipeline.process import ProcessRunner

from .events import EventSink, EventType, NullEventSink, make_event
from .types import ArtifactRef


@dataclass(slots=True)
class RunContext:
    """
    Context shared across stages for a single pipeline run.
    """

    run_id: str
    config: PipelineConfig
    layout: ArtifactLayout
    procs: ProcessRunner
    logger: ILogger
    events: EventSink | NullEventSink
    console: Console
    err_console: Console

    # optional free-form metadata
    meta: dict[str, Any] = field(default_factory=dict)

    def stage_logger(self, stage: str) -> ILogger:
        return self.logger.bind(stage=stage)

    def emit(self, event: EventType | str, *, stage: str | None = None, **kw: object) -> None:
        event_value = event.value if isinstance(event, EventType) else str(event)
        self.events.emit(
            make_event(event_type=event_value, run_id=self.run_id, stage=stage, **kw)
        )
        # Keep event chatter at debug level to leave console logs readable.
        self.logger.debug(event_value, event_type=event_value, stage=stage, **kw)

    def record_artifact(
        self,
        *,
        stage: str,
        path: Path,
        content_type: str | None = None,
    ) -> ArtifactRef:
        p = Path(path)
        digest = sha256_file(p)
        art = ArtifactRef(
            path=str(p),
            bytes=digest.bytes,
            sha256=digest.sha256,
            content_type=content_type,
        )
        self.emit(
            EventType.ARTIFACT_WRITTEN,
            stage=stage,
            path=art.path,
            bytes=art.bytes,
            sha256=art.sha256,
            content_type=art.content_type,
        )
        return art
