from __future__ import annotations

from contextlib import closing
from pathlib import Path
from typing import Callable

from sim_pipeline.core import SpawnError
from sim_pipeline.pipeline.context import RunContext
from sim_pipeline.pipeline.events import EventType
from sim_pipeline.pipeline.types import ArtifactRef
from sim_pipeline.process import (
    OutputLine,
    ProcessExited,
    SpawnFailed,
    StageInvocation,
)

LineHandler = Callable[[str, str], None]


def drain_process(
    ctx: RunContext, stage: str, inv: StageInvocation, on_line: LineHandler
) -> int:
    """
    Run a piped invocation to completion, handing every output line to
    `on_line(stream, text)` in arrival order. Returns the exit code.
    """
    ctx.emit(EventType.PROCESS_SPAWN, stage=stage, argv=inv.argv, stdio=inv.stdio.value)
    with closing(ctx.procs.run_streamed(inv.exe, inv.args)) as events:
        for ev in events:
            if isinstance(ev, OutputLine):
                on_line(ev.stream, ev.text)
            elif isinstance(ev, SpawnFailed):
                raise SpawnError(ev.exe, ev.message)
            elif isinstance(ev, ProcessExited):
                ctx.emit(EventType.PROCESS_EXIT, stage=stage, exit_code=ev.exit_code)
                return ev.exit_code
    raise RuntimeError(f"{stage}: process stream ended without an exit event")


def record_if_present(
    ctx: RunContext, *, stage: str, path: Path, content_type: str | None = None
) -> list[ArtifactRef]:
    if not Path(path).is_file():
        ctx.stage_logger(stage).warning("Expected artifact missing", path=str(path))
        return []
    return [ctx.record_artifact(stage=stage, path=path, content_type=content_type)]
