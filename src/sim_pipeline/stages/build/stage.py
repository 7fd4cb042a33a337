from __future__ import annotations

from typing import Any, TypedDict

from sim_pipeline.core import PipelineConfig, StageExitError
from sim_pipeline.pipeline.context import RunContext
from sim_pipeline.pipeline.events import EventType
from sim_pipeline.process import StageInvocation, StdioMode

from ..common import record_if_present


class StageBuildResult(TypedDict):
    raw_build_path: str
    _artifacts: list[Any]


def build_invocation(cfg: PipelineConfig) -> StageInvocation:
    return StageInvocation.of(
        cfg.cargo_exe,
        "build",
        "--target",
        cfg.target_triple,
        "--release",
        stdio=StdioMode.INHERITED,
    )


def stage_build(ctx: RunContext) -> StageBuildResult:
    inv = build_invocation(ctx.config)

    ctx.emit(EventType.PROCESS_SPAWN, stage="build", argv=inv.argv, stdio=inv.stdio.value)
    code = ctx.procs.run_inherited(inv.exe, inv.args)
    ctx.emit(EventType.PROCESS_EXIT, stage="build", exit_code=code)

    if code != 0:
        raise StageExitError("build", code)

    raw = ctx.layout.raw_build_path
    return {
        "raw_build_path": str(raw),
        "_artifacts": record_if_present(
            ctx, stage="build", path=raw, content_type="application/wasm"
        ),
    }
