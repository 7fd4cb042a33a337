from __future__ import annotations

from typing import Any, TypedDict

from sim_pipeline.core import ArtifactLayout, PipelineConfig, StageExitError
from sim_pipeline.pipeline.context import RunContext
from sim_pipeline.process import StageInvocation

from ..common import drain_process, record_if_present

OPTIMIZER_FLAGS: tuple[str, ...] = (
    "--strip-dwarf",
    "--asyncify",
)
FEATURE_FLAGS: tuple[str, ...] = (
    "--enable-bulk-memory",
    "--enable-nontrapping-float-to-int",
    "--enable-simd",
    "-O4",
)


class StageOptimizeResult(TypedDict):
    optimized_path: str
    _artifacts: list[Any]
    _metrics: dict[str, int]


def optimize_invocation(cfg: PipelineConfig, layout: ArtifactLayout) -> StageInvocation:
    yields = ",".join(cfg.yield_imports)
    return StageInvocation.of(
        cfg.wasm_opt_exe,
        layout.raw_build_path,
        "-o",
        layout.optimized_path,
        *OPTIMIZER_FLAGS,
        f"--pass-arg=asyncify-imports@{yields}",
        *FEATURE_FLAGS,
    )


def stage_optimize(ctx: RunContext) -> StageOptimizeResult:
    inv = optimize_invocation(ctx.config, ctx.layout)
    lines = 0

    def _forward(stream: str, text: str) -> None:
        nonlocal lines
        lines += 1
        target = ctx.err_console if stream == "stderr" else ctx.console
        target.out(text, highlight=False)

    code = drain_process(ctx, "optimize", inv, _forward)
    if code != 0:
        raise StageExitError("optimize", code)

    opt = ctx.layout.optimized_path
    return {
        "optimized_path": str(opt),
        "_artifacts": record_if_present(
            ctx, stage="optimize", path=opt, content_type="application/wasm"
        ),
        "_metrics": {"output_lines": lines},
    }
