from __future__ import annotations

from contextlib import nullcontext
from pathlib import Path
from typing import IO, Any, ContextManager, TypedDict

from sim_pipeline.core import (
    ArtifactLayout,
    ILogger,
    PipelineConfig,
    StageExitError,
    ensure_parent,
    file_size,
)
from sim_pipeline.logs import LogRouter, SubstringClassifier
from sim_pipeline.pipeline.context import RunContext
from sim_pipeline.process import StageInvocation

from ..common import drain_process, record_if_present


class StageSimulateResult(TypedDict):
    replay_path: str
    file_log: str | None
    _artifacts: list[Any]
    _warnings: list[str]
    _metrics: dict[str, int]


def simulate_invocation(cfg: PipelineConfig, layout: ArtifactLayout) -> StageInvocation:
    """
    Both program slots run the same optimized build; slot A deterministic,
    slot B not. The replay is written next to `-o`.
    """
    opt = layout.optimized_path
    return StageInvocation.of(
        cfg.simulator_exe,
        "-f",
        opt,
        opt,
        "-d",
        "true",
        "false",
        "-o",
        opt,
    )


def _open_file_sink(path: Path | None) -> ContextManager[IO[str] | None]:
    if path is None:
        return nullcontext(None)
    ensure_parent(path)
    return open(path, "w", encoding="utf-8")


def size_kb(size: int) -> int:
    """Kilobytes rounded half up."""
    return int(size / 1000 + 0.5)


def replay_size(path: Path, log: ILogger) -> int | None:
    try:
        size = file_size(path)
    except OSError as e:
        log.warning("Replay file size unavailable", path=str(path), error=str(e))
        return None
    log.info(f"Replay file size: {size_kb(size)}kb", path=str(path), bytes=size)
    return size


def stage_simulate(ctx: RunContext) -> StageSimulateResult:
    cfg = ctx.config
    log = ctx.stage_logger("simulate")
    inv = simulate_invocation(cfg, ctx.layout)

    router = LogRouter(
        classifier=SubstringClassifier(show_slot_b=cfg.show_slot_b),
        console=ctx.console,
        err_console=ctx.err_console,
    )

    with _open_file_sink(cfg.file_log) as sink:
        router.file_sink = sink
        code = drain_process(ctx, "simulate", inv, router.route)

    log.info(f"Simulator exited with code {code}", exit_code=code)

    replay = ctx.layout.replay_path
    size = replay_size(replay, log)

    if code != 0:
        raise StageExitError("simulate", code)

    warnings: list[str] = []
    artifacts: list[Any] = []
    if size is None:
        warnings.append(f"Replay file missing: {replay}")
    else:
        artifacts = record_if_present(
            ctx, stage="simulate", path=replay, content_type="application/zlib"
        )

    return {
        "replay_path": str(replay),
        "file_log": str(cfg.file_log) if cfg.file_log else None,
        "_artifacts": artifacts,
        "_warnings": warnings,
        "_metrics": {**router.metrics(), "replay_bytes": size or 0},
    }
