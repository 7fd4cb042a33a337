from __future__ import annotations

from sim_pipeline.core import ArtifactLayout, PipelineConfig
from sim_pipeline.pipeline.context import RunContext
from sim_pipeline.process import ProcessRunner, StageInvocation, StdioMode


def playback_invocation(cfg: PipelineConfig, layout: ArtifactLayout) -> StageInvocation:
    return StageInvocation.of(cfg.player_exe, layout.replay_path, stdio=StdioMode.DETACHED)


def launch_player(cfg: PipelineConfig, layout: ArtifactLayout, procs: ProcessRunner) -> int:
    """Start the player on the replay and return its pid without waiting."""
    inv = playback_invocation(cfg, layout)
    return procs.launch_detached(inv.exe, inv.args)


def launch_playback(ctx: RunContext) -> int:
    return launch_player(ctx.config, ctx.layout, ctx.procs)
