from __future__ import annotations

import argparse
from dataclasses import dataclass

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from sim_pipeline.core import (
    ArtifactLayout,
    ConfigError,
    PipelineConfig,
    SpawnError,
    bind,
    configure_logging,
    get_logger,
    load_settings,
    new_run_id,
)
from sim_pipeline.core.errors import CONFIG_ERROR_EXIT_CODE, SPAWN_FAILURE_EXIT_CODE
from sim_pipeline.pipeline import PipelineRunner, RunnerConfig, RunState, Stage
from sim_pipeline.process import ProcessRunner
from sim_pipeline.stages import (
    launch_playback,
    launch_player,
    stage_build,
    stage_optimize,
    stage_simulate,
)

console = Console()
err_console = Console(stderr=True)


@dataclass(frozen=True, slots=True)
class _RunArgs:
    playback: bool


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="sim-pipeline",
        description=(
            "Build the program, optimize the wasm, run the simulator against it "
            "and optionally open the replay. Configured through SIM_PIPELINE_* "
            "environment variables or a .env file."
        ),
    )
    p.add_argument(
        "play",
        nargs="*",
        help="Any extra argument launches the replay player once the simulation is done.",
    )
    return p


def _args(args: argparse.Namespace) -> _RunArgs:
    return _RunArgs(playback=bool(args.play))


_STAGES: tuple[tuple[str, RunState], ...] = (
    ("build", RunState.BUILDING),
    ("optimize", RunState.OPTIMIZING),
    ("simulate", RunState.SIMULATING),
)

_STAGE_FNS = {
    "build": stage_build,
    "optimize": stage_optimize,
    "simulate": stage_simulate,
}


def _build_stages() -> list[Stage]:
    return [
        PipelineRunner.fn(stage_id=sid, state=state, fn=_STAGE_FNS[sid])  # type: ignore[arg-type]
        for sid, state in _STAGES
    ]


def _load_config() -> PipelineConfig:
    s = load_settings()
    configure_logging(level=s.log_level, fmt=s.log_format)
    return PipelineConfig.from_settings(s)


def main(argv: list[str] | None = None) -> int:
    args = _args(_build_parser().parse_args(argv))

    try:
        cfg = _load_config()
    except ConfigError as e:
        err_console.print(f"[red]configuration error:[/red] {e}", markup=True)
        return CONFIG_ERROR_EXIT_CODE

    log = get_logger("sim_pipeline")

    run_id = new_run_id()
    bind(run_id=run_id)

    runner = PipelineRunner(
        stages=_build_stages(),
        cfg=RunnerConfig(launch_playback=args.playback),
        logger=log,
        playback=launch_playback,
    )

    console.print(
        Panel.fit(
            Text(
                f"sim-pipeline - {cfg.project_name} ({cfg.target_triple})\nrun_id={run_id}",
                style="bold",
            ),
            title="Run",
        )
    )

    run = runner.run(
        config=cfg,
        procs=ProcessRunner(cwd=cfg.project_root, new_session=cfg.forward_interrupt),
        console=console,
        err_console=err_console,
        run_id=run_id,
    )

    tbl = Table(title="Result", show_header=True, box=None)
    tbl.add_row(
        "status",
        "[green]done[/green]" if run.state is RunState.DONE else "[red]failed[/red]",
    )
    tbl.add_row("exit code", str(run.exit_code))
    if run.playback_pid is not None:
        tbl.add_row("player pid", str(run.playback_pid))
    if run.report_path is not None:
        tbl.add_row("report", str(run.report_path))
    console.print(tbl)

    return int(run.exit_code)


def play_main(argv: list[str] | None = None) -> int:
    """Open the last replay in the player and return immediately."""
    argparse.ArgumentParser(
        prog="sim-play",
        description="Launch the replay player on the last simulation's replay file.",
    ).parse_args(argv)

    try:
        cfg = _load_config()
    except ConfigError as e:
        err_console.print(f"[red]configuration error:[/red] {e}", markup=True)
        return CONFIG_ERROR_EXIT_CODE

    log = get_logger("sim_pipeline")
    layout = ArtifactLayout(
        root=cfg.project_root, triple=cfg.target_triple, project=cfg.project_name
    )
    try:
        pid = launch_player(cfg, layout, ProcessRunner(cwd=cfg.project_root))
    except SpawnError as e:
        log.error("Playback launch failed", error=str(e))
        return SPAWN_FAILURE_EXIT_CODE

    log.info("Playback launched", pid=pid, replay=str(layout.replay_path))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
