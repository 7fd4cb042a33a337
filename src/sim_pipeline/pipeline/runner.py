from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Sequence

from rich.console import Console

from sim_pipeline.core import (
    ArtifactLayout,
    ILogger,
    PipelineConfig,
    RunProvenance,
    SpawnError,
    configure_logging,
    interrupt_exit_code,
    get_logger,
    monotonic_ms,
    new_run_id,
    utc_now_iso,
)
from sim_pipeline.core.errors import SPAWN_FAILURE_EXIT_CODE
from sim_pipeline.process import ProcessRunner

from .context import RunContext
from .events import EventSink, EventType, NullEventSink
from .report import build_run_report
from .stage import FunctionStage, Stage, StageFn, format_duration_ms, run_stage
from .types import PipelineRun, RunState

PlaybackLauncher = Callable[[RunContext], int]


@dataclass(slots=True)
class RunnerConfig:
    launch_playback: bool = False


def default_logger() -> ILogger:
    """
    Provide a structlog BoundLogger that satisfies ILogger.
    """
    configure_logging()
    return get_logger("pipeline")


class PipelineRunner:
    """
    Runs stages in order, each one entering its RunState. The first failure
    ends the run in FAILED with that stage's exit code; nothing is retried.
    A run that reaches DONE hands off to the playback launcher when asked to.
    """

    def __init__(
        self,
        *,
        stages: Sequence[Stage],
        cfg: RunnerConfig | None = None,
        logger: ILogger | None = None,
        playback: PlaybackLauncher | None = None,
    ) -> None:
        self.stages = list(stages)
        self.cfg = cfg or RunnerConfig()
        self.logger: ILogger = logger or default_logger()
        self.playback = playback

        ids = [s.stage_id for s in self.stages]
        if len(ids) != len(set(ids)):
            dupes = sorted({x for x in ids if ids.count(x) > 1})
            raise ValueError(f"Duplicate stage_id(s): {dupes}")

        if self.cfg.launch_playback and self.playback is None:
            raise ValueError("launch_playback requires a playback launcher")

    @staticmethod
    def fn(stage_id: str, state: RunState, fn: StageFn) -> Stage:
        return FunctionStage(stage_id=stage_id, state=state, fn=fn)

    def run(
        self,
        *,
        config: PipelineConfig,
        procs: ProcessRunner | None = None,
        console: Console | None = None,
        err_console: Console | None = None,
        run_id: str | None = None,
        meta: dict[str, Any] | None = None,
    ) -> PipelineRun:
        """
        Execute the pipeline. When `config.run_root` is set, also write
        {run_root}/{run_id}/events.jsonl and run_report.json.
        """
        meta = meta or {}
        rid = run_id or new_run_id()
        run = PipelineRun(run_id=rid, playback_requested=self.cfg.launch_playback)

        layout = ArtifactLayout(
            root=config.project_root,
            triple=config.target_triple,
            project=config.project_name,
        )

        run_dir: Path | None = None
        sink: EventSink | NullEventSink = NullEventSink()
        if config.run_root is not None:
            run_dir = Path(config.run_root) / rid
            try:
                sink = EventSink(run_dir / "events.jsonl")
            except OSError as e:
                self.logger.warning(
                    "Run directory unavailable; continuing without run report",
                    run_dir=str(run_dir),
                    error=str(e),
                )
                run_dir = None

        ctx = RunContext(
            run_id=rid,
            config=config,
            layout=layout,
            procs=procs
            or ProcessRunner(
                cwd=config.project_root, new_session=config.forward_interrupt
            ),
            logger=self.logger,
            events=sink,
            console=console or Console(),
            err_console=err_console or Console(stderr=True),
            meta=meta,
        )

        provenance = RunProvenance(run_id=rid, started_at_utc=utc_now_iso())
        t0 = monotonic_ms()

        self.logger.info(
            "Pipeline starting",
            stages=[s.stage_id for s in self.stages],
            project=config.project_name,
            target=config.target_triple,
            playback=run.playback_requested,
        )
        ctx.emit(EventType.RUN_START, **layout.to_dict(), **meta)

        total = len(self.stages)
        try:
            for idx, st in enumerate(self.stages, start=1):
                self._enter(ctx, run, st.state)
                res = run_stage(ctx=ctx, stage=st, index=idx, total=total)
                run.stages.append(res)

                if res.status == "failed":
                    run.exit_code = res.exit_code
                    self._enter(ctx, run, RunState.FAILED)
                    self.logger.error(
                        "Stopping on first failure",
                        stage=st.stage_id,
                        exit_code=res.exit_code,
                    )
                    break
            else:
                self._enter(ctx, run, RunState.DONE)
                if run.playback_requested:
                    self._launch_playback(ctx, run)
        except KeyboardInterrupt as e:
            self.logger.warning("Interrupted", state=run.state.value, reason=str(e) or None)
            run.exit_code = interrupt_exit_code(e)
            if run.state not in (RunState.DONE, RunState.FAILED):
                self._enter(ctx, run, RunState.FAILED)

        duration = monotonic_ms() - t0

        if run_dir is not None:
            report = build_run_report(
                run=run,
                provenance=provenance,
                finished_at_utc=utc_now_iso(),
                duration_ms=duration,
                events_jsonl=str(sink.path),
                meta={"config": config.to_dict(), **meta},
            )
            report_path = run_dir / "run_report.json"
            try:
                report.write_json(report_path)
                run.report_path = report_path
            except OSError as e:
                self.logger.warning(
                    "Failed to write run report", path=str(report_path), error=str(e)
                )

        ctx.emit(
            EventType.RUN_FINISH,
            state=run.state.value,
            exit_code=run.exit_code,
            duration_ms=duration,
            report_json=str(run.report_path) if run.report_path else None,
        )

        self.logger.info(
            "Run complete",
            duration=format_duration_ms(duration),
            state=run.state.value,
            exit_code=run.exit_code,
            report=str(run.report_path) if run.report_path else None,
        )
        return run

    def _enter(self, ctx: RunContext, run: PipelineRun, state: RunState) -> None:
        previous = run.state
        run.enter(state)
        ctx.emit(EventType.RUN_STATE, previous=previous.value, state=state.value)

    def _launch_playback(self, ctx: RunContext, run: PipelineRun) -> None:
        assert self.playback is not None
        try:
            run.playback_pid = self.playback(ctx)
        except SpawnError as e:
            run.exit_code = SPAWN_FAILURE_EXIT_CODE
            self.logger.error("Playback launch failed", error=str(e))
            return

        ctx.emit(
            EventType.PLAYBACK_LAUNCH,
            pid=run.playback_pid,
            replay=str(ctx.layout.replay_path),
        )
        self.logger.info("Playback launched", pid=run.playback_pid)
