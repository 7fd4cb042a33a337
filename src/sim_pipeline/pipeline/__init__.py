from .context import RunContext
from .runner import PipelineRunner, RunnerConfig
from .stage import FunctionStage, Stage, StageResult
from .types import PipelineRun, RunState

__all__ = [
    "FunctionStage",
    "PipelineRun",
    "PipelineRunner",
    "RunContext",
    "RunState",
    "RunnerConfig",
    "Stage",
    "StageResult",
]
