from .detached import launch_detached
from .runner import ProcessRunner
from .types import (
    OutputLine,
    ProcessEvent,
    ProcessExited,
    SpawnFailed,
    StageInvocation,
    StdioMode,
    StreamId,
)

__all__ = [
    "OutputLine",
    "ProcessEvent",
    "ProcessExited",
    "ProcessRunner",
    "SpawnFailed",
    "StageInvocation",
    "StdioMode",
    "StreamId",
    "launch_detached",
]
