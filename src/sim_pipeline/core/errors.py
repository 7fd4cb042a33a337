from __future__ import annotations

import traceback
from dataclasses import dataclass

SPAWN_FAILURE_EXIT_CODE = 127
CONFIG_ERROR_EXIT_CODE = 2
INTERRUPTED_EXIT_CODE = 130


class PipelineError(RuntimeError):
    """Base error"""


@dataclass(frozen=True, slots=True)
class StageError:
    """
    A normalized error record for stage failures.
    """

    exc_type: str
    message: str
    traceback: str


def stage_error_from_exc(exc: BaseException) -> StageError:
    return StageError(
        exc_type=type(exc).__name__,
        message=str(exc),
        traceback=traceback.format_exc(),
    )


class ConfigError(PipelineError):
    """Configuration cannot be turned into a runnable pipeline"""


class SpawnError(PipelineError):
    """
    The executable could not be started at all (missing, not executable).
    Distinct from a process that started and exited nonzero.
    """

    def __init__(self, exe: str, message: str) -> None:
        super().__init__(f"Cannot spawn {exe}: {message}")
        self.exe = exe


class StageExitError(PipelineError):
    """A stage's external process exited with a nonzero code"""

    def __init__(self, stage: str, exit_code: int) -> None:
        super().__init__(f"{stage} exited with code {exit_code}")
        self.stage = stage
        self.exit_code = exit_code


def exit_code_for(exc: BaseException) -> int:
    if isinstance(exc, StageExitError):
        return exc.exit_code
    if isinstance(exc, SpawnError):
        return SPAWN_FAILURE_EXIT_CODE
    if isinstance(exc, ConfigError):
        return CONFIG_ERROR_EXIT_CODE
    return 1


class Terminated(KeyboardInterrupt):
    """SIGTERM or SIGHUP received while a child process was running"""

    def __init__(self, signum: int) -> None:
        super().__init__(f"received signal {signum}")
        self.signum = signum


def interrupt_exit_code(exc: KeyboardInterrupt) -> int:
    if isinstance(exc, Terminated):
        return 128 + exc.signum
    return INTERRUPTED_EXIT_CODE
