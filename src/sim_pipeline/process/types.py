from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Literal, Union

StreamId = Literal["stdout", "stderr"]


class StdioMode(str, Enum):
    INHERITED = "inherited"
    PIPED = "piped"
    DETACHED = "detached"


@dataclass(frozen=True, slots=True)
class StageInvocation:
    """
    One external executable with its fixed argument vector.
    """

    exe: str
    args: tuple[str, ...]
    stdio: StdioMode = StdioMode.PIPED

    @property
    def argv(self) -> list[str]:
        return [self.exe, *self.args]

    @classmethod
    def of(
        cls, exe: str | Path, *args: str | Path, stdio: StdioMode = StdioMode.PIPED
    ) -> "StageInvocation":
        return cls(exe=str(exe), args=tuple(str(a) for a in args), stdio=stdio)


@dataclass(frozen=True, slots=True)
class OutputLine:
    stream: StreamId
    text: str


@dataclass(frozen=True, slots=True)
class ProcessExited:
    exit_code: int


@dataclass(frozen=True, slots=True)
class SpawnFailed:
    exe: str
    message: str


ProcessEvent = Union[OutputLine, ProcessExited, SpawnFailed]
