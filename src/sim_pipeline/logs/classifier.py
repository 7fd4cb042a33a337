from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol

INF_MARKER = "INF]"
HEARTBEAT = "INF] release:"
FILE_MARKER = "file:"
SLOT_A_MARKER = "release:"
SLOT_B_MARKER = "release (1):"
SLOT_A_LABEL = "[A]"
SLOT_B_LABEL = "[B]"


class LogTag(str, Enum):
    DROP = "drop"
    FILE_SINK = "file_sink"
    CONSOLE = "console"
    CONSOLE_A = "console_a"
    CONSOLE_B = "console_b"

    @property
    def is_console(self) -> bool:
        return self in (LogTag.CONSOLE, LogTag.CONSOLE_A, LogTag.CONSOLE_B)


@dataclass(frozen=True, slots=True)
class ClassifiedLine:
    tag: LogTag
    text: str = ""


DROPPED = ClassifiedLine(LogTag.DROP)


class LogClassifier(Protocol):
    def classify(self, line: str) -> ClassifiedLine: ...


class SubstringClassifier:
    """
    Demultiplexes simulator output by marker substrings.

    The simulator interleaves two program slots ("release" is slot A,
    "release (1)" is slot B) and a file-logging channel on one stream.
    Rules apply in order, first match wins:

      1. heartbeat `INF] release:` with nothing after it  -> DROP
      2. contains `file:`                                  -> FILE_SINK
      3. contains `release (1):` (unless show_slot_b)      -> DROP
      4. anything else -> console, slot markers relabeled to [A]/[B]
    """

    def __init__(self, *, show_slot_b: bool = False) -> None:
        self.show_slot_b = show_slot_b

    def classify(self, line: str) -> ClassifiedLine:
        idx = line.find(INF_MARKER)
        tail = line[idx:] if idx >= 0 else line
        if tail.strip() == HEARTBEAT:
            return DROPPED

        idx = line.find(FILE_MARKER)
        if idx >= 0:
            return ClassifiedLine(
                LogTag.FILE_SINK, line[idx + len(FILE_MARKER) :].strip()
            )

        has_b = SLOT_B_MARKER in line
        if has_b and not self.show_slot_b:
            return DROPPED

        text = line.replace(SLOT_B_MARKER, SLOT_B_LABEL, 1)
        has_a = SLOT_A_MARKER in text
        text = text.replace(SLOT_A_MARKER, SLOT_A_LABEL, 1)
        if not text.strip():
            return DROPPED

        if has_b:
            tag = LogTag.CONSOLE_B
        elif has_a:
            tag = LogTag.CONSOLE_A
        else:
            tag = LogTag.CONSOLE
        return ClassifiedLine(tag, text)
