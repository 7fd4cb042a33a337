from __future__ import annotations

from collections import Counter
from typing import TextIO

from rich.console import Console

from .classifier import ClassifiedLine, LogClassifier, LogTag


def split_lines(chunk: str) -> list[str]:
    """Trimmed, non-empty lines of a raw output chunk."""
    return [p.strip() for p in chunk.split("\n") if p.strip()]


class LogRouter:
    """
    Sends classified simulator output to its destination: display lines to
    `console`, file-channel payloads to `file_sink`, stderr to `err_console`.
    """

    def __init__(
        self,
        *,
        classifier: LogClassifier,
        console: Console,
        err_console: Console,
        file_sink: TextIO | None = None,
    ) -> None:
        self.classifier = classifier
        self.console = console
        self.err_console = err_console
        self.file_sink = file_sink
        self.counts: Counter[str] = Counter()

    def route_stdout(self, chunk: str) -> list[ClassifiedLine]:
        routed: list[ClassifiedLine] = []
        for line in split_lines(chunk):
            c = self.classifier.classify(line)
            self.counts[c.tag.value] += 1
            if c.tag is LogTag.FILE_SINK:
                if self.file_sink is not None:
                    self.file_sink.write(c.text + "\n")
            elif c.tag.is_console:
                self.console.out(c.text, highlight=False)
            routed.append(c)
        return routed

    def route_stderr(self, chunk: str) -> None:
        for line in split_lines(chunk):
            self.counts["stderr"] += 1
            self.err_console.out(line, highlight=False)

    def route(self, stream: str, chunk: str) -> None:
        if stream == "stderr":
            self.route_stderr(chunk)
        else:
            self.route_stdout(chunk)

    def metrics(self) -> dict[str, int]:
        keys = [t.value for t in LogTag] + ["stderr"]
        return {f"lines_{k}": int(self.counts.get(k, 0)) for k in keys}
