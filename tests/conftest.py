from __future__ import annotations

import io
from pathlib import Path
from typing import Iterator, Sequence

import pytest
import structlog
from rich.console import Console

from sim_pipeline.core import PipelineConfig, SpawnError
from sim_pipeline.process import OutputLine, ProcessEvent, ProcessExited, SpawnFailed


class FakeProcs:
    """
    Scripted stand-in for ProcessRunner. Executables are keyed by file name.
    """

    def __init__(
        self,
        *,
        exit_codes: dict[str, int] | None = None,
        output: dict[str, list[tuple[str, str]]] | None = None,
        missing: Sequence[str] = (),
        creates: dict[str, Path] | None = None,
    ) -> None:
        self.exit_codes = exit_codes or {}
        self.output = output or {}
        self.missing = set(missing)
        self.creates = creates or {}
        self.calls: list[tuple[str, list[str]]] = []
        self.detached: list[tuple[str, list[str]]] = []

    @staticmethod
    def _name(exe: str | Path) -> str:
        return Path(str(exe)).name

    @property
    def invoked(self) -> list[str]:
        return [name for name, _ in self.calls]

    def args_of(self, name: str) -> list[str]:
        for n, args in self.calls:
            if n == name:
                return args
        raise KeyError(name)

    def _finish(self, name: str) -> int:
        target = self.creates.get(name)
        if target is not None:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(b"\x00" * 2048)
        return self.exit_codes.get(name, 0)

    def run_inherited(self, exe: str | Path, args: Sequence[str | Path]) -> int:
        name = self._name(exe)
        self.calls.append((name, [str(a) for a in args]))
        if name in self.missing:
            raise SpawnError(str(exe), "No such file or directory")
        return self._finish(name)

    def run_streamed(
        self, exe: str | Path, args: Sequence[str | Path]
    ) -> Iterator[ProcessEvent]:
        name = self._name(exe)
        self.calls.append((name, [str(a) for a in args]))
        if name in self.missing:
            yield SpawnFailed(exe=str(exe), message="No such file or directory")
            return
        for stream, text in self.output.get(name, []):
            yield OutputLine(stream=stream, text=text)  # type: ignore[arg-type]
        yield ProcessExited(exit_code=self._finish(name))

    def launch_detached(self, exe: str | Path, args: Sequence[str | Path]) -> int:
        name = self._name(exe)
        if name in self.missing:
            raise SpawnError(str(exe), "No such file or directory")
        self.detached.append((name, [str(a) for a in args]))
        return 4242


@pytest.fixture
def pipeline_config(tmp_path: Path) -> PipelineConfig:
    return PipelineConfig(
        project_root=tmp_path,
        project_name="demo",
        target_triple="wasm32-wasi",
        cargo_exe="cargo",
        wasm_opt_exe=tmp_path / "wasm-opt",
        simulator_exe=tmp_path / "sim",
        player_exe=tmp_path / "player",
        file_log=tmp_path / "log.txt",
        run_root=tmp_path / "runs",
    )


def _console() -> Console:
    return Console(file=io.StringIO(), width=200, color_system=None)


@pytest.fixture
def consoles() -> tuple[Console, Console]:
    return _console(), _console()


@pytest.fixture
def logger():
    return structlog.get_logger("tests")


@pytest.fixture
def make_procs():
    return FakeProcs
