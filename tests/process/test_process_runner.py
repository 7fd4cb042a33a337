from __future__ import annotations

import os
import signal
import subprocess
import sys
from pathlib import Path

import pytest

import sim_pipeline
from sim_pipeline.core import SpawnError, Terminated, interrupt_exit_code
from sim_pipeline.process import (
    OutputLine,
    ProcessExited,
    ProcessRunner,
    SpawnFailed,
    StageInvocation,
    StdioMode,
)

PY = sys.executable


def test_invocation_argv() -> None:
    inv = StageInvocation.of(Path("/bin/tool"), "-o", Path("/x/y"), stdio=StdioMode.INHERITED)
    assert inv.argv == ["/bin/tool", "-o", "/x/y"]
    assert inv.stdio is StdioMode.INHERITED


def test_run_inherited_returns_exit_code(tmp_path: Path) -> None:
    runner = ProcessRunner(cwd=tmp_path)
    assert runner.run_inherited(PY, ["-c", "raise SystemExit(3)"]) == 3
    assert runner.run_inherited(PY, ["-c", "pass"]) == 0


def test_run_inherited_missing_executable(tmp_path: Path) -> None:
    with pytest.raises(SpawnError):
        ProcessRunner(cwd=tmp_path).run_inherited(tmp_path / "nope", [])


def test_run_streamed_yields_lines_then_exit(tmp_path: Path) -> None:
    code = (
        "import sys\n"
        "print('one', flush=True)\n"
        "print('err', file=sys.stderr, flush=True)\n"
        "print('two', flush=True)\n"
        "raise SystemExit(5)\n"
    )
    events = list(ProcessRunner(cwd=tmp_path).run_streamed(PY, ["-c", code]))

    assert isinstance(events[-1], ProcessExited)
    assert events[-1].exit_code == 5

    lines = [e for e in events[:-1] if isinstance(e, OutputLine)]
    assert len(lines) == len(events) - 1
    assert [e.text for e in lines if e.stream == "stdout"] == ["one", "two"]
    assert [e.text for e in lines if e.stream == "stderr"] == ["err"]


def test_run_streamed_spawn_failure_is_distinct(tmp_path: Path) -> None:
    events = list(ProcessRunner(cwd=tmp_path).run_streamed(tmp_path / "nope", ["-x"]))
    assert len(events) == 1
    assert isinstance(events[0], SpawnFailed)
    assert events[0].exe.endswith("nope")


SLEEPER = (
    "import os, sys, time\n"
    "with open(sys.argv[1], 'w') as f:\n"
    "    f.write(str(os.getpid()))\n"
    "print('ready', flush=True)\n"
    "time.sleep(60)\n"
)


def _assert_gone(pid_file: Path) -> None:
    pid = int(pid_file.read_text(encoding="utf-8"))
    with pytest.raises(ProcessLookupError):
        os.kill(pid, 0)


@pytest.mark.skipif(os.name != "posix", reason="process groups are POSIX only")
def test_abandoned_stream_interrupts_child(tmp_path: Path) -> None:
    pid_file = tmp_path / "child.pid"
    runner = ProcessRunner(cwd=tmp_path, new_session=True)
    stream = runner.run_streamed(PY, ["-c", SLEEPER, pid_file])

    first = next(stream)
    assert isinstance(first, OutputLine) and first.text == "ready"

    stream.close()
    _assert_gone(pid_file)


PARENT = (
    "import sys\n"
    "from contextlib import closing\n"
    "from sim_pipeline.process import OutputLine, ProcessRunner\n"
    "sleeper, pid_file = sys.argv[1:3]\n"
    "runner = ProcessRunner(new_session=True)\n"
    "try:\n"
    "    with closing(runner.run_streamed(sys.executable, ['-c', sleeper, pid_file])) as events:\n"
    "        for ev in events:\n"
    "            if isinstance(ev, OutputLine):\n"
    "                print(ev.text, flush=True)\n"
    "except KeyboardInterrupt:\n"
    "    raise SystemExit(3)\n"
)


@pytest.mark.skipif(os.name != "posix", reason="process groups are POSIX only")
@pytest.mark.parametrize("signum", [signal.SIGTERM, getattr(signal, "SIGHUP", signal.SIGTERM)])
def test_terminating_signal_reaps_streamed_child(tmp_path: Path, signum: int) -> None:
    pid_file = tmp_path / "child.pid"
    src = str(Path(sim_pipeline.__file__).resolve().parents[1])
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(p for p in (src, env.get("PYTHONPATH")) if p)

    parent = subprocess.Popen(
        [PY, "-c", PARENT, SLEEPER, str(pid_file)],
        cwd=tmp_path,
        env=env,
        stdout=subprocess.PIPE,
        text=True,
    )
    try:
        for line in parent.stdout:
            if line.strip() == "ready":
                break
        else:
            pytest.fail("streamed child never reported ready")
        parent.send_signal(signum)
        assert parent.wait(timeout=30) == 3
    finally:
        if parent.poll() is None:
            parent.kill()
            parent.wait()
        parent.stdout.close()

    _assert_gone(pid_file)


def test_interrupt_exit_codes() -> None:
    assert interrupt_exit_code(KeyboardInterrupt()) == 130
    assert interrupt_exit_code(Terminated(signal.SIGTERM)) == 143


def test_launch_detached_returns_pid(tmp_path: Path) -> None:
    pid = ProcessRunner(cwd=tmp_path).launch_detached(PY, ["-c", "pass"])
    assert isinstance(pid, int) and pid > 0


def test_launch_detached_missing_executable(tmp_path: Path) -> None:
    with pytest.raises(SpawnError):
        ProcessRunner(cwd=tmp_path).launch_detached(tmp_path / "nope", [])
