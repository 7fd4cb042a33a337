from __future__ import annotations

import os
import queue
import signal
import subprocess
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Iterator, Sequence

import structlog

from sim_pipeline.core import SpawnError, Terminated

from .detached import launch_detached
from .types import OutputLine, ProcessEvent, ProcessExited, SpawnFailed, StreamId

log = structlog.get_logger(__name__)

_EOF = None


def _argv(exe: str | Path, args: Sequence[str | Path]) -> list[str]:
    return [str(exe), *(str(a) for a in args)]


_TERMINATING_SIGNALS = tuple(
    getattr(signal, name) for name in ("SIGTERM", "SIGHUP") if hasattr(signal, name)
)


@contextmanager
def terminating_signals_interrupt() -> Iterator[None]:
    """
    Turn SIGTERM and SIGHUP into a `Terminated` interrupt while a child runs,
    so they unwind through the same cleanup as Ctrl-C.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _raise(signum, frame) -> None:
        raise Terminated(signum)

    previous = {s: signal.signal(s, _raise) for s in _TERMINATING_SIGNALS}
    try:
        yield
    finally:
        for s, handler in previous.items():
            signal.signal(s, handler)


def _pump(pipe: IO[str], stream: StreamId, q: "queue.Queue") -> None:
    try:
        for raw in pipe:
            q.put((stream, raw.rstrip("\r\n")))
    finally:
        pipe.close()
        q.put((stream, _EOF))


class ProcessRunner:
    """
    Launches the external tools of the pipeline.

    `new_session` puts streamed children into their own process group so an
    interrupt reaching us can be forwarded to the child and everything it
    spawned.
    """

    def __init__(self, *, cwd: Path | None = None, new_session: bool = True) -> None:
        self.cwd = Path(cwd) if cwd else None
        self.new_session = new_session and os.name == "posix"

    def run_inherited(self, exe: str | Path, args: Sequence[str | Path]) -> int:
        """Run with our stdio and block until it exits; return the exit code."""
        argv = _argv(exe, args)
        log.debug("Spawning", argv=argv, stdio="inherited")
        try:
            proc = subprocess.Popen(argv, cwd=self.cwd)
        except OSError as e:
            raise SpawnError(str(exe), e.strerror or str(e)) from e

        try:
            with terminating_signals_interrupt():
                return proc.wait()
        except BaseException:
            self._interrupt(proc, group=False)
            raise

    def run_streamed(
        self, exe: str | Path, args: Sequence[str | Path]
    ) -> Iterator[ProcessEvent]:
        """
        Yield stdout/stderr lines as they arrive, then one terminal event:
        ProcessExited, or SpawnFailed if the process never started.
        """
        argv = _argv(exe, args)
        log.debug("Spawning", argv=argv, stdio="piped")
        try:
            proc = subprocess.Popen(
                argv,
                cwd=self.cwd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
                start_new_session=self.new_session,
            )
        except OSError as e:
            yield SpawnFailed(exe=str(exe), message=e.strerror or str(e))
            return

        q: queue.Queue = queue.Queue()
        readers = [
            threading.Thread(target=_pump, args=(proc.stdout, "stdout", q), daemon=True),
            threading.Thread(target=_pump, args=(proc.stderr, "stderr", q), daemon=True),
        ]
        for t in readers:
            t.start()

        try:
            with terminating_signals_interrupt():
                open_streams = len(readers)
                while open_streams:
                    stream, text = q.get()
                    if text is _EOF:
                        open_streams -= 1
                        continue
                    yield OutputLine(stream=stream, text=text)

                exit_code = proc.wait()
            yield ProcessExited(exit_code=exit_code)
        finally:
            if proc.poll() is None:
                self._interrupt(proc, group=self.new_session)

    def launch_detached(self, exe: str | Path, args: Sequence[str | Path]) -> int:
        return launch_detached(exe, args, cwd=self.cwd)

    def _interrupt(self, proc: subprocess.Popen, *, group: bool) -> None:
        """Forward an interrupt to a child we are abandoning, then reap it."""
        if proc.poll() is not None:
            return
        try:
            if group:
                os.killpg(proc.pid, signal.SIGINT)
            elif os.name == "posix":
                proc.send_signal(signal.SIGINT)
            else:
                proc.terminate()
        except ProcessLookupError:
            return
        log.warning("Interrupt forwarded to child", pid=proc.pid)

        try:
            proc.wait(timeout=10)
        except subprocess.TimeoutExpired:
            proc.kill()
            proc.wait()
