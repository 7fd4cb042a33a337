from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import Any, Sequence

import structlog

from sim_pipeline.core import SpawnError

log = structlog.get_logger(__name__)


def _detach_kwargs() -> dict[str, Any]:
    if os.name == "nt":
        return {
            "creationflags": subprocess.DETACHED_PROCESS
            | subprocess.CREATE_NEW_PROCESS_GROUP
        }
    # own session: no controlling terminal, no signals from our process group
    return {"start_new_session": True}


def launch_detached(
    exe: str | Path, args: Sequence[str | Path], *, cwd: Path | None = None
) -> int:
    """
    Spawn `exe` so that it outlives the caller and return its pid.

    The child gets no handle on our stdio and no reference to it is kept:
    there is nothing to wait on or clean up afterwards.
    """
    argv = [str(exe), *(str(a) for a in args)]
    try:
        proc = subprocess.Popen(
            argv,
            cwd=str(cwd) if cwd else None,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            close_fds=True,
            **_detach_kwargs(),
        )
    except OSError as e:
        raise SpawnError(str(exe), e.strerror or str(e)) from e

    pid = proc.pid
    log.debug("Detached process launched", argv=argv, pid=pid)
    return pid
