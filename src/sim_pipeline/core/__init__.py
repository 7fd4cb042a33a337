from .config import PipelineConfig, Settings, load_settings
from .errors import (
    ConfigError,
    PipelineError,
    SpawnError,
    StageError,
    StageExitError,
    Terminated,
    exit_code_for,
    interrupt_exit_code,
    stage_error_from_exc,
)
from .fs import atomic_write_text, ensure_parent, file_size, safe_unlink
from .hashing import sha256_file
from .json import atomic_write_json
from .logging import ILogger, bind, configure_logging, get_logger
from .paths import ArtifactLayout, optimized_path_for, replay_path_for
from .provenance import RunProvenance, new_run_id
from .time import monotonic_ms, utc_now_iso

__all__ = [
    "ArtifactLayout",
    "ConfigError",
    "ILogger",
    "PipelineConfig",
    "PipelineError",
    "RunProvenance",
    "Settings",
    "SpawnError",
    "StageError",
    "StageExitError",
    "Terminated",
    "atomic_write_json",
    "atomic_write_text",
    "bind",
    "configure_logging",
    "ensure_parent",
    "exit_code_for",
    "file_size",
    "get_logger",
    "interrupt_exit_code",
    "load_settings",
    "monotonic_ms",
    "new_run_id",
    "optimized_path_for",
    "replay_path_for",
    "safe_unlink",
    "sha256_file",
    "stage_error_from_exc",
    "utc_now_iso",
]
