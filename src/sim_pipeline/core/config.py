from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError

LogFormat = Literal["json", "console"]

_EXE_SUFFIX = ".exe" if os.name == "nt" else ""

DEFAULT_YIELD_IMPORTS: tuple[str, ...] = (
    "wasi_snapshot_preview1.sched_yield",
    "protologic.black_box_yield1",
    "protologic.black_box_yield2",
    "protologic.black_box_yield3",
    "protologic.black_box_yield4",
    "protologic.black_box_yield5",
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SIM_PIPELINE_",
        env_file=".env",
        extra="ignore",
    )

    project_root: Path = Field(default_factory=Path.cwd)
    project_name: str | None = Field(default=None)
    target_triple: str = Field(default="wasm32-wasi")

    cargo_exe: str = Field(default="cargo")
    wasm_opt_exe: Path = Field(default=Path(f"binaryen/bin/wasm-opt{_EXE_SUFFIX}"))
    simulator_exe: Path = Field(default=Path(f"sim/Protologic.Terminal{_EXE_SUFFIX}"))
    player_exe: Path = Field(default=Path(f"player/SaturnsEnvy{_EXE_SUFFIX}"))
    yield_imports: list[str] = Field(default_factory=lambda: list(DEFAULT_YIELD_IMPORTS))

    file_log: Path = Field(default=Path("log.txt"))
    show_slot_b: bool = Field(default=False)
    forward_interrupt: bool = Field(default=True)

    run_root: Path = Field(default=Path("target/sim-runs"))
    write_report: bool = Field(default=True)
    log_level: str = Field(default="INFO")
    log_format: LogFormat = Field(default="console")


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    return Settings()


def cargo_package_name(project_root: Path) -> str:
    """
    Read `[package].name` from Cargo.toml, normalised the way cargo names
    its build artifacts (dashes become underscores).
    """
    manifest = Path(project_root) / "Cargo.toml"
    try:
        with manifest.open("rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(
            f"Cannot determine project name from {manifest}: {e}. "
            "Set SIM_PIPELINE_PROJECT_NAME explicitly."
        ) from e

    name = data.get("package", {}).get("name")
    if not isinstance(name, str) or not name:
        raise ConfigError(f"{manifest} has no [package].name")
    return name.replace("-", "_")


def _under(root: Path, p: Path) -> Path:
    p = Path(p).expanduser()
    return p if p.is_absolute() else root / p


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    """
    Explicit configuration for one pipeline run. All paths are absolute.
    """

    project_root: Path
    project_name: str
    target_triple: str

    cargo_exe: str
    wasm_opt_exe: Path
    simulator_exe: Path
    player_exe: Path
    yield_imports: tuple[str, ...] = DEFAULT_YIELD_IMPORTS

    file_log: Path | None = None
    show_slot_b: bool = False
    forward_interrupt: bool = True

    run_root: Path | None = None

    @classmethod
    def from_settings(cls, s: Settings) -> "PipelineConfig":
        root = Path(s.project_root).expanduser().resolve()
        name = s.project_name or cargo_package_name(root)
        if not s.yield_imports:
            raise ConfigError("yield_imports must name at least one import")

        return cls(
            project_root=root,
            project_name=name,
            target_triple=s.target_triple,
            cargo_exe=s.cargo_exe,
            wasm_opt_exe=_under(root, s.wasm_opt_exe),
            simulator_exe=_under(root, s.simulator_exe),
            player_exe=_under(root, s.player_exe),
            yield_imports=tuple(s.yield_imports),
            file_log=_under(root, s.file_log),
            show_slot_b=s.show_slot_b,
            forward_interrupt=s.forward_interrupt,
            run_root=_under(root, s.run_root) if s.write_report else None,
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "project_root": str(self.project_root),
            "project_name": self.project_name,
            "target_triple": self.target_triple,
            "cargo_exe": self.cargo_exe,
            "wasm_opt_exe": str(self.wasm_opt_exe),
            "simulator_exe": str(self.simulator_exe),
            "player_exe": str(self.player_exe),
            "yield_imports": list(self.yield_imports),
            "file_log": str(self.file_log) if self.file_log else None,
            "show_slot_b": self.show_slot_b,
            "forward_interrupt": self.forward_interrupt,
        }
