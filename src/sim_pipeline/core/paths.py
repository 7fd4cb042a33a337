from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

OPTIMIZED_PREFIX = "opt_"
REPLAY_SUFFIX = ".json.deflate"


def optimized_path_for(raw_build_path: Path) -> Path:
    """Same directory, `opt_` prefixed file name."""
    raw = Path(raw_build_path)
    return raw.with_name(OPTIMIZED_PREFIX + raw.name)


def replay_path_for(optimized_path: Path) -> Path:
    # The simulator writes its replay next to the program it was given.
    opt = Path(optimized_path)
    return opt.with_name(opt.name + REPLAY_SUFFIX)


@dataclass(frozen=True, slots=True)
class ArtifactLayout:
    """
    Canonical path layout for pipeline artifacts:

      {root}/target/{triple}/release/{project}.wasm
      {root}/target/{triple}/release/opt_{project}.wasm
      {root}/target/{triple}/release/opt_{project}.wasm.json.deflate
    """

    root: Path
    triple: str
    project: str

    @property
    def release_dir(self) -> Path:
        return Path(self.root) / "target" / self.triple / "release"

    @property
    def raw_build_path(self) -> Path:
        return self.release_dir / f"{self.project}.wasm"

    @property
    def optimized_path(self) -> Path:
        return optimized_path_for(self.raw_build_path)

    @property
    def replay_path(self) -> Path:
        return replay_path_for(self.optimized_path)

    def to_dict(self) -> dict[str, str]:
        return {
            "raw_build_path": str(self.raw_build_path),
            "optimized_path": str(self.optimized_path),
            "replay_path": str(self.replay_path),
        }
