from .build import stage_build
from .optimize import stage_optimize
from .playback import launch_playback, launch_player
from .simulate import stage_simulate

__all__ = [
    "stage_build",
    "stage_optimize",
    "stage_simulate",
    "launch_playback",
    "launch_player",
]
