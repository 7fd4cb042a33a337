from .stage import build_invocation, stage_build

__all__ = ["build_invocation", "stage_build"]
