from .stage import optimize_invocation, stage_optimize

__all__ = ["optimize_invocation", "stage_optimize"]
