from .stage import simulate_invocation, stage_simulate

__all__ = ["simulate_invocation", "stage_simulate"]
