from .stage import launch_playback, launch_player, playback_invocation

__all__ = ["launch_playback", "launch_player", "playback_invocation"]
