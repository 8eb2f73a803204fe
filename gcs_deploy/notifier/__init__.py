"""Chat notifications sent after a successful deploy."""

from .slack import SlackNotifier, build_message, normalize_channel

__all__ = ["SlackNotifier", "build_message", "normalize_channel"]
