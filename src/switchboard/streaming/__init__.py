"""Normalized stream events and the provider stream normalizer."""

from switchboard.streaming.events import Done, StreamError, StreamEvent, TextDelta, is_terminal
from switchboard.streaming.normalizer import SSELineBuffer, StreamNormalizer, StreamState

__all__ = [
    "Done",
    "SSELineBuffer",
    "StreamError",
    "StreamEvent",
    "StreamNormalizer",
    "StreamState",
    "TextDelta",
    "is_terminal",
]
