"""Real-time voice streaming with live safety alerts."""

from .session import VoiceStreamSession
from .types import (
    AlertEvent,
    ConfigUpdatedEvent,
    ReadyEvent,
    SessionState,
    SessionSummaryEvent,
    StreamErrorEvent,
    TranscriptionEvent,
    TranscriptionSegment,
    VoiceEventType,
    VoiceStreamConfig,
    VoiceStreamEvent,
    VoiceStreamHandlers,
    parse_event,
)

__all__ = [
    # Session
    "VoiceStreamSession",
    "SessionState",
    # Configuration
    "VoiceStreamConfig",
    "VoiceStreamHandlers",
    # Events
    "VoiceStreamEvent",
    "VoiceEventType",
    "ReadyEvent",
    "TranscriptionEvent",
    "TranscriptionSegment",
    "AlertEvent",
    "ConfigUpdatedEvent",
    "SessionSummaryEvent",
    "StreamErrorEvent",
    "parse_event",
]
