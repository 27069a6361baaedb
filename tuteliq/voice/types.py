"""Type definitions for real-time voice streaming."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional


class VoiceEventType(str, Enum):
    """Types of events sent by the voice stream server."""

    READY = "ready"
    TRANSCRIPTION = "transcription"
    ALERT = "alert"
    CONFIG_UPDATED = "config_updated"
    SESSION_SUMMARY = "session_summary"
    ERROR = "error"


class SessionState(str, Enum):
    """Lifecycle of a voice stream session."""

    IDLE = "idle"
    CONNECTING = "connecting"
    ACTIVE = "active"
    CLOSING = "closing"
    CLOSED = "closed"
    ERRORED = "errored"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.CLOSED, SessionState.ERRORED)


@dataclass
class VoiceStreamConfig:
    """Configuration sent when the stream opens (and on updates)."""

    interval_seconds: int = 10
    analysis_types: List[str] = field(default_factory=lambda: ["bullying", "unsafe"])
    age_group: Optional[str] = None
    language: Optional[str] = None
    platform: Optional[str] = None
    child_age: Optional[int] = None

    def to_message(self) -> dict:
        """Convert to the JSON config message."""
        data: Dict[str, Any] = {
            "type": "config",
            "interval_seconds": self.interval_seconds,
            "analysis_types": list(self.analysis_types),
        }
        if self.age_group:
            data["age_group"] = self.age_group
        if self.language:
            data["language"] = self.language
        if self.platform:
            data["platform"] = self.platform
        if self.child_age is not None:
            data["child_age"] = self.child_age
        return data


@dataclass
class VoiceStreamEvent:
    """Base voice stream event."""

    type: VoiceEventType

    @property
    def is_terminal(self) -> bool:
        return self.type in (VoiceEventType.SESSION_SUMMARY, VoiceEventType.ERROR)


@dataclass
class ReadyEvent(VoiceStreamEvent):
    """Server is ready to receive audio."""

    session_id: str = ""
    config: Dict[str, Any] = field(default_factory=dict)


@dataclass
class TranscriptionSegment:
    """A timed piece of transcribed speech."""

    start: float
    end: float
    text: str


@dataclass
class TranscriptionEvent(VoiceStreamEvent):
    """New transcribed text for the latest audio window."""

    text: str = ""
    segments: List[TranscriptionSegment] = field(default_factory=list)


@dataclass
class AlertEvent(VoiceStreamEvent):
    """Safety concern detected in the stream."""

    category: str = ""
    severity: str = ""
    risk_score: float = 0.0
    rationale: str = ""
    excerpt: Optional[str] = None


@dataclass
class ConfigUpdatedEvent(VoiceStreamEvent):
    """Server acknowledged a configuration update."""

    config: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SessionSummaryEvent(VoiceStreamEvent):
    """Final assessment of the session."""

    session_id: str = ""
    duration_seconds: float = 0.0
    overall_risk: str = "safe"
    overall_risk_score: float = 0.0
    total_alerts: int = 0
    transcript: str = ""


@dataclass
class StreamErrorEvent(VoiceStreamEvent):
    """Server-reported error; ends the session."""

    code: Optional[str] = None
    message: str = "Unknown error"


@dataclass
class VoiceStreamHandlers:
    """Callbacks invoked by the session dispatcher, in event order."""

    on_ready: Optional[Callable[[ReadyEvent], None]] = None
    on_transcription: Optional[Callable[[TranscriptionEvent], None]] = None
    on_alert: Optional[Callable[[AlertEvent], None]] = None
    on_config_updated: Optional[Callable[[ConfigUpdatedEvent], None]] = None
    on_summary: Optional[Callable[[SessionSummaryEvent], None]] = None
    on_error: Optional[Callable[[Exception], None]] = None
    on_close: Optional[Callable[[Optional[int], str], None]] = None


def parse_event(data: Dict[str, Any]) -> VoiceStreamEvent:
    """Parse a raw server message into the matching event type.

    Raises:
        ValueError: If the message has no known ``type``
    """
    event_type = VoiceEventType(data.get("type"))

    if event_type == VoiceEventType.READY:
        return ReadyEvent(
            type=event_type,
            session_id=data.get("session_id", data.get("sessionId", "")),
            config=data.get("config", {}),
        )
    elif event_type == VoiceEventType.TRANSCRIPTION:
        return TranscriptionEvent(
            type=event_type,
            text=data.get("text", ""),
            segments=[
                TranscriptionSegment(
                    start=segment.get("start", 0.0),
                    end=segment.get("end", 0.0),
                    text=segment.get("text", ""),
                )
                for segment in data.get("segments", [])
            ],
        )
    elif event_type == VoiceEventType.ALERT:
        return AlertEvent(
            type=event_type,
            category=data.get("category", ""),
            severity=data.get("severity", ""),
            risk_score=data.get("risk_score", 0.0),
            rationale=data.get("rationale", ""),
            excerpt=data.get("excerpt"),
        )
    elif event_type == VoiceEventType.CONFIG_UPDATED:
        return ConfigUpdatedEvent(type=event_type, config=data.get("config", {}))
    elif event_type == VoiceEventType.SESSION_SUMMARY:
        return SessionSummaryEvent(
            type=event_type,
            session_id=data.get("session_id", data.get("sessionId", "")),
            duration_seconds=data.get("duration_seconds", 0.0),
            overall_risk=data.get("overall_risk", "safe"),
            overall_risk_score=data.get("overall_risk_score", 0.0),
            total_alerts=data.get("total_alerts", 0),
            transcript=data.get("transcript", ""),
        )
    else:
        return StreamErrorEvent(
            type=event_type,
            code=data.get("code"),
            message=data.get("message", data.get("error", "Unknown error")),
        )
