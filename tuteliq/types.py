"""Type definitions for the Tuteliq SDK."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

import httpx


@dataclass
class TuteliqConfig:
    """Configuration for the Tuteliq client."""

    api_key: str
    base_url: str = "https://api.tuteliq.ai"
    timeout_ms: int = 30000
    retries: int = 3
    retry_delay_ms: int = 1000
    debug: bool = False

    @property
    def ws_url(self) -> str:
        """WebSocket base URL derived from the HTTP base URL."""
        if self.base_url.startswith("https://"):
            return self.base_url.replace("https://", "wss://", 1)
        return self.base_url.replace("http://", "ws://", 1)


# =============================================================================
# Response metadata
# =============================================================================


@dataclass
class Usage:
    """Monthly usage from the X-Monthly-* headers."""

    limit: int
    used: int
    remaining: int


@dataclass
class RateLimitInfo:
    """Per-minute rate limit from the X-RateLimit-* headers."""

    limit: int
    remaining: int
    reset: Optional[int] = None


@dataclass
class ResponseMetadata:
    """Metadata captured from the most recently completed request attempt."""

    request_id: Optional[str] = None
    latency_ms: Optional[int] = None
    usage: Optional[Usage] = None
    rate_limit: Optional[RateLimitInfo] = None
    usage_warning: Optional[str] = None


def _header_int(headers: httpx.Headers, name: str) -> Optional[int]:
    value = headers.get(name)
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError:
        return None


class MetadataSnapshot:
    """Shared cell holding the latest ``ResponseMetadata``.

    Each request attempt writes to it once, last write wins. With several
    calls in flight at the same time the snapshot may describe any one of
    them, so treat it as advisory telemetry only.
    """

    def __init__(self) -> None:
        self._current = ResponseMetadata()

    @property
    def current(self) -> ResponseMetadata:
        return self._current

    def record_response(self, headers: httpx.Headers, latency_ms: int) -> None:
        """Update from a received response, success or error."""
        usage = self._current.usage
        limit = _header_int(headers, "x-monthly-limit")
        used = _header_int(headers, "x-monthly-used")
        remaining = _header_int(headers, "x-monthly-remaining")
        if limit is not None and used is not None and remaining is not None:
            usage = Usage(limit=limit, used=used, remaining=remaining)

        rate_limit = self._current.rate_limit
        rl_limit = _header_int(headers, "x-ratelimit-limit")
        rl_remaining = _header_int(headers, "x-ratelimit-remaining")
        if rl_limit is not None and rl_remaining is not None:
            rate_limit = RateLimitInfo(
                limit=rl_limit,
                remaining=rl_remaining,
                reset=_header_int(headers, "x-ratelimit-reset"),
            )

        self._current = ResponseMetadata(
            request_id=headers.get("x-request-id"),
            latency_ms=latency_ms,
            usage=usage,
            rate_limit=rate_limit,
            usage_warning=headers.get("x-usage-warning"),
        )

    def record_failure(self, latency_ms: int) -> None:
        """Update after an attempt that produced no response (timeout, network)."""
        current = self._current
        self._current = ResponseMetadata(
            request_id=current.request_id,
            latency_ms=latency_ms,
            usage=current.usage,
            rate_limit=current.rate_limit,
            usage_warning=current.usage_warning,
        )


# =============================================================================
# Inputs
# =============================================================================


@dataclass
class ContextInput:
    """Detailed analysis context. A plain string is shorthand for ``platform``."""

    language: Optional[str] = None
    age_group: Optional[str] = None
    relationship: Optional[str] = None
    platform: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for API request."""
        data = {}
        if self.language:
            data["language"] = self.language
        if self.age_group:
            data["ageGroup"] = self.age_group
        if self.relationship:
            data["relationship"] = self.relationship
        if self.platform:
            data["platform"] = self.platform
        return data


ContextLike = Union[str, ContextInput, Dict[str, Any], None]


@dataclass
class GroomingMessage:
    """A message in a conversation analyzed for grooming."""

    role: str  # adult, child, unknown
    content: str
    timestamp: Optional[str] = None


@dataclass
class ConversationMessage:
    """A message used by emotion analysis and incident reports."""

    sender: str
    content: str


@dataclass
class BatchItem:
    """A single item in a batch analysis request."""

    type: str  # bullying, unsafe, emotions, grooming
    content: Optional[str] = None
    messages: Optional[List[GroomingMessage]] = None
    child_age: Optional[int] = None
    context: ContextLike = None
    external_id: Optional[str] = None


# =============================================================================
# Results
# =============================================================================


@dataclass
class BullyingResult:
    """Result of bullying detection."""

    is_bullying: bool
    bullying_type: List[str]
    confidence: float
    severity: str
    rationale: str
    recommended_action: str
    risk_score: float
    external_id: Optional[str] = None
    customer_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BullyingResult":
        return cls(
            is_bullying=data.get("is_bullying", False),
            bullying_type=data.get("bullying_type", []),
            confidence=data.get("confidence", 0.0),
            severity=data.get("severity", "low"),
            rationale=data.get("rationale", ""),
            recommended_action=data.get("recommended_action", "none"),
            risk_score=data.get("risk_score", 0.0),
            external_id=data.get("external_id"),
            customer_id=data.get("customer_id"),
            metadata=data.get("metadata"),
        )


@dataclass
class GroomingResult:
    """Result of grooming detection."""

    grooming_risk: str
    confidence: float
    flags: List[str]
    rationale: str
    risk_score: float
    recommended_action: str
    external_id: Optional[str] = None
    customer_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GroomingResult":
        return cls(
            grooming_risk=data.get("grooming_risk", "none"),
            confidence=data.get("confidence", 0.0),
            flags=data.get("flags", []),
            rationale=data.get("rationale", ""),
            risk_score=data.get("risk_score", 0.0),
            recommended_action=data.get("recommended_action", "none"),
            external_id=data.get("external_id"),
            customer_id=data.get("customer_id"),
            metadata=data.get("metadata"),
        )


@dataclass
class UnsafeResult:
    """Result of unsafe content detection."""

    unsafe: bool
    categories: List[str]
    severity: str
    confidence: float
    risk_score: float
    rationale: str
    recommended_action: str
    external_id: Optional[str] = None
    customer_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UnsafeResult":
        return cls(
            unsafe=data.get("unsafe", False),
            categories=data.get("categories", []),
            severity=data.get("severity", "low"),
            confidence=data.get("confidence", 0.0),
            risk_score=data.get("risk_score", 0.0),
            rationale=data.get("rationale", ""),
            recommended_action=data.get("recommended_action", "none"),
            external_id=data.get("external_id"),
            customer_id=data.get("customer_id"),
            metadata=data.get("metadata"),
        )


@dataclass
class AnalyzeResult:
    """Combined result of a quick analysis."""

    risk_level: str  # safe, low, medium, high, critical
    risk_score: float
    summary: str
    recommended_action: str
    bullying: Optional[BullyingResult] = None
    unsafe: Optional[UnsafeResult] = None
    external_id: Optional[str] = None
    customer_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


@dataclass
class EmotionsResult:
    """Result of emotion analysis."""

    dominant_emotions: List[str]
    emotion_scores: Dict[str, float]
    trend: str
    summary: str
    recommended_followup: Optional[str] = None
    external_id: Optional[str] = None
    customer_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EmotionsResult":
        return cls(
            dominant_emotions=data.get("dominant_emotions", []),
            emotion_scores=data.get("emotion_scores", {}),
            trend=data.get("trend", "stable"),
            summary=data.get("summary", ""),
            recommended_followup=data.get("recommended_followup"),
            external_id=data.get("external_id"),
            customer_id=data.get("customer_id"),
            metadata=data.get("metadata"),
        )


@dataclass
class ActionPlanResult:
    """Age-appropriate guidance for a situation."""

    audience: str
    steps: List[str]
    tone: Optional[str] = None
    reading_level: Optional[str] = None
    external_id: Optional[str] = None
    customer_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ActionPlanResult":
        return cls(
            audience=data.get("audience", data.get("role", "parent")),
            steps=data.get("steps", []),
            tone=data.get("tone"),
            reading_level=data.get("approx_reading_level", data.get("reading_level")),
            external_id=data.get("external_id"),
            customer_id=data.get("customer_id"),
            metadata=data.get("metadata"),
        )


@dataclass
class ReportResult:
    """Generated incident report."""

    summary: str
    risk_level: str
    categories: List[str]
    recommended_next_steps: List[str]
    external_id: Optional[str] = None
    customer_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReportResult":
        return cls(
            summary=data.get("summary", ""),
            risk_level=data.get("risk_level", "low"),
            categories=data.get("categories", []),
            recommended_next_steps=data.get("recommended_next_steps", []),
            external_id=data.get("external_id"),
            customer_id=data.get("customer_id"),
            metadata=data.get("metadata"),
        )


@dataclass
class BatchResultItem:
    """Outcome of one item in a batch."""

    index: int
    success: bool
    result: Any = None
    error: Optional[str] = None
    external_id: Optional[str] = None


@dataclass
class BatchAnalyzeResult:
    """Result of a batch analysis."""

    results: List[BatchResultItem] = field(default_factory=list)
    total: int = 0
    successful: int = 0
    failed: int = 0
    processing_time_ms: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BatchAnalyzeResult":
        summary = data.get("summary", {})
        return cls(
            results=[
                BatchResultItem(
                    index=item.get("index", i),
                    success=item.get("success", False),
                    result=item.get("result"),
                    error=item.get("error"),
                    external_id=item.get("external_id"),
                )
                for i, item in enumerate(data.get("results", []))
            ],
            total=summary.get("total", 0),
            successful=summary.get("successful", 0),
            failed=summary.get("failed", 0),
            processing_time_ms=data.get("processing_time_ms", 0),
        )


@dataclass
class UsageSummary:
    """Usage for the current billing period."""

    messages_used: int
    message_limit: int
    purchased_credits: int = 0
    total_available: int = 0
    usage_percentage: float = 0.0
    period_start: Optional[str] = None
    period_end: Optional[str] = None
    days_remaining: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UsageSummary":
        return cls(
            messages_used=data.get("messages_used", 0),
            message_limit=data.get("message_limit", 0),
            purchased_credits=data.get("purchased_credits", 0),
            total_available=data.get("total_available", 0),
            usage_percentage=data.get("usage_percentage", 0.0),
            period_start=data.get("period_start"),
            period_end=data.get("period_end"),
            days_remaining=data.get("days_remaining", 0),
        )


@dataclass
class UsageQuota:
    """Current per-minute quota status."""

    rate_limit: int
    remaining: int
    reset_in_seconds: int
    tier: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UsageQuota":
        return cls(
            rate_limit=data.get("rate_limit", 0),
            remaining=data.get("remaining", 0),
            reset_in_seconds=data.get("reset_in_seconds", 0),
            tier=data.get("tier", ""),
        )
