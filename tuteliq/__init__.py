"""Tuteliq SDK for AI-powered child-safety analysis."""

from .client import Tuteliq, TuteliqClient
from .constants import (
    TIER_MONTHLY_LIMITS,
    AnalysisType,
    EmotionTrend,
    ErrorCode,
    GroomingRisk,
    IncidentStatus,
    RiskCategory,
    RiskLevel,
    Severity,
    Tier,
    ToolName,
    WebhookEventType,
)
from .errors import (
    AuthenticationError,
    ErrorKind,
    NetworkError,
    NotFoundError,
    QuotaExceededError,
    RateLimitError,
    RequestTimeoutError,
    ServerError,
    StreamError,
    TierAccessError,
    TuteliqError,
    ValidationError,
)
from .retry import RetryPolicy, RetryState, backoff_delay, with_retry
from .types import (
    ActionPlanResult,
    AnalyzeResult,
    BatchAnalyzeResult,
    BatchItem,
    BatchResultItem,
    BullyingResult,
    ContextInput,
    ConversationMessage,
    EmotionsResult,
    GroomingMessage,
    GroomingResult,
    RateLimitInfo,
    ReportResult,
    ResponseMetadata,
    UnsafeResult,
    Usage,
    UsageQuota,
    UsageSummary,
)
from .voice import (
    AlertEvent,
    SessionState,
    SessionSummaryEvent,
    TranscriptionEvent,
    VoiceStreamConfig,
    VoiceStreamHandlers,
    VoiceStreamSession,
)

__version__ = "0.1.0"
__all__ = [
    # Client
    "Tuteliq",
    "TuteliqClient",
    # Errors
    "TuteliqError",
    "ErrorKind",
    "ValidationError",
    "AuthenticationError",
    "TierAccessError",
    "NotFoundError",
    "RateLimitError",
    "QuotaExceededError",
    "ServerError",
    "RequestTimeoutError",
    "NetworkError",
    "StreamError",
    # Retry
    "RetryPolicy",
    "RetryState",
    "backoff_delay",
    "with_retry",
    # Inputs
    "ContextInput",
    "GroomingMessage",
    "ConversationMessage",
    "BatchItem",
    # Results
    "BullyingResult",
    "GroomingResult",
    "UnsafeResult",
    "AnalyzeResult",
    "EmotionsResult",
    "ActionPlanResult",
    "ReportResult",
    "BatchAnalyzeResult",
    "BatchResultItem",
    "UsageSummary",
    "UsageQuota",
    # Response metadata
    "ResponseMetadata",
    "Usage",
    "RateLimitInfo",
    # Voice streaming
    "VoiceStreamSession",
    "VoiceStreamConfig",
    "VoiceStreamHandlers",
    "SessionState",
    "TranscriptionEvent",
    "AlertEvent",
    "SessionSummaryEvent",
    # Constants
    "Severity",
    "GroomingRisk",
    "RiskLevel",
    "RiskCategory",
    "AnalysisType",
    "EmotionTrend",
    "IncidentStatus",
    "ToolName",
    "Tier",
    "TIER_MONTHLY_LIMITS",
    "WebhookEventType",
    "ErrorCode",
]
