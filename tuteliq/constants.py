"""Constants and enums mirroring the Tuteliq API."""

from enum import Enum
from typing import Dict


class Severity(str, Enum):
    """Severity levels used across safety detection."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class GroomingRisk(str, Enum):
    """Grooming risk levels."""

    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RiskLevel(str, Enum):
    """Risk levels for incidents (uses "moderate" instead of "medium")."""

    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"


class RiskCategory(str, Enum):
    """Risk categories for incidents."""

    BULLYING = "bullying"
    GROOMING = "grooming"
    UNSAFE = "unsafe"
    SELF_HARM = "self_harm"
    OTHER = "other"


class AnalysisType(str, Enum):
    """Analysis/detection types."""

    BULLYING = "bullying"
    GROOMING = "grooming"
    UNSAFE = "unsafe"
    EMOTIONS = "emotions"


class EmotionTrend(str, Enum):
    """Emotional trend direction."""

    IMPROVING = "improving"
    STABLE = "stable"
    WORSENING = "worsening"


class IncidentStatus(str, Enum):
    """Incident status."""

    NEW = "new"
    REVIEWED = "reviewed"
    RESOLVED = "resolved"


class ToolName(str, Enum):
    """Tool names as reported in usage breakdowns."""

    DETECT_BULLYING = "detectBullying"
    DETECT_GROOMING = "detectGrooming"
    DETECT_UNSAFE_CONTEXT = "detectUnsafeContext"
    EMOTION_SUMMARY = "emotionSummary"
    HEALTHY_ACTION_PLAN = "healthyActionPlan"
    INCIDENT_REPORT = "incidentReport"
    POLICY_CONFIG = "policyConfig"


class Tier(str, Enum):
    """Subscription tier levels."""

    STARTER = "starter"
    INDIE = "indie"
    PRO = "pro"
    BUSINESS = "business"
    ENTERPRISE = "enterprise"


# -1 means unlimited
TIER_MONTHLY_LIMITS: Dict[Tier, int] = {
    Tier.STARTER: 1000,
    Tier.INDIE: 10000,
    Tier.PRO: 50000,
    Tier.BUSINESS: 200000,
    Tier.ENTERPRISE: -1,
}


class WebhookEventType(str, Enum):
    """Events a webhook can subscribe to."""

    INCIDENT_CRITICAL = "incident.critical"
    INCIDENT_HIGH = "incident.high"
    GROOMING_DETECTED = "grooming.detected"
    SELF_HARM_DETECTED = "self_harm.detected"
    BULLYING_SEVERE = "bullying.severe"


class ErrorCode(str, Enum):
    """Machine-readable error codes returned by the API."""

    # Authentication
    API_KEY_REQUIRED = "AUTH_1001"
    API_KEY_NOT_FOUND = "AUTH_1002"
    API_KEY_INVALID = "AUTH_1003"
    API_KEY_REVOKED = "AUTH_1004"
    API_KEY_INACTIVE = "AUTH_1005"
    API_KEY_EXPIRED = "AUTH_1006"
    UNAUTHORIZED = "AUTH_1007"

    # Rate limiting
    RATE_LIMIT_EXCEEDED = "RATE_2001"
    DAILY_LIMIT_EXCEEDED = "RATE_2002"
    QUOTA_EXCEEDED = "RATE_2003"

    # Validation
    VALIDATION_FAILED = "VAL_3001"
    INVALID_INPUT = "VAL_3002"
    MISSING_FIELD = "VAL_3003"
    INVALID_FORMAT = "VAL_3004"
    BATCH_SIZE_EXCEEDED = "VAL_3005"
    MESSAGE_TOO_LONG = "VAL_3006"
    TOO_MANY_MESSAGES = "VAL_3007"

    # Service
    INTERNAL_ERROR = "SVC_4001"
    DATABASE_ERROR = "SVC_4002"
    SERVICE_UNAVAILABLE = "SVC_4003"
    LLM_SERVICE_ERROR = "SVC_4004"
    WEBHOOK_DELIVERY_FAILED = "SVC_4005"

    # Analysis
    ANALYSIS_FAILED = "ANALYSIS_5001"
    UNSUPPORTED_TYPE = "ANALYSIS_5002"
    NO_CONTENT = "ANALYSIS_5003"
