"""Client-side input validation and normalization.

These run before any network call, so a rejected input costs nothing
against the rate limit or quota.
"""

from dataclasses import asdict, is_dataclass
from typing import Any, Dict, List, Optional, Sequence

from .errors import ValidationError
from .types import ContextInput, ContextLike

MAX_CONTENT_LENGTH = 50000
MAX_MESSAGES_COUNT = 100
MAX_BATCH_ITEMS = 25


def validate_content(content: Any, field_name: str = "Content") -> None:
    """Require a non-empty string of at most ``MAX_CONTENT_LENGTH`` characters."""
    if not content or not isinstance(content, str):
        raise ValidationError(f"{field_name} is required and must be a string")
    if len(content) > MAX_CONTENT_LENGTH:
        raise ValidationError(
            f"{field_name} exceeds maximum length of {MAX_CONTENT_LENGTH} characters"
        )


def validate_messages(messages: Any) -> None:
    """Require a non-empty list of at most ``MAX_MESSAGES_COUNT`` messages."""
    if not isinstance(messages, (list, tuple)) or len(messages) == 0:
        raise ValidationError("Messages array is required and cannot be empty")
    if len(messages) > MAX_MESSAGES_COUNT:
        raise ValidationError(f"Messages array exceeds maximum count of {MAX_MESSAGES_COUNT}")


def normalize_context(context: ContextLike) -> Optional[Dict[str, Any]]:
    """Convert a context argument to its API form.

    A string is shorthand for the platform name.
    """
    if context is None:
        return None
    if isinstance(context, str):
        return {"platform": context}
    if isinstance(context, ContextInput):
        return context.to_dict()
    return dict(context)


def message_to_dict(message: Any) -> Dict[str, Any]:
    """Turn a message dataclass or mapping into a plain dict."""
    if is_dataclass(message) and not isinstance(message, type):
        return {k: v for k, v in asdict(message).items() if v is not None}
    if isinstance(message, dict):
        return message
    raise ValidationError("Messages must be dataclass instances or dicts")


def normalize_messages(
    messages: Sequence[Any], sender_key: str, source_key: str
) -> List[Dict[str, Any]]:
    """Map messages to the API shape ``{sender_key: ..., "text": ...}``."""
    normalized = []
    for message in messages:
        data = message_to_dict(message)
        content = data.get("content")
        validate_content(content, field_name="Message content")
        item = {sender_key: data.get(source_key, "unknown"), "text": content}
        if data.get("timestamp"):
            item["timestamp"] = data["timestamp"]
        normalized.append(item)
    return normalized


def tracking_fields(
    external_id: Optional[str] = None,
    customer_id: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Build the optional correlation fields echoed back by the API."""
    fields: Dict[str, Any] = {}
    if external_id:
        if len(external_id) > 255:
            raise ValidationError("external_id exceeds maximum length of 255 characters")
        fields["external_id"] = external_id
    if customer_id:
        if len(customer_id) > 255:
            raise ValidationError("customer_id exceeds maximum length of 255 characters")
        fields["customer_id"] = customer_id
    if metadata:
        fields["metadata"] = metadata
    return fields
