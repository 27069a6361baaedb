"""Tests for input validation and normalization."""

import pytest

from tuteliq import ContextInput, ConversationMessage, GroomingMessage, ValidationError
from tuteliq.validation import (
    MAX_CONTENT_LENGTH,
    normalize_context,
    normalize_messages,
    tracking_fields,
    validate_content,
    validate_messages,
)


class TestValidateContent:
    """Tests for content validation."""

    def test_accepts_content_at_limit(self):
        validate_content("x" * MAX_CONTENT_LENGTH)

    @pytest.mark.parametrize("content", ["", None, 42])
    def test_rejects_missing_content(self, content):
        with pytest.raises(ValidationError, match="Content is required"):
            validate_content(content)

    def test_rejects_oversized_content(self):
        with pytest.raises(ValidationError, match="50000"):
            validate_content("x" * (MAX_CONTENT_LENGTH + 1))

    def test_uses_field_name(self):
        with pytest.raises(ValidationError, match="Situation description"):
            validate_content("", field_name="Situation description")

    def test_client_side_error_has_no_status(self):
        """Should leave status_code unset when no request was made."""
        with pytest.raises(ValidationError) as exc_info:
            validate_content("")

        assert exc_info.value.status_code is None


class TestValidateMessages:
    """Tests for message list validation."""

    def test_accepts_limit(self):
        validate_messages([{"content": "hi"}] * 100)

    @pytest.mark.parametrize("messages", [[], None, "hello"])
    def test_rejects_empty(self, messages):
        with pytest.raises(ValidationError, match="cannot be empty"):
            validate_messages(messages)

    def test_rejects_too_many(self):
        with pytest.raises(ValidationError, match="100"):
            validate_messages([{"content": "hi"}] * 101)


class TestNormalizeContext:
    """Tests for context normalization."""

    def test_none(self):
        assert normalize_context(None) is None

    def test_string_is_platform(self):
        assert normalize_context("discord") == {"platform": "discord"}

    def test_context_input(self):
        context = ContextInput(language="sv", age_group="8-10", relationship="classmates")
        assert normalize_context(context) == {
            "language": "sv",
            "ageGroup": "8-10",
            "relationship": "classmates",
        }

    def test_mapping_passed_through(self):
        assert normalize_context({"platform": "roblox"}) == {"platform": "roblox"}


class TestNormalizeMessages:
    """Tests for message normalization."""

    def test_grooming_messages(self):
        messages = [
            GroomingMessage(role="adult", content="hey", timestamp="2026-01-01T10:00:00Z"),
            {"role": "child", "content": "hi"},
        ]

        assert normalize_messages(messages, sender_key="sender_role", source_key="role") == [
            {"sender_role": "adult", "text": "hey", "timestamp": "2026-01-01T10:00:00Z"},
            {"sender_role": "child", "text": "hi"},
        ]

    def test_missing_sender_is_unknown(self):
        result = normalize_messages([{"content": "hi"}], sender_key="sender", source_key="sender")
        assert result == [{"sender": "unknown", "text": "hi"}]

    def test_validates_each_content(self):
        with pytest.raises(ValidationError, match="Message content"):
            normalize_messages(
                [ConversationMessage(sender="child", content="")],
                sender_key="sender",
                source_key="sender",
            )

    def test_rejects_other_types(self):
        with pytest.raises(ValidationError, match="dataclass instances or dicts"):
            normalize_messages(["hello"], sender_key="sender", source_key="sender")


class TestTrackingFields:
    """Tests for correlation fields."""

    def test_omits_empty_fields(self):
        assert tracking_fields() == {}

    def test_includes_given_fields(self):
        assert tracking_fields("ext", "cust", {"k": "v"}) == {
            "external_id": "ext",
            "customer_id": "cust",
            "metadata": {"k": "v"},
        }

    def test_rejects_long_customer_id(self):
        with pytest.raises(ValidationError, match="customer_id"):
            tracking_fields(customer_id="c" * 256)
