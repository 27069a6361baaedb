"""Tuteliq client for child-safety content analysis."""

import asyncio
import json
from enum import Enum
from typing import IO, Any, Dict, List, Optional, Sequence, Union

import httpx

from .errors import ValidationError
from .retry import RetryPolicy, RetryState, with_retry
from .transport import RequestContext, RequestExecutor
from .types import (
    ActionPlanResult,
    AnalyzeResult,
    BatchAnalyzeResult,
    BatchItem,
    BullyingResult,
    ContextLike,
    ConversationMessage,
    EmotionsResult,
    GroomingMessage,
    GroomingResult,
    MetadataSnapshot,
    RateLimitInfo,
    ReportResult,
    ResponseMetadata,
    TuteliqConfig,
    UnsafeResult,
    Usage,
    UsageQuota,
    UsageSummary,
)
from .validation import (
    MAX_BATCH_ITEMS,
    normalize_context,
    normalize_messages,
    tracking_fields,
    validate_content,
    validate_messages,
)
from .voice import VoiceStreamConfig, VoiceStreamHandlers, VoiceStreamSession
from .voice.session import ConnectFunc

FileInput = Union[bytes, IO[bytes]]

# Highest priority first
_ACTION_PRIORITY = ("immediate_intervention", "flag_for_moderator", "monitor")


def _risk_level(score: float) -> str:
    if score >= 0.9:
        return "critical"
    if score >= 0.7:
        return "high"
    if score >= 0.5:
        return "medium"
    if score >= 0.3:
        return "low"
    return "safe"


class Tuteliq:
    """Async client for the Tuteliq child-safety API.

    Example:
        >>> from tuteliq import Tuteliq
        >>>
        >>> async with Tuteliq(api_key="tq_live_...") as tuteliq:
        ...     result = await tuteliq.detect_bullying(
        ...         "Nobody likes you, loser", context="chat"
        ...     )
        ...     if result.is_bullying and result.severity == "high":
        ...         print(result.rationale)
        ...     print(tuteliq.usage)  # Usage(limit=10000, used=5234, remaining=4766)
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.tuteliq.ai",
        timeout_ms: int = 30000,
        retries: int = 3,
        retry_delay_ms: int = 1000,
        debug: bool = False,
        http_client: Optional[httpx.AsyncClient] = None,
        ws_connect: Optional[ConnectFunc] = None,
    ):
        """Initialize the Tuteliq client.

        Args:
            api_key: Your Tuteliq API key
            base_url: API base URL
            timeout_ms: Per-attempt request timeout in milliseconds (1000-120000)
            retries: Retry attempts after a failed request (0-10)
            retry_delay_ms: Initial backoff delay in milliseconds
            debug: Enable debug logging
            http_client: Optional pre-configured httpx.AsyncClient
            ws_connect: Optional WebSocket connection factory for voice streams
        """
        if not api_key or not isinstance(api_key, str):
            raise ValueError("Tuteliq: api_key is required and must be a string")
        if len(api_key) < 10:
            raise ValueError("Tuteliq: api_key appears to be invalid (too short)")
        if timeout_ms < 1000 or timeout_ms > 120000:
            raise ValueError("Tuteliq: timeout_ms must be between 1000 and 120000")
        if retries < 0 or retries > 10:
            raise ValueError("Tuteliq: retries must be between 0 and 10")

        self.config = TuteliqConfig(
            api_key=api_key,
            base_url=base_url.rstrip("/"),
            timeout_ms=timeout_ms,
            retries=retries,
            retry_delay_ms=retry_delay_ms,
            debug=debug,
        )

        self._metadata = MetadataSnapshot()
        self._http_client = http_client
        self._owns_http_client = http_client is None
        self._executor: Optional[RequestExecutor] = None
        self._ws_connect = ws_connect

    def _log(self, message: str) -> None:
        """Log a message if debug is enabled."""
        if self.config.debug:
            print(f"[Tuteliq] {message}")

    def _get_executor(self) -> RequestExecutor:
        """Get or create the request executor and its HTTP client."""
        if self._executor is None:
            if self._http_client is None:
                self._http_client = httpx.AsyncClient(timeout=self.config.timeout_ms / 1000)
            self._executor = RequestExecutor(
                api_key=self.config.api_key,
                base_url=self.config.base_url,
                http_client=self._http_client,
                metadata=self._metadata,
                debug=self.config.debug,
            )
        return self._executor

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Make an HTTP request to the API with retries."""
        executor = self._get_executor()
        ctx = RequestContext(
            method=method,
            path=path,
            json=json,
            params=params,
            files=files,
            data=data,
            timeout_ms=self.config.timeout_ms,
        )

        def on_retry(state: RetryState) -> None:
            self._log(
                f"Request attempt {state.attempt} failed: {state.last_error}; "
                f"retrying in {state.next_delay_ms:.0f}ms"
            )

        policy = RetryPolicy(
            max_retries=self.config.retries,
            initial_delay_ms=self.config.retry_delay_ms,
        )
        return await with_retry(lambda: executor.execute(ctx), policy, on_retry=on_retry)

    # =========================================================================
    # Response metadata
    # =========================================================================

    @property
    def metadata(self) -> ResponseMetadata:
        """Metadata from the most recently completed request.

        With concurrent calls in flight this may belong to any of them.
        """
        return self._metadata.current

    @property
    def usage(self) -> Optional[Usage]:
        """Monthly usage from the last request."""
        return self._metadata.current.usage

    @property
    def rate_limit(self) -> Optional[RateLimitInfo]:
        """Per-minute rate limit from the last request."""
        return self._metadata.current.rate_limit

    @property
    def usage_warning(self) -> Optional[str]:
        """Usage warning sent by the API when usage is above 80%."""
        return self._metadata.current.usage_warning

    @property
    def last_request_id(self) -> Optional[str]:
        return self._metadata.current.request_id

    @property
    def last_latency_ms(self) -> Optional[int]:
        return self._metadata.current.latency_ms

    # =========================================================================
    # Safety detection
    # =========================================================================

    async def detect_bullying(
        self,
        content: str,
        context: ContextLike = None,
        external_id: Optional[str] = None,
        customer_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> BullyingResult:
        """Detect bullying in content.

        Args:
            content: Text to analyze
            context: Platform name or detailed context
            external_id: Your identifier for this request, echoed back
            customer_id: Your end-customer identifier, echoed back
            metadata: Custom key-value pairs stored with the result

        Returns:
            BullyingResult
        """
        validate_content(content)
        body = {
            "text": content,
            "context": normalize_context(context),
            **tracking_fields(external_id, customer_id, metadata),
        }
        data = await self._request("POST", "/api/v1/safety/bullying", json=body)
        return BullyingResult.from_dict(data)

    async def detect_grooming(
        self,
        messages: Sequence[Union[GroomingMessage, Dict[str, Any]]],
        child_age: Optional[int] = None,
        context: ContextLike = None,
        external_id: Optional[str] = None,
        customer_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> GroomingResult:
        """Detect grooming patterns in a conversation.

        Args:
            messages: Conversation, each with a ``role`` (adult, child, unknown) and ``content``
            child_age: Age of the child, if known
            context: Platform name or detailed context
            external_id: Your identifier for this request, echoed back
            customer_id: Your end-customer identifier, echoed back
            metadata: Custom key-value pairs stored with the result

        Returns:
            GroomingResult
        """
        validate_messages(messages)
        body_context: Dict[str, Any] = {"child_age": child_age}
        body_context.update(normalize_context(context) or {})
        body = {
            "messages": normalize_messages(messages, sender_key="sender_role", source_key="role"),
            "context": body_context,
            **tracking_fields(external_id, customer_id, metadata),
        }
        data = await self._request("POST", "/api/v1/safety/grooming", json=body)
        return GroomingResult.from_dict(data)

    async def detect_unsafe(
        self,
        content: str,
        context: ContextLike = None,
        external_id: Optional[str] = None,
        customer_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> UnsafeResult:
        """Detect unsafe content (self-harm, violence, hate speech, etc.)."""
        validate_content(content)
        body = {
            "text": content,
            "context": normalize_context(context),
            **tracking_fields(external_id, customer_id, metadata),
        }
        data = await self._request("POST", "/api/v1/safety/unsafe", json=body)
        return UnsafeResult.from_dict(data)

    async def analyze(
        self,
        content: str,
        context: ContextLike = None,
        include: Optional[List[str]] = None,
        external_id: Optional[str] = None,
        customer_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AnalyzeResult:
        """Quick analysis: run bullying and unsafe detection and combine them.

        Args:
            content: Text to analyze
            context: Platform name or detailed context
            include: Detections to run, any of "bullying" and "unsafe" (default both)
            external_id: Your identifier for this request, echoed back
            customer_id: Your end-customer identifier, echoed back
            metadata: Custom key-value pairs stored with the result

        Returns:
            AnalyzeResult with an overall risk level and summary
        """
        validate_content(content)
        include = include if include is not None else ["bullying", "unsafe"]
        tracking = {"external_id": external_id, "customer_id": customer_id, "metadata": metadata}

        bullying_coro = (
            self.detect_bullying(content, context=context, **tracking)
            if "bullying" in include
            else None
        )
        unsafe_coro = (
            self.detect_unsafe(content, context=context, **tracking)
            if "unsafe" in include
            else None
        )
        coros = [c for c in (bullying_coro, unsafe_coro) if c is not None]
        if not coros:
            raise ValidationError("include must contain 'bullying' and/or 'unsafe'")

        results = await asyncio.gather(*coros)
        bullying: Optional[BullyingResult] = None
        unsafe: Optional[UnsafeResult] = None
        for result in results:
            if isinstance(result, BullyingResult):
                bullying = result
            else:
                unsafe = result

        risk_score = max(r.risk_score for r in results)

        findings = []
        if bullying is not None and bullying.is_bullying:
            findings.append(f"Bullying detected ({bullying.severity})")
        if unsafe is not None and unsafe.unsafe:
            findings.append(f"Unsafe content: {', '.join(unsafe.categories)}")
        summary = ". ".join(findings) if findings else "No safety concerns detected."

        actions = {r.recommended_action for r in results}
        recommended_action = next((a for a in _ACTION_PRIORITY if a in actions), "none")

        return AnalyzeResult(
            risk_level=_risk_level(risk_score),
            risk_score=risk_score,
            summary=summary,
            recommended_action=recommended_action,
            bullying=bullying,
            unsafe=unsafe,
            external_id=external_id,
            customer_id=customer_id,
            metadata=metadata,
        )

    # =========================================================================
    # Analysis, guidance and reports
    # =========================================================================

    async def analyze_emotions(
        self,
        content: Optional[str] = None,
        messages: Optional[Sequence[Union[ConversationMessage, Dict[str, Any]]]] = None,
        context: ContextLike = None,
        external_id: Optional[str] = None,
        customer_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> EmotionsResult:
        """Analyze emotions in a single message or a conversation.

        Either ``content`` or ``messages`` is required.
        """
        if content:
            validate_content(content)
            body_messages = [{"sender": "user", "text": content}]
        elif messages:
            validate_messages(messages)
            body_messages = normalize_messages(messages, sender_key="sender", source_key="sender")
        else:
            raise ValidationError("Either content or messages is required")

        body: Dict[str, Any] = {"messages": body_messages}
        if context is not None:
            body["context"] = normalize_context(context)
        body.update(tracking_fields(external_id, customer_id, metadata))

        data = await self._request("POST", "/api/v1/analysis/emotions", json=body)
        return EmotionsResult.from_dict(data)

    async def get_action_plan(
        self,
        situation: str,
        child_age: Optional[int] = None,
        audience: str = "parent",
        severity: Optional[str] = None,
        external_id: Optional[str] = None,
        customer_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ActionPlanResult:
        """Get age-appropriate action guidance for a situation.

        Args:
            situation: Description of what happened
            child_age: Age of the child
            audience: Who the plan is written for: child, parent or educator
            severity: Optional severity hint
        """
        validate_content(situation, field_name="Situation description")
        body = {
            "role": audience,
            "situation": situation,
            "child_age": child_age,
            "severity": severity,
            **tracking_fields(external_id, customer_id, metadata),
        }
        data = await self._request("POST", "/api/v1/guidance/action-plan", json=body)
        return ActionPlanResult.from_dict(data)

    async def generate_report(
        self,
        messages: Sequence[Union[ConversationMessage, Dict[str, Any]]],
        child_age: Optional[int] = None,
        incident: Optional[Dict[str, Any]] = None,
        external_id: Optional[str] = None,
        customer_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ReportResult:
        """Generate an incident report from a conversation."""
        validate_messages(messages)
        meta: Dict[str, Any] = {"child_age": child_age}
        meta.update(incident or {})
        body = {
            "messages": normalize_messages(messages, sender_key="sender", source_key="sender"),
            "meta": meta,
            **tracking_fields(external_id, customer_id, metadata),
        }
        data = await self._request("POST", "/api/v1/reports/incident", json=body)
        return ReportResult.from_dict(data)

    # =========================================================================
    # Policy
    # =========================================================================

    async def get_policy(self) -> Dict[str, Any]:
        """Get the current policy configuration."""
        return await self._request("GET", "/api/v1/policy")

    async def set_policy(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Replace the policy configuration.

        Example:
            >>> await tuteliq.set_policy({"bullying": {"enabled": True, "minRiskScoreToFlag": 0.5}})
        """
        return await self._request("PUT", "/api/v1/policy", json={"config": config})

    # =========================================================================
    # Batch
    # =========================================================================

    async def batch(
        self,
        items: Sequence[Union[BatchItem, Dict[str, Any]]],
        parallel: bool = True,
        continue_on_error: bool = True,
    ) -> BatchAnalyzeResult:
        """Analyze up to 25 items in one request."""
        if not items:
            raise ValidationError("Items array is required and cannot be empty")
        if len(items) > MAX_BATCH_ITEMS:
            raise ValidationError(f"Maximum {MAX_BATCH_ITEMS} items per batch request")

        body_items = []
        for item in items:
            if not isinstance(item, BatchItem):
                item = BatchItem(**item)
            body_item: Dict[str, Any] = {
                "type": item.type,
                "context": normalize_context(item.context),
                "external_id": item.external_id,
            }
            if item.type == "grooming":
                validate_messages(item.messages)
                body_item["messages"] = normalize_messages(
                    item.messages, sender_key="sender_role", source_key="role"
                )
                body_item["child_age"] = item.child_age
            else:
                validate_content(item.content)
                body_item["text"] = item.content
            body_items.append(body_item)

        data = await self._request(
            "POST",
            "/api/v1/batch/analyze",
            json={
                "items": body_items,
                "options": {"parallel": parallel, "continue_on_error": continue_on_error},
            },
        )
        return BatchAnalyzeResult.from_dict(data)

    # =========================================================================
    # Usage
    # =========================================================================

    async def get_usage_summary(self) -> UsageSummary:
        """Get usage for the current billing period."""
        data = await self._request("GET", "/api/v1/usage/summary")
        return UsageSummary.from_dict(data)

    async def get_quota(self) -> UsageQuota:
        """Get the current per-minute quota status."""
        data = await self._request("GET", "/api/v1/usage/quota")
        return UsageQuota.from_dict(data)

    async def get_usage_history(self, days: int = 7) -> Dict[str, Any]:
        """Get daily usage for the last ``days`` days (1-30)."""
        if days < 1 or days > 30:
            raise ValidationError("days must be between 1 and 30")
        return await self._request("GET", "/api/v1/usage/history", params={"days": days})

    async def get_usage_by_tool(self, date: Optional[str] = None) -> Dict[str, Any]:
        """Get request counts per tool and endpoint for a day (YYYY-MM-DD, default today)."""
        params = {"date": date} if date else None
        return await self._request("GET", "/api/v1/usage/by-tool", params=params)

    async def get_usage_monthly(self) -> Dict[str, Any]:
        """Get monthly usage, billing period and upgrade recommendations."""
        return await self._request("GET", "/api/v1/usage/monthly")

    # =========================================================================
    # Media
    # =========================================================================

    async def _analyze_media(
        self,
        path: str,
        file: FileInput,
        filename: str,
        fields: Dict[str, Any],
    ) -> Dict[str, Any]:
        if not file:
            raise ValidationError("file is required")
        if not filename:
            raise ValidationError("filename is required")

        data: Dict[str, str] = {}
        for key, value in fields.items():
            if value is None:
                continue
            if isinstance(value, Enum):
                value = value.value
            data[key] = json.dumps(value) if isinstance(value, dict) else str(value)

        return await self._request("POST", path, files={"file": (filename, file)}, data=data)

    async def analyze_voice(
        self,
        file: FileInput,
        filename: str,
        analysis_type: str = "all",
        file_id: Optional[str] = None,
        age_group: Optional[str] = None,
        language: Optional[str] = None,
        platform: Optional[str] = None,
        child_age: Optional[int] = None,
        external_id: Optional[str] = None,
        customer_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Transcribe an audio file and run safety analysis on the transcript."""
        return await self._analyze_media(
            "/api/v1/safety/voice",
            file,
            filename,
            {
                "analysis_type": analysis_type,
                "file_id": file_id,
                "age_group": age_group,
                "language": language,
                "platform": platform,
                "child_age": child_age,
                **tracking_fields(external_id, customer_id, metadata),
            },
        )

    async def analyze_image(
        self,
        file: FileInput,
        filename: str,
        analysis_type: str = "all",
        file_id: Optional[str] = None,
        age_group: Optional[str] = None,
        platform: Optional[str] = None,
        external_id: Optional[str] = None,
        customer_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Run visual and OCR text safety analysis on an image."""
        return await self._analyze_media(
            "/api/v1/safety/image",
            file,
            filename,
            {
                "analysis_type": analysis_type,
                "file_id": file_id,
                "age_group": age_group,
                "platform": platform,
                **tracking_fields(external_id, customer_id, metadata),
            },
        )

    async def analyze_video(
        self,
        file: FileInput,
        filename: str,
        file_id: Optional[str] = None,
        age_group: Optional[str] = None,
        platform: Optional[str] = None,
        external_id: Optional[str] = None,
        customer_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Run frame-by-frame safety analysis on a video."""
        return await self._analyze_media(
            "/api/v1/safety/video",
            file,
            filename,
            {
                "file_id": file_id,
                "age_group": age_group,
                "platform": platform,
                **tracking_fields(external_id, customer_id, metadata),
            },
        )

    # =========================================================================
    # Webhooks
    # =========================================================================

    async def list_webhooks(self) -> Dict[str, Any]:
        """List configured webhooks."""
        return await self._request("GET", "/api/v1/webhooks")

    async def create_webhook(
        self,
        url: str,
        events: List[str],
        name: Optional[str] = None,
        is_active: bool = True,
    ) -> Dict[str, Any]:
        """Create a webhook. The response includes the signing secret."""
        if not url.startswith("https://"):
            raise ValidationError("Webhook url must use https")
        if not events:
            raise ValidationError("At least one webhook event is required")
        body: Dict[str, Any] = {"url": url, "events": list(events), "is_active": is_active}
        if name:
            body["name"] = name
        return await self._request("POST", "/api/v1/webhooks", json=body)

    async def update_webhook(
        self,
        webhook_id: str,
        url: Optional[str] = None,
        events: Optional[List[str]] = None,
        name: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> Dict[str, Any]:
        """Update fields of an existing webhook."""
        body: Dict[str, Any] = {}
        if url is not None:
            body["url"] = url
        if events is not None:
            body["events"] = list(events)
        if name is not None:
            body["name"] = name
        if is_active is not None:
            body["is_active"] = is_active
        if not body:
            raise ValidationError("Nothing to update")
        return await self._request("PATCH", f"/api/v1/webhooks/{webhook_id}", json=body)

    async def delete_webhook(self, webhook_id: str) -> Dict[str, Any]:
        return await self._request("DELETE", f"/api/v1/webhooks/{webhook_id}")

    async def test_webhook(self, webhook_id: str) -> Dict[str, Any]:
        """Send a test event to a webhook."""
        return await self._request("POST", f"/api/v1/webhooks/{webhook_id}/test")

    async def regenerate_webhook_secret(self, webhook_id: str) -> Dict[str, Any]:
        return await self._request("POST", f"/api/v1/webhooks/{webhook_id}/regenerate-secret")

    # =========================================================================
    # Voice streaming
    # =========================================================================

    async def voice_stream(
        self,
        config: Optional[VoiceStreamConfig] = None,
        handlers: Optional[VoiceStreamHandlers] = None,
    ) -> VoiceStreamSession:
        """Open a real-time voice stream.

        The returned session is already connecting; audio may be sent
        straight away.

        Args:
            config: Stream configuration (interval and analysis types)
            handlers: Event callbacks

        Returns:
            An opened VoiceStreamSession
        """
        session = VoiceStreamSession(
            api_key=self.config.api_key,
            url=f"{self.config.ws_url}/voice/stream",
            config=config,
            handlers=handlers,
            connect=self._ws_connect,
            debug=self.config.debug,
        )
        return await session.open()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def aclose(self) -> None:
        """Close the HTTP client if this client created it."""
        if self._http_client is not None and self._owns_http_client:
            await self._http_client.aclose()
            self._http_client = None
            self._executor = None

    async def __aenter__(self) -> "Tuteliq":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        """Async context manager exit."""
        await self.aclose()
        return False


# Alias kept for callers using the longer name
TuteliqClient = Tuteliq
