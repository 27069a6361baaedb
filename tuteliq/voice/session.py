"""Real-time voice streaming session.

Audio is submitted in chunks over a WebSocket while the server sends back
transcriptions and safety alerts. The session ends with a summary of the
whole conversation.

Example:
    >>> from tuteliq import Tuteliq
    >>> from tuteliq.voice import VoiceStreamConfig, VoiceStreamHandlers
    >>>
    >>> async with Tuteliq(api_key="tq_live_...") as client:
    ...     session = await client.voice_stream(
    ...         VoiceStreamConfig(interval_seconds=10, analysis_types=["bullying", "unsafe"]),
    ...         VoiceStreamHandlers(on_alert=lambda alert: print(alert.category)),
    ...     )
    ...     async for chunk in microphone():
    ...         await session.send_audio(chunk)
    ...     summary = await session.end()
    ...     print(summary.overall_risk, summary.transcript)
"""

import asyncio
import json
from typing import Any, Awaitable, Callable, List, Optional, Union
from urllib.parse import urlencode

import websockets
from websockets.exceptions import WebSocketException

from ..errors import StreamError
from .types import (
    AlertEvent,
    ConfigUpdatedEvent,
    ReadyEvent,
    SessionState,
    SessionSummaryEvent,
    StreamErrorEvent,
    TranscriptionEvent,
    VoiceStreamConfig,
    VoiceStreamEvent,
    VoiceStreamHandlers,
    parse_event,
)

ConnectFunc = Callable[[str], Awaitable[Any]]

# Failures of the underlying connection
_CONNECTION_ERRORS = (WebSocketException, OSError)


class VoiceStreamSession:
    """A single voice stream, from connect to final summary.

    Lifecycle: IDLE -> CONNECTING -> ACTIVE -> CLOSING -> CLOSED, with
    ERRORED reachable from any non-terminal state. Audio sent before the
    server is ready is held locally and flushed once it is. Inbound events
    go through one queue and are dispatched to handlers one at a time, in
    the order they arrived. A dropped connection ends the session; there is
    no reconnect.

    All methods must be called from the event loop the session was opened on.
    """

    def __init__(
        self,
        api_key: str,
        url: str,
        config: Optional[VoiceStreamConfig] = None,
        handlers: Optional[VoiceStreamHandlers] = None,
        connect: Optional[ConnectFunc] = None,
        debug: bool = False,
    ):
        """Create a session. Call ``open()`` (or use ``async with``) to connect.

        Args:
            api_key: Tuteliq API key
            url: Voice stream WebSocket URL
            config: Initial stream configuration
            handlers: Event callbacks
            connect: Connection factory (defaults to ``websockets.connect``)
            debug: Enable debug logging
        """
        self._api_key = api_key
        self._url = url
        self.config = config or VoiceStreamConfig()
        self._handlers = handlers or VoiceStreamHandlers()
        self._connect = connect or websockets.connect
        self._debug = debug

        self._state = SessionState.IDLE
        self._ws: Any = None
        self._buffer: List[bytes] = []
        self._transcript: List[str] = []
        self._events: "asyncio.Queue[Union[VoiceStreamEvent, StreamError]]" = asyncio.Queue()
        self._ready = asyncio.Event()
        self._done = asyncio.Event()
        self._end_requested = False
        self._closed_notified = False
        self._error: Optional[StreamError] = None
        self._summary: Optional[SessionSummaryEvent] = None
        self._session_id: Optional[str] = None
        self._reader_task: Optional[asyncio.Task] = None
        self._dispatcher_task: Optional[asyncio.Task] = None

    def _log(self, message: str) -> None:
        """Log a debug message."""
        if self._debug:
            print(f"[Tuteliq.voice] {message}")

    def _set_state(self, state: SessionState) -> None:
        self._log(f"State {self._state.value} -> {state.value}")
        self._state = state

    # ========================
    # Properties
    # ========================

    @property
    def state(self) -> SessionState:
        """Current lifecycle state."""
        return self._state

    @property
    def session_id(self) -> Optional[str]:
        """Server-assigned session id, known once the stream is ready."""
        return self._session_id

    @property
    def transcript(self) -> str:
        """Transcript accumulated from transcription events so far."""
        return " ".join(self._transcript)

    @property
    def error(self) -> Optional[StreamError]:
        """The error that ended the session, if any."""
        return self._error

    @property
    def is_active(self) -> bool:
        return self._state == SessionState.ACTIVE

    # ========================
    # Lifecycle
    # ========================

    async def open(self) -> "VoiceStreamSession":
        """Connect and send the initial configuration.

        Returns:
            The session itself

        Raises:
            StreamError: If the connection cannot be established
            RuntimeError: If the session was already opened
        """
        if self._state != SessionState.IDLE:
            raise RuntimeError(f"Session already opened (state: {self._state.value})")

        self._set_state(SessionState.CONNECTING)
        url = f"{self._url}?{urlencode({'token': self._api_key})}"
        try:
            self._ws = await self._connect(url)
            await self._ws.send(json.dumps(self.config.to_message()))
        except _CONNECTION_ERRORS as e:
            error = StreamError(f"Failed to connect voice stream: {e}", code="CONNECTION_FAILED")
            await self._fail(error, notify=False)
            raise error from e

        self._reader_task = asyncio.create_task(self._read_loop())
        self._dispatcher_task = asyncio.create_task(self._dispatch_loop())
        return self

    async def send_audio(self, chunk: bytes) -> None:
        """Submit a chunk of audio.

        Chunks sent before the server is ready are queued and delivered, in
        order, once it is.

        Raises:
            RuntimeError: If the session is ending or already ended
            StreamError: If the connection fails while sending
        """
        if self._end_requested or self._state in (
            SessionState.CLOSING,
            SessionState.CLOSED,
            SessionState.ERRORED,
        ):
            raise RuntimeError(f"Cannot send audio: session is {self._state.value}")

        self._buffer.append(bytes(chunk))
        if self._state == SessionState.ACTIVE:
            await self._flush()

    async def update_config(self, config: VoiceStreamConfig) -> None:
        """Change the analysis configuration of an active session.

        The server acknowledges with a ``config_updated`` event.
        """
        if self._state != SessionState.ACTIVE:
            raise RuntimeError(f"Cannot update config: session is {self._state.value}")
        self.config = config
        await self._send(json.dumps(config.to_message()))

    async def end(self) -> SessionSummaryEvent:
        """Flush pending audio, end the stream and wait for the summary.

        Returns:
            The final session summary

        Raises:
            StreamError: If the session fails before the summary arrives
            RuntimeError: If the session was never opened or ``end`` was already called
        """
        if self._summary is not None:
            return self._summary
        if self._state.is_terminal:
            raise self._error or StreamError("Voice stream is closed", code="CONNECTION_CLOSED")
        if self._state == SessionState.IDLE:
            raise RuntimeError("Session is not open. Call open() first.")
        if self._end_requested:
            raise RuntimeError("end() has already been called")

        self._end_requested = True
        await self._ready.wait()
        if self._error is not None:
            raise self._error

        if self._state == SessionState.ACTIVE:
            self._set_state(SessionState.CLOSING)
            await self._flush()
            await self._send(json.dumps({"type": "end"}))

        await self._done.wait()
        if self._summary is None:
            raise self._error or StreamError("Voice stream is closed", code="CONNECTION_CLOSED")
        return self._summary

    async def close(self) -> None:
        """Close the connection without waiting for a summary.

        A pending ``end()`` raises ``StreamError`` with code ``CONNECTION_CLOSED``.
        """
        for task in (self._reader_task, self._dispatcher_task):
            if task is not None and not task.done():
                task.cancel()
        if not self._state.is_terminal and self._state != SessionState.IDLE:
            self._error = StreamError(
                "Voice stream closed before the session summary arrived",
                code="CONNECTION_CLOSED",
            )
            self._set_state(SessionState.CLOSED)
        self._ready.set()
        self._done.set()
        await self._close_connection()

    # ========================
    # Internals
    # ========================

    async def _send(self, message: Union[bytes, str]) -> None:
        try:
            await self._ws.send(message)
        except _CONNECTION_ERRORS as e:
            error = StreamError(f"Voice stream connection lost: {e}", code="CONNECTION_LOST")
            await self._fail(error, notify=False)
            raise error from e

    async def _flush(self) -> None:
        while self._buffer:
            await self._send(self._buffer.pop(0))

    def _decode(self, message: Union[bytes, str]) -> Union[VoiceStreamEvent, StreamError]:
        if isinstance(message, bytes):
            return StreamError("Unexpected binary frame from server", code="PROTOCOL_ERROR")
        try:
            data = json.loads(message)
            return parse_event(data)
        except (ValueError, TypeError, AttributeError) as e:
            self._log(f"Failed to parse event: {e}")
            return StreamError(f"Invalid message from server: {e}", code="PROTOCOL_ERROR")

    async def _read_loop(self) -> None:
        """Move inbound frames onto the event queue until a terminal event."""
        try:
            async for message in self._ws:
                item = self._decode(message)
                await self._events.put(item)
                if isinstance(item, StreamError) or item.is_terminal:
                    return
        except _CONNECTION_ERRORS as e:
            self._log(f"Connection error: {e}")
        await self._events.put(
            StreamError("Voice stream connection closed unexpectedly", code="CONNECTION_LOST")
        )

    async def _dispatch_loop(self) -> None:
        """Dispatch queued events, one at a time, until the session ends."""
        while not self._state.is_terminal:
            item = await self._events.get()
            if self._state.is_terminal:
                return
            if isinstance(item, StreamError):
                await self._fail(item)
                return
            try:
                await self._handle(item)
            except StreamError:
                return
            except Exception as e:
                self._log(f"Handler for {item.type.value} raised: {e!r}")
                await self._fail(StreamError(f"Voice stream handler failed: {e}", code="HANDLER_ERROR"))
                return

    async def _handle(self, event: VoiceStreamEvent) -> None:
        handlers = self._handlers

        if isinstance(event, ReadyEvent):
            if self._state != SessionState.CONNECTING:
                return
            self._session_id = event.session_id or None
            await self._flush()
            self._set_state(SessionState.ACTIVE)
            self._ready.set()
            if handlers.on_ready:
                handlers.on_ready(event)

        elif isinstance(event, TranscriptionEvent):
            if event.text:
                self._transcript.append(event.text)
            if handlers.on_transcription:
                handlers.on_transcription(event)

        elif isinstance(event, AlertEvent):
            if handlers.on_alert:
                handlers.on_alert(event)

        elif isinstance(event, ConfigUpdatedEvent):
            if handlers.on_config_updated:
                handlers.on_config_updated(event)

        elif isinstance(event, SessionSummaryEvent):
            if not event.transcript:
                event.transcript = self.transcript
            self._summary = event
            self._set_state(SessionState.CLOSED)
            self._ready.set()
            self._done.set()
            try:
                if handlers.on_summary:
                    handlers.on_summary(event)
            finally:
                await self._close_connection()

        elif isinstance(event, StreamErrorEvent):
            await self._fail(StreamError(event.message, code=event.code))

    async def _fail(self, error: StreamError, notify: bool = True) -> None:
        """Move to ERRORED and surface ``error`` exactly once.

        ``on_error`` is skipped when ``notify`` is False (the caller raises
        ``error`` itself) or when a pending ``end()`` will raise it.
        """
        if self._state.is_terminal:
            return
        self._error = error
        self._set_state(SessionState.ERRORED)
        self._log(f"Session failed: {error.message}")
        self._ready.set()
        self._done.set()
        try:
            if notify and not self._end_requested and self._handlers.on_error:
                self._handlers.on_error(error)
        except Exception as e:
            self._log(f"on_error handler raised: {e!r}")
        finally:
            await self._close_connection()

    async def _close_connection(self) -> None:
        if self._ws is None or self._closed_notified:
            return
        self._closed_notified = True
        try:
            await self._ws.close()
        except _CONNECTION_ERRORS as e:
            self._log(f"Error closing connection: {e}")
        if self._handlers.on_close:
            try:
                self._handlers.on_close(
                    getattr(self._ws, "close_code", None),
                    getattr(self._ws, "close_reason", "") or "",
                )
            except Exception as e:
                self._log(f"on_close handler raised: {e!r}")

    # ========================
    # Context Managers
    # ========================

    async def __aenter__(self) -> "VoiceStreamSession":
        """Async context manager entry."""
        if self._state == SessionState.IDLE:
            await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        """Async context manager exit."""
        await self.close()
        return False
