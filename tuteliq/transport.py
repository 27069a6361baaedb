"""Single-attempt HTTP transport for the Tuteliq API."""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from .errors import NetworkError, RequestTimeoutError, TuteliqError, classify_error
from .types import MetadataSnapshot


@dataclass
class RequestContext:
    """One logical API call.

    Everything except ``attempt`` is fixed for the life of the call;
    ``attempt`` counts network attempts made so far.
    """

    method: str
    path: str
    json: Optional[Any] = None
    params: Optional[Dict[str, Any]] = None
    files: Optional[Dict[str, Any]] = None
    data: Optional[Dict[str, str]] = None
    timeout_ms: int = 30000
    attempt: int = 0

    @property
    def is_multipart(self) -> bool:
        return self.files is not None


def _safe_json(response: httpx.Response) -> Any:
    """Decode an error body, falling back to an empty object."""
    try:
        return response.json()
    except ValueError:
        return {}


class RequestExecutor:
    """Performs exactly one network attempt for a ``RequestContext``.

    Response metadata is recorded on every attempt, including failed ones,
    so rate limit and usage data stay current after errors.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        http_client: httpx.AsyncClient,
        metadata: MetadataSnapshot,
        debug: bool = False,
    ):
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._client = http_client
        self._metadata = metadata
        self._debug = debug

    def _log(self, message: str) -> None:
        """Log a message if debug is enabled."""
        if self._debug:
            print(f"[Tuteliq.transport] {message}")

    def _get_headers(self, ctx: RequestContext) -> Dict[str, str]:
        """Get request headers."""
        headers = {"Authorization": f"Bearer {self._api_key}"}
        # Multipart bodies get their Content-Type (with boundary) from httpx
        if ctx.json is not None and not ctx.is_multipart:
            headers["Content-Type"] = "application/json"
        return headers

    async def execute(self, ctx: RequestContext) -> Any:
        """Send the request once.

        Args:
            ctx: The request to send

        Returns:
            Decoded JSON body of a 2xx response ({} when the body is empty)

        Raises:
            RequestTimeoutError: If the timeout fires before a response arrives
            NetworkError: On transport-level failures
            TuteliqError: Classified error for non-2xx responses
        """
        ctx.attempt += 1
        url = f"{self._base_url}{ctx.path}"
        start = time.monotonic()

        try:
            response = await asyncio.wait_for(
                self._client.request(
                    ctx.method,
                    url,
                    json=ctx.json if not ctx.is_multipart else None,
                    params=ctx.params,
                    files=ctx.files,
                    data=ctx.data,
                    headers=self._get_headers(ctx),
                ),
                timeout=ctx.timeout_ms / 1000,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            self._metadata.record_failure(self._elapsed_ms(start))
            self._log(f"{ctx.method} {ctx.path} timed out (attempt {ctx.attempt})")
            raise RequestTimeoutError(f"Request timed out after {ctx.timeout_ms}ms") from None
        except httpx.TransportError as e:
            self._metadata.record_failure(self._elapsed_ms(start))
            self._log(f"{ctx.method} {ctx.path} network failure (attempt {ctx.attempt}): {e}")
            raise NetworkError(str(e) or type(e).__name__) from e
        except httpx.HTTPError as e:
            self._metadata.record_failure(self._elapsed_ms(start))
            raise TuteliqError(str(e) or type(e).__name__) from e

        self._metadata.record_response(response.headers, self._elapsed_ms(start))

        if not response.is_success:
            error = classify_error(response.status_code, _safe_json(response), response.headers)
            self._log(
                f"{ctx.method} {ctx.path} failed with {response.status_code} "
                f"(attempt {ctx.attempt}): {error.message}"
            )
            raise error

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise TuteliqError(
                "Invalid JSON in response body", status_code=response.status_code
            ) from e

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int((time.monotonic() - start) * 1000)
