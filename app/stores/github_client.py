"""Resilient async GitHub client for repository contents and gists."""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import re
import time
from typing import Any, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from app.stores.contracts import FetchResult, FetchState

logger = logging.getLogger(__name__)

# Credentials can appear in httpx error text (URLs, echoed headers)
_CREDENTIAL_PATTERNS = (
    re.compile(r"(?i)(bearer\s+)[^\s,;]+"),
    re.compile(r"(?i)((?:access_)?token\s*[=:]\s*)[^\s,;&]+"),
    re.compile(r"(gh[pousr]_)[A-Za-z0-9]+"),
    re.compile(r"(github_pat_)[A-Za-z0-9_]+"),
)


def redact_credentials(text: str) -> str:
    """Mask anything that looks like a GitHub credential in `text`."""
    for pattern in _CREDENTIAL_PATTERNS:
        text = pattern.sub(r"\1[redacted]", text)
    return text


def _header_seconds(raw: Optional[str]) -> Optional[float]:
    if raw is None:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


class _RateLimitRetryableError(Exception):
    """Retryable rate-limit signal for tenacity."""


class GitHubClient:
    """Typed GitHub API client with rate-limit resilience."""

    BASE_URL = "https://api.github.com"
    API_VERSION = "2022-11-28"
    ACCEPT_JSON = "application/vnd.github+json"

    def __init__(
        self,
        *,
        token: Optional[str] = None,
        user_agent: str = "PlayCountService/1.0",
        timeout_seconds: float = 30.0,
        max_retries: int = 3,
        backoff_base_seconds: float = 1.0,
        backoff_max_seconds: float = 16.0,
        rate_limit_buffer_seconds: int = 2,
        base_url: Optional[str] = None,
        transport: Optional[Any] = None,
    ) -> None:
        self._token = token
        self._user_agent = user_agent
        self._timeout_seconds = timeout_seconds
        self._max_retries = max(max_retries, 1)
        self._backoff_base_seconds = backoff_base_seconds
        self._backoff_max_seconds = backoff_max_seconds
        self._rate_limit_buffer_seconds = rate_limit_buffer_seconds
        self._base_url = base_url or self.BASE_URL
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "GitHubClient":
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get_content(self, owner: str, repo: str, path: str) -> FetchResult[bytes]:
        """Fetch and base64-decode a single file from the repository contents API."""

        response = await self._request("GET", f"/repos/{owner}/{repo}/contents/{path}")
        if response.state != FetchState.OK:
            return FetchResult(
                state=response.state,
                data=None,
                status_code=response.status_code,
                error=response.error,
                rate_limited=response.rate_limited,
            )

        # Directories come back as a list of entries rather than a file object
        payload = response.data if isinstance(response.data, dict) else {}
        encoded = payload.get("content") if isinstance(payload.get("content"), str) else ""
        encoding = payload.get("encoding") if isinstance(payload.get("encoding"), str) else ""

        if not encoded:
            return FetchResult(state=FetchState.EMPTY, data=b"", status_code=response.status_code)

        if encoding == "base64":
            try:
                decoded = base64.b64decode(encoded)
            except (binascii.Error, ValueError) as exc:
                return FetchResult(
                    state=FetchState.FAILED,
                    error=f"Failed to decode base64 content: {exc}",
                    status_code=response.status_code,
                )
        else:
            decoded = encoded.encode("utf-8")

        if not decoded.strip():
            return FetchResult(state=FetchState.EMPTY, data=decoded, status_code=response.status_code)

        return FetchResult(state=FetchState.OK, data=decoded, status_code=response.status_code)

    async def update_gist_file(self, gist_id: str, filename: str, content: str) -> FetchResult[dict[str, Any]]:
        """Create or replace one file of an existing gist."""

        return await self._request(
            "PATCH",
            f"/gists/{gist_id}",
            json={"files": {filename: {"content": content}}},
        )

    async def _request(self, method: str, path: str, *, json: Optional[dict[str, Any]] = None) -> FetchResult[Any]:
        client = await self._ensure_client()
        response: Optional[httpx.Response] = None

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._max_retries),
                wait=wait_exponential(multiplier=self._backoff_base_seconds, max=self._backoff_max_seconds),
                retry=retry_if_exception_type(_RateLimitRetryableError),
                reraise=True,
            ):
                with attempt:
                    response = await client.request(method, path, json=json)

                    if self._is_rate_limited(response):
                        pause = self._rate_limit_pause(response.headers)
                        logger.warning(
                            f"GitHub throttled {method} {path} ({response.status_code}), pausing {pause:.1f}s"
                        )
                        if pause > 0:
                            await asyncio.sleep(pause)
                        raise _RateLimitRetryableError(
                            f"GitHub rate limit encountered ({response.status_code})"
                        )

                    response.raise_for_status()
                    data = response.json() if response.content else None
                    return FetchResult(state=FetchState.OK, data=data, status_code=response.status_code)
        except _RateLimitRetryableError as exc:
            logger.warning(f"GitHub {method} {path} still throttled after {self._max_retries} attempts")
            return FetchResult(state=FetchState.FAILED, error=str(exc), status_code=429, rate_limited=True)
        except httpx.HTTPError as exc:
            status_code = getattr(getattr(exc, "response", None), "status_code", None)
            error = redact_credentials(str(exc))
            if status_code != 404:
                logger.warning(f"GitHub {method} {path} failed: {error}", extra={"status_code": status_code})
            return FetchResult(state=FetchState.FAILED, error=error, status_code=status_code)
        except ValueError as exc:
            # 2xx response whose body is not JSON
            return FetchResult(
                state=FetchState.FAILED,
                error=f"Invalid JSON response: {exc}",
                status_code=response.status_code if response is not None else None,
            )

        return FetchResult(state=FetchState.FAILED, error="Unknown GitHub request failure")

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client:
            return self._client

        headers = {
            "Accept": self.ACCEPT_JSON,
            "User-Agent": self._user_agent,
            "X-GitHub-Api-Version": self.API_VERSION,
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=headers,
            timeout=self._timeout_seconds,
            transport=self._transport,
        )
        return self._client

    @staticmethod
    def _is_rate_limited(response: httpx.Response) -> bool:
        if response.status_code == 429:
            return True
        if response.status_code != 403:
            return False
        # A plain 403 is a permission problem, not throttling
        return response.headers.get("x-ratelimit-remaining") == "0" or "retry-after" in response.headers

    def _rate_limit_pause(self, headers: httpx.Headers) -> float:
        """Seconds to sleep before the next attempt of a throttled request.

        `retry-after` wins when present; otherwise sleep until the
        `x-ratelimit-reset` epoch plus a small buffer. Without either header
        the base backoff applies.
        """
        retry_after = _header_seconds(headers.get("retry-after"))
        if retry_after is not None:
            return max(retry_after, 0.0)

        reset_at = _header_seconds(headers.get("x-ratelimit-reset"))
        if reset_at is not None:
            return max(reset_at + self._rate_limit_buffer_seconds - time.time(), 0.0)

        return self._backoff_base_seconds
