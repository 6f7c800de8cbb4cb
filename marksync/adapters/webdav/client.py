"""WebDAV API client."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import TYPE_CHECKING, TypeVar

import httpx

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping
    from typing import Self

logger = logging.getLogger(__name__)

T = TypeVar("T")

# HTTP status codes that should trigger a retry (423: resource locked by another WebDAV client)
RETRYABLE_STATUS_CODES = {408, 423, 429, 500, 502, 503, 504}
AUTH_STATUS_CODES = {401, 403}

# Default retry configuration
DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY = 1.0  # seconds
DEFAULT_MAX_DELAY = 30.0  # seconds
DEFAULT_JITTER = 0.1  # 10% jitter

PROPFIND_BODY = (
    '<?xml version="1.0" encoding="utf-8"?>'
    '<d:propfind xmlns:d="DAV:"><d:prop><d:resourcetype/></d:prop></d:propfind>'
)


class WebDAVClientError(Exception):
    """Base exception for WebDAV client errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class WebDAVRetryableError(WebDAVClientError):
    """Error that can be retried."""


class WebDAVAuthError(WebDAVClientError):
    """The server rejected the configured credentials."""


def _is_retryable_error(exc: Exception) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in RETRYABLE_STATUS_CODES
    # connect, read and write failures plus truncated responses
    if isinstance(exc, (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)):
        return True
    return isinstance(exc, WebDAVRetryableError)


def _calculate_delay(attempt: int, base_delay: float, max_delay: float, jitter: float) -> float:
    """Calculate delay with exponential backoff and jitter.

    Args:
        attempt: Current attempt number (0-indexed)
        base_delay: Base delay in seconds
        max_delay: Maximum delay in seconds
        jitter: Jitter factor (0.1 = 10% random variation)

    Returns:
        Delay in seconds
    """
    delay = min(base_delay * (2**attempt), max_delay)
    jitter_amount = delay * jitter * random.random()
    return delay + jitter_amount


async def retry_with_backoff(
    func: Callable[[], Awaitable[T]],
    *,
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
    jitter: float = DEFAULT_JITTER,
    operation_name: str = "operation",
) -> T:
    """Execute an async function with exponential backoff retry.

    Args:
        func: Async function to execute
        max_retries: Maximum number of retry attempts
        base_delay: Base delay between retries in seconds
        max_delay: Maximum delay between retries
        jitter: Random jitter factor to add to delay
        operation_name: Name of operation for logging

    Returns:
        Result of the function

    Raises:
        WebDAVClientError: If all retries are exhausted, or on a
            non-retryable httpx error
    """
    for attempt in range(max_retries + 1):
        try:
            return await func()
        except Exception as e:
            if not _is_retryable_error(e):
                if isinstance(e, httpx.HTTPError):
                    raise WebDAVClientError(f"{operation_name} failed: {e}") from e
                raise

            if attempt == max_retries:
                logger.error(
                    "webdav_retry_exhausted",
                    extra={
                        "operation": operation_name,
                        "attempts": attempt + 1,
                        "error": str(e),
                    },
                )
                raise WebDAVClientError(
                    f"{operation_name} failed after {attempt + 1} attempts: {e}"
                ) from e

            delay = _calculate_delay(attempt, base_delay, max_delay, jitter)
            logger.warning(
                "webdav_retry_attempt",
                extra={
                    "operation": operation_name,
                    "attempt": attempt + 1,
                    "max_retries": max_retries,
                    "delay_seconds": round(delay, 2),
                    "error": str(e),
                },
            )
            await asyncio.sleep(delay)

    raise WebDAVClientError(f"{operation_name} failed")


def _raise_for_status(response: httpx.Response, operation: str) -> None:
    status = response.status_code
    if status in AUTH_STATUS_CODES:
        raise WebDAVAuthError(
            f"{operation}: authentication rejected (HTTP {status})", status_code=status
        )
    if status in RETRYABLE_STATUS_CODES:
        raise WebDAVRetryableError(f"{operation}: HTTP {status}", status_code=status)
    if status >= 400:
        raise WebDAVClientError(f"{operation}: HTTP {status}", status_code=status)


class WebDAVClient:
    """Async WebDAV client covering the four operations sync needs.

    Paths are absolute within the server root given by ``base_url``
    (``/bookmarks/meta.json``).
    """

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        timeout: float = 30.0,
        *,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_base_delay: float = DEFAULT_BASE_DELAY,
        retry_max_delay: float = DEFAULT_MAX_DELAY,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.username = username
        self._password = password
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.retry_max_delay = retry_max_delay
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> Self:
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            auth=httpx.BasicAuth(self.username, self._password),
            timeout=self.timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise WebDAVClientError("Client not initialized. Use async context manager.")
        return self._client

    async def _with_retry(self, func: Callable[[], Awaitable[T]], operation_name: str) -> T:
        return await retry_with_backoff(
            func,
            max_retries=self.max_retries,
            base_delay=self.retry_base_delay,
            max_delay=self.retry_max_delay,
            operation_name=operation_name,
        )

    async def exists(self, path: str) -> bool:
        async def _propfind() -> bool:
            response = await self.client.request(
                "PROPFIND",
                path,
                headers={"Depth": "0", "Content-Type": "application/xml"},
                content=PROPFIND_BODY,
            )
            if response.status_code == 404:
                return False
            _raise_for_status(response, "exists")
            return True

        return await self._with_retry(_propfind, "exists")

    async def download_file(self, path: str, binary: bool = False) -> bytes | str:
        async def _download() -> bytes | str:
            response = await self.client.get(path)
            _raise_for_status(response, "download_file")
            return response.content if binary else response.text

        content = await self._with_retry(_download, "download_file")
        logger.debug("webdav_downloaded", extra={"path": path, "bytes": len(content)})
        return content

    async def upload_file(
        self, path: str, content: bytes | str, headers: Mapping[str, str] | None = None
    ) -> None:
        body = content.encode("utf-8") if isinstance(content, str) else content

        async def _upload() -> None:
            response = await self.client.put(path, content=body, headers=dict(headers or {}))
            _raise_for_status(response, "upload_file")

        await self._with_retry(_upload, "upload_file")
        logger.debug("webdav_uploaded", extra={"path": path, "bytes": len(body)})

    async def ensure_folder(self, path: str) -> None:
        """Create *path* and any missing parents with MKCOL."""
        current = ""
        for segment in [part for part in path.split("/") if part]:
            current = f"{current}/{segment}"
            folder = f"{current}/"

            async def _mkcol(folder: str = folder) -> None:
                response = await self.client.request("MKCOL", folder)
                # 405: the collection already exists
                if response.status_code in (200, 201, 301, 405):
                    return
                _raise_for_status(response, "ensure_folder")

            await self._with_retry(_mkcol, "ensure_folder")
        logger.debug("webdav_folder_ready", extra={"path": path})
