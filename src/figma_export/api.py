"""Figma REST API client with response caching and rate-limit retries."""

import math
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

import requests
from loguru import logger

from figma_export.cache import ResponseCache
from figma_export.config import API_ROOT
from figma_export.core.urls import normalize_node_id
from figma_export.errors import (
    DownloadError,
    ExportCancelledError,
    RateLimitExceededError,
    TransportError,
    UpstreamApiError,
)
from figma_export.models.node import ExportOptions, NodesResponse

AUTH_HEADER = "X-FIGMA-TOKEN"

# Failures where the request may succeed if simply sent again.
_TRANSPORT_ERRORS = (
    requests.ConnectionError,
    requests.Timeout,
    requests.exceptions.ChunkedEncodingError,
    requests.exceptions.ContentDecodingError,
)


@dataclass(frozen=True)
class RetryPolicy:
    """How often to retry rate-limited or failed requests.

    Args:
        max_attempts: Total attempts, including the first request.
        default_delay: Seconds to wait when the server gives no Retry-After,
            and between attempts after a transport failure.
    """

    max_attempts: int = 3
    default_delay: float = 1.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            msg = f"max_attempts must be at least 1, got {self.max_attempts!r}"
            raise ValueError(msg)


def parse_retry_after_seconds(value: str | None) -> float | None:
    """Parse a numeric Retry-After header. HTTP-date values are not supported."""
    if not value:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    if not math.isfinite(seconds) or seconds < 0:
        return None
    return seconds


class FigmaApi:
    """Encapsulated Figma API with caching and retries.

    The token is only ever placed in the session headers; nothing here logs it.
    """

    def __init__(
        self,
        token: str,
        *,
        cache: ResponseCache | None = None,
        api_root: str = API_ROOT,
        retry: RetryPolicy | None = None,
        timeout: float = 30.0,
        session: requests.Session | None = None,
        download_session: requests.Session | None = None,
        sleep: Callable[[float], None] | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        if not token:
            msg = "Figma token must not be empty"
            raise ValueError(msg)
        self.cache = cache
        self.api_root = api_root.rstrip("/")
        self.retry = retry or RetryPolicy()
        self.timeout = timeout
        self.cancel_event = cancel_event or threading.Event()
        self._sleep = sleep or self._wait_or_cancel

        self.sess = session or requests.Session()
        self.sess.headers[AUTH_HEADER] = token

        # Render URLs are pre-signed and must not receive the token.
        self._download_sess = download_session or requests.Session()

        logger.debug(
            "API ready: root {!r}, cache {!r}, max attempts {}",
            self.api_root,
            str(cache.cache_dir) if cache else None,
            self.retry.max_attempts,
        )

    def fetch_nodes(
        self, file_id: str, node_ids: Iterable[str], *, use_cache: bool = True
    ) -> NodesResponse:
        """Fetch metadata for all requested nodes in one batched request."""
        ids = [normalize_node_id(x) for x in node_ids]

        if use_cache and self.cache is not None:
            cached = self.cache.lookup(file_id, ids)
            if cached is not None:
                logger.info("Using cached node data for {} node(s)", len(ids))
                return NodesResponse.from_dict(cached)

        data = self._get_json(f"files/{file_id}/nodes", {"ids": ",".join(ids)}, what="nodes")
        if data.get("err"):
            msg = f"Figma API error: {data['err']}"
            raise UpstreamApiError(msg, status=data.get("status"))

        if use_cache and self.cache is not None:
            self.cache.store(file_id, ids, data)
        return NodesResponse.from_dict(data)

    def fetch_image_urls(
        self, file_id: str, node_ids: Iterable[str], options: ExportOptions
    ) -> dict[str, str | None]:
        """Ask Figma to render nodes. Returns node id -> short-lived download URL."""
        ids = [normalize_node_id(x) for x in node_ids]
        params = {"ids": ",".join(ids), "format": options.format, "scale": f"{options.scale:g}"}
        data = self._get_json(f"images/{file_id}", params, what="image URLs")
        if data.get("err"):
            msg = f"Figma API error: {data['err']}"
            raise UpstreamApiError(msg, status=data.get("status"))
        return dict(data.get("images") or {})

    def download_image(self, url: str) -> bytes:
        """Download a rendered image. No retries, no auth header."""
        try:
            r = self._download_sess.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            msg = f"Failed to download image: {e}"
            raise DownloadError(msg) from e
        if not r.ok:
            msg = f"Failed to download image: {r.status_code} {r.reason}"
            raise DownloadError(msg)
        return r.content

    def _get_json(self, path: str, params: dict[str, str], *, what: str) -> dict[str, Any]:
        r = self._get_with_retry(f"{self.api_root}/{path}", params)
        if not r.ok:
            detail = _error_detail(r)
            msg = f"Failed to fetch {what}: {r.status_code} {r.reason}"
            if detail:
                msg += f" ({detail})"
            raise UpstreamApiError(msg, status=r.status_code)
        try:
            rv = r.json()
        except ValueError as e:
            msg = f"Failed to fetch {what}: response is not JSON"
            raise UpstreamApiError(msg, status=r.status_code) from e
        if not isinstance(rv, dict):
            msg = f"Failed to fetch {what}: response is not a JSON object"
            raise UpstreamApiError(msg, status=r.status_code)
        return rv

    def _get_with_retry(self, url: str, params: dict[str, str]) -> requests.Response:
        """GET with retries on 429 and transport failures.

        Raises:
            RateLimitExceededError: Still rate limited after the last attempt.
            TransportError: Connection failures on every attempt.
            ExportCancelledError: Cancelled while waiting to retry.
        """
        max_attempts = self.retry.max_attempts
        last_error: requests.RequestException | None = None

        for attempt in range(1, max_attempts + 1):
            self._check_cancelled()
            logger.debug("Making request: {} (attempt {}/{})", url, attempt, max_attempts)
            try:
                r = self.sess.get(url, params=params, timeout=self.timeout)
            except _TRANSPORT_ERRORS as e:
                last_error = e
                logger.warning("Request failed ({}), attempt {}/{}", e, attempt, max_attempts)
                if attempt < max_attempts:
                    self._sleep(self.retry.default_delay)
                continue

            if r.status_code != 429:
                return r

            last_error = None
            wait = parse_retry_after_seconds(r.headers.get("Retry-After"))
            if wait is None:
                wait = self.retry.default_delay
            if attempt < max_attempts:
                logger.info("Rate limited. Retrying after {:g}s...", wait)
                self._sleep(wait)

        if last_error is not None:
            msg = f"Request to {url} failed after {max_attempts} attempt(s): {last_error}"
            raise TransportError(msg) from last_error
        msg = f"Rate limit still exceeded after {max_attempts} attempt(s): {url}"
        raise RateLimitExceededError(msg)

    def _check_cancelled(self) -> None:
        if self.cancel_event.is_set():
            msg = "Export cancelled"
            raise ExportCancelledError(msg)

    def _wait_or_cancel(self, seconds: float) -> None:
        if self.cancel_event.wait(seconds):
            msg = "Export cancelled while waiting to retry"
            raise ExportCancelledError(msg)


def _error_detail(r: requests.Response) -> str | None:
    """Pull the ``err`` message out of an error body, if it has one."""
    try:
        body = r.json()
    except ValueError:
        return None
    if isinstance(body, dict) and body.get("err"):
        return str(body["err"])
    return None
