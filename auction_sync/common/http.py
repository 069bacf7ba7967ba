"""Session-bound HTTP access to the listing providers.

Every adapter run gets its own :class:`HttpClient` (one ``requests.Session``)
so cookies from a landing page are replayed on the follow-up query. Requests
to one host are spaced out, transient failures are retried with tenacity,
and everything else surfaces as a typed :class:`PipelineError`.
"""

from __future__ import annotations

import json
import threading
import time
from dataclasses import dataclass
from types import TracebackType
from typing import Any
from urllib.parse import urlparse

import requests
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

from auction_sync.common.constants import USER_AGENT
from auction_sync.common.errors import DecodeError, ProtocolError, TransportError

RETRYABLE_STATUS_CODES = {408, 425, 429, 500, 502, 503, 504}
HTML_MARKERS = ("<!doctype html", "<html")
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded; charset=UTF-8"
JSON_ACCEPT = "application/json, text/plain, */*"


@dataclass(frozen=True)
class TimeoutConfig:
    connect: float = 10.0
    read: float = 60.0


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int = 3
    multiplier: float = 1.0
    max_wait: float = 15.0


class RetryableTransportError(TransportError):
    """Timeouts and throttling responses; these are retried."""


class HttpRequestError(TransportError):
    error_code = "HTTP_ERROR"


class RetryableHttpError(HttpRequestError, RetryableTransportError):
    pass


class HostThrottle:
    """Minimum spacing between requests to the same host, no bursts."""

    def __init__(self, rate_per_sec: float) -> None:
        self.interval = 1.0 / rate_per_sec if rate_per_sec > 0 else 0.0
        self._next_slot: dict[str, float] = {}
        self._lock = threading.Lock()

    def wait(self, host: str) -> None:
        with self._lock:
            now = time.monotonic()
            slot = max(self._next_slot.get(host, now), now)
            self._next_slot[host] = slot + self.interval
        delay = slot - now
        if delay > 0:
            time.sleep(delay)


def looks_like_html(text: str) -> bool:
    head = text.lstrip("\ufeff \t\r\n")[:64].lower()
    return head.startswith(HTML_MARKERS)


def decode_text(body: bytes, encoding: str, url: str) -> str:
    """Decode ``body`` strictly with the provider's charset."""
    try:
        return body.decode(encoding)
    except (LookupError, UnicodeDecodeError) as exc:
        raise DecodeError(f"Body from {url} is not valid {encoding}: {exc}") from exc


def decode_json(text: str, url: str) -> Any:
    if looks_like_html(text):
        raise ProtocolError(f"HTML page returned where JSON was expected from {url}")
    try:
        return json.loads(text)
    except ValueError as exc:
        raise DecodeError(f"Invalid JSON payload from {url}: {text[:200]!r}") from exc


class HttpClient:
    """One ``requests.Session`` per adapter run; not shared between threads."""

    def __init__(
        self,
        *,
        timeout: TimeoutConfig | None = None,
        retry: RetryConfig | None = None,
        rate_per_sec: float = 2.0,
        user_agent: str = USER_AGENT,
    ) -> None:
        self.timeout = timeout or TimeoutConfig()
        self.retry = retry or RetryConfig()
        self.user_agent = user_agent
        self.session = requests.Session()
        self.throttle = HostThrottle(rate_per_sec)
        self._retrying = Retrying(
            stop=stop_after_attempt(self.retry.max_attempts),
            wait=wait_exponential_jitter(initial=self.retry.multiplier, max=self.retry.max_wait, jitter=1.0),
            retry=retry_if_exception_type(RetryableTransportError),
            reraise=True,
        )

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _send(self, method: str, url: str, headers: dict[str, str] | None, timeout: TimeoutConfig | None, **kwargs: Any) -> requests.Response:
        limits = timeout or self.timeout
        self.throttle.wait(urlparse(url).netloc)
        try:
            response = self.session.request(
                method=method,
                url=url,
                headers={"User-Agent": self.user_agent, **(headers or {})},
                timeout=(limits.connect, limits.read),
                **kwargs,
            )
        except requests.Timeout as exc:
            raise RetryableTransportError(f"Timed out requesting {url}") from exc
        except requests.RequestException as exc:
            raise TransportError(f"Request to {url} failed: {exc}") from exc

        if response.status_code in RETRYABLE_STATUS_CODES:
            raise RetryableHttpError(f"Retryable HTTP status {response.status_code} from {url}")
        if response.status_code >= 400:
            raise HttpRequestError(f"HTTP status {response.status_code} from {url}")
        return response

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        timeout: TimeoutConfig | None = None,
        **kwargs: Any,
    ) -> requests.Response:
        """Send with retries; ``kwargs`` go to ``Session.request`` (``params``, ``data``)."""
        return self._retrying(self._send, method, url, headers, timeout, **kwargs)

    def get(self, url: str, **kwargs: Any) -> requests.Response:
        return self.request("GET", url, **kwargs)

    def post_form(self, url: str, *, data: dict[str, Any], headers: dict[str, str] | None = None, **kwargs: Any) -> requests.Response:
        return self.request("POST", url, data=data, headers={"Content-Type": FORM_CONTENT_TYPE, **(headers or {})}, **kwargs)

    def get_json(self, url: str, *, headers: dict[str, str] | None = None, **kwargs: Any) -> Any:
        response = self.get(url, headers={"Accept": JSON_ACCEPT, **(headers or {})}, **kwargs)
        return decode_json(response.text, url)

    def post_form_json(self, url: str, *, data: dict[str, Any], **kwargs: Any) -> Any:
        return decode_json(self.post_form(url, data=data, **kwargs).text, url)

    def cookie_header(self) -> str:
        return "; ".join(f"{cookie.name}={cookie.value}" for cookie in self.session.cookies)
