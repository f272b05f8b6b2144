"""Bounded HTTP fetching for scans.

This module handles:
- FIFO concurrency limiting shared by every fetch of a scan
- Retry with exponential backoff on transport errors, 429 and 5xx
- Per-attempt deadlines covering the whole body, and the scan user agent
- Error classification for logs

Nothing here raises to the caller: every failure collapses to ``None`` so
detection code can treat "could not determine" uniformly.
"""

import logging
import socket
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, Mapping, Optional, Union

import requests

from ..config import ScanOptions
from ..logging_utils import log_suppressed

logger = logging.getLogger('wpvet.network')

RETRYABLE_STATUS = 429
BODY_CHUNK_SIZE = 8192


# ============ Concurrency Limiter ============

class ConcurrencyLimiter:
    """Counting semaphore with strict FIFO hand-off.

    A release with waiters queued passes the slot straight to the oldest
    waiter, so the in-flight count never dips and late arrivals cannot
    overtake the queue. ``peak`` records the highest in-flight count seen.
    """

    def __init__(self, limit: int):
        self.limit = max(1, int(limit))
        self._lock = threading.Lock()
        self._active = 0
        self._waiters: Deque[threading.Event] = deque()
        self.peak = 0

    def acquire(self) -> None:
        with self._lock:
            if self._active < self.limit and not self._waiters:
                self._active += 1
                self.peak = max(self.peak, self._active)
                return
            ticket = threading.Event()
            self._waiters.append(ticket)
        # the releaser keeps _active unchanged and hands us its slot
        ticket.wait()

    def release(self) -> None:
        with self._lock:
            if self._waiters:
                self._waiters.popleft().set()
            elif self._active > 0:
                self._active -= 1

    @property
    def in_flight(self) -> int:
        with self._lock:
            return self._active

    @property
    def waiting(self) -> int:
        with self._lock:
            return len(self._waiters)

    def __enter__(self) -> 'ConcurrencyLimiter':
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


# ============ Fetch Client ============

@dataclass
class FetchResponse:
    status: int
    text: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def header(self, name: str, default: str = '') -> str:
        for key, value in self.headers.items():
            if key.lower() == name.lower():
                return value
        return default


def is_retryable_status(status: int) -> bool:
    return status == RETRYABLE_STATUS or status >= 500


class FetchClient:
    """Issues requests for one scan through a shared limiter.

    ``session`` and ``sleep`` are injectable so tests can fake the network
    and the clock. Backoff sleeps happen while the slot is held; the retry
    budget is part of one logical fetch.
    """

    def __init__(
        self,
        options: Optional[ScanOptions] = None,
        *,
        session: Optional[Any] = None,
        sleep: Callable[[float], None] = time.sleep,
        limiter: Optional[ConcurrencyLimiter] = None,
    ):
        self.options = options or ScanOptions()
        self.session = session if session is not None else requests.Session()
        self.limiter = limiter or ConcurrencyLimiter(self.options.concurrency)
        self._sleep = sleep

    def backoff_seconds(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (1-based)."""
        return (self.options.retry_delay_ms * (2 ** (attempt - 1))) / 1000.0

    def request(
        self,
        method: str,
        url: str,
        *,
        data: Union[str, bytes, None] = None,
        headers: Optional[Dict[str, str]] = None,
        allow_redirects: bool = True,
    ) -> Optional[FetchResponse]:
        """Perform ``method`` on ``url``; None once retries are exhausted on transport errors.

        Each attempt, body included, must finish within ``timeout_ms``; an
        attempt that runs over is aborted and counts as a transport error.
        A final 429/5xx response is returned as-is after the last retry.
        """
        req_headers = {'User-Agent': self.options.user_agent}
        if headers:
            req_headers.update(headers)
        attempt = 0
        with self.limiter:
            while True:
                if attempt > 0:
                    self._sleep(self.backoff_seconds(attempt))
                deadline = time.monotonic() + self.options.timeout_seconds
                try:
                    resp = self.session.request(
                        method,
                        url,
                        headers=req_headers,
                        data=data,
                        timeout=self.options.timeout_seconds,
                        allow_redirects=allow_redirects,
                        stream=True,
                    )
                    body = _read_body(resp, deadline)
                except (requests.RequestException, ValueError) as exc:
                    log_suppressed(logger, exc, f'fetch:{classify_error(exc)}')
                    if attempt < self.options.retry:
                        attempt += 1
                        continue
                    logger.debug('fetch gave up method=%s url=%s attempts=%d err=%s',
                                  method, url, attempt + 1, exc)
                    return None
                if is_retryable_status(resp.status_code) and attempt < self.options.retry:
                    logger.debug('retrying url=%s status=%s attempt=%d', url, resp.status_code, attempt + 1)
                    attempt += 1
                    continue
                return _to_response(resp, url, body)

    def get(self, url: str, **kwargs) -> Optional[FetchResponse]:
        return self.request('GET', url, **kwargs)

    def head(self, url: str, **kwargs) -> Optional[FetchResponse]:
        return self.request('HEAD', url, **kwargs)

    def post(self, url: str, data: Union[str, bytes, None] = None, **kwargs) -> Optional[FetchResponse]:
        return self.request('POST', url, data=data, **kwargs)

    def get_text(self, url: str) -> Optional[str]:
        """Body of a successful GET, otherwise None."""
        resp = self.get(url)
        if resp is None or not resp.ok:
            return None
        return resp.text

    def close(self) -> None:
        close = getattr(self.session, 'close', None)
        if callable(close):
            close()


class FetchDeadlineExceeded(requests.Timeout):
    """One attempt, body included, ran past its time budget."""


def _shutdown_socket(resp: Any) -> None:
    # wakes a read blocked on a server that drips bytes under the read timeout
    conn = getattr(getattr(resp, 'raw', None), 'connection', None)
    sock = getattr(conn, 'sock', None)
    if sock is None:
        return
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError as exc:
        logger.debug('socket shutdown after deadline failed: %s', exc)


def _read_body(resp: Any, deadline: float) -> bytes:
    """Drain a streamed response, aborting once ``deadline`` (monotonic) passes.

    A watchdog timer shuts the connection down at the deadline so a read
    blocked mid-chunk returns promptly. The response is always closed.
    """
    expired = threading.Event()

    def _abort() -> None:
        expired.set()
        _shutdown_socket(resp)

    timer = threading.Timer(max(0.0, deadline - time.monotonic()), _abort)
    timer.daemon = True
    timer.start()
    chunks = []
    try:
        for chunk in resp.iter_content(chunk_size=BODY_CHUNK_SIZE):
            if expired.is_set() or time.monotonic() > deadline:
                raise FetchDeadlineExceeded('read deadline exceeded')
            if chunk:
                chunks.append(chunk)
    except requests.RequestException:
        if expired.is_set():
            raise FetchDeadlineExceeded('read deadline exceeded')
        raise
    finally:
        timer.cancel()
        resp.close()
    if expired.is_set():
        raise FetchDeadlineExceeded('read deadline exceeded')
    return b''.join(chunks)


def _to_response(resp: Any, requested_url: str, body: bytes) -> FetchResponse:
    return FetchResponse(
        status=int(resp.status_code),
        text=body.decode('utf-8', errors='replace'),
        url=getattr(resp, 'url', None) or requested_url,
        headers=dict(getattr(resp, 'headers', None) or {}),
    )


# ============ Error Classification ============

def classify_error(err: Union[Exception, str]) -> str:
    """Classify an error into a category for logs.

    Returns:
        One of: timeout, dns, ssl, conn, other
    """
    if isinstance(err, requests.Timeout):
        return 'timeout'
    msg = str(err).lower()
    if 'timeout' in msg or 'timed out' in msg:
        return 'timeout'
    if isinstance(err, socket.gaierror) or 'nxdomain' in msg or 'name or service not known' in msg \
            or 'failed to resolve' in msg or 'nodename nor servname' in msg:
        return 'dns'
    if isinstance(err, requests.exceptions.SSLError) or 'ssl' in msg or 'certificate' in msg:
        return 'ssl'
    if 'connection refused' in msg or 'network is unreachable' in msg \
            or isinstance(err, requests.ConnectionError):
        return 'conn'
    return 'other'


__all__ = [
    'ConcurrencyLimiter',
    'FetchClient',
    'FetchDeadlineExceeded',
    'FetchResponse',
    'is_retryable_status',
    'classify_error',
]
