"""
Retrying Fetch Transport
========================
Bounded-timeout HTTP GET with a single automatic retry on timeout.

This is the only retry policy in the system:
- A request that exceeds its timeout is aborted and fails with "Request timeout"
- Timeouts are retried exactly once (no backoff)
- HTTP error statuses and connection failures propagate immediately

The timeout bounds the whole request, body included. requests' own timeout
only bounds each socket operation, so every GET runs on a daemon worker
thread and the caller stops waiting at the deadline.
"""

import logging
import threading
import time

import requests

from config import settings
from weather.exceptions import (
    HTTPStatusError,
    MalformedPayloadError,
    NetworkError,
    RequestTimeoutError,
)

logger = logging.getLogger(__name__)


def is_timeout_error(error: Exception) -> bool:
    """Classify a failure as a timeout by its message."""
    return 'timeout' in str(error).lower()


class PendingRequest(threading.Thread):
    """
    One GET in flight on a daemon thread.

    A request abandoned at its deadline keeps running until the socket gives
    up; its response is closed as soon as it arrives.
    """

    def __init__(self, session: requests.Session, url: str, params: dict = None,
                 headers: dict = None, timeout_s: float = None):
        super().__init__(name=f"fetch {url}", daemon=True)
        self.session = session
        self.url = url
        self.params = params
        self.headers = headers
        self.timeout_s = timeout_s
        self.response = None
        self.error = None
        self.finished = threading.Event()
        self._abandoned = False
        self._result_lock = threading.Lock()

    def run(self):
        try:
            response = self.session.get(self.url, params=self.params, headers=self.headers,
                                        timeout=self.timeout_s)
        except Exception as e:
            self.error = e
        else:
            with self._result_lock:
                if self._abandoned:
                    response.close()
                else:
                    self.response = response
        finally:
            self.finished.set()

    def abandon(self):
        """Stop caring about the result and release the connection."""
        with self._result_lock:
            self._abandoned = True
            if self.response is not None:
                self.response.close()
                self.response = None


class Transport:
    """
    Thin wrapper over a requests Session used by every provider adapter.

    Usage:
        with Transport() as transport:
            payload, elapsed_ms = transport.get_json(url)
    """

    def __init__(self, session: requests.Session = None,
                 timeout_ms: int = None, retries: int = None):
        """
        Initialize the transport.

        Args:
            session: requests Session to use. A new one is created if None.
            timeout_ms: Per-request timeout in milliseconds
            retries: Extra attempts allowed after a timeout
        """
        self.session = session or requests.Session()
        self.timeout_ms = timeout_ms if timeout_ms is not None else settings.REQUEST_TIMEOUT_MS
        self.retries = retries if retries is not None else settings.REQUEST_RETRIES

    def close(self):
        """Close the underlying session and its pooled connections."""
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def fetch_with_timeout(self, url: str, params: dict = None, headers: dict = None,
                           timeout_ms: int = None) -> requests.Response:
        """
        Perform one GET request bounded by a timeout.

        Args:
            url: Request URL
            params: Query parameters
            headers: Request headers
            timeout_ms: Timeout in milliseconds (transport default if None)

        Returns:
            The successful (2xx) response, body already read

        Raises:
            RequestTimeoutError: The request did not complete in time
            HTTPStatusError: The provider answered with a non-2xx status
            NetworkError: The connection failed
        """
        timeout_ms = timeout_ms if timeout_ms is not None else self.timeout_ms
        timeout_s = timeout_ms / 1000.0

        pending = PendingRequest(self.session, url, params=params, headers=headers,
                                 timeout_s=timeout_s)
        pending.start()
        if not pending.finished.wait(timeout_s):
            pending.abandon()
            logger.debug("Abandoned %s after %d ms", url, timeout_ms)
            raise RequestTimeoutError()

        if pending.error is not None:
            error = pending.error
            if isinstance(error, requests.Timeout):
                raise RequestTimeoutError() from error
            if isinstance(error, requests.RequestException):
                raise NetworkError(str(error)) from error
            raise error

        response = pending.response
        if not 200 <= response.status_code < 300:
            response.close()
            raise HTTPStatusError(response.status_code, response.reason)
        return response

    def fetch_with_retry(self, url: str, params: dict = None, headers: dict = None,
                         retries: int = None, timeout_ms: int = None) -> requests.Response:
        """
        Perform a GET request, retrying only when the failure is a timeout.

        Args:
            url: Request URL
            params: Query parameters
            headers: Request headers
            retries: Extra attempts after a timeout (transport default if None)
            timeout_ms: Timeout in milliseconds per attempt

        Returns:
            The successful response
        """
        retries = retries if retries is not None else self.retries
        try:
            return self.fetch_with_timeout(url, params=params, headers=headers,
                                           timeout_ms=timeout_ms)
        except Exception as e:
            if retries > 0 and is_timeout_error(e):
                logger.info("Timeout fetching %s, retrying (%d left)", url, retries)
                return self.fetch_with_retry(url, params=params, headers=headers,
                                             retries=retries - 1, timeout_ms=timeout_ms)
            raise

    def get_json(self, url: str, params: dict = None, headers: dict = None):
        """
        Fetch a URL and decode its JSON body.

        Args:
            url: Request URL
            params: Query parameters
            headers: Request headers

        Returns:
            Tuple of (payload, elapsed_ms)

        Raises:
            MalformedPayloadError: The body is not valid JSON
        """
        start = time.perf_counter()
        response = self.fetch_with_retry(url, params=params, headers=headers)
        try:
            payload = response.json()
        except ValueError as e:
            raise MalformedPayloadError(f"Malformed JSON payload from {url}") from e
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        return payload, elapsed_ms
