"""Delivery of raw telemetry payloads into a session."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional, Protocol

import httpx

from exceptions import NotConnectedError, TransportError

logger = logging.getLogger(__name__)

_STREAM_HEADERS = {"Accept": "text/event-stream, application/x-ndjson"}


class TransportListener(Protocol):
    def connection_established(self) -> None: ...

    def on_data(self, payload: str) -> object: ...

    def on_closed(self) -> None: ...

    def on_error(self, error: Exception) -> None: ...


class TransportHandle:
    """An open connection to one endpoint.

    ``close()`` also closes the live HTTP response, if one is attached, so a
    pump blocked on a quiet stream wakes up instead of waiting for the next
    line.
    """

    def __init__(self, url: str) -> None:
        self.url = url
        self._closed = threading.Event()
        self._lock = threading.Lock()
        self._response: Optional[httpx.Response] = None
        self.future: Optional[Future[None]] = None

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def attach(self, response: httpx.Response) -> bool:
        """Track ``response`` until close; False when the handle is already closed."""
        with self._lock:
            if self.closed:
                return False
            self._response = response
            return True

    def close(self) -> None:
        with self._lock:
            self._closed.set()
            response, self._response = self._response, None
        if response is not None:
            response.close()

    def wait(self, timeout: Optional[float] = None) -> None:
        """Block until the background pump (if any) has finished."""
        if self.future is not None:
            self.future.result(timeout=timeout)


class Transport(Protocol):
    def open(self, url: str, listener: TransportListener) -> TransportHandle: ...

    def shutdown(self) -> None: ...


class PushTransport:
    """Producers push payloads to the service; opening never blocks.

    Payloads arrive through the HTTP and WebSocket ingress and are handed to
    the session directly, so the connection is established as soon as it is
    opened.
    """

    def open(self, url: str, listener: TransportListener) -> TransportHandle:
        handle = TransportHandle(url)
        listener.connection_established()
        return handle

    def shutdown(self) -> None:
        return None


def frame_payload(line: str) -> Optional[str]:
    """Return the payload carried by one NDJSON or SSE line, if any."""
    candidate = line.strip()
    if not candidate or candidate.startswith(":"):
        return None
    if candidate.startswith("data:"):
        candidate = candidate[len("data:"):].strip()
        return candidate or None
    if candidate.startswith(("event:", "id:", "retry:")):
        return None
    return candidate


class HttpStreamTransport:
    """Reads a line-delimited event stream from an HTTP endpoint.

    Each open connection is pumped on a worker from a small pool, so a
    replacement connection never queues behind the pump it replaces.
    """

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        retry_delay: float = 1.0,
        max_workers: int = 4,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=httpx.Timeout(30.0, read=None))
        self.retry_delay = retry_delay
        self.executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="telemetry-stream"
        )

    def open(self, url: str, listener: TransportListener) -> TransportHandle:
        handle = TransportHandle(url)
        try:
            handle.future = self.executor.submit(self._pump, url, listener, handle)
        except RuntimeError as exc:
            raise TransportError("Stream transport has been shut down.", endpoint=url) from exc
        return handle

    def shutdown(self) -> None:
        self.executor.shutdown(wait=False, cancel_futures=True)
        if self._owns_client:
            self._client.close()

    def _pump(self, url: str, listener: TransportListener, handle: TransportHandle) -> None:
        failed = False
        try:
            with self._client.stream("GET", url, headers=_STREAM_HEADERS) as response:
                if response.is_error:
                    raise TransportError(
                        f"Endpoint answered with status {response.status_code}.", endpoint=url
                    )
                if not handle.attach(response):
                    return
                listener.connection_established()
                for line in response.iter_lines():
                    if handle.closed:
                        return
                    payload = frame_payload(line)
                    if payload is not None:
                        listener.on_data(payload)
        except NotConnectedError:
            # Disconnected between frames.
            return
        except TransportError as exc:
            failed = True
            if not handle.closed:
                listener.on_error(exc)
        except httpx.HTTPError as exc:
            failed = True
            if not handle.closed:
                listener.on_error(TransportError(str(exc) or type(exc).__name__, endpoint=url))
        except Exception as exc:
            # Listener failures and stream errors that are not HTTPError.
            failed = True
            if not handle.closed:
                logger.exception("Stream pump failed", extra={"endpoint": url})
                listener.on_error(TransportError(str(exc) or type(exc).__name__, endpoint=url))

        if failed and self.retry_delay > 0:
            # close() interrupts the wait.
            handle._closed.wait(self.retry_delay)
        if not handle.closed:
            logger.info("Stream ended", extra={"endpoint": url})
            listener.on_closed()
