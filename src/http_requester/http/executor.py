"""Transport execution with best-effort diagnostics.

:class:`TransportExecutor` turns a :class:`RequestDescriptor` into
exactly one network call. Success yields a :class:`TransportResult`;
any network, DNS or timeout failure is raised as
:class:`~http_requester.exceptions.TransportError` carrying the
requested URL and, when observed, the peer address.

The peer address is recorded as soon as the resolving transport
reports the resolved address, so a refused or timed out connect still
carries it. Otherwise it comes from httpx's ``trace`` request extension:
when httpcore reports a completed TCP connect, the connection's
``server_addr`` is recorded. A keep-alive connection reused from the
pool reports no connect, so its address is read from the response's
network stream instead. None of these paths can change whether the
call succeeds.
"""

import logging
import time
from typing import Any, Callable, Dict, Optional

import httpx

from ..exceptions import TransportError, ValidationError
from .request import RequestDescriptor
from .response import RequestMeta, RequestTimings, TransportResult, parse_body
from .transport import RESOLVE_COMPLETE, TraceCallback, request_trace

logger = logging.getLogger(__name__)


class RemoteAddressCapture:
    """Peer address of a request: unknown until resolved, at most once.

    Once closed, further resolutions are ignored, so a notification that
    arrives after the outcome was reported cannot alter it.
    """

    def __init__(self):
        self._address: Optional[str] = None
        self._closed = False

    @property
    def address(self) -> Optional[str]:
        return self._address

    @property
    def resolved(self) -> bool:
        return self._address is not None

    @property
    def closed(self) -> bool:
        return self._closed

    def resolve(self, address: Optional[str]) -> bool:
        """Record the address if still unknown and open.

        :param address: Observed peer address; falsy values are ignored
        :type address: Optional[str]
        :return: True if the address was recorded
        :rtype: bool
        """
        if self._closed or self._address is not None or not address:
            return False
        self._address = address
        return True

    def resolve_from_stream(self, stream: Any) -> bool:
        """Record the peer address of a network stream, if it exposes one."""
        return self.resolve(server_address(stream))

    def close(self) -> Optional[str]:
        """Stop accepting resolutions and return the final address."""
        self._closed = True
        return self._address


def server_address(stream: Any) -> Optional[str]:
    """Read the peer IP from an httpcore network stream.

    :param stream: Network stream, or None
    :type stream: Any
    :return: The peer IP address, or None if unavailable
    :rtype: Optional[str]
    """
    get_extra_info = getattr(stream, "get_extra_info", None)
    if not callable(get_extra_info):
        return None
    try:
        addr = get_extra_info("server_addr")
    except Exception as e:
        logger.debug("Could not read server address: %s", e)
        return None
    if isinstance(addr, (tuple, list)) and addr:
        return str(addr[0])
    if isinstance(addr, str):
        return addr
    return None


class TimingRecorder:
    """Collects monotonic timestamps for the phases of one request."""

    def __init__(self, clock: Callable[[], float] = time.perf_counter):
        self._clock = clock
        self.start = clock()
        self.connect_start: Optional[float] = None
        self.connect_end: Optional[float] = None
        self.tls_start: Optional[float] = None
        self.tls_end: Optional[float] = None
        self.headers: Optional[float] = None
        self.end: Optional[float] = None

    def on_event(self, event_name: str) -> None:
        now = self._clock()
        if event_name.endswith("connect_tcp.started"):
            self.connect_start = now
        elif event_name.endswith("connect_tcp.complete"):
            self.connect_end = now
        elif event_name.endswith("start_tls.started"):
            self.tls_start = now
        elif event_name.endswith("start_tls.complete"):
            self.tls_end = now
        elif event_name.endswith("receive_response_headers.complete"):
            self.headers = now

    def finish(self) -> RequestTimings:
        """Mark the end of the request and compute phase durations."""
        self.end = self._clock()
        ready = self.tls_end or self.connect_end or self.start
        return RequestTimings(
            wait=_span(self.start, self.connect_start),
            connect=_span(self.connect_start, self.connect_end),
            tls=_span(self.tls_start, self.tls_end),
            first_byte=_span(ready, self.headers),
            download=_span(self.headers, self.end),
            total=_span(self.start, self.end),
        )


def _span(begin: Optional[float], end: Optional[float]) -> Optional[float]:
    if begin is None or end is None:
        return None
    return round((end - begin) * 1000, 3)


def make_trace(
    capture: RemoteAddressCapture, timings: Optional[TimingRecorder] = None
) -> TraceCallback:
    """Build the httpx ``trace`` extension callback for one request."""

    async def trace(event_name: str, info: Dict[str, Any]) -> None:
        if timings is not None:
            timings.on_event(event_name)
        if event_name == RESOLVE_COMPLETE:
            capture.resolve(info.get("return_value"))
        elif event_name.endswith("connect_tcp.complete"):
            capture.resolve_from_stream(info.get("return_value"))

    return trace


class TransportExecutor:
    """Issues one network call per descriptor."""

    async def execute(self, descriptor: RequestDescriptor) -> TransportResult:
        """Send the request described by ``descriptor``.

        :param descriptor: Assembled request options
        :type descriptor: RequestDescriptor
        :return: Response, body and metadata
        :rtype: TransportResult
        :raises ValidationError: If httpx cannot encode the request
        :raises TransportError: On network, DNS or timeout failure
        """
        meta = RequestMeta(url=descriptor.url)
        capture = RemoteAddressCapture()
        timings = TimingRecorder() if descriptor.timing else None
        trace = make_trace(capture, timings)
        request = self._build_request(descriptor, trace)

        token = request_trace.set(trace)
        try:
            response = await descriptor.agent.send(request)
        except (httpx.HTTPError, OSError) as exc:
            meta.remote_address = capture.close()
            logger.warning(
                "%s %s failed: %s: %s",
                descriptor.method,
                descriptor.url,
                type(exc).__name__,
                exc,
            )
            raise TransportError(exc, meta) from exc
        finally:
            request_trace.reset(token)

        if not capture.resolved:
            capture.resolve_from_stream(response.extensions.get("network_stream"))
        meta.remote_address = capture.close()

        text = response.text
        body = parse_body(text) if descriptor.expects_json else text
        result = TransportResult(
            response=response,
            response_body=body,
            meta=meta,
            timings=timings.finish() if timings is not None else None,
        )
        logger.debug(
            "%s %s -> %s", descriptor.method, descriptor.url, response.status_code
        )
        return result

    @staticmethod
    def _build_request(
        descriptor: RequestDescriptor, trace: TraceCallback
    ) -> httpx.Request:
        try:
            return descriptor.agent.build_request(
                **descriptor.to_httpx_kwargs(), extensions={"trace": trace}
            )
        except httpx.InvalidURL as exc:
            raise ValidationError(
                f"Invalid URL: {exc}", field="url", value=descriptor.url
            ) from exc
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Request could not be encoded: {exc}") from exc
