"""Result envelope of a completed request.

:class:`TransportResult` is what a successful call returns: the raw
``httpx.Response``, the (best-effort parsed) body, the request
metadata, and timings when instrumentation is enabled.
"""

import json
import logging
from typing import Any, Optional

import httpx
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class RequestMeta(BaseModel):
    """Diagnostic metadata attached to a request outcome."""

    url: str = Field(..., description="URL exactly as requested")
    remote_address: Optional[str] = Field(
        None, description="Peer IP address, when it could be observed"
    )


class RequestTimings(BaseModel):
    """Per-phase timings of one request, in milliseconds.

    Phases that did not happen are None: ``connect`` and ``tls`` for a
    reused keep-alive connection, ``tls`` for plain HTTP.
    """

    wait: Optional[float] = Field(None, description="Start until connect began")
    connect: Optional[float] = Field(None, description="DNS lookup and TCP connect")
    tls: Optional[float] = Field(None, description="TLS handshake")
    first_byte: Optional[float] = Field(
        None, description="Connection ready until response headers"
    )
    download: Optional[float] = Field(None, description="Headers until body read")
    total: float = Field(..., description="Start until body read")


def parse_body(text: str) -> Any:
    """Parse a response body as JSON, keeping the text on failure.

    :param text: Response body text
    :type text: str
    :return: Parsed JSON, the original text, or None for an empty body
    :rtype: Any
    """
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        logger.debug("Response body is not valid JSON, keeping raw text")
        return text


class TransportResult:
    """Successful outcome of a request.

    :param response: The underlying httpx response
    :type response: httpx.Response
    :param response_body: Body as parsed JSON or raw text
    :type response_body: Any
    :param meta: Request metadata
    :type meta: RequestMeta
    :param timings: Phase timings, when timing was enabled
    :type timings: Optional[RequestTimings]
    """

    def __init__(
        self,
        response: httpx.Response,
        response_body: Any,
        meta: RequestMeta,
        timings: Optional[RequestTimings] = None,
    ):
        self.response = response
        self.response_body = response_body
        self.meta = meta
        self.timings = timings

    @property
    def status_code(self) -> int:
        return self.response.status_code

    @property
    def headers(self) -> httpx.Headers:
        return self.response.headers

    @property
    def text(self) -> str:
        return self.response.text

    def is_success(self) -> bool:
        """Check if the response indicates success (2xx status code)."""
        return 200 <= self.status_code < 300

    def is_client_error(self) -> bool:
        """Check if the response indicates a client error (4xx status code)."""
        return 400 <= self.status_code < 500

    def is_server_error(self) -> bool:
        """Check if the response indicates a server error (5xx status code)."""
        return 500 <= self.status_code < 600

    def reparse_body(self) -> None:
        """Parse a raw text body as JSON in place, if it is valid JSON."""
        if isinstance(self.response_body, str) and self.response_body:
            self.response_body = parse_body(self.response_body)

    def __repr__(self) -> str:
        return f"<TransportResult {self.status_code} {self.meta.url}>"
