"""HTTP layer public API (barrel module).

This package provides:
- Per-protocol connection pool management
- Request descriptors and per-verb builders
- Transport execution with remote address capture and timings
- The result envelope returned by successful calls

Recommended import pattern for consumers:
    from http_requester.http import ConnectionPoolManager, TransportExecutor
"""

from .client_manager import (
    AgentFactory,
    ConnectionPoolManager,
    Protocol,
    create_agent,
    protocol_for_url,
)
from .executor import (
    RemoteAddressCapture,
    TimingRecorder,
    TransportExecutor,
    make_trace,
    server_address,
)
from .request import RequestBuilder, RequestDescriptor
from .response import RequestMeta, RequestTimings, TransportResult, parse_body
from .transport import ResolvingBackend, ResolvingTransport

__all__ = [
    "AgentFactory",
    "ConnectionPoolManager",
    "Protocol",
    "create_agent",
    "protocol_for_url",
    "RemoteAddressCapture",
    "TimingRecorder",
    "TransportExecutor",
    "make_trace",
    "server_address",
    "RequestBuilder",
    "RequestDescriptor",
    "RequestMeta",
    "RequestTimings",
    "TransportResult",
    "parse_body",
    "ResolvingBackend",
    "ResolvingTransport",
]
