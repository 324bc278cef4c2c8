"""Transport that resolves hostnames through an injected resolver.

httpx has no hook for custom name resolution, so the resolver is
plugged in one level down, as the httpcore network backend of the
transport's connection pool. The transport also binds outgoing
connections to ``0.0.0.0``, which restricts them to IPv4.
"""

import asyncio
import logging
import socket
from contextvars import ContextVar
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional

import httpcore
import httpx

from ..dns_cache import Resolver

logger = logging.getLogger(__name__)

IPV4_ANY = "0.0.0.0"
SUPPORTED_IP_FAMILY = socket.AF_INET
RESOLVE_COMPLETE = "connection.resolve.complete"

TraceCallback = Callable[[str, Dict[str, Any]], Awaitable[None]]

# Trace callback of the request being sent by the current task. httpcore
# does not hand request extensions to the network backend.
request_trace: ContextVar[Optional[TraceCallback]] = ContextVar(
    "request_trace", default=None
)


class ResolvingBackend(httpcore.AsyncNetworkBackend):
    """Network backend that resolves the host before connecting.

    :param resolver: Resolver used for every TCP connection
    :type resolver: Resolver
    :param backend: Backend that opens the actual connection
    :type backend: httpcore.AsyncNetworkBackend
    :param family: Address family requested from the resolver
    :type family: int
    """

    def __init__(
        self,
        resolver: Resolver,
        backend: httpcore.AsyncNetworkBackend,
        family: int = SUPPORTED_IP_FAMILY,
    ):
        self.resolver = resolver
        self.backend = backend
        self.family = family

    async def connect_tcp(
        self,
        host: str,
        port: int,
        timeout: Optional[float] = None,
        local_address: Optional[str] = None,
        socket_options: Optional[Iterable] = None,
    ) -> httpcore.AsyncNetworkStream:
        try:
            address = await asyncio.wait_for(
                self.resolver.resolve(host, family=self.family), timeout
            )
        except asyncio.TimeoutError as exc:
            raise httpcore.ConnectTimeout(f"Timed out resolving {host}") from exc
        except (OSError, ValueError) as exc:
            raise httpcore.ConnectError(f"Failed to resolve {host}: {exc}") from exc

        trace = request_trace.get()
        if trace is not None:
            await trace(
                RESOLVE_COMPLETE,
                {"host": host, "family": self.family, "return_value": address},
            )
        logger.debug("Connecting to %s (%s) port %s", host, address, port)
        return await self.backend.connect_tcp(
            address,
            port,
            timeout=timeout,
            local_address=local_address,
            socket_options=socket_options,
        )

    async def connect_unix_socket(
        self,
        path: str,
        timeout: Optional[float] = None,
        socket_options: Optional[Iterable] = None,
    ) -> httpcore.AsyncNetworkStream:
        return await self.backend.connect_unix_socket(
            path, timeout=timeout, socket_options=socket_options
        )

    async def sleep(self, seconds: float) -> None:
        await self.backend.sleep(seconds)


class ResolvingTransport(httpx.AsyncHTTPTransport):
    """IPv4-only HTTP transport resolving hosts through ``resolver``.

    Accepts the keyword arguments of :class:`httpx.AsyncHTTPTransport`
    except ``local_address``, which is fixed.

    :param resolver: Resolver used for every TCP connection
    :type resolver: Resolver
    """

    def __init__(self, resolver: Resolver, **kwargs):
        kwargs["local_address"] = IPV4_ANY
        super().__init__(**kwargs)
        self.resolver = resolver
        # The pool hands its backend to every connection it opens.
        self._pool._network_backend = ResolvingBackend(
            resolver, self._pool._network_backend
        )
