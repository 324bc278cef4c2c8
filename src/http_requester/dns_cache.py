"""Cached hostname resolution.

A requester resolves every hostname through a :class:`Resolver`. This
module holds the contract and the default implementation,
:class:`DnsCache`, which memoizes ``getaddrinfo`` answers for a fixed
time to live.

The process-wide default instance is created lazily by
:func:`default_resolver`; pass your own resolver to ``Requester`` to
isolate caches or to stub resolution in tests.
"""

import asyncio
import ipaddress
import logging
import socket
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Tuple, runtime_checkable

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 60.0
DEFAULT_MAX_ENTRIES = 4096


@runtime_checkable
class Resolver(Protocol):
    """Hostname to address resolver."""

    async def resolve(self, hostname: str, *, family: int = socket.AF_INET) -> str:
        """Resolve ``hostname`` to a single address of ``family``."""
        ...


@dataclass
class _CacheEntry:
    address: str
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class DnsCache:
    """Resolver that caches answers for ``ttl`` seconds.

    IP literals are returned unchanged without a lookup. Failed lookups
    are not cached and raise :class:`socket.gaierror`.

    Entries are kept in insertion order. Every new answer first drops
    the expired entries, then the oldest ones beyond ``max_entries``.

    :param ttl: Seconds a resolved address stays cached
    :type ttl: float
    :param clock: Monotonic clock used for expiry
    :type clock: Callable[[], float]
    :param max_entries: Upper bound on the number of cached answers
    :type max_entries: int
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ):
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[Tuple[str, int], _CacheEntry]" = OrderedDict()

    async def resolve(self, hostname: str, *, family: int = socket.AF_INET) -> str:
        """Resolve a hostname, answering from the cache when possible.

        :param hostname: Host to resolve
        :type hostname: str
        :param family: Address family, ``socket.AF_INET`` or ``AF_INET6``
        :type family: int
        :return: Resolved address
        :rtype: str
        :raises socket.gaierror: If the host cannot be resolved
        """
        literal = _ip_literal(hostname)
        if literal is not None:
            return literal

        key = (hostname.lower(), family)
        now = self._clock()
        entry = self._entries.get(key)
        if entry is not None and not entry.is_expired(now):
            return entry.address

        loop = asyncio.get_running_loop()
        try:
            infos = await loop.getaddrinfo(
                hostname, None, family=family, type=socket.SOCK_STREAM
            )
        except ValueError as exc:
            # idna rejects labels that are empty or longer than 63 characters
            raise socket.gaierror(
                socket.EAI_NONAME, f"Invalid hostname {hostname!r}: {exc}"
            ) from exc
        if not infos:
            raise socket.gaierror(socket.EAI_NONAME, f"No address found for {hostname}")
        address = infos[0][4][0]

        self._entries.pop(key, None)
        self._entries[key] = _CacheEntry(address=address, expires_at=now + self.ttl)
        self._prune(now)
        logger.debug("Resolved %s to %s", hostname, address)
        return address

    def _prune(self, now: float) -> None:
        while self._entries:
            oldest = next(iter(self._entries.values()))
            if not oldest.is_expired(now):
                break
            self._entries.popitem(last=False)

        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        """Drop every cached answer."""
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def _ip_literal(hostname: str) -> Optional[str]:
    try:
        return str(ipaddress.ip_address(hostname.strip("[]")))
    except ValueError:
        return None


_default_resolver: Optional[DnsCache] = None
_default_lock = threading.Lock()


def default_resolver(ttl: float = DEFAULT_TTL_SECONDS) -> DnsCache:
    """Get the process-wide shared DNS cache.

    ``ttl`` only applies to the first call, which creates the cache.

    :param ttl: Seconds a resolved address stays cached
    :type ttl: float
    :return: The shared cache
    :rtype: DnsCache
    """
    global _default_resolver
    if _default_resolver is None:
        with _default_lock:
            if _default_resolver is None:
                _default_resolver = DnsCache(ttl=ttl)
    return _default_resolver
