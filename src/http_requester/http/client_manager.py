"""Per-protocol connection pool management.

Each requester owns one :class:`ConnectionPoolManager`, which holds at
most two pooled agents: one for plain ``http`` URLs and one for
``https`` URLs. An agent is created the first time a URL of its
protocol is requested and is then shared by every request of that
requester until it is closed, so keep-alive connections are reused
across calls.
"""

import logging
import threading
from enum import Enum
from typing import Callable, Dict, Optional
from urllib.parse import urlsplit

import httpx

from ..config.settings import AgentOptions
from ..dns_cache import Resolver
from ..exceptions import ConfigurationError
from .transport import ResolvingTransport

logger = logging.getLogger(__name__)


class Protocol(str, Enum):
    """Transport protocols with a dedicated agent."""

    PLAIN = "http"
    SECURE = "https"


AgentFactory = Callable[[Protocol, AgentOptions, Resolver], httpx.AsyncClient]


def protocol_for_url(url: str) -> Protocol:
    """Select the agent protocol for a URL.

    :param url: Request URL
    :type url: str
    :return: SECURE for ``https`` URLs, PLAIN otherwise
    :rtype: Protocol
    """
    scheme = urlsplit(url).scheme.lower()
    return Protocol.SECURE if scheme == Protocol.SECURE.value else Protocol.PLAIN


def _h2_available() -> bool:
    try:
        import h2  # type: ignore  # noqa: F401
    except ImportError:
        return False
    return True


def create_agent(
    protocol: Protocol, options: AgentOptions, resolver: Resolver
) -> httpx.AsyncClient:
    """Build a pooled agent for one protocol.

    The agent never follows redirects and ignores proxy environment
    variables; name resolution goes through ``resolver`` and
    connections are IPv4 only.

    :param protocol: Protocol the agent serves
    :type protocol: Protocol
    :param options: Pool and TLS options
    :type options: AgentOptions
    :param resolver: Resolver used for every connection
    :type resolver: Resolver
    :return: Configured client
    :rtype: httpx.AsyncClient
    """
    http2_flag = options.http2 and protocol is Protocol.SECURE
    if http2_flag and not _h2_available():
        logger.warning(
            "HTTP/2 requested but 'h2' package not installed; falling back to HTTP/1.1"
        )
        http2_flag = False

    transport = ResolvingTransport(
        resolver,
        verify=options.verify,
        http2=http2_flag,
        limits=options.to_limits(),
    )
    return httpx.AsyncClient(
        transport=transport,
        follow_redirects=False,
        trust_env=False,
    )


class ConnectionPoolManager:
    """Lazily created, memoized agents, one per protocol.

    Slot creation is guarded by a per-slot lock with a second check
    inside the lock, so concurrent first use from several threads still
    creates a single agent.

    :param options: Options used for both agents
    :type options: AgentOptions
    :param resolver: Resolver passed to every agent
    :type resolver: Resolver
    :param agent_factory: Optional replacement for :func:`create_agent`
    :type agent_factory: Optional[AgentFactory]
    """

    def __init__(
        self,
        options: AgentOptions,
        resolver: Resolver,
        agent_factory: Optional[AgentFactory] = None,
    ):
        self.options = options
        self.resolver = resolver
        self._agent_factory = agent_factory or create_agent
        self._agents: Dict[Protocol, Optional[httpx.AsyncClient]] = {
            protocol: None for protocol in Protocol
        }
        self._locks: Dict[Protocol, threading.Lock] = {
            protocol: threading.Lock() for protocol in Protocol
        }
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def get_agent(self, url: str) -> httpx.AsyncClient:
        """Get the agent for the URL's protocol, creating it on first use.

        :param url: Request URL
        :type url: str
        :return: The shared agent for the URL's protocol
        :rtype: httpx.AsyncClient
        :raises ConfigurationError: If the manager has been closed
        """
        if self._closed:
            raise ConfigurationError("Requester has been closed", setting="agent")

        protocol = protocol_for_url(url)
        agent = self._agents[protocol]
        if agent is None:
            with self._locks[protocol]:
                agent = self._agents[protocol]
                if agent is None:
                    agent = self._agent_factory(protocol, self.options, self.resolver)
                    self._agents[protocol] = agent
                    logger.debug("Created %s agent", protocol.value)
        return agent

    def peek(self, protocol: Protocol) -> Optional[httpx.AsyncClient]:
        """Return the agent for ``protocol`` if it has been created."""
        return self._agents[protocol]

    async def aclose(self) -> None:
        """Close every created agent.

        Safe to call more than once. Errors while closing one agent are
        logged and do not prevent closing the other.
        """
        if self._closed:
            logger.debug("Agents already closed, skipping duplicate call")
            return

        self._closed = True
        created = [(p, a) for p, a in self._agents.items() if a is not None]
        if not created:
            logger.debug("No agents to close")
            return
        for protocol, agent in created:
            try:
                await agent.aclose()
                logger.debug("Closed %s agent", protocol.value)
            except Exception as e:
                logger.warning("Error closing %s agent: %s", protocol.value, e)
        for protocol in Protocol:
            self._agents[protocol] = None
