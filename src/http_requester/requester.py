"""The Requester: one configured HTTP client for GET, POST and DELETE calls.

A :class:`Requester` applies the same timeout, connection pooling,
IPv4-only resolution and input validation to every call made through
it::

    async with Requester({"timeout_msecs": 5000}) as requester:
        result = await requester.get("https://api.example.com/items", {"page": 2})
        print(result.status_code, result.response_body)

Inputs are validated before any network activity. A transport failure
raises :class:`~http_requester.exceptions.TransportError`; a completed
round trip is handed to the response validator, which may raise to
reject it. There are no retries.
"""

import copy
import logging
from collections.abc import Mapping
from typing import Any, Dict, Optional

from .config.settings import RequesterConfig, RequesterSettings
from .dns_cache import Resolver, default_resolver
from .http.client_manager import AgentFactory, ConnectionPoolManager
from .http.executor import TransportExecutor
from .http.request import RequestBuilder, RequestDescriptor
from .http.response import TransportResult
from .response_assert import ResponseValidator, assert_response
from .validation import UNSET

logger = logging.getLogger(__name__)


class Requester:
    """HTTP client with per-instance pooling and validation policy.

    :param config: Mapping with ``timeout_msecs``, ``timing`` and
        ``agent_options``; all optional
    :type config: Optional[Mapping]
    :param resolver: Hostname resolver; defaults to the shared DNS cache
    :type resolver: Optional[Resolver]
    :param response_validator: Called with every successful result;
        defaults to :func:`~http_requester.response_assert.assert_response`
    :type response_validator: Optional[ResponseValidator]
    :param agent_factory: Builds the pooled agents; mainly for tests
    :type agent_factory: Optional[AgentFactory]
    :raises ConfigurationError: If the configuration is malformed
    """

    def __init__(
        self,
        config: Optional[Mapping] = None,
        *,
        resolver: Optional[Resolver] = None,
        response_validator: Optional[ResponseValidator] = None,
        agent_factory: Optional[AgentFactory] = None,
    ):
        self._config = RequesterConfig.from_mapping(config)
        self._agent_options: Dict[str, Any] = (
            copy.deepcopy(dict(config.get("agent_options") or {})) if config else {}
        )
        self._resolver = resolver if resolver is not None else default_resolver()
        self._validate_response = response_validator or assert_response
        self._pool = ConnectionPoolManager(
            self._config.agent_options, self._resolver, agent_factory=agent_factory
        )
        self._builder = RequestBuilder(
            self._pool, self._config.timeout_msecs, self._config.timing
        )
        self._executor = TransportExecutor()

    @classmethod
    def from_settings(
        cls, settings: Optional[RequesterSettings] = None, **kwargs
    ) -> "Requester":
        """Create a requester from environment settings.

        When no resolver is passed, the shared DNS cache is created with
        the configured ``dns_cache_ttl``.

        :param settings: Settings to use; loaded from the environment if None
        :type settings: Optional[RequesterSettings]
        :param kwargs: Extra keyword arguments for the constructor
        :return: Configured requester
        :rtype: Requester
        """
        settings = settings or RequesterSettings.load()
        kwargs.setdefault("resolver", default_resolver(ttl=settings.dns_cache_ttl))
        return cls(settings.to_config(), **kwargs)

    @property
    def timeout_msecs(self) -> int:
        return self._config.timeout_msecs

    @property
    def timing(self) -> bool:
        return self._config.timing

    @property
    def agent_options(self) -> Dict[str, Any]:
        return self._agent_options

    @property
    def pool(self) -> ConnectionPoolManager:
        return self._pool

    @property
    def builder(self) -> RequestBuilder:
        return self._builder

    async def get(
        self,
        url: str,
        params: Optional[Mapping[str, Any]] = None,
        timeout_msecs: Optional[int] = None,
    ) -> TransportResult:
        """Send a GET request; non-empty ``params`` become the query string.

        :param url: Request URL
        :type url: str
        :param params: Optional query parameters
        :type params: Optional[Mapping[str, Any]]
        :param timeout_msecs: Optional per-call timeout in milliseconds
        :type timeout_msecs: Optional[int]
        :return: Validated result
        :rtype: TransportResult
        """
        descriptor = self._builder.build_get(url, params, timeout_msecs)
        return await self._send(descriptor)

    async def post_form(
        self,
        url: str,
        params: Optional[Mapping[str, Any]] = None,
        timeout_msecs: Optional[int] = None,
    ) -> TransportResult:
        """Send a form-encoded POST request.

        The response body is parsed as JSON when possible; otherwise the
        raw text is handed to the response validator unchanged.
        Field values are sent flat; a nested mapping is a
        :class:`~http_requester.exceptions.ValidationError`.

        :param url: Request URL
        :type url: str
        :param params: Optional form fields
        :type params: Optional[Mapping[str, Any]]
        :param timeout_msecs: Optional per-call timeout in milliseconds
        :type timeout_msecs: Optional[int]
        :return: Validated result
        :rtype: TransportResult
        """
        descriptor = self._builder.build_form_post(url, params, timeout_msecs)
        return await self._send(descriptor, reparse=True)

    async def post_json(
        self,
        url: str,
        params: Any = UNSET,
        timeout_msecs: Optional[int] = None,
    ) -> TransportResult:
        """Send a POST request with a JSON body.

        :param url: Request URL
        :type url: str
        :param params: Body; mandatory, ``None`` sends JSON ``null``
        :type params: Any
        :param timeout_msecs: Optional per-call timeout in milliseconds
        :type timeout_msecs: Optional[int]
        :return: Validated result
        :rtype: TransportResult
        """
        descriptor = self._builder.build_json_post(url, params, timeout_msecs)
        return await self._send(descriptor)

    async def delete(
        self,
        url: str,
        params: Optional[Mapping[str, Any]] = None,
        body: Any = UNSET,
        timeout_msecs: Optional[int] = None,
    ) -> TransportResult:
        """Send a DELETE request with optional query and JSON body.

        :param url: Request URL
        :type url: str
        :param params: Optional query parameters
        :type params: Optional[Mapping[str, Any]]
        :param body: Optional body; ``None`` sends JSON ``null``
        :type body: Any
        :param timeout_msecs: Optional per-call timeout in milliseconds
        :type timeout_msecs: Optional[int]
        :return: Validated result
        :rtype: TransportResult
        """
        descriptor = self._builder.build_delete(url, params, body, timeout_msecs)
        return await self._send(descriptor)

    async def _send(
        self, descriptor: RequestDescriptor, reparse: bool = False
    ) -> TransportResult:
        result = await self._executor.execute(descriptor)
        if reparse:
            result.reparse_body()
        self._validate_response(result)
        return result

    async def aclose(self) -> None:
        """Close the pooled agents. The requester cannot be used afterwards."""
        await self._pool.aclose()

    async def __aenter__(self) -> "Requester":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
