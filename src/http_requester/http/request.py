"""Request construction, one routine per HTTP verb.

Each ``build_*`` function validates its inputs and returns a
:class:`RequestDescriptor`: the complete option set for one call,
including the pooled agent for the URL's scheme, the resolver, the
IPv4 family constraint and the timing flag. Nothing here performs I/O.
"""

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx

from ..dns_cache import Resolver
from ..validation import (
    UNSET,
    is_empty_params,
    validate_params,
    validate_serializable,
    validate_timeout,
)
from .client_manager import ConnectionPoolManager
from .transport import SUPPORTED_IP_FAMILY

JSON_CONTENT_TYPE = "application/json"


@dataclass
class RequestDescriptor:
    """Everything needed to issue one request."""

    url: str
    method: str
    timeout_msecs: int
    agent: httpx.AsyncClient
    resolver: Resolver
    family: int = SUPPORTED_IP_FAMILY
    timing: bool = False
    expects_json: bool = True
    query: Optional[Dict[str, Any]] = None
    form: Optional[Dict[str, Any]] = None
    body: Any = field(default=UNSET)

    @property
    def has_body(self) -> bool:
        return self.body is not UNSET

    @property
    def timeout(self) -> httpx.Timeout:
        return httpx.Timeout(self.timeout_msecs / 1000)

    def to_httpx_kwargs(self) -> Dict[str, Any]:
        """Render the descriptor as ``httpx.AsyncClient.build_request`` arguments.

        JSON bodies are encoded here rather than through httpx's ``json=``
        argument, which treats ``None`` as "no body".

        :return: Keyword arguments for ``build_request``
        :rtype: Dict[str, Any]
        """
        headers: Dict[str, str] = {}
        kwargs: Dict[str, Any] = {
            "method": self.method,
            "url": self.url,
            "timeout": self.timeout,
        }
        if self.expects_json:
            headers["Accept"] = JSON_CONTENT_TYPE
        if self.query is not None:
            kwargs["params"] = self.query
        if self.form is not None:
            kwargs["data"] = self.form
        if self.has_body:
            kwargs["content"] = json.dumps(
                self.body, default=_json_default, allow_nan=False
            ).encode("utf-8")
            headers["Content-Type"] = JSON_CONTENT_TYPE
        if headers:
            kwargs["headers"] = headers
        return kwargs


class RequestBuilder:
    """Builds request descriptors for one requester.

    :param pool: Pool manager providing the agent for each URL
    :type pool: ConnectionPoolManager
    :param timeout_msecs: Default timeout applied when a call gives none
    :type timeout_msecs: int
    :param timing: Whether requests record phase timings
    :type timing: bool
    """

    def __init__(self, pool: ConnectionPoolManager, timeout_msecs: int, timing: bool):
        self.pool = pool
        self.timeout_msecs = timeout_msecs
        self.timing = timing

    def _effective_timeout(self, timeout_msecs: Optional[int]) -> int:
        validate_timeout(timeout_msecs)
        if timeout_msecs is None or timeout_msecs is UNSET:
            return self.timeout_msecs
        return timeout_msecs

    def _descriptor(
        self, url: str, method: str, timeout_msecs: Optional[int], **kwargs
    ) -> RequestDescriptor:
        timeout = self._effective_timeout(timeout_msecs)
        return RequestDescriptor(
            url=url,
            method=method,
            timeout_msecs=timeout,
            agent=self.pool.get_agent(url),
            resolver=self.pool.resolver,
            family=SUPPORTED_IP_FAMILY,
            timing=self.timing,
            **kwargs,
        )

    def build_get(
        self,
        url: str,
        params: Optional[Mapping[str, Any]] = None,
        timeout_msecs: Optional[int] = None,
    ) -> RequestDescriptor:
        validate_params(params)
        return self._descriptor(
            url, "GET", timeout_msecs, expects_json=True, query=_non_empty(params)
        )

    def build_form_post(
        self,
        url: str,
        params: Optional[Mapping[str, Any]] = None,
        timeout_msecs: Optional[int] = None,
    ) -> RequestDescriptor:
        validate_params(params)
        return self._descriptor(
            url, "POST", timeout_msecs, expects_json=False, form=_non_empty(params)
        )

    def build_json_post(
        self,
        url: str,
        body: Any = UNSET,
        timeout_msecs: Optional[int] = None,
    ) -> RequestDescriptor:
        validate_serializable(body, label="params")
        return self._descriptor(url, "POST", timeout_msecs, expects_json=True, body=body)

    def build_delete(
        self,
        url: str,
        params: Optional[Mapping[str, Any]] = None,
        body: Any = UNSET,
        timeout_msecs: Optional[int] = None,
    ) -> RequestDescriptor:
        validate_params(params)
        if body is not UNSET:
            validate_serializable(body)
        return self._descriptor(
            url,
            "DELETE",
            timeout_msecs,
            expects_json=True,
            query=_non_empty(params),
            body=body,
        )


def _json_default(value: Any) -> Any:
    if isinstance(value, Mapping):
        return dict(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _non_empty(params: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    if is_empty_params(params):
        return None
    return dict(params)
