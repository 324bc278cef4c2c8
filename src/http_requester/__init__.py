"""HTTP requester package.

This package provides a pooled, validating HTTP client for GET,
form-encoded POST, JSON POST and DELETE calls. Every request made
through one :class:`Requester` shares its timeout policy, its
per-protocol connection pools and its IPv4-only, cached name
resolution.

:var __version__: Current package version
:type __version__: str
"""

from .dns_cache import DnsCache, Resolver, default_resolver
from .exceptions import (
    ConfigurationError,
    RequesterError,
    ResponseRejection,
    TransportError,
    ValidationError,
)
from .http.response import RequestMeta, RequestTimings, TransportResult
from .requester import Requester
from .response_assert import assert_response
from .validation import UNSET

__version__ = "0.1.0"

__all__ = [
    "Requester",
    "TransportResult",
    "RequestMeta",
    "RequestTimings",
    "DnsCache",
    "Resolver",
    "default_resolver",
    "assert_response",
    "UNSET",
    "RequesterError",
    "ConfigurationError",
    "ValidationError",
    "TransportError",
    "ResponseRejection",
]
