"""Structured exception classes for http-requester."""

import json
from typing import TYPE_CHECKING, Any, Dict, Optional

import httpx

if TYPE_CHECKING:
    from .http.response import RequestMeta


class RequesterError(Exception):
    """Base exception for all http-requester errors.

    Provides a consistent interface for error handling across the
    package: a human-readable message, a code for programmatic
    handling, and a dictionary of additional context.

    :param message: Human-readable error message
    :param code: Optional error code for programmatic handling
    :param details: Optional dictionary containing additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Initialize the exception with message, code, and details."""
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary format.

        :return: Dictionary containing error code, message, and details
        """
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }

    def to_json(self) -> str:
        """Convert exception to JSON string.

        :return: JSON-encoded string representation of the exception
        """
        return json.dumps(self.to_dict())


class ConfigurationError(RequesterError):
    """Raised for configuration-related errors.

    Raised when the configuration given to a Requester is malformed,
    before any request can be issued, or when a closed Requester is
    used again.

    :param message: Description of the configuration error
    :param setting: Optional name of the problematic setting
    """

    def __init__(self, message: str, setting: Optional[str] = None):
        """Initialize configuration error with message and optional setting."""
        details = {}
        if setting:
            details["setting"] = setting
        super().__init__(message=message, code="CONFIGURATION_ERROR", details=details)
        self.setting = setting


class ValidationError(RequesterError, TypeError):
    """Raised when per-call input validation fails.

    Covers malformed timeouts, parameter mappings and request bodies.
    Always raised before any network attempt.

    :param message: Description of the validation error
    :param field: Optional name of the argument that failed validation
    :param value: Optional value that caused the validation failure
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
    ):
        """Initialize validation error with message and optional field/value."""
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = repr(value)
        super().__init__(message=message, code="VALIDATION_ERROR", details=details)
        self.field = field


class TransportError(RequesterError):
    """Raised when the network call itself fails.

    Wraps network, DNS and timeout failures. The original exception is
    kept on ``original_error`` and the request metadata on ``meta``;
    ``meta.url`` is always the URL that was requested and
    ``meta.remote_address`` is filled in when it could be observed.

    :param original_error: The exception raised by the transport
    :param meta: Metadata of the failed request
    """

    def __init__(self, original_error: BaseException, meta: "RequestMeta"):
        """Initialize transport error from the original failure and metadata."""
        details: Dict[str, Any] = {
            "url": meta.url,
            "error_type": type(original_error).__name__,
        }
        if meta.remote_address:
            details["remote_address"] = meta.remote_address
        super().__init__(
            message=f"Request to {meta.url} failed: {original_error}",
            code="TRANSPORT_ERROR",
            details=details,
        )
        self.original_error = original_error
        self.meta = meta

    @property
    def is_timeout(self) -> bool:
        """Whether the failure was caused by the request timing out.

        :return: True for httpx timeout exceptions
        :rtype: bool
        """
        return isinstance(self.original_error, httpx.TimeoutException)


class ResponseRejection(RequesterError):
    """Raised when a completed round trip is not acceptable.

    Raised by response validators after an otherwise successful
    transport call. Callers see it the same way as a transport failure:
    the call failed.

    :param message: Description of why the response was rejected
    :param status_code: Optional HTTP status code of the response
    :param response_body: Optional (parsed) response body
    :param meta: Optional metadata of the request
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_body: Optional[Any] = None,
        meta: Optional["RequestMeta"] = None,
    ):
        """Initialize response rejection with message and response details."""
        details: Dict[str, Any] = {}
        if status_code:
            details["status_code"] = status_code
        if response_body is not None:
            details["response_body"] = (
                response_body if isinstance(response_body, str) else repr(response_body)
            )
        if meta is not None:
            details["url"] = meta.url
        super().__init__(message=message, code="RESPONSE_REJECTED", details=details)
        self.status_code = status_code
        self.response_body = response_body
        self.meta = meta
