"""Configuration for http-requester.

Two layers live here:

- :class:`RequesterConfig` validates the mapping handed to a
  ``Requester`` constructor. It is strict: anything malformed becomes a
  :class:`~http_requester.exceptions.ConfigurationError` before a
  request can be issued.
- :class:`RequesterSettings` loads the same options from environment
  variables (``REQUESTER_*``) and ``.env`` files for applications that
  wire the requester from their environment.
"""

import copy
from collections.abc import Mapping
from typing import Any, Dict, Literal, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict, SettingsError

from ..exceptions import ConfigurationError
from ..validation import is_positive_safe_integer

DEFAULT_REQUEST_TIMEOUT = 30000


class AgentOptions(BaseModel):
    """Options applied to each pooled agent.

    Both the plain and the secure agent of a requester are built from
    the same options. Unknown keys are rejected.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    max_connections: Optional[int] = Field(
        100, gt=0, description="Maximum number of concurrent connections"
    )
    max_keepalive_connections: Optional[int] = Field(
        20, ge=0, description="Maximum number of idle keep-alive connections"
    )
    keepalive_expiry: Optional[float] = Field(
        5.0, ge=0, description="Seconds an idle keep-alive connection is kept"
    )
    verify: StrictBool = Field(True, description="Verify TLS certificates")
    http2: StrictBool = Field(False, description="Enable HTTP/2 (needs 'h2')")

    def to_limits(self) -> httpx.Limits:
        """Build the httpx connection limits for these options.

        :return: Connection limits
        :rtype: httpx.Limits
        """
        return httpx.Limits(
            max_connections=self.max_connections,
            max_keepalive_connections=self.max_keepalive_connections,
            keepalive_expiry=self.keepalive_expiry,
        )


class RequesterConfig(BaseModel):
    """Validated constructor configuration of a requester.

    :param timeout_msecs: Default per-request timeout in milliseconds
    :type timeout_msecs: int
    :param timing: Enable per-request timing instrumentation
    :type timing: bool
    :param agent_options: Options passed to both pooled agents
    :type agent_options: AgentOptions
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    timeout_msecs: int = Field(DEFAULT_REQUEST_TIMEOUT)
    timing: StrictBool = Field(False)
    agent_options: AgentOptions = Field(default_factory=AgentOptions)

    @field_validator("timeout_msecs", mode="before")
    @classmethod
    def check_timeout(cls, v: Any) -> Any:
        if v is None:
            return DEFAULT_REQUEST_TIMEOUT
        if not is_positive_safe_integer(v):
            raise ValueError("must be a positive integer")
        return v

    @field_validator("timing", mode="before")
    @classmethod
    def check_timing(cls, v: Any) -> Any:
        return False if v is None else v

    @field_validator("agent_options", mode="before")
    @classmethod
    def check_agent_options(cls, v: Any) -> Any:
        if v is None:
            return {}
        if not isinstance(v, Mapping):
            raise ValueError("must be a mapping")
        return dict(v)

    @classmethod
    def from_mapping(cls, config: Optional[Mapping]) -> "RequesterConfig":
        """Validate a raw configuration mapping.

        The mapping is deep-copied first, so later changes made by the
        caller do not leak into the requester.

        :param config: Raw configuration, or None for all defaults
        :type config: Optional[Mapping]
        :return: Validated configuration
        :rtype: RequesterConfig
        :raises ConfigurationError: If the configuration is malformed
        """
        if config is None:
            return cls()
        if not isinstance(config, Mapping):
            raise ConfigurationError("config must be a mapping", setting="config")
        try:
            return cls.model_validate(copy.deepcopy(dict(config)))
        except PydanticValidationError as exc:
            first = exc.errors()[0]
            setting = "config." + ".".join(str(part) for part in first["loc"])
            message = first["msg"].removeprefix("Value error, ")
            raise ConfigurationError(f"{setting} {message}", setting=setting) from exc


class RequesterSettings(BaseSettings):
    """Requester settings loaded from environment variables.

    Every field can be set with a ``REQUESTER_`` prefixed variable,
    e.g. ``REQUESTER_TIMEOUT_MSECS=5000``. ``REQUESTER_AGENT_OPTIONS``
    takes a JSON object.

    :param timeout_msecs: Default per-request timeout in milliseconds
    :type timeout_msecs: int
    :param timing: Enable per-request timing instrumentation
    :type timing: bool
    :param agent_options: Options passed to both pooled agents
    :type agent_options: Dict[str, Any]
    :param dns_cache_ttl: Seconds a resolved address is cached
    :type dns_cache_ttl: float
    :param log_level: Logging level for the application
    :type log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    """

    model_config = SettingsConfigDict(
        env_prefix="REQUESTER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    timeout_msecs: int = Field(
        DEFAULT_REQUEST_TIMEOUT, gt=0, description="Default request timeout (ms)"
    )
    timing: bool = Field(False, description="Record per-request timings")
    agent_options: Dict[str, Any] = Field(
        default_factory=dict, description="Pooled agent options"
    )
    dns_cache_ttl: float = Field(
        60.0, gt=0, description="Seconds a resolved address is cached"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        "INFO", description="Logging level"
    )

    @classmethod
    def load(cls, **overrides: Any) -> "RequesterSettings":
        """Load settings from the environment.

        :param overrides: Values taking precedence over the environment
        :return: Loaded settings
        :rtype: RequesterSettings
        :raises ConfigurationError: If a variable holds an invalid value
        """
        try:
            return cls(**overrides)
        except PydanticValidationError as exc:
            first = exc.errors()[0]
            setting = cls.model_config["env_prefix"] + "_".join(
                str(part) for part in first["loc"]
            ).upper()
            raise ConfigurationError(
                f"{setting} {first['msg']}", setting=setting
            ) from exc
        except SettingsError as exc:
            raise ConfigurationError(str(exc)) from exc

    def to_config(self) -> Dict[str, Any]:
        """Render the settings as a requester configuration mapping.

        :return: Mapping accepted by ``Requester(config)``
        :rtype: Dict[str, Any]
        """
        return {
            "timeout_msecs": self.timeout_msecs,
            "timing": self.timing,
            "agent_options": dict(self.agent_options),
        }
