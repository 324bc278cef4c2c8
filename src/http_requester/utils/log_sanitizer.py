"""Log sanitization and logging setup.

Request URLs show up in log messages and error details. They can carry
credentials in their userinfo or in query parameters, so the formatter
installed by :func:`setup_logging` redacts both before a record is
written.
"""

import logging
import re
import sys

SENSITIVE_PARAMS = (
    "token",
    "key",
    "secret",
    "password",
    "auth",
    "access_token",
    "api_key",
    "client_secret",
    "signature",
)

_USERINFO = re.compile(r"(?P<scheme>[a-z][a-z0-9+.-]*://)[^/@\s]+@", re.IGNORECASE)
_QUERY_PARAM = re.compile(
    r"(?P<name>[?&](?:[^=&\s]*_)?(?:" + "|".join(SENSITIVE_PARAMS) + r")=)[^&#\s]+",
    re.IGNORECASE,
)


def sanitize_url(url: str) -> str:
    """Redact credentials from a URL or from text containing URLs.

    Userinfo (``user:pass@``) and the values of sensitive query
    parameters are replaced with ``<REDACTED>``.

    :param url: URL or free text to sanitize
    :type url: str
    :return: Sanitized text
    :rtype: str
    """
    if not url:
        return url
    url = _USERINFO.sub(r"\g<scheme><REDACTED>@", url)
    return _QUERY_PARAM.sub(r"\g<name><REDACTED>", url)


class SanitizingFormatter(logging.Formatter):
    """Formatter that redacts credentials from URLs in log messages."""

    def format(self, record: logging.LogRecord) -> str:
        """Format the record, sanitizing the fully rendered message.

        :param record: Log record to format
        :type record: logging.LogRecord
        :return: Sanitized log line
        :rtype: str
        """
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            message = str(record.msg)
        record.msg = sanitize_url(message)
        record.args = None
        return super().format(record)


_LOGGING_CONFIGURED = False


def setup_logging(level: str = "INFO", force: bool = False) -> None:
    """Send logs to stdout through a :class:`SanitizingFormatter`.

    Runs once per process unless ``force`` is set.

    :param level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    :type level: str
    :param force: Reconfigure even if logging was already set up
    :type force: bool
    """
    global _LOGGING_CONFIGURED

    if _LOGGING_CONFIGURED and not force:
        logging.getLogger(__name__).debug(
            "Logging already configured, skipping duplicate setup"
        )
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        SanitizingFormatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        handlers=[handler],
        force=True,
    )
    # httpx logs full request URLs at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    _LOGGING_CONFIGURED = True
