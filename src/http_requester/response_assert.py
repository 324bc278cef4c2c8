"""Default response validation.

A response validator receives the :class:`TransportResult` of every
successful round trip and raises to reject it. ``Requester`` uses
:func:`assert_response` unless another validator is injected.
"""

import logging
from typing import Callable

from .exceptions import ResponseRejection
from .http.response import TransportResult

logger = logging.getLogger(__name__)

ResponseValidator = Callable[[TransportResult], None]


def assert_response(result: TransportResult) -> None:
    """Reject any response whose status is not 2xx.

    :param result: Completed round trip
    :type result: TransportResult
    :raises ResponseRejection: If the status code is outside 200-299
    """
    if result.is_success():
        return
    logger.debug("Rejecting %s response from %s", result.status_code, result.meta.url)
    raise ResponseRejection(
        f"Unexpected status {result.status_code} from {result.meta.url}",
        status_code=result.status_code,
        response_body=result.response_body,
        meta=result.meta,
    )
