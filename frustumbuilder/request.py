"""Blocking HTTP requests to the elevation and building providers."""

import logging
from urllib.parse import urlsplit

import requests

from .constants import REQUEST_TIMEOUT
from .exceptions import DataUnavailableError

logger = logging.getLogger(__name__)

_HEADERS = {"User-Agent": "frustumbuilder/0.1"}


def request(url: str, payload: str | None = None, timeout: float = REQUEST_TIMEOUT) -> str:
    """GET ``url``, or POST ``payload`` to it, and return the response text.

    Error statuses are not raised: providers describe the problem in the
    body, which the parsers surface to the caller.
    """
    hostname = urlsplit(url).hostname
    try:
        if payload is None:
            logger.info(f"GET {hostname} with timeout={timeout}")
            response = requests.get(url, timeout=timeout, headers=_HEADERS)
        else:
            logger.info(f"POST {hostname} with timeout={timeout}")
            response = requests.post(url, data=payload.encode("utf-8"),
                                     timeout=timeout, headers=_HEADERS)
    except requests.RequestException as e:
        raise DataUnavailableError(f"The request to {hostname} failed: {e}",
                                   stage="request") from e

    if not response.ok:
        logger.warning(f"{hostname!r} responded {response.status_code} {response.reason}")
    return response.text
