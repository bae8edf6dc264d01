"""Shared HTTP helpers used by the Maven repository client.

Encapsulates common request/timeout error handling so callers avoid
duplicating try/except blocks. Transport failures are logged and reported
to the caller, which decides how far the failure reaches.
"""
from __future__ import annotations

import logging
import os
import time
from typing import Any, Optional, Tuple

import requests

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)

Auth = Optional[Tuple[str, str]]


def safe_get(url: str, *, context: str, **kwargs: Any) -> Optional[requests.Response]:
    """Perform a GET request with consistent error handling and DEBUG traces.

    Returns:
        The response, or None on a transport failure.
    """
    safe_target = safe_url(url)
    with Timer() as t:
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP request",
                extra=extra_context(
                    event="http_request",
                    component="http_client",
                    action="GET",
                    target=safe_target,
                    context=context
                )
            )
        try:
            res = requests.get(url, timeout=Constants.REQUEST_TIMEOUT, **kwargs)
            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP response ok",
                    extra=extra_context(
                        event="http_response",
                        component="http_client",
                        action="GET",
                        outcome="success",
                        status_code=res.status_code,
                        duration_ms=t.duration_ms(),
                        target=safe_target,
                        context=context
                    )
                )
            return res
        except requests.Timeout:
            logger.error(
                "%s request timed out after %s seconds",
                context,
                Constants.REQUEST_TIMEOUT,
            )
            return None
        except requests.RequestException as exc:  # includes ConnectionError
            logger.error("%s connection error: %s", context, exc)
            return None


def download_file(url: str, dest: str, *, context: str, auth: Auth = None) -> bool:
    """Stream ``url`` into ``dest``, retrying transport failures.

    The body is written to ``dest + '.part'`` and renamed into place only
    once complete.

    Returns:
        True when the file was stored, False when the server answered with
        a non-200 status (the artifact is not in this repository).

    Raises:
        requests.RequestException: when every attempt failed in transport.
    """
    safe_target = safe_url(url)
    partial = dest + Constants.PART_SUFFIX
    last_exception: Optional[requests.RequestException] = None

    for attempt in range(Constants.HTTP_RETRY_MAX):
        if attempt:
            time.sleep(Constants.HTTP_RETRY_BASE_DELAY_SEC * (2 ** (attempt - 1)))
        with Timer() as t:
            try:
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP download",
                        extra=extra_context(
                            event="http_request",
                            component="http_client",
                            action="GET",
                            target=safe_target,
                            attempt=attempt + 1,
                            context=context
                        )
                    )
                with requests.get(url, timeout=Constants.REQUEST_TIMEOUT, auth=auth, stream=True) as res:
                    if res.status_code != 200:
                        if is_debug_enabled(logger):
                            logger.debug(
                                "HTTP non-200 handled",
                                extra=extra_context(
                                    event="http_response",
                                    component="http_client",
                                    outcome="not_found" if res.status_code == 404 else "handled_non_2xx",
                                    status_code=res.status_code,
                                    duration_ms=t.duration_ms(),
                                    target=safe_target,
                                    context=context
                                )
                            )
                        return False
                    os.makedirs(os.path.dirname(dest) or ".", exist_ok=True)
                    try:
                        with open(partial, "wb") as fh:
                            for chunk in res.iter_content(chunk_size=Constants.DOWNLOAD_CHUNK_SIZE):
                                if chunk:
                                    fh.write(chunk)
                        os.replace(partial, dest)
                    except (requests.RequestException, OSError):
                        _discard(partial)
                        raise
                logger.debug("Downloaded %s in %d ms", safe_target, t.duration_ms())
                return True
            except requests.RequestException as exc:
                last_exception = exc
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP request exception",
                        extra=extra_context(
                            event="http_exception",
                            component="http_client",
                            action="GET",
                            outcome="request_exception",
                            attempt=attempt + 1,
                            target=safe_target,
                            context=context
                        )
                    )
                continue

    assert last_exception is not None
    raise last_exception


def _discard(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
