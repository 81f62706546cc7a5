"""Comparison of original and payload-modified responses."""

from __future__ import annotations

import dataclasses
import re
from urllib.parse import unquote_plus, urlencode, urlsplit, urlunsplit

from cachex.client import Response
from cachex.log import logger
from cachex.types import ResponseChangeType

_CACHE_PARAM = "cache"
_RATE_LIMITED = 429


def strip_injected_param(raw_url: str, param: str) -> str:
    """Remove a query parameter from a URL, re-encoding the rest in key order."""
    if not raw_url:
        return ""
    try:
        parts = urlsplit(raw_url)
    except ValueError:
        return raw_url
    pairs = []
    for segment in parts.query.split("&"):
        if not segment or ";" in segment:
            continue
        key, _, value = segment.partition("=")
        key = unquote_plus(key)
        if key != param:
            pairs.append((key, unquote_plus(value)))
    pairs.sort(key=lambda pair: pair[0])
    rebuilt = urlunsplit(parts._replace(query=urlencode(pairs)))
    return rebuilt.removesuffix("?")


def strip_param_from_body(body: str, param: str) -> str:
    """Remove ``?param=xxxxx`` or ``&param=xxxxx`` occurrences from a body."""
    pattern = "[?&]" + re.escape(param) + r'=[^&\t\n\f\r ">]{5}'
    return re.sub(pattern, "", body)


def normalize_response(response: Response) -> Response:
    """Copy of the response with cache-buster traces removed."""
    return dataclasses.replace(
        response,
        location=strip_injected_param(response.location, _CACHE_PARAM),
        body=strip_param_from_body(response.body, _CACHE_PARAM),
    )


def detect_response_changes(original: Response, modified: Response) -> ResponseChangeType:
    """Classify how the modified response differs from the original."""
    if original.status_code == 0 or modified.status_code == 0:
        raise ValueError("original or modified response is empty")

    original = normalize_response(original)
    logger.debug(f"Normalized original response: {original}")
    modified = normalize_response(modified)
    logger.debug(f"Normalized modified response: {modified}")

    if modified.location != original.location:
        return ResponseChangeType.CHANGED_LOCATION_HEADER
    if modified.status_code != original.status_code and modified.status_code != _RATE_LIMITED:
        return ResponseChangeType.CHANGED_STATUS_CODE
    if modified.body != original.body:
        return ResponseChangeType.CHANGED_BODY
    return ResponseChangeType.NO_CHANGE