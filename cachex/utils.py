"""Helpers for header maps, cache-busting URLs and result files."""

from __future__ import annotations

import os
import random
from typing import Mapping
from urllib.parse import urlsplit, urlunsplit

CHARSET = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"


def merge_maps(
    first: Mapping[str, str] | None, second: Mapping[str, str] | None
) -> dict[str, str]:
    """Return a new dict with both mappings; values from ``second`` win."""
    return {**(first or {}), **(second or {})}


def remove_url_query_params(url: str) -> str:
    """Drop the query string from a URL."""
    return urlunsplit(urlsplit(url)._replace(query=""))


def create_cache_buster_url(url: str, value: str) -> str:
    """Replace the URL's query with a single ``cache`` parameter."""
    return f"{remove_url_query_params(url)}?cache={value}"


def generate_random_string(length: int) -> str:
    """Random alphanumeric string of the given length."""
    if length < 0:
        raise ValueError(f"length must not be negative: {length}")
    return "".join(random.choices(CHARSET, k=length))


def write_to_file(path: str | os.PathLike, content: str) -> None:
    """Append ``content`` to a file, making sure it ends with a newline."""
    if not content.endswith("\n"):
        content += "\n"
    with open(path, "a", encoding="utf-8") as handle:
        handle.write(content)