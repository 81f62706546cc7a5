"""HTTP client that ignores certificate errors and never follows redirects."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

import requests
import urllib3


class HttpError(Exception):
    """Raised when a request cannot be built, sent or read."""


@dataclass
class Response:
    """The parts of an HTTP response the scanner compares."""

    status_code: int = 0
    headers: dict[str, list[str]] = field(default_factory=dict)
    body: str = ""
    location: str = ""


@dataclass
class ClientConfig:
    """Timeouts in seconds (zero means no limit) and an optional proxy."""

    dial_timeout: float = 0.0
    handshake_timeout: float = 0.0
    response_header_timeout: float = 0.0
    proxy_url: str = ""

    def create_client(self) -> HttpClient:
        return HttpClient(self)


def default_client_config() -> ClientConfig:
    return ClientConfig(
        dial_timeout=5.0,
        handshake_timeout=5.0,
        response_header_timeout=5.0,
    )


def _canonical_key(key: str) -> str:
    return "-".join(part[:1].upper() + part[1:].lower() for part in key.split("-"))


def _collect_headers(resp: requests.Response) -> dict[str, list[str]]:
    raw_headers = getattr(resp.raw, "headers", None)
    if raw_headers is not None and hasattr(raw_headers, "getlist"):
        pairs = [(key, value) for key in raw_headers for value in raw_headers.getlist(key)]
    else:
        pairs = list(resp.headers.items())
    collected: dict[str, list[str]] = {}
    for key, value in pairs:
        collected.setdefault(_canonical_key(key), []).append(value)
    return collected


class HttpClient:
    """Sends GET requests with the settings of a :class:`ClientConfig`."""

    def __init__(self, config: ClientConfig | None = None) -> None:
        self.config = config if config is not None else ClientConfig()
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
        self.session = requests.Session()
        self.session.verify = False
        self.session.trust_env = False
        if self.config.proxy_url:
            self.session.proxies = {
                "http": self.config.proxy_url,
                "https": self.config.proxy_url,
            }
        connect = self.config.dial_timeout + self.config.handshake_timeout
        read = self.config.response_header_timeout
        self.timeout = (connect or None, read or None)

    def _get(self, url: str, headers: Mapping[str, str] | None) -> requests.Response:
        try:
            return self.session.get(
                url,
                headers=dict(headers or {}),
                allow_redirects=False,
                timeout=self.timeout,
                stream=True,
            )
        except (requests.exceptions.MissingSchema, requests.exceptions.InvalidURL) as exc:
            raise HttpError(f"error creating HTTP request: {exc}") from exc
        except requests.RequestException as exc:
            raise HttpError(f"error sending HTTP request: {exc}") from exc

    def fetch(self, url: str, headers: Mapping[str, str] | None = None) -> Response:
        """Send a GET request and return its status, headers and body."""
        resp = self._get(url, headers)
        with resp:
            try:
                content = resp.content
            except requests.RequestException as exc:
                raise HttpError(f"error reading response body: {exc}") from exc
            collected = _collect_headers(resp)
        location = collected.get("Location", [""])[0]
        return Response(
            status_code=resp.status_code,
            headers=collected,
            body=content.decode("utf-8", errors="replace"),
            location=location,
        )

    def send(self, url: str, headers: Mapping[str, str] | None = None) -> None:
        """Send a GET request and discard the response."""
        self._get(url, headers).close()

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> HttpClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()