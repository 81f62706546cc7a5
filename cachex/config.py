"""Scanner and payload configuration, with YAML files in the user's config directory."""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any

import yaml

from cachex.log import logger

APP_NAME = "cachex"
PAYLOADS_FILENAME = "payloads.yaml"
SCANNER_CONFIG_FILENAME = "config.yaml"

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/136.0.0.0 Safari/537.36"
)

PAYLOAD_HEADERS: dict[str, str] = {
    "X-Forwarded-Host": "evil.com",
    "X-Original-URL": "/evilpath",
    "X-Forwarded-For": "127.0.0.1",
    "X-Host": "evil.com",
    "X-Custom-IP-Authorization": "127.0.0.1",
    "X-Forwarded-Proto": "https",
    "X-Forwarded-Port": "443",
    "X-Rewrite-URL": "/evilpath",
    "X-Original-Host": "evil.com",
    "X-ProxyUser-Ip": "127.0.0.1",
    "X-Forwarded-Server": "evil.com",
    "X-Url-Scheme": "https",
    "X-Requested-With": "XMLHttpRequest",
    "X-Host-Override": "evil.com",
    "X-Forwarded-Host-Override": "evil.com",
    "X-Forwarded-Scheme": "https",
    "X-Client-IP": "127.0.0.1",
    "Forwarded": "for=127.0.0.1;host=evil.com;proto=https",
    "X-HTTP-Method-Override": "POST",
}


@dataclass
class PayloadConfig:
    payload_headers: dict[str, str] = field(default_factory=dict)


@dataclass
class ClientConfig:
    dial_timeout: float = 0.0
    handshake_timeout: float = 0.0
    response_timeout: float = 0.0
    proxy_url: str = ""


@dataclass
class PersistenceCheckerConfig:
    enabled: bool = False
    num_requests_to_send: int = 0
    threads: int = 0


@dataclass
class LoggerConfig:
    log_error: bool = False
    log_mode: str = ""
    log_target: str = ""
    debug: bool = False
    skip_tentative: bool = False


@dataclass
class ScannerConfig:
    scan_mode: str = ""
    threads: int = 0
    request_headers: dict[str, str] = field(default_factory=dict)
    client: ClientConfig = field(default_factory=ClientConfig)
    persistence_checker: PersistenceCheckerConfig = field(
        default_factory=PersistenceCheckerConfig
    )
    logger: LoggerConfig = field(default_factory=LoggerConfig)


def _as_string(value: Any, where: str) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise ValueError(f"{where}: expected a scalar, got {type(value).__name__}")


def _coerce(current: Any, value: Any, where: str) -> Any:
    if value is None:
        return type(current)()
    if isinstance(current, bool):
        if isinstance(value, bool):
            return value
        raise ValueError(f"{where}: expected a boolean, got {value!r}")
    if isinstance(current, int):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        raise ValueError(f"{where}: expected an integer, got {value!r}")
    if isinstance(current, float):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        raise ValueError(f"{where}: expected a number, got {value!r}")
    return _as_string(value, where)


def _merge(target: Any, data: Any, path: str) -> None:
    """Overlay a parsed YAML mapping onto a dataclass; absent keys keep their values."""
    if data is None:
        return
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping, got {type(data).__name__}")
    for f in fields(target):
        if f.name not in data:
            continue
        value = data[f.name]
        current = getattr(target, f.name)
        where = f"{path}.{f.name}"
        if is_dataclass(current):
            _merge(current, value, where)
        elif isinstance(current, dict):
            if value is None:
                setattr(target, f.name, {})
            elif isinstance(value, dict):
                current.update(
                    {_as_string(k, where): _as_string(v, where) for k, v in value.items()}
                )
            else:
                raise ValueError(f"{where}: expected a mapping, got {type(value).__name__}")
        else:
            setattr(target, f.name, _coerce(current, value, where))


def _parse_yaml(text: str, what: str) -> Any:
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ValueError(f"failed to parse {what}: {exc}") from exc


def _dump_yaml(data: dict[str, Any]) -> str:
    return yaml.safe_dump(data, sort_keys=False, default_flow_style=False)


@dataclass
class Config:
    """Full configuration: how to scan and which headers to inject."""

    scanner: ScannerConfig = field(default_factory=ScannerConfig)
    payload: PayloadConfig = field(default_factory=PayloadConfig)

    def apply_payload_yaml(self, text: str) -> None:
        _merge(self.payload, _parse_yaml(text, "payload config"), "payload")

    def apply_scanner_yaml(self, text: str) -> None:
        _merge(self.scanner, _parse_yaml(text, "scanner config"), "scanner")

    def payload_yaml(self) -> str:
        return _dump_yaml(asdict(self.payload))

    def scanner_yaml(self) -> str:
        return _dump_yaml(asdict(self.scanner))


def default_config() -> Config:
    return Config(
        scanner=ScannerConfig(
            scan_mode="single",
            threads=25,
            request_headers={"User-Agent": DEFAULT_USER_AGENT, "Accept": "*/*"},
            client=ClientConfig(
                dial_timeout=5.0,
                handshake_timeout=5.0,
                response_timeout=10.0,
                proxy_url="",
            ),
            persistence_checker=PersistenceCheckerConfig(
                enabled=True, num_requests_to_send=10, threads=5
            ),
            logger=LoggerConfig(
                log_error=False,
                log_mode="pretty",
                log_target="stdout",
                debug=False,
                skip_tentative=True,
            ),
        ),
        payload=PayloadConfig(payload_headers=dict(PAYLOAD_HEADERS)),
    )


def default_config_dir() -> Path:
    return Path(os.environ.get("HOME", "")) / ".config" / APP_NAME


def _ensure_file(path: Path, render, apply) -> None:
    if not path.exists():
        logger.info(f"created {path}")
        path.write_text(render(), encoding="utf-8")
    apply(path.read_text(encoding="utf-8"))


def load_config(config_dir: str | os.PathLike | None = None) -> Config:
    """Load configuration, writing default files for any that are missing."""
    directory = Path(config_dir) if config_dir is not None else default_config_dir()
    directory.mkdir(mode=0o755, parents=True, exist_ok=True)
    cfg = default_config()
    _ensure_file(directory / PAYLOADS_FILENAME, cfg.payload_yaml, cfg.apply_payload_yaml)
    _ensure_file(
        directory / SCANNER_CONFIG_FILENAME, cfg.scanner_yaml, cfg.apply_scanner_yaml
    )
    return cfg