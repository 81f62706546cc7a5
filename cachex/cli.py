"""Command line interface: flags, configuration overrides and the scan run."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Sequence, TextIO

from cachex.config import PAYLOADS_FILENAME, Config, default_config_dir, load_config
from cachex.log import logger
from cachex.runner import Scanner
from cachex.types import ScannerOutput

VERSION = "1"

_BANNER = r"""
                   __             
  _________ ______/ /_  ___  _  __
 / ___/ __ `/ ___/ __ \/ _ \| |/_/
/ /__/ /_/ / /__/ / / /  __/>  <  
\___/\__,_/\___/_/ /_/\___/_/|_|  
                                  
"""

_HELP_TEMPLATE = """cachex - Tool to detect cache poisoning vulnerabilities

USAGE:
  cachex [flags]

FLAGS:

INPUT:
  -u, --url                      URL to scan
  -l, --list                     Path to a file containing a list of URLs to scan

GENERAL:
  -t, --threads                  Number of threads to use (default: {threads})
  -m, --scan-mode                Scan mode: single or multi (default: {scan_mode})

HTTP CLIENT:
  -timeout, --request-timeout    Request timeout in seconds (default: {timeout:.1f})
  -proxy, --proxy-url            Proxy URL to use for requests (default: {proxy})

PERSISTENCE CHECKER:
  -np, --no-chk-prst         \t Disable persistence checker or real time poisoning check (default: {no_check})
  -pr, --prst-requests           Number of requests to send for poisoning the cache (default: {prst_requests})
  -pt, --prst-threads            Number of concurrent threads to use while poisoning (default: {prst_threads})

OUTPUT:
  -j, --json                     Write JSONLines output
  -o, --output                   Path to output file (default: stdout)

PAYLOADS:
  -pcf, --payload-config-file    Path to payload config YAML file (default: {payload_path})
"""


def print_banner() -> None:
    """Write the banner and version to standard error."""
    sys.stderr.write(_BANNER)
    sys.stderr.write(f"               v{VERSION}\n")
    sys.stderr.flush()


def _full_timeout(cfg: Config) -> float:
    client = cfg.scanner.client
    return client.dial_timeout + client.handshake_timeout + client.response_timeout


def build_help_message(cfg: Config, payload_path: str) -> str:
    """Usage text showing the defaults currently in effect."""
    checker = cfg.scanner.persistence_checker
    return _HELP_TEMPLATE.format(
        threads=cfg.scanner.threads,
        scan_mode=cfg.scanner.scan_mode,
        timeout=_full_timeout(cfg),
        proxy="None",
        no_check="false" if checker.enabled else "true",
        prst_requests=checker.num_requests_to_send,
        prst_threads=checker.threads,
        payload_path=payload_path,
    )


class _HelpParser(argparse.ArgumentParser):
    def __init__(self, help_text: str, **kwargs) -> None:
        super().__init__(**kwargs)
        self.help_text = help_text

    def format_help(self) -> str:
        return self.help_text


def build_parser(cfg: Config, payload_path: str) -> argparse.ArgumentParser:
    """Argument parser whose defaults come from ``cfg``."""
    scanner = cfg.scanner
    checker = scanner.persistence_checker
    parser = _HelpParser(
        build_help_message(cfg, payload_path),
        prog="cachex",
        add_help=False,
        allow_abbrev=False,
    )
    parser.add_argument("-h", "--help", action="help")
    parser.add_argument("-u", "--url", default="")
    parser.add_argument("-l", "--list", default="")
    parser.add_argument("-t", "--threads", type=int, default=scanner.threads)
    parser.add_argument("-m", "--scan-mode", default=scanner.scan_mode)
    parser.add_argument(
        "-timeout", "--request-timeout", type=float, default=_full_timeout(cfg)
    )
    parser.add_argument("-proxy", "--proxy-url", default=scanner.client.proxy_url)
    parser.add_argument(
        "-np", "--no-chk-prst", action="store_true", default=not checker.enabled
    )
    parser.add_argument(
        "-pr", "--prst-requests", type=int, default=checker.num_requests_to_send
    )
    parser.add_argument("-pt", "--prst-threads", type=int, default=checker.threads)
    parser.add_argument("-j", "--json", action="store_true")
    parser.add_argument("-o", "--output", default="")
    parser.add_argument("-pcf", "--payload-config-file", default="")
    return parser


def process_payload_config_file(path: str, cfg: Config) -> None:
    """Merge payload headers from a YAML file into ``cfg``; an empty path does nothing."""
    if not path:
        return
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise OSError(f"failed to read payload config: {exc}") from exc
    try:
        cfg.apply_payload_yaml(text)
    except ValueError as exc:
        raise ValueError(f"failed to parse payload config: {exc}") from exc


def process_request_timeout(timeout: float, cfg: Config) -> None:
    """Split a positive overall timeout evenly across the three client timeouts."""
    if timeout > 0:
        share = timeout / 3
        client = cfg.scanner.client
        client.dial_timeout = share
        client.handshake_timeout = share
        client.response_timeout = share


def _non_blank_lines(lines) -> list[str]:
    return [stripped for stripped in (line.strip() for line in lines) if stripped]


def file_to_lines(path: str) -> list[str]:
    """Non-empty, stripped lines of a text file."""
    with open(path, encoding="utf-8") as handle:
        return _non_blank_lines(handle)


def collect_urls(url: str, list_path: str, stdin: TextIO | None) -> list[str]:
    """Target URLs from the URL flag, else the list file, else piped input."""
    if url:
        return [url]
    if list_path:
        return file_to_lines(list_path)
    if stdin is None:
        return []
    isatty = getattr(stdin, "isatty", None)
    if isatty is not None and isatty():
        return []
    return _non_blank_lines(stdin)


def run(
    cfg: Config, urls: Sequence[str], output_file: str = ""
) -> tuple[list[ScannerOutput], list[Exception]]:
    """Scan ``urls`` with ``cfg``; logs an error and scans nothing if there are none."""
    if not urls:
        logger.error("No URLs provided")
        return [], []
    scanner = Scanner(
        urls=list(urls),
        output_file=output_file,
        scanner_config=cfg.scanner,
        payload_config=cfg.payload,
    )
    return scanner.run()


def _apply_flags(ns: argparse.Namespace, cfg: Config) -> None:
    scanner = cfg.scanner
    scanner.threads = ns.threads
    scanner.scan_mode = ns.scan_mode
    scanner.client.proxy_url = ns.proxy_url
    scanner.persistence_checker.num_requests_to_send = ns.prst_requests
    scanner.persistence_checker.threads = ns.prst_threads


def _exit_code(exc: SystemExit) -> int:
    if exc.code is None:
        return 0
    if isinstance(exc.code, int):
        return exc.code
    return 1


def main(argv: Sequence[str] | None = None) -> int:
    try:
        cfg = load_config()
    except (OSError, ValueError) as exc:
        logger.error(f"Failed to load config: {exc}")
        return 1

    payload_path = str(default_config_dir() / PAYLOADS_FILENAME)
    parser = build_parser(cfg, payload_path)
    try:
        ns = parser.parse_args(argv)
    except SystemExit as exc:
        return _exit_code(exc)

    _apply_flags(ns, cfg)
    try:
        process_payload_config_file(ns.payload_config_file, cfg)
    except (OSError, ValueError) as exc:
        logger.error(f"failed to process payload config file: {exc}")
        return 1
    process_request_timeout(ns.request_timeout, cfg)
    if ns.json:
        cfg.scanner.logger.log_mode = "json"
    if ns.no_chk_prst:
        cfg.scanner.persistence_checker.enabled = False

    print_banner()
    try:
        urls = collect_urls(ns.url, ns.list, sys.stdin)
    except OSError as exc:
        logger.error(f"failed to read URLs: {exc}")
        return 1

    run(cfg, urls, ns.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())