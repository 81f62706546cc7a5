"""Reporting of scan findings to standard output and result files."""

from __future__ import annotations

import os
import sys
from typing import Mapping

from cachex.log import colorize
from cachex.types import LogMode, LogTarget, ResponseChangeType, ScannerOutput
from cachex.utils import write_to_file

_VULN_NAMES = {
    ResponseChangeType.CHANGED_LOCATION_HEADER: "Location Poisoning",
    ResponseChangeType.CHANGED_STATUS_CODE: "Status Code Poisoning",
    ResponseChangeType.CHANGED_BODY: "Response Body Poisoning",
}

_MANIPULATION_NAMES = {
    ResponseChangeType.CHANGED_LOCATION_HEADER: "Location Header Manipulation",
    ResponseChangeType.CHANGED_STATUS_CODE: "Status Code Manipulation",
    ResponseChangeType.CHANGED_BODY: "Response Body Manipulation",
}


def vuln_type_name(change: ResponseChangeType) -> str:
    return _VULN_NAMES.get(change, "Unknown")


def manipulation_type_name(change: ResponseChangeType) -> str:
    return _MANIPULATION_NAMES.get(change, "Unknown")


def format_header_for_log(headers: Mapping[str, str] | None) -> str:
    """Render headers as ``Name: value`` pairs joined by ``; ``."""
    if not headers:
        return "-"
    return "; ".join(f"{key}: {value}" for key, value in headers.items())


def _stdout_color() -> bool:
    if "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb":
        return False
    isatty = getattr(sys.stdout, "isatty", None)
    return bool(isatty and isatty())


def _pretty(output: ScannerOutput, use_color: bool) -> tuple[str, str]:
    def paint(text: str, color: str, bold: bool = False) -> str:
        return colorize(text, color, bold) if use_color else text

    header_info = format_header_for_log(output.payload_headers)
    url = paint(output.url, "cyan")
    header = paint(header_info, "magenta")

    if output.is_vulnerable:
        check = output.persistence_check_result
        poc_link = check.poc_link if check is not None else ""
        vuln = vuln_type_name(output.manipulation_type)
        message = (
            f"{paint('[vuln]', 'red', True)} [{url}] [{vuln}] "
            f"[header: {header}] [poc: {paint(poc_link, 'blue')}]"
        )
        plain = f"[vuln] [{output.url}] [{vuln}] [header: {header_info}] [poc: {poc_link}]"
        return message, plain

    manipulation = manipulation_type_name(output.manipulation_type)
    message = (
        f"{paint('[tentative-vuln]', 'yellow', True)} [{url}] [{manipulation}] "
        f"[header: {header}]"
    )
    plain = f"[tentative-vuln] [{output.url}] [{manipulation}] [header: {header_info}]"
    return message, plain


def log_result(
    output: ScannerOutput,
    output_file: str = "",
    mode: LogMode = LogMode.PRETTY,
    target: LogTarget = LogTarget.STDOUT,
    skip_tentative: bool = False,
) -> None:
    """Report a finding; results that are neither vulnerable nor reportable are skipped."""
    if not output.is_vulnerable and (not output.is_response_manipulable or skip_tentative):
        return

    if mode is LogMode.JSON:
        message = plain = output.to_json()
    else:
        message, plain = _pretty(output, _stdout_color())

    if target & LogTarget.STDOUT:
        print(message)
    if target & LogTarget.FILE:
        if not output_file:
            raise ValueError("output file path is required for file logging")
        write_to_file(output_file, plain)