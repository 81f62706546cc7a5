"""Enumerations and result records shared by the scanner, with JSON output."""

from __future__ import annotations

import enum
import json
import os
from dataclasses import dataclass, field
from typing import Any

from cachex.client import Response


class ScanMode(enum.Enum):
    """Whether payload headers are tried one at a time or all together."""

    SINGLE_HEADER = 0
    MULTI_HEADER = 1


class ResponseChangeType(enum.Enum):
    """How a response changed once payload headers were added."""

    CHANGED_LOCATION_HEADER = 0
    CHANGED_STATUS_CODE = 1
    CHANGED_BODY = 2
    NO_CHANGE = 3

    @property
    def json_name(self) -> str:
        return _CHANGE_TYPE_NAMES.get(self, "Unknown")


_CHANGE_TYPE_NAMES = {
    ResponseChangeType.CHANGED_LOCATION_HEADER: "ChangedLocationHeader",
    ResponseChangeType.CHANGED_STATUS_CODE: "ChangedStatusCode",
    ResponseChangeType.CHANGED_BODY: "ChangedBody",
    ResponseChangeType.NO_CHANGE: "NoChange",
}


class LogMode(enum.Enum):
    """Format of reported findings."""

    PRETTY = 0
    JSON = 1


class LogTarget(enum.IntFlag):
    """Where findings are reported."""

    STDOUT = 1
    FILE = 2
    BOTH = STDOUT | FILE


@dataclass
class LoggerArgs:
    """How and where scan results are reported."""

    log_error: bool = False
    log_mode: LogMode = LogMode.PRETTY
    log_target: LogTarget = LogTarget.STDOUT
    output_file: str = ""
    skip_tentative: bool = False


class PoisoningError(Exception):
    """Collects the failures of the requests sent while poisoning the cache."""

    def __init__(self, errors: list[Exception] | None = None) -> None:
        self.errors = list(errors or [])
        super().__init__(str(self))

    def __str__(self) -> str:
        if not self.errors:
            return ""
        lines = "".join(f" - {err}\n" for err in self.errors)
        return f"Errors during poisoning:\n{lines}"


def _go_json(data: Any, indent: int | None = None) -> str:
    separators = None if indent is not None else (",", ":")
    text = json.dumps(data, ensure_ascii=False, indent=indent, separators=separators)
    return (
        text.replace("<", "\\u003c")
        .replace(">", "\\u003e")
        .replace("&", "\\u0026")
        .replace("\u2028", "\\u2028")
        .replace("\u2029", "\\u2029")
    )


def _sorted_map(mapping: dict[str, Any] | None) -> dict[str, Any]:
    return {key: mapping[key] for key in sorted(mapping or {})}


def _response_to_dict(response: Response | None) -> dict[str, Any] | None:
    if response is None:
        return None
    return {
        "StatusCode": response.status_code,
        "Headers": {k: list(v) for k, v in _sorted_map(response.headers).items()},
        "Body": response.body,
        "Location": response.location,
    }


@dataclass
class PersistenceCheckResult:
    """Outcome of checking whether a manipulated response stays cached."""

    is_persistent: bool = False
    poc_link: str = ""
    final_response: Response | None = None
    err: Exception | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "IsPersistent": self.is_persistent,
            "PoCLink": self.poc_link,
            "FinalResponse": _response_to_dict(self.final_response),
        }
        if self.err is not None:
            data["Err"] = str(self.err)
        return data


@dataclass
class ScannerOutput:
    """Result of scanning one URL with one set of payload headers."""

    url: str = ""
    is_vulnerable: bool = False
    is_response_manipulable: bool = False
    manipulation_type: ResponseChangeType = ResponseChangeType.NO_CHANGE
    request_headers: dict[str, str] = field(default_factory=dict)
    payload_headers: dict[str, str] = field(default_factory=dict)
    original_response: Response | None = None
    modified_response: Response | None = None
    persistence_check_result: PersistenceCheckResult | None = None

    def to_dict(self) -> dict[str, Any]:
        check = self.persistence_check_result
        return {
            "URL": self.url,
            "IsVulnerable": self.is_vulnerable,
            "IsResponseManipulable": self.is_response_manipulable,
            "ManipulationType": self.manipulation_type.json_name,
            "RequestHeaders": _sorted_map(self.request_headers),
            "PayloadHeaders": _sorted_map(self.payload_headers),
            "OriginalResponse": _response_to_dict(self.original_response),
            "ModifiedResponse": _response_to_dict(self.modified_response),
            "PersistenceCheckResult": check.to_dict() if check is not None else None,
        }

    def to_json(self) -> str:
        """Compact single-line JSON."""
        return _go_json(self.to_dict())


def marshal_scanner_output(scan_result: ScannerOutput) -> bytes:
    """Serialize a scan result as indented JSON."""
    return _go_json(scan_result.to_dict(), indent=2).encode("utf-8")


def export_json_to_file(json_data: bytes | str, output_file: str | os.PathLike) -> None:
    """Append JSON data to a file, creating it if needed."""
    if isinstance(json_data, str):
        json_data = json_data.encode("utf-8")
    with open(output_file, "ab") as handle:
        handle.write(json_data)