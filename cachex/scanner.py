"""Cache poisoning scans of single URLs and batches of URLs."""

from __future__ import annotations

import dataclasses
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable

from cachex.client import HttpClient, HttpError, Response, default_client_config
from cachex.detector import detect_response_changes
from cachex.log import logger
from cachex.persistence import PersistenceChecker
from cachex.report import log_result
from cachex.types import (
    LoggerArgs,
    PoisoningError,
    ResponseChangeType,
    ScanMode,
    ScannerOutput,
)
from cachex.utils import create_cache_buster_url, generate_random_string, merge_maps

_CACHE_BUSTER_LENGTH = 5


class ScanError(Exception):
    """Raised when a scan of a URL cannot be completed."""


def _new_client() -> HttpClient:
    return default_client_config().create_client()


@dataclass
class ScannerArgs:
    """Target, headers and settings for scanning one URL."""

    url: str = ""
    scan_mode: ScanMode = ScanMode.SINGLE_HEADER
    request_headers: dict[str, str] = field(default_factory=dict)
    payload_headers: dict[str, str] = field(default_factory=dict)
    persistence_checker: PersistenceChecker | None = None
    original_response: Response | None = None
    client: HttpClient = field(default_factory=_new_client, repr=False)
    logger_args: LoggerArgs = field(default_factory=LoggerArgs)
    cache_buster_url: str = field(default="", repr=False)

    def set_cache_buster_url(self) -> None:
        """Pick a fresh cache-busting URL so responses are not served from cache."""
        value = generate_random_string(_CACHE_BUSTER_LENGTH)
        self.cache_buster_url = create_cache_buster_url(self.url, value)

    def run_poisoning_test(self) -> ScannerOutput:
        """Send the payload headers, compare with the original response, check persistence."""
        if self.original_response is None:
            raise ScanError("original response has not been fetched")

        self.set_cache_buster_url()
        try:
            modified = self.client.fetch(
                self.cache_buster_url, merge_maps(self.request_headers, self.payload_headers)
            )
        except HttpError as exc:
            raise ScanError(f"failed to fetch modified response: {exc}") from exc
        logger.debug(f"Received modified response: {modified}")

        try:
            change = detect_response_changes(self.original_response, modified)
        except ValueError as exc:
            raise ScanError(f"error detecting response changes: {exc}") from exc

        output = ScannerOutput(
            url=self.url,
            is_response_manipulable=change is not ResponseChangeType.NO_CHANGE,
            manipulation_type=change,
            request_headers=dict(self.request_headers),
            payload_headers=dict(self.payload_headers),
            original_response=self.original_response,
            modified_response=modified,
        )

        checker = self.persistence_checker
        if checker is not None and checker.do_check and output.is_response_manipulable:
            result = checker.check(self, modified, change)
            if result.err is not None and not isinstance(result.err, PoisoningError):
                raise ScanError(f"error checking response persistence: {result.err}")
            output.is_vulnerable = result.is_persistent
            output.persistence_check_result = result

        args = self.logger_args
        try:
            log_result(
                output,
                args.output_file,
                args.log_mode,
                args.log_target,
                args.skip_tentative,
            )
        except (ValueError, OSError) as exc:
            raise ScanError(f"error logging scan result: {exc}") from exc

        return output

    def _run_multi_header(self) -> ScannerOutput:
        try:
            return self.run_poisoning_test()
        except ScanError as exc:
            raise ScanError(f"error running multi-header poisoning test: {exc}") from exc

    def _run_single_header(self) -> list[ScannerOutput]:
        checker = self.persistence_checker
        saved_do_check = checker.do_check if checker is not None else False
        all_headers = self.payload_headers
        try:
            # A first pass with every header at once tells cheaply whether anything changes.
            if checker is not None:
                checker.do_check = False
            combined = self._run_multi_header()
            if not combined.is_response_manipulable:
                return [combined]
            if checker is not None:
                checker.do_check = saved_do_check

            results = []
            for header, value in all_headers.items():
                self.payload_headers = {header: value}
                try:
                    results.append(self.run_poisoning_test())
                except ScanError as exc:
                    raise ScanError(
                        "error running single-header poisoning test for payload "
                        f"header {header}: {exc}"
                    ) from exc
            return results
        finally:
            if checker is not None:
                checker.do_check = saved_do_check
            self.payload_headers = all_headers

    def run(self) -> list[ScannerOutput]:
        """Scan the URL with each payload header alone or with all of them at once."""
        self.set_cache_buster_url()
        try:
            original = self.client.fetch(self.cache_buster_url, self.request_headers)
        except HttpError as exc:
            raise ScanError(f"failed to fetch response: {exc}") from exc
        logger.debug(f"Received original response: {original}")
        self.original_response = original

        if self.scan_mode is ScanMode.SINGLE_HEADER:
            return self._run_single_header()
        return [self._run_multi_header()]

    def _clone_for(self, target: str) -> ScannerArgs:
        checker = self.persistence_checker
        return dataclasses.replace(
            self,
            url=target,
            persistence_checker=dataclasses.replace(checker) if checker is not None else None,
        )

    def run_batch_scan(
        self, urls: Iterable[str], threads: int
    ) -> tuple[list[ScannerOutput], list[Exception]]:
        """Scan many URLs concurrently; return all results and all errors."""

        def scan(target: str) -> tuple[list[ScannerOutput], Exception | None]:
            args = self._clone_for(target)
            try:
                return args.run(), None
            except ScanError as exc:
                if args.logger_args.log_error:
                    logger.error(f"failed to scan endpoint {target}: {exc}")
                return [], exc

        results: list[ScannerOutput] = []
        errors: list[Exception] = []
        with ThreadPoolExecutor(max_workers=threads) as pool:
            for outputs, err in pool.map(scan, list(urls)):
                results.extend(outputs)
                if err is not None:
                    errors.append(err)
        return results, errors