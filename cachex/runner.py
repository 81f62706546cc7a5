"""Entry point that turns configuration into a batch scan of URLs."""

from __future__ import annotations

from dataclasses import dataclass, field

from cachex.client import ClientConfig as HttpClientConfig
from cachex.config import PayloadConfig, ScannerConfig, default_config
from cachex.log import logger
from cachex.persistence import PersistenceChecker
from cachex.scanner import ScannerArgs
from cachex.types import LoggerArgs, LogMode, LogTarget, ScanMode, ScannerOutput


class ValidationError(ValueError):
    """Raised when the scanner configuration cannot produce a useful scan."""


def map_log_mode(mode: str) -> LogMode:
    if mode == "json":
        return LogMode.JSON
    if mode not in ("pretty", ""):
        logger.error(f"invalid log mode: {mode}, defaulting to pretty")
    return LogMode.PRETTY


def map_log_target(target: str) -> LogTarget:
    targets = {"stdout": LogTarget.STDOUT, "file": LogTarget.FILE, "both": LogTarget.BOTH}
    if target in targets:
        return targets[target]
    if target != "":
        logger.error(f"invalid log target: {target}, defaulting to stdout")
    return LogTarget.STDOUT


def map_scan_mode(mode: str) -> ScanMode:
    if mode == "multi":
        return ScanMode.MULTI_HEADER
    if mode not in ("single", ""):
        logger.error(f"invalid scan mode: {mode}, defaulting to single header scan")
    return ScanMode.SINGLE_HEADER


def _whole_seconds(value: float) -> float:
    return float(int(value))


@dataclass
class Scanner:
    """Scans a list of URLs with the given scanner and payload configuration."""

    urls: list[str] = field(default_factory=list)
    output_file: str = ""
    scanner_config: ScannerConfig = field(default_factory=lambda: default_config().scanner)
    payload_config: PayloadConfig = field(default_factory=lambda: default_config().payload)

    def validate(self) -> None:
        cfg = self.scanner_config
        if not cfg.persistence_checker.enabled and cfg.logger.skip_tentative:
            raise ValidationError(
                "no output: persistence check and tentative logging are both disabled"
            )
        if cfg.threads <= 0:
            raise ValidationError(f"invalid number of threads: {cfg.threads}")

    def run(self) -> tuple[list[ScannerOutput], list[Exception]]:
        """Validate the configuration and scan every URL."""
        try:
            self.validate()
        except ValidationError as exc:
            logger.error(f"failed to validate args: {exc}")
            return [], [exc]

        cfg = self.scanner_config
        client_cfg = cfg.client
        checker_cfg = cfg.persistence_checker
        log_cfg = cfg.logger

        client = HttpClientConfig(
            dial_timeout=_whole_seconds(client_cfg.dial_timeout),
            handshake_timeout=_whole_seconds(client_cfg.handshake_timeout),
            response_header_timeout=_whole_seconds(client_cfg.response_timeout),
            proxy_url=client_cfg.proxy_url,
        ).create_client()

        args = ScannerArgs(
            scan_mode=map_scan_mode(cfg.scan_mode),
            request_headers=cfg.request_headers,
            payload_headers=self.payload_config.payload_headers,
            persistence_checker=PersistenceChecker(
                do_check=checker_cfg.enabled,
                num_requests_to_send=checker_cfg.num_requests_to_send,
                num_threads=checker_cfg.threads,
            ),
            client=client,
            logger_args=LoggerArgs(
                log_error=log_cfg.log_error,
                log_mode=map_log_mode(log_cfg.log_mode),
                log_target=map_log_target(log_cfg.log_target),
                skip_tentative=log_cfg.skip_tentative,
            ),
        )

        if not log_cfg.debug:
            logger.disable_debug = True

        if self.output_file:
            args.logger_args.log_target = map_log_target("both")
            args.logger_args.output_file = self.output_file

        with client:
            return args.run_batch_scan(self.urls, cfg.threads)