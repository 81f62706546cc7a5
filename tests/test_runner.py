import json
import threading

import pytest
import responses

from cachex.config import default_config
from cachex.log import logger
from cachex.runner import (
    Scanner,
    ValidationError,
    map_log_mode,
    map_log_target,
    map_scan_mode,
)
from cachex.types import LogMode, LogTarget, ScanMode

URL = "https://target.example.com/"


class _CachingServer:
    def __init__(self):
        self.cache = {}
        self.lock = threading.Lock()

    def __call__(self, request):
        with self.lock:
            if request.url not in self.cache:
                host = request.headers.get("X-Forwarded-Host")
                body = f'<script src="//{host}/app.js"></script>' if host else "<p>home</p>"
                self.cache[request.url] = body
            return 200, {}, self.cache[request.url]


@pytest.fixture
def mocked():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


def _scanner(**kwargs):
    cfg = default_config()
    cfg.scanner.threads = 2
    cfg.scanner.persistence_checker.num_requests_to_send = 3
    cfg.scanner.persistence_checker.threads = 2
    cfg.payload.payload_headers = {"X-Forwarded-Host": "evil.com"}
    return Scanner(
        urls=[URL],
        scanner_config=cfg.scanner,
        payload_config=cfg.payload,
        **kwargs,
    )


@pytest.mark.parametrize(
    "value, expected",
    [("pretty", LogMode.PRETTY), ("json", LogMode.JSON), ("", LogMode.PRETTY)],
)
def test_map_log_mode(value, expected):
    assert map_log_mode(value) is expected


@pytest.mark.parametrize(
    "value, expected",
    [
        ("stdout", LogTarget.STDOUT),
        ("file", LogTarget.FILE),
        ("both", LogTarget.BOTH),
        ("", LogTarget.STDOUT),
    ],
)
def test_map_log_target(value, expected):
    assert map_log_target(value) == expected


@pytest.mark.parametrize(
    "value, expected",
    [("single", ScanMode.SINGLE_HEADER), ("multi", ScanMode.MULTI_HEADER), ("", ScanMode.SINGLE_HEADER)],
)
def test_map_scan_mode(value, expected):
    assert map_scan_mode(value) is expected


def test_invalid_values_fall_back_with_error(capsys):
    assert map_log_mode("bogus") is LogMode.PRETTY
    assert map_log_target("bogus") == LogTarget.STDOUT
    assert map_scan_mode("bogus") is ScanMode.SINGLE_HEADER
    err = capsys.readouterr().err
    assert "invalid log mode: bogus, defaulting to pretty" in err
    assert "invalid log target: bogus, defaulting to stdout" in err
    assert "invalid scan mode: bogus, defaulting to single header scan" in err


def test_validate_rejects_config_without_output():
    scanner = _scanner()
    scanner.scanner_config.persistence_checker.enabled = False
    scanner.scanner_config.logger.skip_tentative = True
    with pytest.raises(ValidationError, match="no output"):
        scanner.validate()


def test_validate_rejects_non_positive_threads():
    scanner = _scanner()
    scanner.scanner_config.threads = 0
    with pytest.raises(ValidationError, match="invalid number of threads: 0"):
        scanner.validate()


def test_run_returns_validation_error():
    scanner = _scanner()
    scanner.scanner_config.threads = -1
    results, errors = scanner.run()
    assert results == []
    assert len(errors) == 1
    assert isinstance(errors[0], ValidationError)


def test_run_writes_findings_to_output_file(mocked, tmp_path, capsys, monkeypatch):
    monkeypatch.setattr(logger, "disable_debug", False)
    mocked.add_callback(responses.GET, URL, callback=_CachingServer())
    path = tmp_path / "findings.txt"
    scanner = _scanner(output_file=str(path))

    results, errors = scanner.run()

    assert errors == []
    assert len(results) == 1
    assert results[0].is_vulnerable is True
    line = path.read_text(encoding="utf-8")
    assert line.startswith(
        f"[vuln] [{URL}] [Response Body Poisoning] [header: X-Forwarded-Host: evil.com] "
        f"[poc: {URL}?cache="
    )
    assert "[vuln]" in capsys.readouterr().out
    assert logger.disable_debug is True


def test_run_json_mode_writes_json_lines(mocked, tmp_path):
    mocked.add_callback(responses.GET, URL, callback=_CachingServer())
    path = tmp_path / "findings.jsonl"
    scanner = _scanner(output_file=str(path))
    scanner.scanner_config.logger.log_mode = "json"

    results, errors = scanner.run()

    assert errors == []
    record = json.loads(path.read_text(encoding="utf-8").splitlines()[0])
    assert record["URL"] == URL
    assert record["IsVulnerable"] is True
    assert record["PayloadHeaders"] == {"X-Forwarded-Host": "evil.com"}
    assert results[0].persistence_check_result.poc_link == record["PersistenceCheckResult"]["PoCLink"]


def test_run_reports_unreachable_urls(mocked):
    scanner = _scanner()
    scanner.urls = ["https://down.example.com/"]

    results, errors = scanner.run()

    assert results == []
    assert len(errors) == 1
    assert str(errors[0]).startswith("failed to fetch response")