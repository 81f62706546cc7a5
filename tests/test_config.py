from pathlib import Path

import pytest

from cachex.config import (
    DEFAULT_USER_AGENT,
    PAYLOADS_FILENAME,
    SCANNER_CONFIG_FILENAME,
    default_config,
    default_config_dir,
    load_config,
)


def test_default_scanner_values():
    scanner = default_config().scanner
    assert scanner.scan_mode == "single"
    assert scanner.threads == 25
    assert scanner.request_headers == {"User-Agent": DEFAULT_USER_AGENT, "Accept": "*/*"}
    assert (
        scanner.client.dial_timeout,
        scanner.client.handshake_timeout,
        scanner.client.response_timeout,
    ) == (5.0, 5.0, 10.0)
    assert scanner.client.proxy_url == ""
    checker = scanner.persistence_checker
    assert (checker.enabled, checker.num_requests_to_send, checker.threads) == (True, 10, 5)
    log = scanner.logger
    assert (log.log_error, log.log_mode, log.log_target, log.debug, log.skip_tentative) == (
        False,
        "pretty",
        "stdout",
        False,
        True,
    )


def test_default_payload_headers():
    headers = default_config().payload.payload_headers
    assert len(headers) == 19
    assert headers["X-Forwarded-Host"] == "evil.com"
    assert headers["Forwarded"] == "for=127.0.0.1;host=evil.com;proto=https"


def test_default_configs_are_independent():
    first = default_config()
    first.payload.payload_headers["X-Extra"] = "1"
    first.scanner.request_headers.clear()
    second = default_config()
    assert "X-Extra" not in second.payload.payload_headers
    assert second.scanner.request_headers["Accept"] == "*/*"


def test_load_config_creates_default_files(tmp_path):
    directory = tmp_path / "cfg"
    cfg = load_config(directory)
    assert cfg == default_config()
    assert (directory / PAYLOADS_FILENAME).is_file()
    assert (directory / SCANNER_CONFIG_FILENAME).is_file()


def test_load_config_reads_existing_files(tmp_path):
    (tmp_path / SCANNER_CONFIG_FILENAME).write_text("threads: 3\nlogger:\n  debug: true\n")
    cfg = load_config(tmp_path)
    assert cfg.scanner.threads == 3
    assert cfg.scanner.logger.debug is True
    assert cfg.scanner.logger.log_mode == "pretty"
    assert cfg.scanner.scan_mode == "single"


def test_scanner_yaml_round_trip():
    cfg = default_config()
    cfg.scanner.threads = 7
    cfg.scanner.client.proxy_url = "http://127.0.0.1:8080"
    cfg.scanner.persistence_checker.enabled = False
    fresh = default_config()
    fresh.apply_scanner_yaml(cfg.scanner_yaml())
    assert fresh == cfg


def test_payload_yaml_round_trip():
    cfg = default_config()
    fresh = default_config()
    fresh.payload.payload_headers.clear()
    fresh.apply_payload_yaml(cfg.payload_yaml())
    assert fresh.payload == cfg.payload


def test_payload_yaml_merges_into_defaults():
    cfg = default_config()
    cfg.apply_payload_yaml("payload_headers:\n  X-Test: hello\n  X-Port: 443\n")
    headers = cfg.payload.payload_headers
    assert headers["X-Test"] == "hello"
    assert headers["X-Port"] == "443"
    assert headers["X-Forwarded-Host"] == "evil.com"


def test_empty_yaml_changes_nothing():
    cfg = default_config()
    cfg.apply_scanner_yaml("")
    assert cfg == default_config()


def test_wrong_type_raises():
    with pytest.raises(ValueError, match="threads"):
        default_config().apply_scanner_yaml("threads: many\n")


def test_non_mapping_document_raises():
    with pytest.raises(ValueError):
        default_config().apply_scanner_yaml("- a\n- b\n")


def test_malformed_yaml_raises():
    with pytest.raises(ValueError, match="failed to parse"):
        default_config().apply_payload_yaml("payload_headers: [\n")


def test_default_config_dir_uses_home(monkeypatch, tmp_path):
    monkeypatch.setenv("HOME", str(tmp_path))
    assert default_config_dir() == Path(tmp_path) / ".config" / "cachex"