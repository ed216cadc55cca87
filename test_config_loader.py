import logging

import pytest

from bills.settings import ExtractionSettings
from config_loader import load_config, load_cpi_index
from logging_setup import RequestIdFilter, build_logging_config


def test_missing_file_yields_env_only(monkeypatch, tmp_path):
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("BILLS_MAX_WORKERS", "6")
    monkeypatch.setenv("LINE_TOLERANCE", "4.5")
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example")
    cfg = load_config(str(tmp_path / "missing.yml"))
    assert cfg["logging"]["level"] == "debug"
    assert cfg["bills"]["max_workers"] == 6
    assert cfg["extraction"]["line_tolerance"] == 4.5
    assert cfg["app"]["cors"]["origins"] == ["https://a.example", "https://b.example"]


def test_yaml_file_and_overrides_merge(monkeypatch, tmp_path):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    path = tmp_path / "config.yml"
    path.write_text("logging:\n  level: INFO\nbills:\n  max_workers: 2\n  max_upload_mb: 5\n", encoding="utf-8")
    cfg = load_config(str(path), {"bills": {"max_workers": 8}})
    assert cfg["logging"]["level"] == "INFO"
    assert cfg["bills"] == {"max_workers": 8, "max_upload_mb": 5}


def test_invalid_numeric_env_is_ignored(monkeypatch, tmp_path):
    monkeypatch.setenv("BILLS_MAX_WORKERS", "lots")
    cfg = load_config(str(tmp_path / "missing.yml"))
    assert "max_workers" not in cfg.get("bills", {})


def test_extraction_settings_from_config():
    settings = ExtractionSettings.from_config({
        "extraction": {"line_tolerance": 5, "client_name": {"scan_lines": 40, "max_words": 6}},
    })
    assert settings.line_tolerance == 5
    assert settings.client_name_scan_lines == 40
    assert settings.client_name_max_words == 6
    # untouched values keep their defaults
    assert settings.client_name_min_words == 2
    assert settings.client_name_min_length == 8
    assert settings.client_name_max_length == 50
    assert ExtractionSettings.from_config({}) == ExtractionSettings()


def test_cpi_file_overrides_inline_entries(tmp_path):
    (tmp_path / "cpi.yml").write_text('"01/2024": 120.5\n"02/2024": 130\n', encoding="utf-8")
    cfg = {"inflation": {"cpi_index": {"01/2024": 1.0, "12/2023": 100}, "cpi_file": "cpi.yml"}}
    index = load_cpi_index(cfg, base_dir=str(tmp_path))
    assert index == {"01/2024": 120.5, "02/2024": 130.0, "12/2023": 100.0}


def test_cpi_file_must_be_a_mapping(tmp_path):
    (tmp_path / "cpi.yml").write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_cpi_index({"inflation": {"cpi_file": "cpi.yml"}}, base_dir=str(tmp_path))


def test_no_inflation_section():
    assert load_cpi_index({}) == {}


def test_logging_config_adds_file_handler(tmp_path):
    log_file = tmp_path / "logs" / "bills.log"
    config = build_logging_config({"logging": {"level": "debug", "file": str(log_file)}})
    assert config["root"]["level"] == "DEBUG"
    assert config["root"]["handlers"] == ["console", "file"]
    assert config["handlers"]["file"]["filename"] == str(log_file)
    assert build_logging_config(None)["root"]["handlers"] == ["console"]


def test_request_id_filter_outside_request():
    record = logging.LogRecord("bills", logging.INFO, __file__, 1, "msg", None, None)
    assert RequestIdFilter().filter(record)
    assert record.request_id == "-"
    assert build_logging_config({})["handlers"]["console"]["filters"] == ["request_id"]


def test_request_id_filter_inside_request(app):
    record = logging.LogRecord("bills", logging.INFO, __file__, 1, "msg", None, None)
    with app.test_request_context("/health", headers={"X-Request-Id": "abc123"}):
        app.preprocess_request()
        RequestIdFilter().filter(record)
    assert record.request_id == "abc123"
