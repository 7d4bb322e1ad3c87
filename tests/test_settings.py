import io
import json
import logging

import pytest

from tariff_engine.config.logging_config import JSONFormatter, setup_logging, tariff_context
from tariff_engine.config.settings import Settings, get_packaged_tariffs_dir
from tariff_engine.engine import PricingEngine
from tariff_engine.tariffs.repository import InMemoryTariffRepository
from tariff_engine.tariffs.resolver import TariffResolver


def test_defaults_use_bundled_tariffs(tmp_path):
    settings = Settings.load(project_root=tmp_path, environ={})
    assert settings.tariffs_dir == get_packaged_tariffs_dir()
    assert settings.cache_ttl_seconds == 300.0
    assert settings.log_level == "INFO"
    assert not settings.json_logs


def test_project_tariffs_directory_wins(tmp_path):
    (tmp_path / "tariffs").mkdir()
    assert Settings.load(project_root=tmp_path, environ={}).tariffs_dir == tmp_path / "tariffs"


def test_environment_overrides(tmp_path):
    settings = Settings.load(project_root=tmp_path, environ={
        "TARIFF_ENGINE_TARIFFS_DIR": str(tmp_path / "elsewhere"),
        "TARIFF_ENGINE_CACHE_TTL": "30",
        "TARIFF_ENGINE_LOG_LEVEL": "debug",
        "TARIFF_ENGINE_JSON_LOGS": "true",
    })
    assert settings.tariffs_dir == tmp_path / "elsewhere"
    assert settings.cache_ttl_seconds == 30.0
    assert settings.log_level == "DEBUG"
    assert settings.json_logs


def test_bad_cache_ttl(tmp_path):
    with pytest.raises(ValueError):
        Settings.load(project_root=tmp_path, environ={"TARIFF_ENGINE_CACHE_TTL": "soon"})


def test_json_formatter():
    record = logging.LogRecord("tariff_engine.test", logging.WARNING, __file__, 10, "hello %s", ("world",), None)
    payload = json.loads(JSONFormatter().format(record))
    assert payload["level"] == "WARNING"
    assert payload["message"] == "hello world"
    assert payload["logger"] == "tariff_engine.test"
    assert "configuration_id" not in payload


def test_json_formatter_lifts_tariff_context(configuration):
    record = logging.LogRecord("tariff_engine.test", logging.INFO, __file__, 10, "resolved", (), None)
    for name, value in tariff_context(configuration).items():
        setattr(record, name, value)
    payload = json.loads(JSONFormatter().format(record))
    assert payload["configuration_id"] == "tariff-2025"
    assert payload["configuration_version"] == "1.0.0"


def test_setup_logging_configures_package_logger(tmp_path):
    logger = logging.getLogger("tariff_engine")
    saved_handlers, saved_level = logger.handlers[:], logger.level
    stream = io.StringIO()
    settings = Settings.load(project_root=tmp_path, environ={"TARIFF_ENGINE_JSON_LOGS": "1"})
    try:
        setup_logging("DEBUG", settings=settings, stream=stream)
        setup_logging("DEBUG", settings=settings, stream=stream)
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, JSONFormatter)
        assert logger.level == logging.DEBUG

        logging.getLogger("tariff_engine.engine.test").info("priced", extra={"pricing_method": "local-labor"})
        payload = json.loads(stream.getvalue().splitlines()[-1])
        assert payload["message"] == "priced"
        assert payload["pricing_method"] == "local-labor"
    finally:
        logger.handlers = saved_handlers
        logger.setLevel(saved_level)


def test_estimate_log_carries_tariff_context(configuration, request_data, caplog):
    engine = PricingEngine(TariffResolver(InMemoryTariffRepository([configuration]), ttl_seconds=300))
    with caplog.at_level(logging.INFO, logger="tariff_engine"):
        result = engine.calculate_estimate(request_data)
    record = next(r for r in caplog.records if r.name == "tariff_engine.engine.pricing_engine")
    assert record.configuration_id == "tariff-2025"
    assert record.configuration_version == "1.0.0"
    assert record.deterministic_hash == result.deterministic_hash
