import json
import logging

from adola.config import AppConfig, load_config
from adola.core.logger import JsonFormatter, setup_logger


def test_defaults(tmp_path):
    config = load_config(tmp_path / "config.json")
    assert isinstance(config, AppConfig)
    assert config.engine.pattern_wins == 2
    assert config.engine.pattern_length == 10
    assert config.engine.pattern_follow_rate == 0.9
    assert config.engine.override_win_rate == 0.15
    assert config.engine.multiplier_decay == 0.6
    assert config.engine.seed is None


def test_config_file_and_env_overrides(tmp_path, monkeypatch):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"server": {"port": 9000}, "engine": {"seed": 5}}))
    monkeypatch.setenv("ENGINE_SEED", "11")
    monkeypatch.setenv("TABLES_FILE", "/etc/adola/tables.json")
    monkeypatch.setenv("RATE_LIMIT_ENABLED", "no")

    config = load_config(path)
    assert config.server.port == 9000
    assert config.engine.seed == 11
    assert str(config.tables.get_path()) == "/etc/adola/tables.json"
    assert config.rate_limit.enabled is False


def test_json_formatter_includes_extra_fields():
    record = logging.LogRecord("adola.api", logging.INFO, __file__, 1, "Play resolved", (), None)
    record.payout = 20
    payload = json.loads(JsonFormatter().format(record))
    assert payload["message"] == "Play resolved"
    assert payload["payout"] == 20
    assert "levelno" not in payload


def test_setup_logger_does_not_stack_handlers():
    logger = setup_logger("adola-test", level="DEBUG")
    logger = setup_logger("adola-test", level="DEBUG")
    assert len(logger.handlers) == 1
    assert logger.level == logging.DEBUG
