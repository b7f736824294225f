"""
설정 / 로깅 테스트
===================
"""

import json
import logging

import pytest

from zkgrid.config import (
    CONFIG_ENV_VAR,
    DEFAULT_CONFIG,
    configure,
    get_config,
    load_config,
    merge_config,
    reset_config,
)
from zkgrid.log import setup_logging, short_hex


class TestMergeConfig:
    def test_nested_merge(self):
        merged = merge_config(DEFAULT_CONFIG, {"ledger": {"max_retries": 7}})
        assert merged["ledger"]["max_retries"] == 7
        assert merged["ledger"]["timeout_seconds"] == DEFAULT_CONFIG["ledger"]["timeout_seconds"]

    def test_base_untouched(self):
        merge_config(DEFAULT_CONFIG, {"ledger": {"max_retries": 7}, "log_level": "DEBUG"})
        assert DEFAULT_CONFIG["ledger"]["max_retries"] == 3
        assert DEFAULT_CONFIG["log_level"] == "INFO"

    def test_scalar_replaces(self):
        assert merge_config({"a": {"b": 1}}, {"a": 2}) == {"a": 2}


class TestLoadConfig:
    def test_load(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"hash_profile": "poseidon2-bn254-t4-compact",
                                    "session": {"timeout_seconds": 5}}), encoding="utf-8")
        config = load_config(str(path))
        assert config["hash_profile"] == "poseidon2-bn254-t4-compact"
        assert config["session"]["timeout_seconds"] == 5
        assert config["session"]["db_path"] is None

    def test_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "missing.json"))

    def test_not_object(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(ValueError):
            load_config(str(path))


class TestActiveConfig:
    def test_configure(self, restore_config):
        configure(prover={"timeout_seconds": 1.0})
        assert get_config()["prover"]["timeout_seconds"] == 1.0
        assert get_config()["prover"]["self_check"] is True

    def test_reset_uses_defaults(self, restore_config, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        reset_config()
        assert get_config() == DEFAULT_CONFIG

    def test_env_var(self, restore_config, monkeypatch, tmp_path):
        path = tmp_path / "env.json"
        path.write_text(json.dumps({"log_level": "ERROR"}), encoding="utf-8")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
        reset_config()
        assert get_config()["log_level"] == "ERROR"


class TestLogging:
    def test_setup_logging(self):
        logger = setup_logging("debug")
        assert logger.name == "zkgrid"
        assert logger.level == logging.DEBUG
        handlers = list(logger.handlers)
        setup_logging("WARNING")
        assert logger.handlers == handlers
        assert logger.level == logging.WARNING

    def test_unknown_level(self):
        assert setup_logging("chatty").level == logging.INFO
        setup_logging("WARNING")

    @pytest.mark.parametrize("value, expected", [
        (1, "0x00000000…"),
        (b"\xab\xcd", "0xabcd"),
        ("0x" + "f" * 64, "0xffffffff…"),
    ])
    def test_short_hex(self, value, expected):
        assert short_hex(value) == expected
