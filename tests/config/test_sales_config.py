"""
Configuration loading tests.

get_active_config() is the single entrypoint: YAML defaults, environment
overrides, validation into frozen settings, and a checksum trace.
"""

import logging
from dataclasses import FrozenInstanceError

import pytest
import yaml

from sales_config import (
    ConfigurationError,
    DEFAULT_CONFIG_PATH,
    SalesSettings,
    get_active_config,
)
from sales_config import bridges
from sales_config.loader import apply_env_overrides, compute_checksum, parse_settings
from sales_kernel.services.stock_guard import StockLockMode


def _write(tmp_path, data, name="settings.yaml"):
    path = tmp_path / name
    path.write_text(yaml.safe_dump(data))
    return path


MINIMAL = {"database": {"url": "sqlite:///sales.db"}}


class TestDefaults:
    def test_packaged_defaults_load(self):
        settings = get_active_config(environ={})

        assert isinstance(settings, SalesSettings)
        assert settings.database.url.startswith("postgresql://")
        assert settings.database.pool_size == 20
        assert settings.database.create_tables is False
        assert settings.logging.level == "INFO"
        assert settings.stock.lock_mode == "pessimistic"
        assert settings.stock.max_cas_attempts == 5
        assert len(settings.checksum) == 64

    def test_default_path_exists(self):
        assert DEFAULT_CONFIG_PATH.is_file()

    def test_minimal_file_fills_defaults(self, tmp_path):
        settings = get_active_config(_write(tmp_path, MINIMAL), environ={})

        assert settings.database.url == "sqlite:///sales.db"
        assert settings.database.busy_timeout == 30
        assert settings.stock.lock_mode == "pessimistic"

    def test_settings_are_frozen(self):
        settings = get_active_config(environ={})
        with pytest.raises(FrozenInstanceError):
            settings.stock.lock_mode = "optimistic"


class TestEnvironmentOverrides:
    def test_overrides_applied(self, tmp_path):
        environ = {
            "SALES_DATABASE_URL": "postgresql://other/db",
            "SALES_LOG_LEVEL": "debug",
            "SALES_STOCK_LOCK_MODE": "OPTIMISTIC",
        }
        settings = get_active_config(_write(tmp_path, MINIMAL), environ=environ)

        assert settings.database.url == "postgresql://other/db"
        assert settings.logging.level == "DEBUG"
        assert settings.stock.lock_mode == "optimistic"

    def test_override_does_not_mutate_input(self):
        raw = {"database": {"url": "a"}}
        merged = apply_env_overrides(raw, {"SALES_DATABASE_URL": "b"})

        assert merged["database"]["url"] == "b"
        assert raw["database"]["url"] == "a"

    def test_override_creates_missing_section(self):
        merged = apply_env_overrides({}, {"SALES_STOCK_LOCK_MODE": "optimistic"})
        assert merged == {"stock": {"lock_mode": "optimistic"}}


class TestValidation:
    def test_missing_url(self, tmp_path):
        with pytest.raises(ConfigurationError, match="database.url"):
            get_active_config(_write(tmp_path, {"database": {}}), environ={})

    def test_invalid_lock_mode(self):
        with pytest.raises(ConfigurationError, match="lock_mode"):
            parse_settings({**MINIMAL, "stock": {"lock_mode": "eventual"}})

    def test_invalid_log_level(self):
        with pytest.raises(ConfigurationError, match="logging.level"):
            parse_settings({**MINIMAL, "logging": {"level": "LOUD"}})

    @pytest.mark.parametrize("value", [0, -3, "many", True])
    def test_invalid_max_cas_attempts(self, value):
        with pytest.raises(ConfigurationError, match="max_cas_attempts"):
            parse_settings({**MINIMAL, "stock": {"max_cas_attempts": value}})

    def test_negative_max_overflow(self):
        with pytest.raises(ConfigurationError, match="max_overflow"):
            parse_settings({"database": {"url": "x", "max_overflow": -1}})

    def test_invalid_boolean(self):
        with pytest.raises(ConfigurationError, match="echo"):
            parse_settings({"database": {"url": "x", "echo": "sometimes"}})

    def test_string_boolean_accepted(self):
        settings = parse_settings({"database": {"url": "x", "create_tables": "true"}})
        assert settings.database.create_tables is True

    def test_non_mapping_top_level(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError):
            get_active_config(path, environ={})

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "absent.yaml", environ={})

    def test_configuration_error_is_value_error(self):
        assert issubclass(ConfigurationError, ValueError)


class TestChecksum:
    def test_checksum_independent_of_key_order(self):
        a = {"database": {"url": "x", "echo": False}, "stock": {"lock_mode": "optimistic"}}
        b = {"stock": {"lock_mode": "optimistic"}, "database": {"echo": False, "url": "x"}}
        assert compute_checksum(a) == compute_checksum(b)

    def test_checksum_changes_with_effective_value(self, tmp_path):
        path = _write(tmp_path, MINIMAL)
        base = get_active_config(path, environ={})
        overridden = get_active_config(path, environ={"SALES_STOCK_LOCK_MODE": "optimistic"})
        assert base.checksum != overridden.checksum

    def test_config_trace_logged(self, captured_logs):
        settings = get_active_config(environ={})

        traces = [r for r in captured_logs() if r["message"] == "SALES_CONFIG_TRACE"]
        assert len(traces) == 1
        assert traces[0]["checksum"] == settings.checksum
        assert traces[0]["lock_mode"] == "pessimistic"


class TestBootstrap:
    def test_stock_lock_mode(self):
        settings = parse_settings({**MINIMAL, "stock": {"lock_mode": "optimistic"}})
        assert bridges.stock_lock_mode(settings) is StockLockMode.OPTIMISTIC

    def test_bootstrap_passes_settings_to_kernel(self, monkeypatch):
        calls = {}
        monkeypatch.setattr(
            bridges, "configure_logging", lambda **kw: calls.setdefault("logging", kw)
        )
        monkeypatch.setattr(
            bridges,
            "init_engine_from_url",
            lambda url, **kw: calls.setdefault("engine", (url, kw)) and "engine",
        )
        monkeypatch.setattr(bridges, "create_tables", lambda: calls.setdefault("tables", True))
        monkeypatch.setattr(
            bridges,
            "register_invariant_enforcers",
            lambda **kw: calls.setdefault("enforcers", kw),
        )

        settings = parse_settings(
            {
                "database": {"url": "sqlite:///x.db", "pool_size": 3, "create_tables": True},
                "logging": {"level": "WARNING"},
                "stock": {"lock_mode": "optimistic", "max_cas_attempts": 7},
            }
        )
        result = bridges.bootstrap(settings)

        assert result == "engine"
        assert calls["logging"] == {"level": logging.WARNING}
        url, engine_kwargs = calls["engine"]
        assert url == "sqlite:///x.db"
        assert engine_kwargs["pool_size"] == 3
        assert calls["tables"] is True
        assert calls["enforcers"]["lock_mode"] is StockLockMode.OPTIMISTIC
        assert calls["enforcers"]["max_cas_attempts"] == 7

    def test_bootstrap_skips_table_creation_by_default(self, monkeypatch):
        created = []
        monkeypatch.setattr(bridges, "configure_logging", lambda **kw: None)
        monkeypatch.setattr(bridges, "init_engine_from_url", lambda url, **kw: None)
        monkeypatch.setattr(bridges, "create_tables", lambda: created.append(True))
        monkeypatch.setattr(bridges, "register_invariant_enforcers", lambda **kw: None)

        bridges.bootstrap(parse_settings(MINIMAL))

        assert created == []
