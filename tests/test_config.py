import types
from pathlib import Path

import pytest

from delay_forecaster_src import config_utils
from delay_forecaster_src.config_utils import (
    CONFIG_ENV_VAR, ConfigurationError, ConfigurationManager, discover_config_path, get_config_value,
    initialize_config
)


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_builtin_defaults():
    manager = ConfigurationManager()

    assert manager.get("model.max_iter") == 200
    assert manager.get("transform.lambda_grid.step") == 0.1
    assert manager.get("model.seasonal_period") is None
    assert manager.get("does.not.exist", "fallback") == "fallback"


def test_yaml_overrides_merge_with_defaults(tmp_path: Path):
    cfg = _write(tmp_path / "cfg.yaml", "model:\n  search_space:\n    max_p: 1\n")
    manager = ConfigurationManager(cfg)

    assert manager.get("model.search_space.max_p") == 1
    assert manager.get("model.search_space.max_q") == 3
    assert manager.get("stationarity.alpha") == 0.05


def test_cli_value_takes_precedence(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(config_utils, "config_manager", None)
    initialize_config(_write(tmp_path / "cfg.yaml", "model:\n  max_iter: 75\n"))

    args = types.SimpleNamespace(max_iter=500)
    assert get_config_value("model.max_iter", 10, args, "max_iter") == 500

    args = types.SimpleNamespace(max_iter=None)
    assert get_config_value("model.max_iter", 10, args, "max_iter") == 75
    assert get_config_value("model.unknown_key", 10, args, "max_iter") == 10


def test_config_errors(tmp_path: Path):
    with pytest.raises(ConfigurationError):
        ConfigurationManager(tmp_path / "missing.yaml")
    with pytest.raises(ConfigurationError):
        ConfigurationManager(_write(tmp_path / "bad.yaml", "model: [unclosed\n"))
    with pytest.raises(ConfigurationError):
        ConfigurationManager(_write(tmp_path / "list.yaml", "- a\n- b\n"))


def test_discover_config_path_from_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    cfg = _write(tmp_path / "env.yaml", "data:\n  value_column: arr_delay\n")
    monkeypatch.setenv(CONFIG_ENV_VAR, str(cfg))

    assert discover_config_path() == cfg
    assert discover_config_path(tmp_path / "explicit.yaml") == tmp_path / "explicit.yaml"
