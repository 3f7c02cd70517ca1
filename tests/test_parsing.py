import pytest

from delay_forecaster_src import config_utils
from delay_forecaster_src.parsing_utils import parse_range_arg, validate_log_level


def test_parse_range_formats():
    assert parse_range_arg("0-3") == [0, 1, 2, 3]
    assert parse_range_arg("2,0,2") == [0, 2]
    assert parse_range_arg(" 1 ") == [1]


def test_parse_range_unset_returns_none(monkeypatch):
    monkeypatch.setattr(config_utils, "config_manager", None)
    assert parse_range_arg(None) is None
    # Unset in the built-in configuration as well
    assert parse_range_arg(None, config_key="model.search_space.p_range") is None


def test_parse_range_from_config_list(monkeypatch):
    manager = config_utils.ConfigurationManager()
    manager._config["model"]["search_space"]["q_range"] = [2, 1]
    monkeypatch.setattr(config_utils, "config_manager", manager)

    assert parse_range_arg(None, config_key="model.search_space.q_range") == [1, 2]


@pytest.mark.parametrize("text", ["a-b", "3-1", "1,x", "-1"])
def test_parse_range_invalid(text):
    with pytest.raises(ValueError):
        parse_range_arg(text)


def test_validate_log_level():
    assert validate_log_level("debug") == "DEBUG"
    with pytest.raises(ValueError):
        validate_log_level("chatty")
