# delay_forecaster_src/config_utils.py

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "DELAY_FORECASTER_CONFIG"
DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "forecaster.yaml"

DEFAULT_CONFIG: Dict[str, Any] = {
    "data": {
        "date_column": "date",
        "value_column": "delay",
    },
    "transform": {
        "lambda_grid": {"lower": -2.0, "upper": 2.0, "step": 0.1},
        "refine": False,
    },
    "stationarity": {
        "alpha": 0.05,
        "kpss_level": "5%",
        "kpss_regression": "c",
    },
    "model": {
        "trend": "c",
        "max_iter": 200,
        "seasonal_period": None,
        "seasonal_orders": {"P": 0, "Q": 0},
        "search_space": {
            "max_p": 3,
            "max_q": 3,
            "max_acf_lag": 40,
            "p_range": None,
            "q_range": None,
        },
    },
    "diagnostics": {
        "significance_level": 0.05,
        "ljung_box_lags": 10,
        "acf_pacf_lags": 20,
    },
    "decomposition": {
        "enabled": False,
        "period": 365,
        "model": "additive",
    },
}


class ConfigurationError(Exception):
    """Raised when a configuration file cannot be read or parsed."""


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigurationManager:
    """
    Layered configuration: built-in defaults overridden by a YAML file.

    Values are addressed with dotted key paths such as
    ``"model.search_space.max_p"``.
    """

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        self.config_path = Path(config_path) if config_path else None
        self._config = copy.deepcopy(DEFAULT_CONFIG)
        if self.config_path is not None:
            self._config = _deep_merge(self._config, self._load_yaml(self.config_path))

    @staticmethod
    def _load_yaml(path: Path) -> Dict[str, Any]:
        if not path.is_file():
            raise ConfigurationError(f"Configuration file not found: {path}")
        try:
            with path.open("r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
        if not isinstance(loaded, dict):
            raise ConfigurationError(f"Top level of {path} must be a mapping")
        logger.info("Loaded configuration from %s", path)
        return loaded

    def get(self, key_path: str, default: Any = None) -> Any:
        node: Any = self._config
        for part in key_path.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def as_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self._config)


# Global configuration manager, populated by initialize_config()
config_manager: Optional[ConfigurationManager] = None


def discover_config_path(explicit: Optional[Union[str, Path]] = None) -> Optional[Path]:
    """
    Locate the configuration file: explicit path, then the environment
    variable, then ``config/forecaster.yaml`` at the project root.
    """
    if explicit:
        return Path(explicit)
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    if DEFAULT_CONFIG_PATH.is_file():
        return DEFAULT_CONFIG_PATH
    return None


def initialize_config(config_path: Optional[Union[str, Path]] = None) -> ConfigurationManager:
    """
    Initializes the global configuration manager.

    Passing an explicit path that does not exist raises ConfigurationError;
    when no file is found at all the built-in defaults are used.
    """
    global config_manager
    path = discover_config_path(config_path)
    if path is None:
        logger.info("No configuration file found - using defaults")
    config_manager = ConfigurationManager(path)
    return config_manager


def get_config_value(key_path: str, default=None, args=None, cli_param=None):
    """
    Retrieves a configuration value, providing support for command-line overrides.
    The function prioritizes values in the following order:
    1. CLI argument (if provided)
    2. Configuration file
    3. Default value
    """
    # First priority: CLI argument
    if args is not None and cli_param and hasattr(args, cli_param):
        cli_value = getattr(args, cli_param)
        if cli_value is not None:
            return cli_value

    # Second priority: Configuration file (or built-in defaults)
    manager = config_manager if config_manager is not None else ConfigurationManager()
    config_value = manager.get(key_path, None)
    if config_value is not None:
        return config_value

    # Third priority: Default value
    return default
