# delay_forecaster_src/parsing_utils.py

import argparse
import logging
from typing import List, Optional

logger = logging.getLogger(__name__)


def parse_range_arg(s: Optional[str], config_key: Optional[str] = None,
                    args: Optional[argparse.Namespace] = None) -> Optional[List[int]]:
    """
    Parse a CLI range argument like '0-3' or '0,1,2,3' into a list of integers.

    This function handles different input formats for specifying order ranges:
    - Range format: "0-3" becomes [0, 1, 2, 3]
    - List format: "0,1,2,3" becomes [0, 1, 2, 3]
    - A list set in the configuration file is used as-is

    Parameters
    ----------
    s : str, optional
        CLI range argument string to parse
    config_key : str, optional
        Configuration key path consulted when ``s`` is not given
    args : argparse.Namespace, optional
        CLI arguments for precedence checking

    Returns
    -------
    Optional[List[int]]
        Sorted unique non-negative integers, or None when neither the CLI
        nor the configuration sets a range (the ACF/PACF bounds apply).

    Raises
    ------
    ValueError
        If the text is not a valid range or list.

    Examples
    --------
    >>> parse_range_arg("0-3")
    [0, 1, 2, 3]
    >>> parse_range_arg("0,2,4")
    [0, 2, 4]
    >>> parse_range_arg(None) is None
    True
    """
    value = s
    if value is None and config_key:
        from .config_utils import get_config_value
        value = get_config_value(config_key, None, args, None)
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        out = [int(x) for x in value]
    else:
        txt = str(value).strip()
        try:
            # Range format (e.g., "0-3")
            if "-" in txt and "," not in txt:
                a, b = txt.split("-", 1)
                lo, hi = int(a.strip()), int(b.strip())
                if hi < lo:
                    raise ValueError(f"empty range {txt!r}")
                out = list(range(lo, hi + 1))
            # Comma-separated list format (e.g., "0,1,2,3")
            else:
                out = [int(x.strip()) for x in txt.split(",") if x.strip() != ""]
        except ValueError as e:
            raise ValueError(f"Invalid order range '{txt}': use 'lo-hi' or 'a,b,c' ({e})") from e

    if not out or any(v < 0 for v in out):
        raise ValueError(f"Order range must list non-negative integers, got {value!r}")
    return sorted(set(out))


def validate_log_level(log_level: str) -> str:
    """
    Validate and normalize logging level specification.

    Parameters
    ----------
    log_level : str
        Logging level to validate

    Returns
    -------
    str
        Validated logging level

    Raises
    ------
    ValueError
        If the logging level is not supported
    """
    valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    level_upper = log_level.upper()
    if level_upper not in valid_levels:
        raise ValueError(f"Invalid log level '{log_level}'. Must be one of: {valid_levels}")
    return level_upper
