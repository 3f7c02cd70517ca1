# delay_forecaster_src/file_utils.py

import csv
import json
import logging
import math
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np

logger = logging.getLogger(__name__)


def ensure_dir(path: Path) -> None:
    """
    Create directory if it doesn't exist, including all parent directories.

    Parameters
    ----------
    path : Path
        Directory path to create
    """
    path.mkdir(parents=True, exist_ok=True)


def resolve_path(path_str: str, base_dir: Path) -> Path:
    """
    Resolve a path string relative to a base directory if not absolute.

    Examples
    --------
    >>> resolve_path("data/file.csv", Path("/project"))
    PosixPath('/project/data/file.csv')
    >>> resolve_path("/absolute/path.csv", Path("/project"))
    PosixPath('/absolute/path.csv')
    """
    path = Path(path_str)
    return path if path.is_absolute() else (base_dir / path)


def append_metrics_csv_row(csv_path: Optional[Path],
                           row: Dict[str, Any],
                           header: List[str]) -> None:
    """
    Append a single metrics row to CSV, creating header on first write.

    This function collects results across runs by appending to a shared
    CSV file, creating the file with headers if needed.

    Parameters
    ----------
    csv_path : Optional[Path]
        Path to metrics CSV file (None to skip writing)
    row : Dict[str, Any]
        Dictionary containing metric values to write
    header : List[str]
        List of column names for the CSV
    """
    if csv_path is None:
        return

    ensure_dir(csv_path.parent)
    exists = csv_path.exists()
    with csv_path.open("a", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=header)
        if not exists:
            writer.writeheader()
        writer.writerow(row)
    logger.info("Appended metrics row to %s", csv_path)


def _json_default(obj: Any) -> Any:
    if isinstance(obj, np.generic):
        return obj.item()
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, (datetime,)):
        return obj.isoformat()
    if isinstance(obj, Path):
        return str(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def _nan_to_none(obj: Any) -> Any:
    if isinstance(obj, float) and not math.isfinite(obj):
        return None
    if isinstance(obj, dict):
        return {k: _nan_to_none(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_nan_to_none(v) for v in obj]
    return obj


def write_json_report(json_path: Path, payload: Dict[str, Any]) -> Path:
    """
    Write a run report as JSON.

    Non-finite floats (for example an undefined MAPE) are written as
    ``null`` so the file stays valid JSON. A ``generated_at`` UTC timestamp
    is added.
    """
    ensure_dir(json_path.parent)
    body = dict(payload)
    body.setdefault("generated_at", datetime.now(timezone.utc).isoformat())
    with json_path.open("w", encoding="utf-8") as f:
        json.dump(_nan_to_none(body), f, indent=2, default=_json_default)
    logger.info("Saved run report to %s", json_path)
    return json_path
