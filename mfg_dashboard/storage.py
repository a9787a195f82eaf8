# mfg_dashboard/storage.py
from __future__ import annotations

import os
import json
import math
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Sequence

import pandas as pd


# -----------------------------
# JSON helpers (safe writes)
# -----------------------------
def load_json(path: str, default: Any):
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError):
        return default


def save_json(path: str, obj: Any) -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    tmp = path + ".tmp"
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(obj, f, indent=2)
    os.replace(tmp, path)


# -----------------------------
# Common converters
# -----------------------------
def safe_int(val: Any, default: int = 0) -> int:
    try:
        if val is None or (isinstance(val, float) and pd.isna(val)):
            return default
        s = str(val).strip()
        if s == "":
            return default
        return int(float(s))
    except (TypeError, ValueError):
        return default


def safe_float(val: Any, default: float = 0.0) -> float:
    try:
        if val is None or (isinstance(val, float) and pd.isna(val)):
            return default
        s = str(val).strip()
        if s == "":
            return default
        return float(s)
    except (TypeError, ValueError):
        return default


def to_builtin(val: Any) -> Any:
    """numpy/pandas scalar -> plain python; NaN -> None."""
    if hasattr(val, "item") and not isinstance(val, (list, dict, str)):
        val = val.item()
    if isinstance(val, float) and math.isnan(val):
        return None
    return val


# -----------------------------
# Date helpers
# -----------------------------
def parse_day(value: Any) -> date:
    """
    Accepts date, datetime, pandas Timestamp or an ISO 'YYYY-MM-DD' string.
    Anything else is a ValueError.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        s = value.strip()
        try:
            return datetime.strptime(s[:10], "%Y-%m-%d").date()
        except ValueError:
            raise ValueError(f"Invalid date {value!r}, expected YYYY-MM-DD") from None
    raise ValueError(f"Invalid date {value!r}, expected YYYY-MM-DD")


def day_str(d: Any) -> str:
    return parse_day(d).strftime("%Y-%m-%d")


def day_range(start: Any, end: Any) -> List[date]:
    """Inclusive list of days from start to end (empty if start > end)."""
    s, e = parse_day(start), parse_day(end)
    out = []
    d = s
    while d <= e:
        out.append(d)
        d += timedelta(days=1)
    return out


def trailing_days(end: Any, n: int) -> List[date]:
    """n days ending at (and including) end, oldest first."""
    e = parse_day(end)
    return [e - timedelta(days=i) for i in range(n - 1, -1, -1)]


def add_minutes(hhmm: str, minutes: int) -> str:
    h, m = (int(x) for x in hhmm.split(":"))
    total = (h * 60 + m + int(minutes)) % (24 * 60)
    return f"{total // 60:02d}:{total % 60:02d}"


# -----------------------------
# DataFrame helpers
# -----------------------------
def records_frame(rows: Sequence[Dict[str, Any]], columns: Sequence[str]) -> pd.DataFrame:
    """
    Builds a DataFrame from row dicts and guarantees every column in `columns`
    exists (so filters work on empty tables too).
    Extra keys on the rows are preserved at the end.
    """
    df = pd.DataFrame(list(rows))
    for col in columns:
        if col not in df.columns:
            df[col] = pd.Series(dtype="object")
    extras = [c for c in df.columns if c not in columns]
    return df[list(columns) + extras]
