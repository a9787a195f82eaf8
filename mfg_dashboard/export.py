# mfg_dashboard/export.py
from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Tuple

import pandas as pd

logger = logging.getLogger(__name__)

# (sheet name, path into the dashboard result)
SHEETS: List[Tuple[str, Tuple[str, ...]]] = [
    ("Production", ("production_log",)),
    ("Downtime", ("downtime_records",)),
    ("Defects", ("quality", "defect_records_for_period")),
    ("OEE Trend", ("performance", "seven_day_trend")),
    ("Defect Pareto", ("quality", "defect_pareto")),
    ("Downtime Pareto", ("downtime", "downtime_pareto")),
    ("Top Defect Lines", ("quality", "top5_defect_lines")),
    ("Top Downtime", ("downtime", "top5_downtime_machines")),
    ("Machine Stats", ("maintenance", "machine_stats")),
    ("PM Schedule", ("maintenance", "pm_schedule")),
    ("Low Stock", ("maintenance", "low_stock_parts")),
]


def _dig(data: Dict[str, Any], path: Tuple[str, ...]) -> Any:
    node: Any = data
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def _cell(v: Any) -> Any:
    if isinstance(v, list):
        return ", ".join(map(str, v))
    if isinstance(v, dict):
        return str(v)
    return v


def _flat(rows: List[Dict[str, Any]]) -> pd.DataFrame:
    # nested lists/dicts (image urls, history) do not fit a cell
    df = pd.DataFrame(rows)
    for col in df.columns:
        if df[col].map(lambda v: isinstance(v, (list, dict))).any():
            df[col] = df[col].map(_cell)
    return df


def export_dashboard(data: Dict[str, Any], path: str) -> List[str]:
    """Writes one sheet per table of a dashboard result; returns the sheet names written."""
    folder = os.path.dirname(path)
    if folder:
        os.makedirs(folder, exist_ok=True)

    summary = {k: v for k, v in (data.get("summary") or {}).items() if not isinstance(v, (list, dict))}

    written = []
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        pd.DataFrame([summary]).to_excel(writer, sheet_name="Summary", index=False)
        written.append("Summary")
        for sheet, key_path in SHEETS:
            rows = _dig(data, key_path)
            if not rows:
                continue
            _flat(rows).to_excel(writer, sheet_name=sheet, index=False)
            written.append(sheet)

    logger.info("Exported %d sheets to %s", len(written), path)
    return written
