# mfg_dashboard/quality_engine.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from .db import InMemoryStore
from .enrich import enrich_defect_record
from .storage import records_frame, to_builtin, trailing_days, day_str
from .config import (
    SHIFT_MINUTES,
    SHIFT_FILTERS,
    STATUS_FILTERS,
    TREND_WINDOW_DAYS,
    TOP_N,
    OPEN_ERROR_STATUSES,
    DEFAULT_MAINTENANCE_RULES,
)

PRODUCTION_COLUMNS = [
    "id", "comp_day", "line_id", "machine_code", "item_code",
    "act_pro_qty", "defect_qty", "run_time_min", "downtime_min", "ideal_cycle_time",
    "oee", "shift_id", "shift", "availability", "performance", "quality",
]
DOWNTIME_COLUMNS = [
    "id", "comp_day", "machine_code", "shift_id", "shift",
    "downtime_reason", "downtime_min", "start_time", "end_time",
]
DEFECT_COLUMNS = [
    "id", "work_date", "machine_id", "machine_code", "line_id", "shift",
    "defect_type_id", "defect_type_name", "cause_id", "cause_category", "quantity",
]

RATIO_COLUMNS = ("oee", "availability", "performance", "quality")
SHIFT_CODES = ("A", "B", "C")


@dataclass
class Scope:
    """Everything one dashboard query looks at, already filtered."""
    start: str
    end: str
    area: str
    shift: str
    status: str
    lines: List[str]
    machines: List[Dict[str, Any]]
    production_rows: List[Dict[str, Any]] = field(default_factory=list)
    downtime_rows: List[Dict[str, Any]] = field(default_factory=list)
    defect_rows: List[Dict[str, Any]] = field(default_factory=list)
    all_defect_rows: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def machine_codes(self) -> List[str]:
        return [m["machine_code"] for m in self.machines]

    @property
    def production(self) -> pd.DataFrame:
        return records_frame(self.production_rows, PRODUCTION_COLUMNS)

    @property
    def downtime(self) -> pd.DataFrame:
        return records_frame(self.downtime_rows, DOWNTIME_COLUMNS)

    @property
    def defects(self) -> pd.DataFrame:
        return records_frame(self.defect_rows, DEFECT_COLUMNS)


def _unique(values) -> List[Any]:
    seen = []
    for v in values:
        if v not in seen:
            seen.append(v)
    return seen


def available_areas(store: InMemoryStore) -> List[str]:
    return _unique(store.line_to_area.values())


def relevant_lines(store: InMemoryStore, area: str) -> List[str]:
    if area == "all":
        return _unique(m["line_id"] for m in store.list("machines"))
    return [line for line, a in store.line_to_area.items() if a == area]


def _select(rows: List[Dict[str, Any]], mask: pd.Series) -> List[Dict[str, Any]]:
    return [rows[i] for i in mask[mask].index]


def filter_scope(
    store: InMemoryStore,
    start_date: Any,
    end_date: Any,
    area: str = "all",
    shift: str = "all",
    status: str = "all",
) -> Scope:
    """
    area   -> lines (line->area map, or every machine line for "all")
    lines  -> machines (+ status filter)
    then production / downtime / defect rows in [start, end] for those
    machines and, unless shift == "all", that shift.
    """
    start, end = day_str(start_date), day_str(end_date)
    if start > end:
        raise ValueError(f"start_date {start} is after end_date {end}")
    if shift not in SHIFT_FILTERS:
        raise ValueError(f"Unknown shift filter {shift!r}; expected one of {SHIFT_FILTERS}")
    if status not in STATUS_FILTERS:
        raise ValueError(f"Unknown status filter {status!r}; expected one of {STATUS_FILTERS}")
    if area != "all" and area not in available_areas(store):
        raise ValueError(f"Unknown area {area!r}")

    lines = relevant_lines(store, area)
    machines = [
        m for m in store.list("machines")
        if m["line_id"] in lines and (status == "all" or m["status"] == status)
    ]
    scope = Scope(start=start, end=end, area=area, shift=shift, status=status,
                  lines=lines, machines=machines)
    codes = scope.machine_codes
    line_of = {m["machine_code"]: m["line_id"] for m in store.list("machines")}

    def _mask(df: pd.DataFrame, day_col: str) -> pd.Series:
        m = df[day_col].between(start, end) & df["machine_code"].isin(codes)
        if shift != "all":
            m &= df["shift"] == shift
        return m

    prod_rows = store.list("production")
    prod_df = records_frame(prod_rows, PRODUCTION_COLUMNS)
    scope.production_rows = _select(prod_rows, _mask(prod_df, "comp_day"))

    down_rows = store.list("downtime")
    down_df = records_frame(down_rows, DOWNTIME_COLUMNS)
    scope.downtime_rows = [
        {**r, "line_id": line_of.get(r["machine_code"])}
        for r in _select(down_rows, _mask(down_df, "comp_day"))
    ]

    scope.all_defect_rows = [enrich_defect_record(store, d) for d in store.list("defects")]
    def_df = records_frame(scope.all_defect_rows, DEFECT_COLUMNS)
    scope.defect_rows = _select(scope.all_defect_rows, _mask(def_df, "work_date"))
    return scope


# -----------------------------
# Summary KPIs
# -----------------------------
def valid_oee(production: pd.DataFrame) -> pd.DataFrame:
    """Rows with 0 < OEE <= 1. Fully idle rows (OEE 0) would drag the averages down."""
    if production.empty:
        return production
    oee = pd.to_numeric(production["oee"], errors="coerce")
    return production[(oee > 0) & (oee <= 1)]


def _mean(series: pd.Series, default: Optional[float] = 0.0) -> Optional[float]:
    if series is None or len(series) == 0:
        return default
    return float(pd.to_numeric(series, errors="coerce").fillna(0).mean())


def _sum(series: pd.Series) -> Any:
    if series is None or len(series) == 0:
        return 0
    return to_builtin(pd.to_numeric(series, errors="coerce").fillna(0).sum())


def defect_rate(good: float, defects: float) -> float:
    total = good + defects
    return defects / total if total > 0 else 0.0


def summarize(production: pd.DataFrame) -> Dict[str, Any]:
    total_production = _sum(production["act_pro_qty"])
    total_defects = _sum(production["defect_qty"])
    total_downtime = _sum(production["downtime_min"])
    planned = len(production) * SHIFT_MINUTES
    valid = valid_oee(production)

    return {
        "total_production": total_production,
        "total_defects": total_defects,
        "total_downtime": total_downtime,
        "machine_utilization": (planned - total_downtime) / planned if planned > 0 else 0.0,
        "avg_oee": _mean(valid["oee"]),
        "avg_availability": _mean(valid["availability"]),
        "avg_performance": _mean(valid["performance"]),
        "avg_quality": _mean(valid["quality"]),
        "defect_rate": defect_rate(total_production, total_defects),
    }


def production_by_line(production: pd.DataFrame, lines: Sequence[str]) -> List[Dict[str, Any]]:
    return [
        {"name": line, "value": _sum(production.loc[production["line_id"] == line, "act_pro_qty"])}
        for line in lines
    ]


def oee_by_line(production: pd.DataFrame, lines: Sequence[str]) -> List[Dict[str, Any]]:
    valid = valid_oee(production)
    return [
        {"name": line, "value": _mean(valid.loc[valid["line_id"] == line, "oee"])}
        for line in lines
    ]


# -----------------------------
# Trends
# -----------------------------
def trailing_trend(production: pd.DataFrame, end_date: Any, days: int = TREND_WINDOW_DAYS) -> List[Dict[str, Any]]:
    """
    Exactly `days` points ending at end_date. A day without rows reports
    None (no data), never 0.
    """
    out = []
    for d in trailing_days(end_date, days):
        day = d.strftime("%Y-%m-%d")
        rows = production[production["comp_day"] == day]
        point: Dict[str, Any] = {"date": day}
        for col in RATIO_COLUMNS:
            point[col] = _mean(rows[col], default=None)
        point["production"] = _sum(rows["act_pro_qty"]) if len(rows) else None
        out.append(point)
    return out


def defect_trend(production: pd.DataFrame) -> List[Dict[str, Any]]:
    if production.empty:
        return []
    g = production.groupby("comp_day", sort=True)["defect_qty"].sum()
    return [{"date": day, "total_defects": to_builtin(v)} for day, v in g.items()]


def defect_rate_trend(production: pd.DataFrame) -> List[Dict[str, Any]]:
    if production.empty:
        return []
    g = production.groupby("comp_day", sort=True)[["act_pro_qty", "defect_qty"]].sum()
    return [
        {"date": day, "defect_rate": defect_rate(float(r["act_pro_qty"]), float(r["defect_qty"]))}
        for day, r in g.iterrows()
    ]


def downtime_trend(downtime: pd.DataFrame) -> List[Dict[str, Any]]:
    if downtime.empty:
        return []
    g = downtime.groupby("comp_day", sort=True)["downtime_min"].sum()
    return [{"date": day, "downtime": to_builtin(v)} for day, v in g.items()]


# -----------------------------
# Pareto
# -----------------------------
def pareto(df: pd.DataFrame, key: str, value: str, blank: str = "Unknown") -> List[Dict[str, Any]]:
    """
    Group by `key`, sum `value`, sort descending and attach a running
    cumulative percentage. Equal magnitudes keep first-appearance order.
    """
    if df is None or df.empty:
        return []
    temp = df[[key, value]].copy()
    temp[key] = temp[key].where(temp[key].notna(), blank)
    temp[value] = pd.to_numeric(temp[value], errors="coerce").fillna(0)

    out = temp.groupby(key, sort=False)[value].sum().reset_index()
    out = out.sort_values(value, ascending=False, kind="stable").reset_index(drop=True)

    total = float(out[value].sum())
    if total > 0:
        out["cumulative"] = out[value].cumsum() / total * 100.0
    else:
        out["cumulative"] = 0.0

    return [
        {"name": to_builtin(r[key]), "value": to_builtin(r[value]), "cumulative": float(r["cumulative"])}
        for _, r in out.iterrows()
    ]


def group_totals(df: pd.DataFrame, key: str, value: str, blank: str = "Unknown") -> List[Dict[str, Any]]:
    """Plain per-category totals, first-appearance order."""
    if df is None or df.empty:
        return []
    temp = df[[key, value]].copy()
    temp[key] = temp[key].where(temp[key].notna(), blank)
    g = temp.groupby(key, sort=False)[value].sum()
    return [{"name": to_builtin(k), "value": to_builtin(v)} for k, v in g.items()]


# -----------------------------
# Distribution
# -----------------------------
def production_boxplot(production: pd.DataFrame, lines: Sequence[str]) -> List[Dict[str, Any]]:
    """Per-line quartiles of record output (linear interpolation)."""
    out = []
    for line in lines:
        vals = pd.to_numeric(production.loc[production["line_id"] == line, "act_pro_qty"], errors="coerce").dropna()
        if vals.empty:
            out.append({"name": line, "min": 0, "q1": 0, "median": 0, "q3": 0, "max": 0})
            continue
        out.append({
            "name": line,
            "min": to_builtin(vals.min()),
            "q1": float(vals.quantile(0.25, interpolation="linear")),
            "median": float(vals.quantile(0.5, interpolation="linear")),
            "q3": float(vals.quantile(0.75, interpolation="linear")),
            "max": to_builtin(vals.max()),
        })
    return out


def oee_heatmap(production: pd.DataFrame, lines: Sequence[str]) -> List[Dict[str, Any]]:
    valid = valid_oee(production)
    out = []
    for line in lines:
        for code in SHIFT_CODES:
            cell = valid[(valid["line_id"] == line) & (valid["shift"] == code)]
            out.append({"line": line, "shift": code, "value": _mean(cell["oee"])})
    return out


# -----------------------------
# Top-N tables
# -----------------------------
def top_defect_lines(production: pd.DataFrame, lines: Sequence[str], n: int = TOP_N) -> List[Dict[str, Any]]:
    rows = []
    for line in lines:
        sub = production[production["line_id"] == line]
        good = _sum(sub["act_pro_qty"])
        bad = _sum(sub["defect_qty"])
        rows.append({
            "line_id": line,
            "total_production": good,
            "total_defects": bad,
            "defect_rate": defect_rate(good, bad),
        })
    # sorted() is stable, ties stay in line order
    return sorted(rows, key=lambda r: r["defect_rate"], reverse=True)[:n]


def top_downtime_machines(downtime: pd.DataFrame, machine_codes: Sequence[str], n: int = TOP_N) -> List[Dict[str, Any]]:
    rows = [
        {"machine_code": code, "total_downtime": _sum(downtime.loc[downtime["machine_code"] == code, "downtime_min"])}
        for code in machine_codes
    ]
    return sorted(rows, key=lambda r: r["total_downtime"], reverse=True)[:n]


def unique_downtime_reasons(downtime: pd.DataFrame) -> List[str]:
    if downtime.empty:
        return []
    return sorted(str(r) for r in downtime["downtime_reason"].dropna().unique())


def downtime_by_line(downtime: pd.DataFrame, lines: Sequence[str]) -> List[Dict[str, Any]]:
    """Stacked-bar rows: one per line, one column per downtime reason."""
    reasons = unique_downtime_reasons(downtime)
    if downtime.empty or "line_id" not in downtime.columns:
        return [{"name": line, **{r: 0 for r in reasons}} for line in lines]
    g = downtime.groupby(["line_id", "downtime_reason"])["downtime_min"].sum()
    out = []
    for line in lines:
        row: Dict[str, Any] = {"name": line}
        for reason in reasons:
            row[reason] = to_builtin(g.get((line, reason), 0))
        out.append(row)
    return out


def downtime_vs_production(
    production: pd.DataFrame,
    downtime: pd.DataFrame,
    machines: Sequence[Dict[str, Any]],
) -> List[Dict[str, Any]]:
    return [
        {
            "production": _sum(production.loc[production["machine_code"] == m["machine_code"], "act_pro_qty"]),
            "downtime": _sum(downtime.loc[downtime["machine_code"] == m["machine_code"], "downtime_min"]),
            "machine_code": m["machine_code"],
            "line_id": m["line_id"],
        }
        for m in machines
    ]


# -----------------------------
# Shop-floor status board
# -----------------------------
def machine_status_board(
    machines: Sequence[Dict[str, Any]],
    production: pd.DataFrame,
    downtime: pd.DataFrame,
    error_reports: Sequence[Dict[str, Any]],
    rules: Optional[Dict[str, Any]] = None,
) -> List[Dict[str, Any]]:
    """
    Inactive machines are "Inactive". Active ones are "Error" with an open
    error report, "Stopped" with a long downtime event, else "Running".
    OEE is the latest record's OEE in the filtered range.
    """
    rules = {**DEFAULT_MAINTENANCE_RULES, **(rules or {})}
    stop_after = rules["stopped_downtime_minutes"]
    open_err = {r["machine_code"] for r in error_reports if r.get("status") in OPEN_ERROR_STATUSES}

    out = []
    for m in machines:
        code = m["machine_code"]
        recs = production[production["machine_code"] == code]
        latest_oee = None
        if not recs.empty:
            latest_day = recs["comp_day"].max()
            latest_oee = to_builtin(recs.loc[recs["comp_day"] == latest_day, "oee"].iloc[0])

        status = "Inactive"
        if m["status"] == "active":
            long_stop = bool(
                (pd.to_numeric(downtime.loc[downtime["machine_code"] == code, "downtime_min"]) > stop_after).any()
            )
            if code in open_err:
                status = "Error"
            elif long_stop:
                status = "Stopped"
            else:
                status = "Running"

        out.append({"machine_code": code, "status": status, "oee": latest_oee, "line_id": m["line_id"]})
    return out
