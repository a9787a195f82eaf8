# mfg_dashboard/maintenance_engine.py
from __future__ import annotations

from datetime import timedelta
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from .db import InMemoryStore
from .storage import parse_day, trailing_days, to_builtin, safe_float
from .config import (
    ASSUMED_OPERATING_HOURS,
    BREAKDOWN_REASONS,
    DEFAULT_MAINTENANCE_RULES,
    DEFAULT_REFERENCE_DATE,
    DUE_SOON_DAYS,
    PM_CYCLE_DAYS,
    TREND_WINDOW_DAYS,
    TOP_N,
)


def classify_machine(mttr: float, breakdowns: int, rules: Optional[Dict[str, Any]] = None) -> str:
    """Alert / Warning / Normal from fixed MTTR and breakdown-count thresholds."""
    rules = {**DEFAULT_MAINTENANCE_RULES, **(rules or {})}
    if mttr > rules["alert_mttr"] or breakdowns > rules["alert_breakdowns"]:
        return "Alert"
    if mttr > rules["warning_mttr"] or breakdowns > rules["warning_breakdowns"]:
        return "Warning"
    return "Normal"


def machine_maintenance_stats(
    downtime: pd.DataFrame,
    machines: Sequence[Dict[str, Any]],
    operating_hours: float = ASSUMED_OPERATING_HOURS,
    rules: Optional[Dict[str, Any]] = None,
) -> List[Dict[str, Any]]:
    """
    Per machine:
      breakdowns = downtime events with a Mechanical/Electrical reason
      MTTR       = all downtime minutes / breakdowns (0 without breakdowns)
      MTBF       = (operating hours - downtime hours) / breakdowns,
                   or the full operating hours without breakdowns
    operating_hours is a flat assumption, not the length of the queried range.
    Sorted by breakdown count, most first.
    """
    counts: Dict[str, int] = {}
    minutes: Dict[str, float] = {}
    if downtime is not None and not downtime.empty:
        temp = downtime[["machine_code", "downtime_reason", "downtime_min"]].copy()
        temp["_breakdown"] = temp["downtime_reason"].isin(BREAKDOWN_REASONS)
        temp["downtime_min"] = pd.to_numeric(temp["downtime_min"], errors="coerce").fillna(0)
        g = temp.groupby("machine_code", sort=False).agg(
            breakdowns=("_breakdown", "sum"),
            total=("downtime_min", "sum"),
        )
        counts = {k: int(v) for k, v in g["breakdowns"].items()}
        minutes = {k: to_builtin(v) for k, v in g["total"].items()}

    out = []
    for m in machines:
        code = m["machine_code"]
        n = counts.get(code, 0)
        total = minutes.get(code, 0)
        mttr = total / n if n > 0 else 0
        mtbf = (operating_hours - total / 60) / n if n > 0 else operating_hours
        out.append({
            "machine_code": code,
            "mtbf": mtbf if mtbf > 0 else 0,
            "mttr": mttr,
            "breakdown_count": n,
            "total_downtime": total,
            "status": classify_machine(mttr, n, rules),
        })
    return sorted(out, key=lambda s: s["breakdown_count"], reverse=True)


def fleet_kpis(stats: Sequence[Dict[str, Any]], n: int = TOP_N) -> Dict[str, Any]:
    """
    MTBF is the plain mean of the per-machine MTBFs; MTTR is weighted
    (all downtime / all breakdowns). The two are averaged differently on purpose.
    """
    total_breakdowns = sum(s["breakdown_count"] for s in stats)
    total_downtime = sum(s["total_downtime"] for s in stats)
    total_mtbf = sum(s["mtbf"] for s in stats)
    top = sorted(stats, key=lambda s: s["mttr"], reverse=True)[:n]
    return {
        "mtbf": total_mtbf / len(stats) if stats else 0,
        "mttr": total_downtime / total_breakdowns if total_breakdowns > 0 else 0,
        "breakdown_count": total_breakdowns,
        "top_mttr_machines": [{"name": s["machine_code"], "value": s["mttr"]} for s in top],
    }


def downtime_cause_analysis(downtime: pd.DataFrame) -> List[Dict[str, Any]]:
    """Per reason: event count, minutes, and the machine that lost the most time to it."""
    if downtime is None or downtime.empty:
        return []
    temp = downtime[["downtime_reason", "machine_code", "downtime_min"]].copy()
    temp["downtime_min"] = pd.to_numeric(temp["downtime_min"], errors="coerce").fillna(0)

    out = []
    for reason, grp in temp.groupby("downtime_reason", sort=False):
        impact = grp.groupby("machine_code", sort=False)["downtime_min"].sum()
        impact = impact.sort_values(ascending=False, kind="stable")
        out.append({
            "reason": reason,
            "count": int(len(grp)),
            "total_minutes": to_builtin(grp["downtime_min"].sum()),
            "main_machine_impact": impact.index[0] if len(impact) else "N/A",
        })
    return sorted(out, key=lambda r: r["total_minutes"], reverse=True)


def maintenance_trend(
    end_date: Any,
    downtime: pd.DataFrame,
    machines: Sequence[Dict[str, Any]],
    operating_hours: float = ASSUMED_OPERATING_HOURS,
    days: int = TREND_WINDOW_DAYS,
) -> List[Dict[str, Any]]:
    """Daily fleet MTBF/MTTR for the trailing window; None where the value is not positive."""
    out = []
    for d in trailing_days(end_date, days):
        day = d.strftime("%Y-%m-%d")
        daily = downtime[downtime["comp_day"] == day] if not downtime.empty else downtime
        kpis = fleet_kpis(machine_maintenance_stats(daily, machines, operating_hours))
        out.append({
            "date": day,
            "mtbf": kpis["mtbf"] if kpis["mtbf"] > 0 else None,
            "mttr": kpis["mttr"] if kpis["mttr"] > 0 else None,
        })
    return out


# -----------------------------
# PM schedule
# -----------------------------
def pm_status(last_pm_date: Any, cycle_days: int, today: Any = DEFAULT_REFERENCE_DATE,
              due_soon_days: int = DUE_SOON_DAYS) -> Dict[str, Any]:
    """
    next_pm_date = last_pm_date + cycle_days.
    Overdue if that is before today, Due soon within due_soon_days (inclusive),
    else On schedule.
    """
    next_due = parse_day(last_pm_date) + timedelta(days=int(cycle_days))
    days_until = (next_due - parse_day(today)).days

    if days_until < 0:
        status = "Overdue"
    elif days_until <= due_soon_days:
        status = "Due soon"
    else:
        status = "On schedule"

    return {
        "next_pm_date": next_due.strftime("%Y-%m-%d"),
        "days_until_due": days_until,
        "status": status,
    }


def pm_schedule(store: InMemoryStore, today: Any = DEFAULT_REFERENCE_DATE) -> List[Dict[str, Any]]:
    """A schedule without its own cycle_days falls back to the cycle of its pm_type."""
    out = []
    for s in store.list("maintenance_schedules"):
        machine = store.require("machines", s["machine_id"], f"maintenance schedule {s['id']}")
        out.append({
            **s,
            "machine_code": machine["machine_code"],
            "machine_name": machine["machine_name"],
            **pm_status(s["last_pm_date"], s.get("cycle_days") or PM_CYCLE_DAYS[s["pm_type"]], today),
        })
    return out


def order_schedule(orders: Sequence[Dict[str, Any]], today: Any = DEFAULT_REFERENCE_DATE,
                   due_soon_days: int = DUE_SOON_DAYS) -> Dict[str, List[Dict[str, Any]]]:
    """Open PM orders split into overdue (planned before today) and due soon."""
    ref = parse_day(today)
    overdue, due_soon = [], []
    for o in orders:
        if o.get("type") != "PM" or o.get("status") != "Open":
            continue
        delta = (parse_day(o["plan_date"]) - ref).days
        if delta < 0:
            overdue.append(o)
        elif delta <= due_soon_days:
            due_soon.append(o)
    return {"overdue": overdue, "due_soon": due_soon}


# -----------------------------
# Spare parts
# -----------------------------
def needs_reorder(part: Dict[str, Any]) -> bool:
    available = safe_float(part.get("available"), 0.0)
    in_transit = safe_float(part.get("in_transit"), 0.0)
    return available + in_transit < safe_float(part.get("reorder_point"), 0.0)


def low_stock_parts(parts: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [p for p in parts if needs_reorder(p)]
