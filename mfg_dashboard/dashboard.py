# mfg_dashboard/dashboard.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from .db import InMemoryStore
from .enrich import enrich_error_report, enrich_maintenance_order
from .storage import load_json
from .config import (
    ASSUMED_OPERATING_HOURS,
    DEFAULT_MAINTENANCE_RULES,
    DEFAULT_QUERY_DATE,
    DEFAULT_REFERENCE_DATE,
    OPEN_ERROR_STATUSES,
    RULES_FILE,
)
from . import quality_engine as qe
from . import maintenance_engine as me

logger = logging.getLogger(__name__)


def load_rules(path: str = RULES_FILE) -> Dict[str, Any]:
    """DEFAULT_MAINTENANCE_RULES overlaid with the optional JSON rules file."""
    raw = load_json(path, {})
    if not isinstance(raw, dict):
        raw = {}
    return {**DEFAULT_MAINTENANCE_RULES, **raw}


def get_initial_filter_data(store: InMemoryStore) -> Dict[str, Any]:
    return {
        "default_date": DEFAULT_QUERY_DATE,
        "default_area": "all",
        "available_areas": qe.available_areas(store),
    }


def get_dashboard_data(
    store: InMemoryStore,
    start_date: Any,
    end_date: Any,
    area: str = "all",
    shift: str = "all",
    status: str = "all",
    today: Any = None,
    operating_hours: Optional[float] = None,
    rules: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Read-only query: filters the store for the date range / area / shift /
    machine status and returns every dashboard structure in one dict.
    `today` and `operating_hours` default to the calibration constants.
    """
    today = today or DEFAULT_REFERENCE_DATE
    operating_hours = ASSUMED_OPERATING_HOURS if operating_hours is None else operating_hours
    rules = {**DEFAULT_MAINTENANCE_RULES, **(rules or {})}

    scope = qe.filter_scope(store, start_date, end_date, area, shift, status)
    production = scope.production
    downtime = scope.downtime
    defects = scope.defects
    lines = scope.lines
    codes = set(scope.machine_codes)

    all_machines = store.list("machines")
    in_scope_ids = {m["id"] for m in scope.machines}

    error_reports = [enrich_error_report(store, r) for r in store.list("error_reports")]
    orders = [enrich_maintenance_order(store, o) for o in store.list("maintenance_orders")]
    spare_parts = store.list("spare_parts")

    master_data = {
        "users": store.list("users"),
        "shifts": store.list("shifts"),
        "defect_types": store.list("defect_types"),
        "defect_causes": store.list("defect_causes"),
        "machines": all_machines,
        "spare_parts": spare_parts,
        "pm_parts_templates": store.list("pm_parts_templates"),
    }

    scoped_errors = [r for r in error_reports if r["machine_code"] in codes]

    # --- Summary ---
    summary = qe.summarize(production)
    summary["production_by_line"] = qe.production_by_line(production, lines)
    summary["oee_by_line"] = qe.oee_by_line(production, lines)
    summary["open_error_count"] = sum(1 for r in scoped_errors if r["status"] in OPEN_ERROR_STATUSES)

    # --- Maintenance ---
    machine_stats = me.machine_maintenance_stats(downtime, all_machines, operating_hours, rules)

    result = {
        "production_log": scope.production_rows,
        "downtime_records": scope.downtime_rows,
        "all_machine_info": all_machines,
        "error_reports": scoped_errors,
        "all_defect_records": [d for d in scope.all_defect_rows if d["machine_id"] in in_scope_ids],
        "maintenance_orders": [o for o in orders if o["machine_id"] in in_scope_ids],
        "available_lines": qe.relevant_lines(store, "all"),
        "available_machines": [m["machine_code"] for m in all_machines],
        "master_data": master_data,
        "machine_status": qe.machine_status_board(all_machines, production, downtime, error_reports, rules),
        "summary": summary,
        "performance": {
            "seven_day_trend": qe.trailing_trend(production, scope.end),
            "production_boxplot": qe.production_boxplot(production, lines),
            "oee_heatmap": qe.oee_heatmap(production, lines),
        },
        "quality": {
            "defect_pareto": qe.pareto(defects, "defect_type_name", "quantity"),
            "defect_rate_trend": qe.defect_rate_trend(production),
            "defect_trend": qe.defect_trend(production),
            "top5_defect_lines": qe.top_defect_lines(production, lines),
            "defects_by_root_cause": qe.group_totals(defects, "cause_category", "quantity"),
            "defect_cause_pareto": qe.pareto(defects, "cause_category", "quantity"),
            "defect_records_for_period": scope.defect_rows,
        },
        "downtime": {
            "downtime_pareto": qe.pareto(downtime, "downtime_reason", "downtime_min"),
            "downtime_trend": qe.downtime_trend(downtime),
            "top5_downtime_machines": qe.top_downtime_machines(downtime, scope.machine_codes),
            "downtime_by_line": qe.downtime_by_line(downtime, lines),
            "unique_downtime_reasons": qe.unique_downtime_reasons(downtime),
            "downtime_vs_production": qe.downtime_vs_production(production, downtime, scope.machines),
        },
        "maintenance": {
            "kpis": me.fleet_kpis(machine_stats),
            "schedule": me.order_schedule(orders, today),
            "pm_schedule": me.pm_schedule(store, today),
            "spare_parts": spare_parts,
            "low_stock_parts": me.low_stock_parts(spare_parts),
            "mc_part_orders": store.list("mc_part_orders"),
            "machine_stats": machine_stats,
            "downtime_analysis": me.downtime_cause_analysis(downtime),
            "trend": me.maintenance_trend(scope.end, downtime, all_machines, operating_hours),
        },
        "benchmarking": {
            "oee_by_line": summary["oee_by_line"],
            "targets": store.list("oee_targets"),
        },
        "purchasing": {
            "mc_part_requests": store.list("mc_part_requests"),
            "consumable_requests": store.list("consumable_requests"),
        },
    }

    logger.debug(
        "Dashboard %s -> %s area=%s shift=%s status=%s: %d production rows",
        scope.start, scope.end, area, shift, status, len(scope.production_rows),
    )
    return result
