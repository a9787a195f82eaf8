# mfg_dashboard/populate_db.py
from __future__ import annotations

import logging
from typing import Any, Dict, List

from .db import InMemoryStore
from .storage import day_str
from .config import (
    DEFAULT_USERS,
    DEFAULT_SHIFTS,
    DEFAULT_DEFECT_TYPES,
    DEFAULT_DEFECT_CAUSES,
    DEFAULT_LINE_TO_AREA,
    DEFAULT_MACHINES,
    DEFAULT_SPARE_PARTS,
    DEFAULT_MC_PART_ORDERS,
    DEFAULT_OEE_TARGETS,
    DEFAULT_MAINTENANCE_ORDERS,
    DEFAULT_PART_USAGES,
    DEFAULT_MAINTENANCE_SCHEDULES,
    DEFAULT_PM_PARTS_TEMPLATES,
)

logger = logging.getLogger(__name__)

_MASTER_TABLES = {
    "users": DEFAULT_USERS,
    "shifts": DEFAULT_SHIFTS,
    "defect_types": DEFAULT_DEFECT_TYPES,
    "defect_causes": DEFAULT_DEFECT_CAUSES,
    "machines": DEFAULT_MACHINES,
    "spare_parts": DEFAULT_SPARE_PARTS,
    "mc_part_orders": DEFAULT_MC_PART_ORDERS,
    "oee_targets": DEFAULT_OEE_TARGETS,
}


def _fill_if_empty(store: InMemoryStore, table: str, rows: List[Dict[str, Any]]) -> bool:
    if store.count(table):
        return False
    store.replace_all(table, rows)
    return True


def seed_master_data(store: InMemoryStore) -> None:
    """Reference tables + line->area map. Safe to call more than once."""
    seeded = [t for t, rows in _MASTER_TABLES.items() if _fill_if_empty(store, t, rows)]
    if not store.line_to_area:
        store.line_to_area.update(DEFAULT_LINE_TO_AREA)
    if seeded:
        logger.info("Seeded master tables: %s", ", ".join(seeded))


def _demo_error_reports(start: str, end: str) -> List[Dict[str, Any]]:
    base = {
        "root_cause": None, "cause_category": None, "action_taken": None,
        "fix_time": None, "verify_by": None, "verify_time": None, "note": None,
        "linked_maintenance_order_id": None,
    }
    return [
        {**base, "id": 1, "report_no": "ERR-001", "machine_id": 1, "shift_id": 1, "operator_id": 201,
         "report_time": f"{start}T08:00:00Z", "defect_type": "Skip stitch",
         "defect_description": "Machine is skipping stitches", "severity": "Medium",
         "status": "In Progress", "technician_id": 101,
         "created_at": f"{start}T08:00:00Z", "updated_at": f"{start}T09:00:00Z",
         "linked_defect_id": None},
        {**base, "id": 2, "report_no": "ERR-002", "machine_id": 3, "shift_id": 2, "operator_id": 201,
         "report_time": f"{end}T15:00:00Z", "defect_type": "Cosmetic",
         "defect_description": "Scratches on surface", "severity": "Low",
         "status": "Reported", "technician_id": None,
         "created_at": f"{end}T15:00:00Z", "updated_at": f"{end}T15:00:00Z",
         "linked_defect_id": 1},
    ]


def seed_demo_records(store: InMemoryStore, start_date: Any, end_date: Any) -> None:
    """
    Demo workflow rows that go with a generated range.
    Error reports, schedules, templates are rebuilt on each call;
    maintenance orders and their part usages only seed an empty table
    so completed work survives a regenerate.
    """
    start, end = day_str(start_date), day_str(end_date)

    store.replace_all("error_reports", _demo_error_reports(start, end))
    store.clear("error_images")
    store.replace_all("error_history", [
        {"id": 1, "error_id": 1, "changed_by": 1, "old_status": "Reported",
         "new_status": "In Progress", "note": "Technician assigned.",
         "changed_at": f"{start}T09:00:00Z"},
    ])

    if _fill_if_empty(store, "maintenance_orders", DEFAULT_MAINTENANCE_ORDERS):
        store.replace_all("part_usages", DEFAULT_PART_USAGES)

    store.replace_all("maintenance_schedules", DEFAULT_MAINTENANCE_SCHEDULES)
    store.replace_all("pm_parts_templates", DEFAULT_PM_PARTS_TEMPLATES)
    store.clear("mc_part_requests")
    store.clear("consumable_requests")

    logger.info("Seeded demo workflow records for %s -> %s", start, end)
