# mfg_dashboard/enrich.py
"""
Joins between shop-floor/workflow rows and master data.

One policy everywhere: a required reference that does not resolve raises
ReferenceNotFoundError; an optional reference that is None stays None; an
optional reference that is set but dangling raises as well.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from .db import InMemoryStore, ReferenceNotFoundError
from .config import SHIFT_MINUTES


def _optional(store: InMemoryStore, table: str, ref_id: Any, context: str) -> Optional[Dict[str, Any]]:
    if ref_id is None:
        return None
    return store.require(table, ref_id, context)


def machine_by_code(store: InMemoryStore, machine_code: str, context: str = "") -> Dict[str, Any]:
    machine = store.first("machines", machine_code=machine_code)
    if machine is None:
        raise ReferenceNotFoundError("machines", machine_code, context)
    return machine


def enrich_defect_record(store: InMemoryStore, record: Dict[str, Any]) -> Dict[str, Any]:
    ctx = f"defect {record.get('id')}"
    machine = store.require("machines", record.get("machine_id"), ctx)
    shift = store.require("shifts", record.get("shift_id"), ctx)
    defect_type = store.require("defect_types", record.get("defect_type_id"), ctx)
    cause = _optional(store, "defect_causes", record.get("cause_id"), ctx)
    reporter = store.require("users", record.get("reporter_id"), ctx)
    return {
        **record,
        "machine_code": machine["machine_code"],
        "line_id": machine["line_id"],
        "shift": shift["code"],
        "defect_type_name": defect_type["name"],
        "cause_category": cause["category"] if cause else None,
        "reporter_name": reporter["full_name"],
        "image_urls": list(record.get("image_urls") or []),
    }


def enrich_maintenance_order(store: InMemoryStore, order: Dict[str, Any]) -> Dict[str, Any]:
    ctx = f"maintenance order {order.get('id')}"
    machine = store.require("machines", order.get("machine_id"), ctx)
    created_by = store.require("users", order.get("created_by_id"), ctx)
    assigned_to = _optional(store, "users", order.get("assigned_to_id"), ctx)

    parts = []
    for usage in store.find("part_usages", order_id=order["id"]):
        part = store.require("spare_parts", usage["part_id"], ctx)
        parts.append({
            **usage,
            "part_code": part["part_code"],
            "part_name": part["name"],
        })

    return {
        **order,
        "machine_code": machine["machine_code"],
        "created_by_name": created_by["full_name"],
        "assigned_to_name": assigned_to["full_name"] if assigned_to else None,
        "parts_used": parts,
    }


def _user_name(store: InMemoryStore, user_id: Any) -> str:
    # actor id 0 / None is the system itself
    if not user_id:
        return "System"
    return store.require("users", user_id, "error history")["full_name"]


def enrich_error_report(store: InMemoryStore, report: Dict[str, Any]) -> Dict[str, Any]:
    ctx = f"error report {report.get('id')}"
    machine = store.require("machines", report.get("machine_id"), ctx)
    shift = store.require("shifts", report.get("shift_id"), ctx)
    operator = store.require("users", report.get("operator_id"), ctx)
    technician = _optional(store, "users", report.get("technician_id"), ctx)
    verifier = _optional(store, "users", report.get("verify_by"), ctx)

    history = [
        {**h, "changed_by_name": _user_name(store, h.get("changed_by"))}
        for h in store.find("error_history", error_id=report["id"])
    ]
    # newest first; ties keep insertion order
    history.sort(key=lambda h: h.get("changed_at") or "", reverse=True)

    return {
        **report,
        "machine_code": machine["machine_code"],
        "line_id": machine["line_id"],
        "shift_code": shift["code"],
        "operator_name": operator["full_name"],
        "technician_name": technician["full_name"] if technician else None,
        "verifier_name": verifier["full_name"] if verifier else None,
        "images": store.find("error_images", error_id=report["id"]),
        "history": history,
    }


# -----------------------------
# Data integrity scan
# -----------------------------
_REFERENCES = {
    "production": [("machine_code", "machines", "machine_code"), ("shift_id", "shifts", "id")],
    "downtime": [("machine_code", "machines", "machine_code"), ("shift_id", "shifts", "id")],
    "defects": [
        ("machine_id", "machines", "id"), ("shift_id", "shifts", "id"),
        ("defect_type_id", "defect_types", "id"), ("cause_id", "defect_causes", "id"),
        ("reporter_id", "users", "id"),
        ("linked_maintenance_order_id", "maintenance_orders", "id"),
    ],
    "error_reports": [
        ("machine_id", "machines", "id"), ("shift_id", "shifts", "id"),
        ("operator_id", "users", "id"), ("technician_id", "users", "id"),
        ("verify_by", "users", "id"),
        ("linked_maintenance_order_id", "maintenance_orders", "id"),
        ("linked_defect_id", "defects", "id"),
    ],
    "maintenance_orders": [
        ("machine_id", "machines", "id"), ("created_by_id", "users", "id"),
        ("assigned_to_id", "users", "id"),
    ],
    "maintenance_schedules": [("machine_id", "machines", "id")],
}


def health_check(store: InMemoryStore) -> List[Dict[str, Any]]:
    """
    Returns a list of issues (dicts) instead of raising:
    dangling references and production rows whose ratios are out of range.
    """
    issues: List[Dict[str, Any]] = []

    keys: Dict[tuple, set] = {}
    for table, refs in _REFERENCES.items():
        for _, target, field in refs:
            if (target, field) not in keys:
                keys[(target, field)] = {r.get(field) for r in store.list(target)}

    for table, refs in _REFERENCES.items():
        for row in store.list(table):
            for col, target, field in refs:
                val = row.get(col)
                if val is None:
                    continue
                if val not in keys[(target, field)]:
                    issues.append({
                        "severity": "High",
                        "table": table,
                        "id": row.get("id"),
                        "issue": f"{col}={val!r} has no matching {target}.{field}",
                    })

    for p in store.list("production"):
        oee = p.get("oee") or 0.0
        if not 0.0 <= oee <= 1.0:
            issues.append({"severity": "Medium", "table": "production", "id": p.get("id"),
                           "issue": f"OEE {oee:.3f} outside 0..1"})
        if (p.get("run_time_min") or 0) + (p.get("downtime_min") or 0) != SHIFT_MINUTES:
            issues.append({"severity": "Medium", "table": "production", "id": p.get("id"),
                           "issue": "run time + downtime does not equal the shift length"})

    for u in store.list("part_usages"):
        if store.get("spare_parts", u.get("part_id")) is None:
            issues.append({"severity": "High", "table": "part_usages", "id": u.get("order_id"),
                           "issue": f"part_id={u.get('part_id')!r} has no matching spare_parts.id"})

    return issues
