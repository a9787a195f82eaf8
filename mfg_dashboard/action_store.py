# mfg_dashboard/action_store.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from .db import InMemoryStore
from .audit import log_audit
from .enrich import enrich_defect_record
from .storage import day_str, safe_int
from .config import (
    DEFECT_STATUSES,
    ERROR_REPORT_STATUSES,
    ERROR_REPORT_TRANSITIONS,
    MAINTENANCE_ORDER_TRANSITIONS,
    SEVERITIES,
)


class ValidationError(ValueError):
    """Entry rejected; .errors holds every message."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class InvalidTransitionError(ValueError):
    pass


def now_iso(now: Optional[datetime] = None) -> str:
    return (now or datetime.now()).strftime("%Y-%m-%dT%H:%M:%S")


def _check_transition(kind: str, transitions: Dict[str, tuple], old: str, new: str) -> None:
    if old == new:
        return
    if new not in transitions.get(old, ()):
        raise InvalidTransitionError(f"{kind}: cannot move from {old!r} to {new!r}")


# field -> table it points at
ERROR_REPORT_REFS = {
    "machine_id": "machines",
    "shift_id": "shifts",
    "operator_id": "users",
    "technician_id": "users",
    "verify_by": "users",
    "linked_maintenance_order_id": "maintenance_orders",
    "linked_defect_id": "defects",
}

MAINTENANCE_ORDER_REFS = {
    "machine_id": "machines",
    "created_by_id": "users",
    "assigned_to_id": "users",
}

# references that may be cleared to None
OPTIONAL_REFS = ("technician_id", "verify_by", "assigned_to_id", "linked_maintenance_order_id", "linked_defect_id")


def _require_refs(store: InMemoryStore, changes: Dict[str, Any], refs: Dict[str, str], context: str) -> None:
    for field, table in refs.items():
        if field not in changes:
            continue
        if changes[field] is not None or field not in OPTIONAL_REFS:
            store.require(table, changes[field], context)


def _plan_day(value: Any) -> str:
    if not value:
        raise ValidationError(["plan_date is required"])
    try:
        return day_str(value)
    except ValueError:
        raise ValidationError([f"plan_date {value!r} must be a date (YYYY-MM-DD)"]) from None


# -----------------------------
# Error reports
# -----------------------------
def add_error_report(store: InMemoryStore, data: Dict[str, Any], actor_id: int = 1,
                     now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Error report schema:
    {
      "report_no": ERR-NNN, "machine_id", "shift_id", "operator_id",
      "report_time", "defect_type", "defect_description",
      "severity": Low/Medium/High,
      "status": Reported/In Progress/Fixed/Not Machine Issue/Closed,
      "root_cause", "cause_category", "action_taken",
      "technician_id", "fix_time", "verify_by", "verify_time", "note",
      "linked_maintenance_order_id", "linked_defect_id"
    }
    """
    ts = now_iso(now)
    with store.transaction():
        store.require("machines", data.get("machine_id"), "new error report")
        store.require("shifts", data.get("shift_id"), "new error report")
        store.require("users", data.get("operator_id"), "new error report")

        new_id = store.next_id("error_reports")
        report = store.insert("error_reports", {
            "id": new_id,
            "report_no": f"ERR-{new_id:03d}",
            "machine_id": data["machine_id"],
            "shift_id": data["shift_id"],
            "operator_id": data["operator_id"],
            "report_time": ts,
            "defect_type": data.get("defect_type", ""),
            "defect_description": data.get("defect_description", ""),
            "severity": data.get("severity", "Medium"),
            "status": "Reported",
            "root_cause": None,
            "cause_category": None,
            "action_taken": None,
            "technician_id": None,
            "fix_time": None,
            "verify_by": None,
            "verify_time": None,
            "note": None,
            "created_at": ts,
            "updated_at": ts,
            "linked_maintenance_order_id": data.get("linked_maintenance_order_id") or None,
            "linked_defect_id": data.get("linked_defect_id") or None,
        })
        store.insert("error_history", {
            "error_id": new_id,
            "changed_by": actor_id,
            "old_status": None,
            "new_status": "Reported",
            "note": "Report created.",
            "changed_at": ts,
        })

    log_audit(store, actor_id, f"Reported error {report['report_no']}")
    return report


def update_error_report(store: InMemoryStore, report_id: int, data: Dict[str, Any], new_status: str,
                        actor_id: int = 1, now: Optional[datetime] = None) -> Dict[str, Any]:
    if new_status not in ERROR_REPORT_STATUSES:
        raise ValueError(f"Unknown error report status {new_status!r}")
    ts = now_iso(now)
    with store.transaction():
        report = store.require("error_reports", report_id, "update error report")
        old_status = report["status"]
        _check_transition("error report", ERROR_REPORT_TRANSITIONS, old_status, new_status)

        changes = {k: v for k, v in data.items() if k not in ("id", "report_no", "status")}
        changes["status"] = new_status
        changes["updated_at"] = ts
        if new_status != old_status and new_status in ("Fixed", "Not Machine Issue"):
            changes["fix_time"] = ts
        if new_status != old_status and new_status == "Closed":
            changes.setdefault("verify_by", actor_id)
            changes["verify_time"] = ts
        _require_refs(store, changes, ERROR_REPORT_REFS, f"error report {report_id}")

        saved = store.update("error_reports", report_id, changes)

        if old_status != new_status:
            store.insert("error_history", {
                "error_id": report_id,
                "changed_by": actor_id,
                "old_status": old_status,
                "new_status": new_status,
                "note": f"Status updated to {new_status}.",
                "changed_at": ts,
            })

    log_audit(store, actor_id, f"Error {saved['report_no']}: {old_status} -> {new_status}")
    return saved


# -----------------------------
# Maintenance orders
# -----------------------------
def _replace_part_usages(store: InMemoryStore, order_id: int, parts: List[Dict[str, Any]]) -> None:
    for p in parts:
        store.require("spare_parts", p.get("part_id"), f"maintenance order {order_id}")
    store.delete_where("part_usages", order_id=order_id)
    for p in parts:
        store.insert("part_usages", {
            "order_id": order_id,
            "part_id": p["part_id"],
            "qty_used": safe_int(p.get("qty_used")),
        })


def add_maintenance_order(store: InMemoryStore, data: Dict[str, Any], actor: str = "") -> Dict[str, Any]:
    """
    Maintenance order schema:
    {
      "machine_id", "type": PM/CM/IM..., "priority",
      "status": Open/InProgress/Done/Canceled,
      "created_by_id", "assigned_to_id", "task_description",
      "downtime_min", "plan_date", "actual_start_date", "actual_end_date"
    }
    parts_used (optional) is stored as planned part usages.
    plan_date is required and stored as YYYY-MM-DD.
    """
    plan_date = _plan_day(data.get("plan_date"))
    with store.transaction():
        store.require("machines", data.get("machine_id"), "new maintenance order")
        store.require("users", data.get("created_by_id"), "new maintenance order")
        if data.get("assigned_to_id") is not None:
            store.require("users", data["assigned_to_id"], "new maintenance order")

        order = store.insert("maintenance_orders", {
            "machine_id": data["machine_id"],
            "type": data.get("type", "CM"),
            "priority": data.get("priority", "Medium"),
            "status": "Open",
            "created_by_id": data["created_by_id"],
            "assigned_to_id": data.get("assigned_to_id"),
            "task_description": data.get("task_description", ""),
            "downtime_min": None,
            "plan_date": plan_date,
            "actual_start_date": None,
            "actual_end_date": None,
        })
        if data.get("parts_used"):
            _replace_part_usages(store, order["id"], data["parts_used"])

    log_audit(store, actor or data["created_by_id"], f"Created maintenance order {order['id']} ({order['type']})")
    return order


def update_maintenance_order(store: InMemoryStore, order_id: int, data: Dict[str, Any],
                             actor: str = "") -> Dict[str, Any]:
    with store.transaction():
        order = store.require("maintenance_orders", order_id, "update maintenance order")
        new_status = data.get("status", order["status"])
        _check_transition("maintenance order", MAINTENANCE_ORDER_TRANSITIONS, order["status"], new_status)

        changes = {k: v for k, v in data.items() if k not in ("id", "parts_used")}
        if "plan_date" in changes:
            changes["plan_date"] = _plan_day(changes["plan_date"])
        _require_refs(store, changes, MAINTENANCE_ORDER_REFS, f"maintenance order {order_id}")
        if "parts_used" in data:
            _replace_part_usages(store, order_id, data["parts_used"] or [])
        saved = store.update("maintenance_orders", order_id, changes)

    log_audit(store, actor or "system", f"Updated maintenance order {order_id}: {saved['status']}")
    return saved


def complete_maintenance_order(store: InMemoryStore, order_id: int, data: Dict[str, Any],
                               actor: str = "") -> Dict[str, Any]:
    """Marks the order Done with its actual dates, downtime and the parts really used."""
    payload = {
        "status": "Done",
        "actual_start_date": data.get("actual_start_date"),
        "actual_end_date": data.get("actual_end_date"),
        "downtime_min": data.get("downtime_min"),
        "parts_used": data.get("parts_used") or [],
    }
    for extra in ("task_description", "assigned_to_id"):
        if extra in data:
            payload[extra] = data[extra]
    return update_maintenance_order(store, order_id, payload, actor=actor)


# -----------------------------
# Defect records
# -----------------------------
def validate_defect_entry(store: InMemoryStore, data: Dict[str, Any]) -> List[str]:
    errors: List[str] = []
    for field, table in (("machine_id", "machines"), ("shift_id", "shifts"),
                         ("defect_type_id", "defect_types"), ("reporter_id", "users")):
        if data.get(field) is None:
            errors.append(f"{field} is required")
        elif store.get(table, data[field]) is None:
            errors.append(f"{field} {data[field]!r} does not exist")

    if data.get("cause_id") is not None and store.get("defect_causes", data["cause_id"]) is None:
        errors.append(f"cause_id {data['cause_id']!r} does not exist")

    if not data.get("work_date"):
        errors.append("work_date is required")
    else:
        try:
            day_str(data["work_date"])
        except ValueError:
            errors.append(f"work_date {data['work_date']!r} must be a date (YYYY-MM-DD)")

    qty = data.get("quantity")
    if not isinstance(qty, int) or isinstance(qty, bool) or qty <= 0:
        errors.append("quantity must be a positive whole number")

    if data.get("severity", "Low") not in SEVERITIES:
        errors.append(f"severity must be one of {', '.join(SEVERITIES)}")
    if data.get("status", "Open") not in DEFECT_STATUSES:
        errors.append(f"status must be one of {', '.join(DEFECT_STATUSES)}")

    if data.get("is_abnormal") and not str(data.get("note") or "").strip():
        errors.append("note is required for an abnormal defect")

    return errors


def add_defect_record(store: InMemoryStore, data: Dict[str, Any], actor: str = "") -> Dict[str, Any]:
    errors = validate_defect_entry(store, data)
    if errors:
        raise ValidationError(errors)

    with store.transaction():
        record = store.insert("defects", {
            "work_date": day_str(data["work_date"]),
            "machine_id": data["machine_id"],
            "shift_id": data["shift_id"],
            "defect_type_id": data["defect_type_id"],
            "cause_id": data.get("cause_id"),
            "quantity": data["quantity"],
            "note": data.get("note", ""),
            "severity": data.get("severity", "Low"),
            "status": data.get("status", "Open"),
            "is_abnormal": bool(data.get("is_abnormal")),
            "reporter_id": data["reporter_id"],
            "linked_maintenance_order_id": data.get("linked_maintenance_order_id"),
            "image_urls": list(data.get("image_urls") or []),
        })
        enriched = enrich_defect_record(store, record)

    log_audit(store, actor or data["reporter_id"], f"Logged defect {record['id']} qty {record['quantity']}")
    return enriched


# -----------------------------
# Purchasing
# -----------------------------
def add_mc_part_request(store: InMemoryStore, data: Dict[str, Any], actor: str = "",
                        now: Optional[datetime] = None) -> Dict[str, Any]:
    row = {k: v for k, v in data.items() if k != "id"}
    row["status"] = "Pending"
    row["request_date"] = (now or datetime.now()).strftime("%Y-%m-%d")
    saved = store.insert("mc_part_requests", row)
    log_audit(store, actor or "system", f"Requested part {saved.get('item_code', '')} qty {saved.get('qty', '')}")
    return saved


def add_consumable_request(store: InMemoryStore, data: Dict[str, Any], actor: str = "") -> Dict[str, Any]:
    """Consumables (gloves, tape, oil...) go through their own Pending queue."""
    row = {k: v for k, v in data.items() if k != "id"}
    row["qty"] = safe_int(row.get("qty"))
    row["status"] = "Pending"
    saved = store.insert("consumable_requests", row)
    log_audit(store, actor or "system", f"Requested consumable {saved.get('item_name', '')} qty {saved['qty']}")
    return saved
