# mfg_dashboard/master_data.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from .db import InMemoryStore
from .audit import log_audit

MACHINE_FIELDS = ("machine_code", "machine_name", "line_id", "ideal_cycle_time",
                  "design_speed", "status", "x", "y")

SPARE_PART_FIELDS = (
    "part_code", "name", "location", "available", "in_transit", "reserved",
    "used_in_period", "safety_stock", "reorder_point", "maintenance_interval_days",
    "image_url", "lifespan_days", "wear_tear_standard", "replacement_standard",
)


def _pick(data: Dict[str, Any], fields) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if k in fields}


def _check_line(store: InMemoryStore, line_id: Any) -> None:
    if line_id is not None and str(line_id) not in store.line_to_area:
        raise ValueError(f"Unknown line {line_id!r}; add it to an area first")


# -----------------------------
# Machines
# -----------------------------
def get_machine_info(store: InMemoryStore, machine_code: str) -> Optional[Dict[str, Any]]:
    return store.first("machines", machine_code=machine_code)


def add_machine(store: InMemoryStore, data: Dict[str, Any], actor: str = "") -> Dict[str, Any]:
    """
    Machine schema:
    {
      "machine_code", "machine_name", "line_id",
      "ideal_cycle_time": minutes per unit, "design_speed": units per minute,
      "status": active/inactive, "x", "y" (optional layout %)
    }
    """
    row = _pick(data, MACHINE_FIELDS)
    row.setdefault("status", "active")
    _check_line(store, row.get("line_id"))
    saved = store.insert("machines", row)
    log_audit(store, actor or "system", f"Added machine {saved['machine_code']} (id {saved['id']})")
    return saved


def update_machine(store: InMemoryStore, machine_id: int, data: Dict[str, Any], actor: str = "") -> Dict[str, Any]:
    changes = _pick(data, MACHINE_FIELDS)
    with store.transaction():
        store.require("machines", machine_id, "update machine")
        _check_line(store, changes.get("line_id"))
        saved = store.update("machines", machine_id, changes)
    log_audit(store, actor or "system", f"Updated machine {saved['machine_code']} (id {machine_id})")
    return saved


# -----------------------------
# Areas
# -----------------------------
def add_area(store: InMemoryStore, area_name: str, line_id: str, actor: str = "") -> None:
    area_name = (area_name or "").strip()
    line_id = (line_id or "").strip()
    if not area_name or not line_id:
        raise ValueError("Area name and line id are required")
    with store.transaction():
        if any(a.lower() == area_name.lower() for a in store.line_to_area.values()):
            raise ValueError(f'Area name "{area_name}" already exists')
        if line_id in store.line_to_area:
            raise ValueError(f'Line "{line_id}" is already assigned to {store.line_to_area[line_id]}')
        store.line_to_area[line_id] = area_name
    log_audit(store, actor or "system", f"Added area {area_name} with line {line_id}")


def rename_area(store: InMemoryStore, old_name: str, new_name: str, actor: str = "") -> int:
    new_name = (new_name or "").strip()
    with store.transaction():
        if new_name in store.line_to_area.values():
            raise ValueError(f'Area name "{new_name}" already exists')
        renamed = 0
        for line_id, area in list(store.line_to_area.items()):
            if area == old_name:
                store.line_to_area[line_id] = new_name
                renamed += 1
    log_audit(store, actor or "system", f"Renamed area {old_name} -> {new_name}")
    return renamed


# -----------------------------
# Spare parts
# -----------------------------
def add_spare_part(store: InMemoryStore, data: Dict[str, Any], actor: str = "") -> Dict[str, Any]:
    row = _pick(data, SPARE_PART_FIELDS)
    for qty in ("available", "in_transit", "reserved", "used_in_period", "safety_stock", "reorder_point"):
        row.setdefault(qty, 0)
    row["flagged_for_order"] = False
    saved = store.insert("spare_parts", row)
    log_audit(store, actor or "system", f"Added spare part {saved['part_code']} (id {saved['id']})")
    return saved


def update_spare_part(store: InMemoryStore, part_id: int, data: Dict[str, Any], actor: str = "") -> Dict[str, Any]:
    saved = store.update("spare_parts", part_id, _pick(data, SPARE_PART_FIELDS))
    log_audit(store, actor or "system", f"Updated spare part {saved['part_code']}")
    return saved


def toggle_flag_for_order(store: InMemoryStore, part_id: int, actor: str = "") -> bool:
    with store.transaction():
        part = store.require("spare_parts", part_id, "toggle reorder flag")
        flagged = not bool(part.get("flagged_for_order"))
        store.update("spare_parts", part_id, {"flagged_for_order": flagged})
    log_audit(store, actor or "system", f"Spare part {part['part_code']} flagged_for_order={flagged}")
    return flagged


def get_enriched_spare_part_details(store: InMemoryStore, part_id: int) -> Dict[str, Any]:
    """Part + usage history (completed orders) + purchase history, both newest first."""
    part = store.require("spare_parts", part_id)

    usage_history: List[Dict[str, Any]] = []
    for usage in store.find("part_usages", part_id=part_id):
        order = store.get("maintenance_orders", usage["order_id"])
        if not order or order.get("status") != "Done" or not order.get("actual_end_date"):
            continue
        machine = store.require("machines", order["machine_id"], f"maintenance order {order['id']}")
        usage_history.append({
            "order_id": order["id"],
            "machine_code": machine["machine_code"],
            "completed_at": order["actual_end_date"],
            "qty_used": usage["qty_used"],
        })

    purchase_history = store.find("mc_part_orders", item_code=part["part_code"])

    return {
        **part,
        "usage_history": sorted(usage_history, key=lambda u: u["completed_at"], reverse=True),
        "purchase_history": sorted(purchase_history, key=lambda p: p["order_date"], reverse=True),
    }
