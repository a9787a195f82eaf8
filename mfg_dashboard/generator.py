# mfg_dashboard/generator.py
from __future__ import annotations

import random
import logging
from typing import Any, Dict, List, Optional

from .db import InMemoryStore
from .storage import day_range, day_str, parse_day, add_minutes
from .config import SHIFT_MINUTES, DOWNTIME_REASONS, SEVERITIES

logger = logging.getLogger(__name__)


class GenerationOverlapError(ValueError):
    """Appending would duplicate production rows already in the range."""


def _pick(rng: random.Random, items):
    return items[rng.randint(0, len(items) - 1)]


def production_ratios(act_qty: int, defect_qty: int, run_time: float, ideal_cycle_time: float) -> Dict[str, float]:
    """
    Availability = run time / shift minutes
    Performance  = good output x ideal cycle time / run time
    Quality      = good output / (good + defective)
    OEE          = A x P x Q
    """
    availability = run_time / SHIFT_MINUTES if SHIFT_MINUTES else 0.0
    performance = (act_qty * ideal_cycle_time) / run_time if run_time > 0 else 0.0
    total = act_qty + defect_qty
    quality = act_qty / total if total > 0 else 0.0
    return {
        "availability": availability,
        "performance": performance,
        "quality": quality,
        "oee": availability * performance * quality,
    }


def _existing_days_in_range(store: InMemoryStore, start: str, end: str) -> List[str]:
    return sorted({
        p["comp_day"] for p in store.list("production")
        if start <= p["comp_day"] <= end
    })


def generate_mock_data(
    store: InMemoryStore,
    start_date: Any,
    end_date: Any,
    rng: Optional[random.Random] = None,
    replace: bool = True,
) -> Dict[str, int]:
    """
    Synthetic production / downtime / defect records for every
    (day, machine, shift) in [start_date, end_date].

    replace=True rebuilds the three tables from scratch.
    replace=False appends, and refuses a range that already has production rows.
    Returns the number of rows written per table.
    """
    rng = rng or random.Random()
    start, end = day_str(start_date), day_str(end_date)
    if parse_day(start) > parse_day(end):
        raise ValueError(f"start_date {start} is after end_date {end}")

    machines = store.list("machines")
    shifts = store.list("shifts")
    defect_types = store.list("defect_types")
    defect_causes = store.list("defect_causes")
    operator = store.first("users", role="Operator")
    reporter_id = operator["id"] if operator else 201

    production: List[Dict[str, Any]] = []
    downtime: List[Dict[str, Any]] = []
    defects: List[Dict[str, Any]] = []

    with store.transaction():
        if replace:
            store.clear("production")
            store.clear("downtime")
            store.clear("defects")
        else:
            overlap = _existing_days_in_range(store, start, end)
            if overlap:
                raise GenerationOverlapError(
                    f"Production records already exist for {overlap[0]}..{overlap[-1]}; "
                    "regenerate with replace=True instead of appending"
                )

        for d in day_range(start, end):
            day = d.strftime("%Y-%m-%d")
            for machine in machines:
                for shift in shifts:
                    # idle lines: inactive machines only run ~10% of slots
                    if machine["status"] == "inactive" and rng.random() > 0.1:
                        continue

                    ict = machine["ideal_cycle_time"]
                    run_time = rng.randint(400, SHIFT_MINUTES)
                    down_min = SHIFT_MINUTES - run_time
                    total = round((run_time / ict) * (0.8 + rng.random() * 0.2))
                    defect_qty = round(total * (rng.random() * 0.05))
                    act_qty = total - defect_qty

                    row = {
                        "comp_day": day,
                        "line_id": machine["line_id"],
                        "machine_code": machine["machine_code"],
                        "item_code": f"ITEM-{100 + machine['id']}",
                        "act_pro_qty": act_qty,
                        "defect_qty": defect_qty,
                        "run_time_min": run_time,
                        "downtime_min": down_min,
                        "ideal_cycle_time": ict,
                        "shift_id": shift["id"],
                        "shift": shift["code"],
                        "status": machine["status"],
                    }
                    row.update(production_ratios(act_qty, defect_qty, run_time, ict))
                    production.append(store.insert("production", row))

                    if down_min > 0:
                        start_time = shift.get("start_time", "08:00")
                        downtime.append(store.insert("downtime", {
                            "comp_day": day,
                            "machine_code": machine["machine_code"],
                            "shift_id": shift["id"],
                            "shift": shift["code"],
                            "downtime_reason": _pick(rng, DOWNTIME_REASONS),
                            "downtime_min": down_min,
                            "start_time": start_time,
                            "end_time": add_minutes(start_time, down_min),
                        }))

                    if defect_qty > 0:
                        defects.append(store.insert("defects", {
                            "work_date": day,
                            "machine_id": machine["id"],
                            "shift_id": shift["id"],
                            "defect_type_id": _pick(rng, defect_types)["id"],
                            "cause_id": _pick(rng, defect_causes)["id"],
                            "quantity": defect_qty,
                            "note": f"Found {defect_qty} defects",
                            "severity": _pick(rng, SEVERITIES),
                            "status": "Closed",
                            "is_abnormal": rng.random() > 0.5,
                            "reporter_id": reporter_id,
                            "linked_maintenance_order_id": None,
                            "image_urls": [],
                        }))

        covered = store.get_meta("generated_range")
        if covered and not replace:
            start_all, end_all = min(covered[0], start), max(covered[1], end)
        else:
            start_all, end_all = start, end
        store.set_meta("generated_range", [start_all, end_all])

    counts = {"production": len(production), "downtime": len(downtime), "defects": len(defects)}
    logger.info(
        "Generated %s -> %s: %d production, %d downtime, %d defect records",
        start, end, counts["production"], counts["downtime"], counts["defects"],
    )
    return counts
