# mfg_dashboard/db.py
from __future__ import annotations

import copy
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

TABLES = (
    # master data
    "users",
    "shifts",
    "defect_types",
    "defect_causes",
    "machines",
    "spare_parts",
    "mc_part_orders",
    "oee_targets",
    # shop-floor records
    "production",
    "downtime",
    "defects",
    # workflow
    "error_reports",
    "error_images",
    "error_history",
    "maintenance_orders",
    "part_usages",
    "maintenance_schedules",
    "pm_parts_templates",
    "mc_part_requests",
    "consumable_requests",
    "audit_logs",
)

# rows that are keyed by a synthetic id even though the records carry none
_SURROGATE_ID_TABLES = ("part_usages",)


class ReferenceNotFoundError(LookupError):
    """A referenced row does not exist in the store."""

    def __init__(self, table: str, ref_id: Any, context: str = ""):
        self.table = table
        self.ref_id = ref_id
        self.context = context
        msg = f"{table} id {ref_id!r} not found"
        if context:
            msg = f"{context}: {msg}"
        super().__init__(msg)


class InMemoryStore:
    """
    Repository over plain in-memory tables.

    Each table is an insertion-ordered dict {id: row}. New ids are
    max(existing ids) + 1, never reused. Writers go through transaction(),
    which holds a re-entrant lock; every read hands out copies.
    The meta map holds facts about the store itself, such as the
    range of generated records.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._tables: Dict[str, Dict[int, Dict[str, Any]]] = {t: {} for t in TABLES}
        self._meta: Dict[str, Any] = {}
        self.line_to_area: Dict[str, str] = {}

    # -------------------------
    @contextmanager
    def transaction(self) -> Iterator["InMemoryStore"]:
        with self._lock:
            yield self

    def _table(self, table: str) -> Dict[int, Dict[str, Any]]:
        try:
            return self._tables[table]
        except KeyError:
            raise KeyError(f"Unknown table {table!r}") from None

    # -------------------------
    # reads
    # -------------------------
    def next_id(self, table: str) -> int:
        rows = self._table(table)
        return max(rows.keys(), default=0) + 1

    def get(self, table: str, row_id: Any) -> Optional[Dict[str, Any]]:
        if row_id is None:
            return None
        with self._lock:
            row = self._table(table).get(row_id)
            return copy.deepcopy(row) if row is not None else None

    def require(self, table: str, row_id: Any, context: str = "") -> Dict[str, Any]:
        row = self.get(table, row_id)
        if row is None:
            raise ReferenceNotFoundError(table, row_id, context)
        return row

    def list(self, table: str) -> List[Dict[str, Any]]:
        with self._lock:
            return copy.deepcopy(list(self._table(table).values()))

    def find(self, table: str, **match: Any) -> List[Dict[str, Any]]:
        with self._lock:
            out = [
                r for r in self._table(table).values()
                if all(r.get(k) == v for k, v in match.items())
            ]
            return copy.deepcopy(out)

    def first(self, table: str, **match: Any) -> Optional[Dict[str, Any]]:
        found = self.find(table, **match)
        return found[0] if found else None

    def count(self, table: str) -> int:
        return len(self._table(table))

    def get_meta(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return copy.deepcopy(self._meta.get(key, default))

    # -------------------------
    # writes
    # -------------------------
    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        with self.transaction():
            row = copy.deepcopy(row)
            if row.get("id") is None or table in _SURROGATE_ID_TABLES:
                key = self.next_id(table)
                if table not in _SURROGATE_ID_TABLES:
                    row["id"] = key
            else:
                key = row["id"]
            self._table(table)[key] = row
            return copy.deepcopy(row)

    def update(self, table: str, row_id: Any, changes: Dict[str, Any]) -> Dict[str, Any]:
        with self.transaction():
            rows = self._table(table)
            if row_id not in rows:
                raise ReferenceNotFoundError(table, row_id)
            rows[row_id].update(copy.deepcopy(changes))
            rows[row_id]["id"] = row_id
            return copy.deepcopy(rows[row_id])

    def delete_where(self, table: str, **match: Any) -> int:
        with self.transaction():
            rows = self._table(table)
            doomed = [k for k, r in rows.items() if all(r.get(f) == v for f, v in match.items())]
            for k in doomed:
                del rows[k]
            return len(doomed)

    def replace_all(self, table: str, rows: List[Dict[str, Any]]) -> None:
        with self.transaction():
            self._table(table).clear()
            for r in rows:
                self.insert(table, r)

    def clear(self, table: str) -> None:
        with self.transaction():
            self._table(table).clear()

    def set_meta(self, key: str, value: Any) -> None:
        with self.transaction():
            self._meta[key] = copy.deepcopy(value)
