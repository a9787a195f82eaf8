# mfg_dashboard/bootstrap.py
from __future__ import annotations

import logging
import os
import random
from typing import Any, Optional

from .config import (
    AUDIT_LOG_FILE,
    DATA_DIR,
    DEFAULT_MAINTENANCE_RULES,
    DEFAULT_QUERY_DATE,
    LOGS_DIR,
    RULES_FILE,
)
from .audit import configure_logging
from .db import InMemoryStore
from .generator import generate_mock_data
from .populate_db import seed_demo_records, seed_master_data
from .storage import save_json

logger = logging.getLogger(__name__)


def _ensure_dirs() -> None:
    os.makedirs(DATA_DIR, exist_ok=True)
    os.makedirs(LOGS_DIR, exist_ok=True)


def _write_json_if_missing(path: str, default_obj) -> None:
    if os.path.exists(path):
        return
    save_json(path, default_obj)


# ----------------------------
# Public entry point
# ----------------------------
def ensure_app_initialized(log_file: Optional[str] = AUDIT_LOG_FILE) -> None:
    """
    Safe to call multiple times: folders, the editable rules file and
    the audit log handler. Pass log_file=None to stay off the disk.
    """
    if log_file:
        _ensure_dirs()
        _write_json_if_missing(RULES_FILE, DEFAULT_MAINTENANCE_RULES)
    configure_logging(log_file)


def build_store(
    start_date: Any = DEFAULT_QUERY_DATE,
    end_date: Any = DEFAULT_QUERY_DATE,
    seed: Optional[int] = None,
) -> InMemoryStore:
    """Master data + generated shop-floor records for the range + demo workflow rows."""
    store = InMemoryStore()
    seed_master_data(store)
    counts = generate_mock_data(store, start_date, end_date, rng=random.Random(seed))
    seed_demo_records(store, start_date, end_date)
    logger.info("Store ready for %s: %s", " -> ".join(store.get_meta("generated_range")), counts)
    return store


def initialize_app(
    start_date: Any = None,
    end_date: Any = None,
    seed: Optional[int] = None,
    log_file: Optional[str] = AUDIT_LOG_FILE,
) -> InMemoryStore:
    ensure_app_initialized(log_file)
    start_date = start_date or DEFAULT_QUERY_DATE
    end_date = end_date or start_date
    return build_store(start_date, end_date, seed)
