import os
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from .config import AUDIT_LOG_FILE, LOGS_DIR

AUDIT_LOGGER_NAME = "mfg_dashboard.audit"

logger = logging.getLogger(AUDIT_LOGGER_NAME)


def configure_logging(log_file: Optional[str] = AUDIT_LOG_FILE, level: int = logging.INFO) -> None:
    """
    Attach the audit file handler once. Passing log_file=None keeps audit
    lines on the root handlers only (used by tests).
    """
    if log_file:
        # Ensure logs directory exists BEFORE configuring logging
        os.makedirs(os.path.dirname(log_file) or LOGS_DIR, exist_ok=True)
        already = any(
            isinstance(h, logging.FileHandler) and h.baseFilename == os.path.abspath(log_file)
            for h in logger.handlers
        )
        if not already:
            handler = logging.FileHandler(log_file, encoding="utf-8")
            handler.setFormatter(logging.Formatter("%(asctime)s - %(message)s"))
            logger.addHandler(handler)
    logger.setLevel(level)


def log_audit(store, user: Any, action: str) -> None:
    logger.info(f"User: {user} | Action: {action}")
    store.insert("audit_logs", {
        "created_at": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        "username": str(user or ""),
        "action": action or "",
    })


def list_audit_logs(store, limit: int = 500) -> List[Dict[str, Any]]:
    rows = store.list("audit_logs")
    rows.reverse()
    return rows[:limit]
