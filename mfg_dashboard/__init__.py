# mfg_dashboard/__init__.py
from __future__ import annotations

from .bootstrap import initialize_app
from .dashboard import get_dashboard_data, get_initial_filter_data
from .db import InMemoryStore, ReferenceNotFoundError

__all__ = [
    "initialize_app",
    "get_dashboard_data",
    "get_initial_filter_data",
    "InMemoryStore",
    "ReferenceNotFoundError",
]
