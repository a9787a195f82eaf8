# mfg_dashboard/config.py
from __future__ import annotations

from pathlib import Path

# ----------------------------
# Project structure
# ----------------------------
PROJECT_ROOT = Path(__file__).resolve().parent.parent

LOGS_DIR = str(PROJECT_ROOT / "logs")
DATA_DIR = str(PROJECT_ROOT / "data")

AUDIT_LOG_FILE = str(Path(LOGS_DIR) / "audit.log")
STARTUP_LOG_FILE = str(Path(LOGS_DIR) / "startup.log")

# Optional override for DEFAULT_MAINTENANCE_RULES
RULES_FILE = str(Path(DATA_DIR) / "maintenance_rules.json")

# ----------------------------
# Calendar / shift constants
# ----------------------------
SHIFT_MINUTES = 480  # 8 hours per shift

# Fixed calibration date for the demo data set
DEFAULT_REFERENCE_DATE = "2025-10-30"
DEFAULT_QUERY_DATE = "2025-10-26"

TREND_WINDOW_DAYS = 7
DUE_SOON_DAYS = 7
TOP_N = 5

# 20 days x 8 hours
ASSUMED_OPERATING_HOURS = 20 * 8

# ----------------------------
# Enumerations
# ----------------------------
SHIFT_FILTERS = ("all", "A", "B", "C")
STATUS_FILTERS = ("all", "active", "inactive")

DOWNTIME_REASONS = ("Setup", "Mechanical", "Electrical", "Waiting")
BREAKDOWN_REASONS = ("Mechanical", "Electrical")

SEVERITIES = ("Low", "Medium", "High")
DEFECT_STATUSES = ("Open", "In Progress", "Closed")
CAUSE_CATEGORIES = ("Man", "Machine", "Material", "Method", "Environment")

ERROR_REPORT_STATUSES = ("Reported", "In Progress", "Fixed", "Not Machine Issue", "Closed")
ERROR_REPORT_TRANSITIONS = {
    "Reported": ("In Progress",),
    "In Progress": ("Fixed", "Not Machine Issue"),
    "Fixed": ("Closed",),
    "Not Machine Issue": ("Closed",),
    "Closed": (),
}
OPEN_ERROR_STATUSES = ("Reported", "In Progress")

MAINTENANCE_ORDER_TRANSITIONS = {
    "Open": ("InProgress", "Done", "Canceled"),
    "InProgress": ("Done", "Canceled"),
    "Done": (),
    "Canceled": (),
}

PM_CYCLE_DAYS = {
    "PM-1M": 30,
    "PM-12M": 365,
    "PM-24M": 730,
    "PM-36M": 1095,
    "PM-48M": 1460,
    "PM-60M": 1825,
}

# ----------------------------
# Status thresholds
# ----------------------------
DEFAULT_MAINTENANCE_RULES = {
    "alert_mttr": 60,
    "alert_breakdowns": 5,
    "warning_mttr": 30,
    "warning_breakdowns": 2,
    # a single downtime event longer than this marks a machine "Stopped"
    "stopped_downtime_minutes": 60,
}

# ----------------------------
# DEFAULT STORES (populate_db expects these names)
# ----------------------------
DEFAULT_USERS = [
    {"id": 1, "username": "admin", "full_name": "Admin", "role": "Admin"},
    {"id": 101, "username": "vhung", "full_name": "Văn Hùng", "role": "Maintenance"},
    {"id": 102, "username": "tlan", "full_name": "Thị Lan", "role": "Maintenance"},
    {"id": 103, "username": "mtri", "full_name": "Minh Trí", "role": "Maintenance"},
    {"id": 201, "username": "operatorA", "full_name": "Operator Ca A", "role": "Operator"},
    {"id": 202, "username": "qa_team", "full_name": "QA Team", "role": "QA"},
    {"id": 203, "username": "supervisor.b", "full_name": "Supervisor B", "role": "Supervisor"},
]

DEFAULT_SHIFTS = [
    {"id": 1, "code": "A", "name": "Ca A (06:00 - 14:00)", "start_time": "06:00"},
    {"id": 2, "code": "B", "name": "Ca B (14:00 - 22:00)", "start_time": "14:00"},
    {"id": 3, "code": "C", "name": "Ca C (22:00 - 06:00)", "start_time": "22:00"},
]

DEFAULT_DEFECT_TYPES = [
    {"id": 1, "code": "SKIP_STITCH", "name": "Skip stitch"},
    {"id": 2, "code": "TAPE_JAM", "name": "Tape jam"},
    {"id": 3, "code": "COSMETIC", "name": "Cosmetic"},
    {"id": 4, "code": "MISALIGNED", "name": "Misaligned"},
    {"id": 5, "code": "PAINT_DRIP", "name": "Paint Drip"},
    {"id": 6, "code": "SCRATCH", "name": "Scratch"},
    {"id": 7, "code": "PACKAGING", "name": "Packaging"},
    {"id": 8, "code": "TRIM", "name": "Material Trim"},
    {"id": 9, "code": "SENSOR_ERROR", "name": "Sensor Error"},
]

DEFAULT_DEFECT_CAUSES = [
    {"id": i + 1, "category": cat, "detail": None}
    for i, cat in enumerate(CAUSE_CATEGORIES)
]

DEFAULT_LINE_TO_AREA = {
    "31": "Area Stamping",
    "32": "Area Assembly",
    "41": "Area Painting",
    "42": "Area Painting",
    "51": "Area Finishing",
}

# ideal_cycle_time is minutes per unit, design_speed is units per minute
DEFAULT_MACHINES = [
    {"id": 1, "machine_code": "M01", "machine_name": "Assembler Alpha", "line_id": "32",
     "ideal_cycle_time": 0.045, "design_speed": 22, "status": "active", "x": 30, "y": 20},
    {"id": 2, "machine_code": "M02", "machine_name": "Assembler Beta", "line_id": "32",
     "ideal_cycle_time": 0.045, "design_speed": 22, "status": "active", "x": 30, "y": 60},
    {"id": 3, "machine_code": "M03", "machine_name": "Stamping Press 1", "line_id": "31",
     "ideal_cycle_time": 0.06, "design_speed": 17, "status": "active", "x": 10, "y": 30},
    {"id": 4, "machine_code": "M04", "machine_name": "Paint Booth A", "line_id": "41",
     "ideal_cycle_time": 0.25, "design_speed": 4, "status": "inactive", "x": 55, "y": 30},
    {"id": 5, "machine_code": "M05", "machine_name": "Paint Booth B", "line_id": "42",
     "ideal_cycle_time": 0.24, "design_speed": 4, "status": "active", "x": 55, "y": 70},
    {"id": 6, "machine_code": "M06", "machine_name": "Finishing Line 1", "line_id": "51",
     "ideal_cycle_time": 0.08, "design_speed": 12, "status": "active", "x": 80, "y": 50},
]

DEFAULT_SPARE_PARTS = [
    {"id": 1, "part_code": "FIL-001", "name": "Air Filter", "location": "Aisle 3, Bin 12",
     "available": 15, "in_transit": 0, "reserved": 2, "used_in_period": 8,
     "safety_stock": 8, "reorder_point": 10, "maintenance_interval_days": 30,
     "flagged_for_order": False, "lifespan_days": 180,
     "wear_tear_standard": "Check for clogging and tears. Airflow reduction > 20% indicates wear.",
     "replacement_standard": "Replace every 6 months or if torn."},
    {"id": 2, "part_code": "BLT-A300", "name": "Belt A300", "location": "Aisle 3, Bin 5",
     "available": 3, "in_transit": 0, "reserved": 0, "used_in_period": 8,
     "safety_stock": 3, "reorder_point": 5, "flagged_for_order": False, "lifespan_days": 730,
     "wear_tear_standard": "Visible cracks, fraying, or loss of tension.",
     "replacement_standard": "Replace every 24 months or upon visible wear."},
    {"id": 3, "part_code": "BEAR-210", "name": "Ball Bearing 210mm", "location": "Aisle 3, Bin 5",
     "available": 50, "in_transit": 20, "reserved": 5, "used_in_period": 15,
     "safety_stock": 15, "reorder_point": 20, "maintenance_interval_days": 365,
     "flagged_for_order": False},
    {"id": 4, "part_code": "NOZ-PNT-A", "name": "Paint Nozzle Type A", "location": "Aisle 5, Bin 1",
     "available": 4, "in_transit": 0, "reserved": 1, "used_in_period": 5,
     "safety_stock": 5, "reorder_point": 5, "flagged_for_order": False},
    {"id": 5, "part_code": "CP-F20005", "name": "Coupling F20005", "location": "Aisle 2, Bin 8",
     "available": 1, "in_transit": 1, "reserved": 2, "used_in_period": 15,
     "safety_stock": 4, "reorder_point": 6, "flagged_for_order": True},
    {"id": 6, "part_code": "BRG-6301ZZE", "name": "Bearing 6301ZZE", "location": "Aisle 1, Bin 4",
     "available": 5, "in_transit": 2, "reserved": 1, "used_in_period": 20,
     "safety_stock": 3, "reorder_point": 5, "flagged_for_order": False},
]

DEFAULT_MC_PART_ORDERS = [
    {"id": 1, "area": "312", "order_id": "PO202510A", "item_code": "BRG-6301ZZE",
     "item_name": "Bearing 6301ZZE", "qty_order": 2, "order_date": "2025-10-01",
     "expected_date": "2025-10-28", "supplier": "NSK Vietnam", "status": "In Transit"},
    {"id": 2, "area": "312", "order_id": "PO202510B", "item_code": "BLT-A300",
     "item_name": "Belt A300", "qty_order": 5, "order_date": "2025-10-05",
     "expected_date": "2025-10-25", "supplier": "Gates Unitta", "status": "Received"},
    {"id": 3, "area": "411", "order_id": "PO202510C", "item_code": "NOZ-PNT-A",
     "item_name": "Paint Nozzle Type A", "qty_order": 10, "order_date": "2025-09-20",
     "expected_date": "2025-10-15", "supplier": "Graco Inc.", "status": "Delayed"},
]

DEFAULT_OEE_TARGETS = [
    {"id": 1, "level": "Line", "line_id": "31", "target_oee": 0.85, "target_output": 20000,
     "target_defect_rate": 0.02, "effective_from": "2025-01-01", "effective_to": None},
    {"id": 2, "level": "Line", "line_id": "32", "target_oee": 0.90, "target_output": 45000,
     "target_defect_rate": 0.015, "effective_from": "2025-01-01", "effective_to": None},
    {"id": 3, "level": "Line", "line_id": "51", "target_oee": 0.88, "target_output": 15000,
     "target_defect_rate": 0.025, "effective_from": "2025-01-01", "effective_to": None},
]

# ----------------------------
# Demo workflow rows
# ----------------------------
DEFAULT_MAINTENANCE_ORDERS = [
    {"id": 1, "machine_id": 2, "type": "PM", "priority": "Medium", "status": "Done",
     "created_by_id": 1, "assigned_to_id": 101,
     "task_description": "Monthly lubrication and filter change", "downtime_min": 60,
     "plan_date": "2025-10-15", "actual_start_date": "2025-10-15", "actual_end_date": "2025-10-15"},
    {"id": 2, "machine_id": 5, "type": "IM", "priority": "High", "status": "Open",
     "created_by_id": 1, "assigned_to_id": None,
     "task_description": "Upgrade nozzle control system", "downtime_min": 240,
     "plan_date": "2025-11-05", "actual_start_date": None, "actual_end_date": None},
    {"id": 3, "machine_id": 1, "type": "IM", "priority": "High", "status": "Done",
     "created_by_id": 203, "assigned_to_id": 102,
     "task_description": "Replaced worn out A300 belt", "downtime_min": 90,
     "plan_date": "2025-10-20", "actual_start_date": "2025-10-20", "actual_end_date": "2025-10-20"},
]

DEFAULT_PART_USAGES = [
    {"order_id": 1, "part_id": 1, "qty_used": 1},
    {"order_id": 3, "part_id": 2, "qty_used": 1},
]

DEFAULT_MAINTENANCE_SCHEDULES = [
    {"id": 1, "machine_id": 1, "pm_type": "PM-1M", "last_pm_date": "2025-10-10", "cycle_days": 30},
    {"id": 2, "machine_id": 2, "pm_type": "PM-12M", "last_pm_date": "2024-11-15", "cycle_days": 365},
    {"id": 3, "machine_id": 3, "pm_type": "PM-1M", "last_pm_date": "2025-09-28", "cycle_days": 30},
    {"id": 4, "machine_id": 5, "pm_type": "PM-12M", "last_pm_date": "2024-12-25", "cycle_days": 365},
    {"id": 5, "machine_id": 1, "pm_type": "PM-12M", "last_pm_date": "2025-01-05", "cycle_days": 365},
    {"id": 6, "machine_id": 6, "pm_type": "PM-1M", "last_pm_date": "2025-10-25", "cycle_days": 30},
]

DEFAULT_PM_PARTS_TEMPLATES = [
    {"id": 1, "pm_type": "PM-1M", "machine_id": 1, "parts": [{"part_id": 1, "qty": 1}]},
    {"id": 2, "pm_type": "PM-12M", "machine_id": 2, "parts": [{"part_id": 3, "qty": 4}, {"part_id": 2, "qty": 1}]},
    {"id": 3, "pm_type": "PM-1M", "machine_id": 3, "parts": []},
    {"id": 4, "pm_type": "PM-12M", "machine_id": 5, "parts": [{"part_id": 4, "qty": 2}]},
]
