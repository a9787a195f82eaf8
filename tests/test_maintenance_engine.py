import pytest

from mfg_dashboard import maintenance_engine as me
from mfg_dashboard.quality_engine import DOWNTIME_COLUMNS
from mfg_dashboard.storage import records_frame

MACHINES = [
    {"machine_code": "M01"},
    {"machine_code": "M02"},
    {"machine_code": "M03"},
]


def _downtime(rows):
    return records_frame(
        [{"comp_day": "2025-10-26", "machine_code": c, "downtime_reason": r, "downtime_min": m} for c, r, m in rows],
        DOWNTIME_COLUMNS,
    )


@pytest.fixture
def downtime():
    return _downtime([
        ("M01", "Mechanical", 30),
        ("M01", "Electrical", 30),
        ("M02", "Mechanical", 120),
        ("M03", "Setup", 45),
    ])


def test_pm_overdue_and_on_schedule():
    assert me.pm_status("2025-09-20", 30, "2025-10-30")["status"] == "Overdue"
    yearly = me.pm_status("2025-09-20", 365, "2025-10-30")
    assert yearly["status"] == "On schedule"
    assert yearly["next_pm_date"] == "2026-09-20"


def test_pm_due_soon_boundary():
    at_limit = me.pm_status("2025-10-07", 30, "2025-10-30")
    assert at_limit["days_until_due"] == 7
    assert at_limit["status"] == "Due soon"
    assert me.pm_status("2025-10-08", 30, "2025-10-30")["status"] == "On schedule"
    assert me.pm_status("2025-09-30", 30, "2025-10-30")["status"] == "Due soon"


def test_machine_stats(downtime):
    stats = {s["machine_code"]: s for s in me.machine_maintenance_stats(downtime, MACHINES)}

    assert stats["M01"]["breakdown_count"] == 2
    assert stats["M01"]["mttr"] == pytest.approx(30)
    assert stats["M01"]["mtbf"] == pytest.approx((160 - 1) / 2)
    assert stats["M02"]["mtbf"] == pytest.approx(160 - 2)
    # setup time is downtime but not a breakdown
    assert stats["M03"]["breakdown_count"] == 0
    assert stats["M03"]["mtbf"] == 160
    assert stats["M03"]["mttr"] == 0


def test_stats_sorted_by_breakdowns(downtime):
    codes = [s["machine_code"] for s in me.machine_maintenance_stats(downtime, MACHINES)]
    assert codes == ["M01", "M02", "M03"]


def test_fleet_mtbf_is_plain_mean_and_mttr_is_weighted(downtime):
    stats = me.machine_maintenance_stats(downtime, MACHINES)
    kpis = me.fleet_kpis(stats)

    assert kpis["mtbf"] == pytest.approx((79.5 + 158 + 160) / 3)
    # 225 minutes over 3 breakdowns, not the mean of the per-machine MTTRs
    assert kpis["mttr"] == pytest.approx(225 / 3)
    assert kpis["breakdown_count"] == 3
    assert kpis["top_mttr_machines"][0]["name"] == "M02"


def test_fleet_kpis_without_machines():
    assert me.fleet_kpis([]) == {"mtbf": 0, "mttr": 0, "breakdown_count": 0, "top_mttr_machines": []}


def test_classification_thresholds(downtime):
    stats = {s["machine_code"]: s["status"] for s in me.machine_maintenance_stats(downtime, MACHINES)}
    assert stats["M02"] == "Alert"
    # mttr 30 and 2 breakdowns sit exactly on the warning limits
    assert stats["M01"] == "Normal"
    assert me.classify_machine(31, 0) == "Warning"
    assert me.classify_machine(0, 3) == "Warning"
    assert me.classify_machine(0, 6) == "Alert"


def test_rules_override():
    assert me.classify_machine(45, 0, {"warning_mttr": 50}) == "Normal"


def test_downtime_cause_analysis(downtime):
    out = me.downtime_cause_analysis(downtime)
    assert out[0] == {"reason": "Mechanical", "count": 2, "total_minutes": 150, "main_machine_impact": "M02"}
    assert [r["reason"] for r in out] == ["Mechanical", "Setup", "Electrical"]


def test_maintenance_trend_window(downtime):
    trend = me.maintenance_trend("2025-10-26", downtime, MACHINES)
    assert len(trend) == 7
    assert trend[-1]["mttr"] == pytest.approx(75)
    assert trend[0]["mttr"] is None
    assert trend[0]["mtbf"] == 160


def test_order_schedule():
    orders = [
        {"id": 1, "type": "PM", "status": "Open", "plan_date": "2025-10-29"},
        {"id": 2, "type": "PM", "status": "Open", "plan_date": "2025-11-06"},
        {"id": 3, "type": "PM", "status": "Open", "plan_date": "2025-11-07"},
        {"id": 4, "type": "PM", "status": "Done", "plan_date": "2025-10-01"},
        {"id": 5, "type": "CM", "status": "Open", "plan_date": "2025-10-01"},
    ]
    sched = me.order_schedule(orders, "2025-10-30")
    assert [o["id"] for o in sched["overdue"]] == [1]
    assert [o["id"] for o in sched["due_soon"]] == [2]


def test_low_stock():
    parts = [
        {"id": 1, "available": 1, "in_transit": 1, "reorder_point": 6},
        {"id": 2, "available": 5, "in_transit": 2, "reorder_point": 5},
    ]
    assert [p["id"] for p in me.low_stock_parts(parts)] == [1]


def test_pm_schedule_falls_back_to_pm_type_cycle(empty_store):
    empty_store.insert("maintenance_schedules", {"machine_id": 6, "pm_type": "PM-12M", "last_pm_date": "2025-01-10"})
    row = me.pm_schedule(empty_store, "2025-10-30")[0]
    assert row["next_pm_date"] == "2026-01-10"
    assert row["machine_code"] == "M06"
    assert row["status"] == "On schedule"
