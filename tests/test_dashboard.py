import pytest

from mfg_dashboard.dashboard import get_dashboard_data, get_initial_filter_data, load_rules
from mfg_dashboard.config import DEFAULT_MAINTENANCE_RULES
from mfg_dashboard.storage import save_json


def test_initial_filter_data(store):
    data = get_initial_filter_data(store)
    assert data["default_date"] == "2025-10-26"
    assert data["default_area"] == "all"
    assert "Area Painting" in data["available_areas"]
    assert len(data["available_areas"]) == len(set(data["available_areas"]))


def test_total_production_matches_rows(store):
    data = get_dashboard_data(store, "2025-10-26", "2025-10-26")
    expected = sum(p["act_pro_qty"] for p in store.list("production") if p["comp_day"] == "2025-10-26")
    assert data["summary"]["total_production"] == expected
    assert all(p["comp_day"] == "2025-10-26" for p in data["production_log"])


def test_query_is_read_only_and_repeatable(store):
    before = store.list("production")
    first = get_dashboard_data(store, "2025-10-20", "2025-10-26", today="2025-10-30")
    second = get_dashboard_data(store, "2025-10-20", "2025-10-26", today="2025-10-30")
    assert first == second
    assert store.list("production") == before


def test_result_shape(store):
    data = get_dashboard_data(store, "2025-10-20", "2025-10-26")
    for key in ("summary", "performance", "quality", "downtime", "maintenance",
                "machine_status", "master_data", "benchmarking", "purchasing"):
        assert key in data
    assert len(data["performance"]["seven_day_trend"]) == 7
    assert data["quality"]["defect_pareto"][-1]["cumulative"] == pytest.approx(100.0)
    assert len(data["quality"]["top5_defect_lines"]) <= 5
    assert len(data["machine_status"]) == len(store.list("machines"))
    assert set(data["maintenance"]["schedule"]) == {"overdue", "due_soon"}


def test_area_filter_limits_lines(store):
    data = get_dashboard_data(store, "2025-10-20", "2025-10-26", area="Area Painting")
    assert {p["line_id"] for p in data["production_log"]} <= {"41", "42"}
    assert [r["name"] for r in data["summary"]["production_by_line"]] == ["41", "42"]


def test_shift_filter_applies_to_downtime(store):
    data = get_dashboard_data(store, "2025-10-20", "2025-10-26", shift="C")
    assert data["downtime_records"]
    assert all(d["shift"] == "C" for d in data["downtime_records"])


def test_open_error_count(store):
    data = get_dashboard_data(store, "2025-10-20", "2025-10-26")
    # ERR-001 In Progress + ERR-002 Reported
    assert data["summary"]["open_error_count"] == 2


@pytest.mark.parametrize("kwargs", [{"shift": "X"}, {"status": "retired"}, {"area": "Moon"}])
def test_invalid_filters_raise(store, kwargs):
    with pytest.raises(ValueError):
        get_dashboard_data(store, "2025-10-26", "2025-10-26", **kwargs)


def test_load_rules_overlays_defaults(tmp_path):
    path = str(tmp_path / "rules.json")
    save_json(path, {"alert_mttr": 90})
    rules = load_rules(path)
    assert rules["alert_mttr"] == 90
    assert rules["warning_mttr"] == DEFAULT_MAINTENANCE_RULES["warning_mttr"]
    assert load_rules(str(tmp_path / "missing.json")) == DEFAULT_MAINTENANCE_RULES
