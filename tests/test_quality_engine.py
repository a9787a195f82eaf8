import pytest

from mfg_dashboard import quality_engine as qe
from mfg_dashboard.storage import records_frame


def _prod(rows):
    return records_frame(rows, qe.PRODUCTION_COLUMNS)


def _row(day, line, code, act, defect, oee, shift="A"):
    return {
        "comp_day": day, "line_id": line, "machine_code": code, "shift": shift,
        "act_pro_qty": act, "defect_qty": defect, "downtime_min": 30, "run_time_min": 450,
        "oee": oee, "availability": oee, "performance": 1.0, "quality": 1.0,
    }


def test_pareto_cumulative_ends_at_100():
    df = records_frame([
        {"defect_type_name": "X", "quantity": 5},
        {"defect_type_name": "Y", "quantity": 3},
        {"defect_type_name": "X", "quantity": 2},
        {"defect_type_name": "Z", "quantity": 3},
    ], ["defect_type_name", "quantity"])
    out = qe.pareto(df, "defect_type_name", "quantity")

    assert [r["name"] for r in out] == ["X", "Y", "Z"]  # Y/Z tie keeps first appearance
    assert [r["value"] for r in out] == [7, 3, 3]
    cum = [r["cumulative"] for r in out]
    assert cum == sorted(cum)
    assert cum[0] == pytest.approx(7 / 13 * 100)
    assert cum[-1] == pytest.approx(100.0)


def test_pareto_empty_and_blank_keys():
    assert qe.pareto(records_frame([], ["k", "v"]), "k", "v") == []
    df = records_frame([{"k": None, "v": 4}], ["k", "v"])
    assert qe.pareto(df, "k", "v")[0]["name"] == "Unknown"


def test_trend_always_has_seven_points():
    prod = _prod([
        _row("2025-10-26", "32", "M01", 100, 2, 0.8),
        _row("2025-10-24", "32", "M01", 50, 1, 0.6),
    ])
    trend = qe.trailing_trend(prod, "2025-10-26")

    assert len(trend) == 7
    assert trend[0]["date"] == "2025-10-20"
    assert trend[-1]["date"] == "2025-10-26"
    assert trend[-1]["oee"] == pytest.approx(0.8)
    assert trend[-1]["production"] == 100
    assert trend[4]["oee"] == pytest.approx(0.6)
    assert trend[5]["oee"] is None
    assert trend[5]["production"] is None


def test_zero_oee_rows_count_in_totals_not_in_average():
    prod = _prod([
        _row("2025-10-26", "32", "M01", 100, 5, 0.8),
        _row("2025-10-26", "32", "M02", 40, 0, 0.0),
    ])
    s = qe.summarize(prod)
    assert s["total_production"] == 140
    assert s["total_defects"] == 5
    assert s["avg_oee"] == pytest.approx(0.8)
    assert s["defect_rate"] == pytest.approx(5 / 145)
    assert s["machine_utilization"] == pytest.approx((960 - 60) / 960)


def test_summary_of_nothing_is_zero():
    s = qe.summarize(_prod([]))
    assert s["total_production"] == 0
    assert s["avg_oee"] == 0.0
    assert s["machine_utilization"] == 0.0


def test_boxplot_uses_linear_quartiles():
    prod = _prod([_row("2025-10-26", "31", "M03", v, 0, 0.5) for v in (1, 2, 3, 4)])
    box = qe.production_boxplot(prod, ["31", "51"])
    assert box[0] == {"name": "31", "min": 1, "q1": 1.75, "median": 2.5, "q3": 3.25, "max": 4}
    assert box[1]["max"] == 0


def test_top_defect_lines_orders_by_rate_with_stable_ties():
    prod = _prod([
        _row("2025-10-26", "31", "M03", 90, 10, 0.5),
        _row("2025-10-26", "32", "M01", 99, 1, 0.5),
    ])
    top = qe.top_defect_lines(prod, ["41", "31", "42", "32", "51", "99"])
    assert [r["line_id"] for r in top] == ["31", "32", "41", "42", "51"]
    assert top[0]["defect_rate"] == pytest.approx(0.1)


def test_heatmap_covers_every_line_and_shift():
    prod = _prod([_row("2025-10-26", "31", "M03", 10, 0, 0.7, shift="B")])
    cells = qe.oee_heatmap(prod, ["31", "32"])
    assert len(cells) == 6
    assert {"line": "31", "shift": "B", "value": pytest.approx(0.7)} in cells


def test_filter_scope_by_area_and_shift(store):
    scope = qe.filter_scope(store, "2025-10-26", "2025-10-26", area="Area Assembly", shift="B")
    assert scope.lines == ["32"]
    assert {p["machine_code"] for p in scope.production_rows} <= {"M01", "M02"}
    assert all(p["shift"] == "B" for p in scope.production_rows)
    assert all(d["shift"] == "B" for d in scope.downtime_rows)
    assert all(d["line_id"] == "32" for d in scope.downtime_rows)


def test_filter_scope_status(store):
    scope = qe.filter_scope(store, "2025-10-20", "2025-10-26", status="inactive")
    assert [m["machine_code"] for m in scope.machines] == ["M04"]


@pytest.mark.parametrize("kwargs", [
    {"shift": "D"},
    {"status": "broken"},
    {"area": "Nowhere"},
])
def test_filter_scope_rejects_unknown_filters(store, kwargs):
    with pytest.raises(ValueError):
        qe.filter_scope(store, "2025-10-26", "2025-10-26", **kwargs)


def test_filter_scope_rejects_reversed_range(store):
    with pytest.raises(ValueError):
        qe.filter_scope(store, "2025-10-26", "2025-10-20")


def test_status_board(store):
    scope = qe.filter_scope(store, "2025-10-20", "2025-10-26")
    reports = [{"machine_code": "M01", "status": "In Progress"}, {"machine_code": "M02", "status": "Closed"}]
    board = {b["machine_code"]: b for b in qe.machine_status_board(
        store.list("machines"), scope.production, scope.downtime, reports)}

    assert board["M01"]["status"] == "Error"
    assert board["M04"]["status"] == "Inactive"
    assert board["M02"]["status"] in ("Running", "Stopped")
