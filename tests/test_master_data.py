import pytest

from mfg_dashboard import master_data as md
from mfg_dashboard.db import ReferenceNotFoundError
from mfg_dashboard.quality_engine import available_areas, relevant_lines


def test_machine_crud(empty_store):
    m = md.add_machine(empty_store, {"machine_code": "M07", "machine_name": "Press 2", "line_id": "31",
                                     "ideal_cycle_time": 0.06, "design_speed": 17})
    assert m["id"] == 7
    assert m["status"] == "active"

    md.update_machine(empty_store, m["id"], {"status": "inactive", "bogus": 1})
    info = md.get_machine_info(empty_store, "M07")
    assert info["status"] == "inactive"
    assert "bogus" not in info
    assert md.get_machine_info(empty_store, "M99") is None


def test_add_area(empty_store):
    md.add_area(empty_store, "Area Welding", "61")
    assert "Area Welding" in available_areas(empty_store)
    assert relevant_lines(empty_store, "Area Welding") == ["61"]


@pytest.mark.parametrize("name,line", [
    ("area painting", "71"),
    ("Area New", "31"),
    ("", "72"),
])
def test_add_area_rejects_duplicates_and_blanks(empty_store, name, line):
    before = dict(empty_store.line_to_area)
    with pytest.raises(ValueError):
        md.add_area(empty_store, name, line)
    assert empty_store.line_to_area == before


def test_rename_area(empty_store):
    assert md.rename_area(empty_store, "Area Painting", "Area Coating") == 2
    assert relevant_lines(empty_store, "Area Coating") == ["41", "42"]
    with pytest.raises(ValueError):
        md.rename_area(empty_store, "Area Coating", "Area Stamping")


def test_toggle_flag_twice_restores(empty_store):
    flag_before = empty_store.get("spare_parts", 1)["flagged_for_order"]
    assert md.toggle_flag_for_order(empty_store, 1) is (not flag_before)
    assert md.toggle_flag_for_order(empty_store, 1) is flag_before
    assert empty_store.get("spare_parts", 1)["flagged_for_order"] is flag_before


def test_spare_part_crud(empty_store):
    p = md.add_spare_part(empty_store, {"part_code": "FLT-01", "name": "Filter", "available": 3,
                                        "reorder_point": 5, "flagged_for_order": True})
    assert p["flagged_for_order"] is False
    assert p["in_transit"] == 0
    updated = md.update_spare_part(empty_store, p["id"], {"available": 9})
    assert updated["available"] == 9
    assert len(empty_store.list("audit_logs")) == 2


def test_enriched_spare_part_details(empty_store):
    # part 2 (A300 belt) was used by completed order 3
    belt = md.get_enriched_spare_part_details(empty_store, 2)
    assert belt["usage_history"] == []

    from mfg_dashboard.populate_db import seed_demo_records
    seed_demo_records(empty_store, "2025-10-20", "2025-10-26")

    belt = md.get_enriched_spare_part_details(empty_store, 2)
    assert belt["usage_history"] == [
        {"order_id": 3, "machine_code": "M01", "completed_at": "2025-10-20", "qty_used": 1},
    ]
    assert [p["order_id"] for p in belt["purchase_history"]] == ["PO202510B"]

    bearing = md.get_enriched_spare_part_details(empty_store, 6)
    assert bearing["usage_history"] == []
    assert bearing["purchase_history"][0]["supplier"] == "NSK Vietnam"


def test_machine_line_must_belong_to_an_area(empty_store):
    with pytest.raises(ValueError):
        md.add_machine(empty_store, {"machine_code": "M08", "line_id": "99", "ideal_cycle_time": 0.05})
    before = empty_store.get("machines", 1)
    with pytest.raises(ValueError):
        md.update_machine(empty_store, 1, {"line_id": "99"})
    assert empty_store.get("machines", 1) == before

    md.update_machine(empty_store, 1, {"line_id": "31"})
    assert empty_store.get("machines", 1)["line_id"] == "31"


def test_update_unknown_machine(empty_store):
    with pytest.raises(ReferenceNotFoundError):
        md.update_machine(empty_store, 99, {"status": "inactive"})
    assert empty_store.list("audit_logs") == []
