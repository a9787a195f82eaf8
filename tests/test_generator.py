import random

import pytest

from mfg_dashboard.config import SHIFT_MINUTES
from mfg_dashboard.db import InMemoryStore
from mfg_dashboard.generator import GenerationOverlapError, generate_mock_data, production_ratios
from mfg_dashboard.populate_db import seed_master_data


def test_oee_is_product_of_ratios(store):
    for p in store.list("production"):
        assert p["availability"] * p["performance"] * p["quality"] == pytest.approx(p["oee"])


def test_ratios_stay_in_range(store):
    for p in store.list("production"):
        assert 0.0 <= p["availability"] <= 1.0
        assert 0.0 <= p["quality"] <= 1.0
        # rounding of the unit count can nudge performance a hair above 1
        assert 0.0 <= p["oee"] <= 1.0 + 1e-3


def test_run_time_plus_downtime_is_one_shift(store):
    rows = store.list("production")
    assert rows
    for p in rows:
        assert p["run_time_min"] + p["downtime_min"] == SHIFT_MINUTES
        assert 400 <= p["run_time_min"] <= SHIFT_MINUTES


def test_downtime_rows_match_production(store):
    prod = {(p["comp_day"], p["machine_code"], p["shift_id"]): p for p in store.list("production")}
    for d in store.list("downtime"):
        p = prod[(d["comp_day"], d["machine_code"], d["shift_id"])]
        assert d["downtime_min"] == p["downtime_min"] > 0


def test_defect_rows_carry_positive_quantity(store):
    for d in store.list("defects"):
        assert d["quantity"] > 0
        assert d["status"] == "Closed"


def test_production_ratios_zero_run_time():
    r = production_ratios(0, 0, 0, 0.05)
    assert r["performance"] == 0.0
    assert r["quality"] == 0.0
    assert r["oee"] == 0.0


def test_same_seed_gives_same_records():
    a, b = InMemoryStore(), InMemoryStore()
    for s in (a, b):
        seed_master_data(s)
        generate_mock_data(s, "2025-10-25", "2025-10-26", rng=random.Random(7))
    assert a.list("production") == b.list("production")
    assert a.list("downtime") == b.list("downtime")


def test_replace_does_not_accumulate(empty_store):
    first = generate_mock_data(empty_store, "2025-10-26", "2025-10-26", rng=random.Random(1))
    second = generate_mock_data(empty_store, "2025-10-26", "2025-10-26", rng=random.Random(1))
    assert first == second
    assert empty_store.count("production") == second["production"]


def test_append_into_existing_range_is_refused(empty_store):
    generate_mock_data(empty_store, "2025-10-26", "2025-10-26", rng=random.Random(1))
    with pytest.raises(GenerationOverlapError):
        generate_mock_data(empty_store, "2025-10-25", "2025-10-26", rng=random.Random(1), replace=False)


def test_append_new_range(empty_store):
    a = generate_mock_data(empty_store, "2025-10-25", "2025-10-25", rng=random.Random(1))
    b = generate_mock_data(empty_store, "2025-10-26", "2025-10-26", rng=random.Random(2), replace=False)
    assert empty_store.count("production") == a["production"] + b["production"]


def test_start_after_end_raises(empty_store):
    with pytest.raises(ValueError):
        generate_mock_data(empty_store, "2025-10-27", "2025-10-26")


def test_generated_range_is_recorded(empty_store):
    generate_mock_data(empty_store, "2025-10-25", "2025-10-25", rng=random.Random(1))
    assert empty_store.get_meta("generated_range") == ["2025-10-25", "2025-10-25"]
    generate_mock_data(empty_store, "2025-10-26", "2025-10-27", rng=random.Random(2), replace=False)
    assert empty_store.get_meta("generated_range") == ["2025-10-25", "2025-10-27"]
    generate_mock_data(empty_store, "2025-10-20", "2025-10-20", rng=random.Random(3))
    assert empty_store.get_meta("generated_range") == ["2025-10-20", "2025-10-20"]
