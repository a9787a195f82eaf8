import pandas as pd

from mfg_dashboard.dashboard import get_dashboard_data
from mfg_dashboard.export import export_dashboard


def test_export_writes_one_sheet_per_table(store, tmp_path):
    data = get_dashboard_data(store, "2025-10-20", "2025-10-26")
    path = tmp_path / "out" / "dashboard.xlsx"

    sheets = export_dashboard(data, str(path))

    assert path.exists()
    assert sheets[0] == "Summary"
    assert "Production" in sheets
    assert "Machine Stats" in sheets

    book = pd.read_excel(path, sheet_name=None)
    assert set(book) == set(sheets)
    assert len(book["Production"]) == len(data["production_log"])
    assert int(book["Summary"]["total_production"][0]) == data["summary"]["total_production"]


def test_export_skips_empty_tables(store, tmp_path):
    data = get_dashboard_data(store, "2025-10-26", "2025-10-26", status="inactive", shift="A")
    data["production_log"] = []
    data["downtime_records"] = []
    sheets = export_dashboard(data, str(tmp_path / "empty.xlsx"))
    assert "Production" not in sheets
    assert "Downtime" not in sheets
