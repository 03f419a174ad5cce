import json

import pandas as pd
import pytest

from budget_tracker.client import LocalBackend
from budget_tracker.database import load_transactions
from budget_tracker.importer import ImportAborted, import_file
from budget_tracker.loaders import get_loader, loader_name_for
from budget_tracker.loaders.csv_loader import CSVLoader
from budget_tracker.loaders.json_loader import JSONLoader


def test_loader_selection(config):
    assert loader_name_for("export.JSON") == "json"
    assert loader_name_for("export.csv") == "csv"
    assert loader_name_for("bank-statement.txt") == "csv"
    assert isinstance(get_loader("json", config), JSONLoader)
    assert isinstance(get_loader("csv", config), CSVLoader)


def test_csv_loader_maps_headers_and_derives_type(tmp_path):
    path = tmp_path / "in.csv"
    path.write_text(
        "ID,Description,Amount,Category,Date\n"
        '7,"Dinner, with friends",-45.5,Food,2024-02-01\n'
        ",Paycheck,1200,,2024-02-03\n"
    )
    rows = list(CSVLoader().load(str(path)))
    assert rows[0] == {
        "id": "7", "date": "2024-02-01", "type": "expense", "category": "Food",
        "amount": 45.5, "notes": "Dinner, with friends",
    }
    assert rows[1]["type"] == "income"
    assert rows[1]["category"] == "Other"
    assert rows[1]["amount"] == 1200.0
    assert rows[1]["id"]


def test_csv_loader_column_order_and_case_do_not_matter(tmp_path):
    path = tmp_path / "in.csv"
    path.write_text("date, amount ,category\n2024-01-01,-3,Snacks\n")
    rows = list(CSVLoader().load(str(path)))
    assert rows[0]["date"] == "2024-01-01"
    assert rows[0]["amount"] == 3.0
    assert rows[0]["notes"] == ""


def test_csv_loader_requires_amount_column(tmp_path):
    path = tmp_path / "in.csv"
    path.write_text("Date,Category\n2024-01-01,Food\n")
    with pytest.raises(RuntimeError):
        list(CSVLoader().load(str(path)))


def test_csv_loader_reads_through_pandas(monkeypatch):
    frame = pd.DataFrame({"Amount": ["-12.00"], "Category": ["Fuel"], "Date": ["2024-04-04"]})
    monkeypatch.setattr(pd, "read_csv", lambda *a, **k: frame)
    rows = list(CSVLoader().load("fake.csv"))
    assert rows[0]["category"] == "Fuel"
    assert rows[0]["type"] == "expense"


def test_json_loader_defaults(tmp_path):
    path = tmp_path / "in.json"
    path.write_text(json.dumps([
        {"id": "x", "date": "2024-01-01", "type": "income", "category": "Pay", "amount": -100, "description": "old desc"},
        {"amount": "12.5"},
    ]))
    rows = list(JSONLoader().load(str(path)))
    assert rows[0]["amount"] == 100.0
    assert rows[0]["notes"] == "old desc"
    assert rows[1]["type"] == "expense"
    assert rows[1]["category"] == "Other"
    assert rows[1]["date"]
    assert rows[1]["id"]


def test_json_loader_rejects_non_array(tmp_path):
    path = tmp_path / "in.json"
    path.write_text('{"id": 1}')
    with pytest.raises(ValueError):
        list(JSONLoader().load(str(path)))


def test_loaders_reject_non_finite_amounts(tmp_path):
    js = tmp_path / "in.json"
    js.write_text('[{"amount": "Infinity"}]')
    with pytest.raises(ValueError, match="finite"):
        list(JSONLoader().load(str(js)))

    csv_path = tmp_path / "in.csv"
    csv_path.write_text("Amount,Category\n" + "9" * 400 + ",Food\n")
    with pytest.raises(ValueError, match="finite"):
        list(CSVLoader().load(str(csv_path)))


def test_import_creates_rows_sequentially(tmp_path, config, db_path):
    path = tmp_path / "in.csv"
    path.write_text(
        "ID,Description,Amount,Category,Date\n"
        "a,Lunch,-12,Food,2024-01-01\n"
        "b,Salary,3000,Salary,2024-01-02\n"
    )
    backend = LocalBackend(db_path=str(db_path), config=config)
    assert import_file(str(path), backend, config) == 2
    txs = load_transactions(str(db_path))
    assert [(t.id, t.type, t.amount) for t in txs] == [("a", "expense", -12.0), ("b", "income", 3000.0)]


def test_import_failure_keeps_earlier_rows(tmp_path, config, db_path):
    path = tmp_path / "in.json"
    path.write_text(json.dumps([
        {"id": "ok", "date": "2024-01-01", "category": "Food", "amount": 5},
        {"id": "bad", "date": "2024-01-02", "category": "Food", "amount": "five"},
        {"id": "never", "date": "2024-01-03", "category": "Food", "amount": 6},
    ]))
    backend = LocalBackend(db_path=str(db_path), config=config)
    with pytest.raises(ImportAborted) as err:
        import_file(str(path), backend, config)
    assert err.value.imported == 1
    assert err.value.row == 2
    assert [t.id for t in load_transactions(str(db_path))] == ["ok"]


def test_import_stops_when_backend_fails(tmp_path, config):
    path = tmp_path / "in.json"
    path.write_text(json.dumps([{"amount": 1}, {"amount": 2}, {"amount": 3}]))

    class FlakyBackend:
        def __init__(self):
            self.created = []

        def create_transaction(self, payload):
            if len(self.created) == 2:
                raise ConnectionError("server went away")
            self.created.append(payload)
            return payload

    backend = FlakyBackend()
    with pytest.raises(ImportAborted) as err:
        import_file(str(path), backend, config)
    assert err.value.imported == 2
    assert [p["amount"] for p in backend.created] == [1.0, 2.0]
