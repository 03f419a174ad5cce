import threading

import pytest

from budget_tracker.client import ApiClient
from budget_tracker.config import ENV_OVERRIDES, load_config
from budget_tracker.database import create_transaction
from budget_tracker.web import make_server


SAMPLE = [
    {"id": "1", "date": "2024-01-05", "type": "income", "category": "Salary", "amount": 50000, "notes": "January pay"},
    {"id": "2", "date": "2024-01-10", "type": "expense", "category": "Food", "amount": 200, "notes": "Groceries"},
    {"id": "3", "date": "2024-01-20", "type": "expense", "category": "Rent", "amount": 10000, "notes": ""},
    {"id": "4", "date": "2024-02-02", "type": "expense", "category": "food", "amount": 450, "notes": "Dinner out"},
    {"id": "5", "date": "2024-02-14", "type": "income", "category": "Freelance", "amount": 1200, "notes": "Logo job"},
]


def seed(db_path, records=SAMPLE):
    for rec in records:
        create_transaction(str(db_path), rec)


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "data.json"


@pytest.fixture
def seeded_db(db_path):
    seed(db_path)
    return db_path


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for var in ENV_OVERRIDES:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def config(tmp_path):
    cfg = load_config(tmp_path / "missing.yaml")
    cfg["data_file"] = str(tmp_path / "data.json")
    return cfg


@pytest.fixture
def api(config):
    """A running API server on a free port, plus a client pointed at it."""
    server = make_server(config, host="127.0.0.1", port=0)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    host, port = server.server_address[:2]
    try:
        yield ApiClient(base_url=f"http://{host}:{port}/api", timeout=5)
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=5)
