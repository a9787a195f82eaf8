import random

import pytest

from mfg_dashboard.db import InMemoryStore
from mfg_dashboard.generator import generate_mock_data
from mfg_dashboard.populate_db import seed_demo_records, seed_master_data

START = "2025-10-20"
END = "2025-10-26"


@pytest.fixture
def empty_store():
    store = InMemoryStore()
    seed_master_data(store)
    return store


@pytest.fixture
def store():
    s = InMemoryStore()
    seed_master_data(s)
    generate_mock_data(s, START, END, rng=random.Random(42))
    seed_demo_records(s, START, END)
    return s
