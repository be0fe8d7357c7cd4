import sys
from datetime import date
from pathlib import Path

import pytest

# The app modules import each other as top-level siblings.
sys.path.insert(0, str(Path(__file__).parent.parent / "wellness_pillars"))

from db import MemoryStore  # noqa: E402
from wellness_store import WellnessRepository  # noqa: E402


class FakeMirror:
    """Records every call; set ``fail`` to make writes report failure."""

    def __init__(self, fail=False):
        self.fail = fail
        self.docs = {}
        self.writes = []

    def persist(self, collection, doc_id, payload):
        self.writes.append((collection, doc_id, payload))
        if self.fail:
            return False
        self.docs[(collection, doc_id)] = payload
        return True

    def fetch(self, collection, doc_id):
        return self.docs.get((collection, doc_id))


TODAY = date(2024, 3, 15)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def mirror():
    return FakeMirror()


@pytest.fixture
def repo(store):
    return WellnessRepository(store, today=lambda: TODAY)


@pytest.fixture
def synced_repo(store, mirror):
    return WellnessRepository(store, mirror=mirror, user_id="u1", today=lambda: TODAY)
