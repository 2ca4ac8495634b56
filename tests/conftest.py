"""Shared fixtures: an in-memory list service standing in for the remote side."""

import copy
import sys
from pathlib import Path

import pytest

# Ensure the package and the fakes below are importable without installing
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from boardsync.config import BoardConfig
from boardsync.board import Board
from boardsync.schema import FieldDescriptor, QueryDescriptor


class FakeListService:
    """Field metadata, record source and update sink backed by dicts."""

    def __init__(self):
        self.fields = {}        # (list, field) -> FieldDescriptor
        self.lists = {}         # list -> [records]
        self.fetch_calls = []
        self.update_calls = []
        self.fail_update = None
        self.fail_fetch = None

    def add_field(self, collection, descriptor):
        self.fields[(collection, descriptor.name)] = descriptor

    async def describe_field(self, collection, field_id):
        return self.fields.get((collection, field_id))

    async def fetch(self, query: QueryDescriptor):
        self.fetch_calls.append(query)
        if self.fail_fetch is not None:
            raise self.fail_fetch
        rows = [copy.deepcopy(r) for r in self.lists.get(query.collection, [])]
        if query.limit:
            rows = rows[:query.limit]
        return rows, {"count": len(rows)}

    async def update(self, collection, item_id, updates):
        self.update_calls.append((collection, item_id, [list(u) for u in updates]))
        if self.fail_update is not None:
            raise self.fail_update
        for row in self.lists.get(collection, []):
            if str(row.get("id")) == str(item_id):
                for name, value in updates:
                    row[name] = value
                return copy.deepcopy(row), {"ok": True}
        return None, {"ok": True}


STATUS_CHOICES = ["Not Started", "In Progress", "Done"]


@pytest.fixture
def service():
    svc = FakeListService()
    svc.add_field("Tasks", FieldDescriptor(name="Status", type="choice", domain_values=list(STATUS_CHOICES)))
    svc.lists["Tasks"] = [
        {"id": 1, "Title": "Write docs", "Status": ""},
        {"id": 2, "Title": "Ship it", "Status": "Done"},
    ]
    return svc


@pytest.fixture
def config():
    return BoardConfig(list_name="Tasks", field="Status", template="{{Title}}")


@pytest.fixture
def make_board(service, config):
    def _make(**kwargs):
        return Board(config, service, **kwargs)
    return _make
