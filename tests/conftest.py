import copy
from typing import Any, Dict, List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient
from pymongo.errors import PyMongoError

from catalog import CatalogRepository


class InMemoryPartition:
    def __init__(self, store: "InMemoryStore", name: str):
        self.store = store
        self.name = name

    @property
    def docs(self) -> Dict[str, Dict[str, Any]]:
        return self.store.data.setdefault(self.name, {})

    def _record(self, *call):
        self.store.calls.append((self.name,) + call)

    def _out(self, doc_id: str) -> Dict[str, Any]:
        return {"_id": doc_id, **copy.deepcopy(self.docs[doc_id])}

    @staticmethod
    def _matches(doc: Dict[str, Any], where: Optional[Dict[str, Any]]) -> bool:
        return all(doc.get(k) == v for k, v in (where or {}).items())

    async def get_by_id(self, doc_id):
        self._record("get_by_id", doc_id)
        if (self.name, doc_id) in self.store.failing:
            raise PyMongoError("connection reset")
        return self._out(doc_id) if doc_id in self.docs else None

    async def query(self, where=None):
        self._record("query", where)
        return [self._out(k) for k, doc in self.docs.items() if self._matches(doc, where)]

    async def query_in_ids(self, ids, where=None):
        self._record("query_in_ids", list(ids), where)
        return [self._out(k) for k, doc in self.docs.items() if k in ids and self._matches(doc, where)]

    async def put(self, doc_id, data):
        self._record("put", doc_id)
        self.docs[doc_id] = copy.deepcopy(data)

    async def create_if_absent(self, doc_id, data):
        self._record("create_if_absent", doc_id)
        if doc_id not in self.docs:
            self.docs[doc_id] = copy.deepcopy(data)
            self.store.created.append((self.name, doc_id))
        return self._out(doc_id)


class InMemoryStore:
    """DocumentStore double that records every call"""

    name = "catalog-test"

    def __init__(self):
        self.data: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.calls: List[Tuple] = []
        self.created: List[Tuple[str, str]] = []
        self.failing = set()

    def partition(self, name: str) -> InMemoryPartition:
        return InMemoryPartition(self, name)

    async def list_partitions(self) -> List[str]:
        return list(self.data)

    def seed(self, partition: str, docs: Dict[str, Dict[str, Any]]):
        self.data.setdefault(partition, {}).update(copy.deepcopy(docs))

    def calls_to(self, partition: str) -> List[Tuple]:
        return [c for c in self.calls if c[0] == partition]


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def repo(store):
    return CatalogRepository(store)


@pytest.fixture
def client(store):
    from main import app, get_repository

    app.dependency_overrides[get_repository] = lambda: CatalogRepository(store)
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def product(name, updated_at, visibility="PUBLISHED", **extra):
    doc = {
        "name": name,
        "slug": name.lower().replace(" ", "-"),
        "pricing": {"basePrice": 40, "salePrice": 30, "discountPercentage": 25},
        "images": {"main": f"https://cdn.example.com/{name}.jpg", "gallery": []},
        "visibility": visibility,
        "createdAt": "2024-01-01T00:00:00Z",
        "updatedAt": updated_at,
    }
    doc.update(extra)
    return doc
