import copy
import os
from collections import defaultdict
from typing import Any, AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# No real database in tests: the app boots with store=None and routes get the in-memory store.
os.environ["MONGODB_URI"] = ""
os.environ.setdefault("MONGODB_DB_NAME", "tintaprinting_test")

from app.db.base import DocumentStore  # noqa: E402


class InMemoryStore(DocumentStore):
    """DocumentStore double; `writes` records every set/update as (op, collection, doc_id)."""

    def __init__(self) -> None:
        self.collections: dict[str, dict[str, dict[str, Any]]] = defaultdict(dict)
        self.writes: list[tuple[str, str, str]] = []

    async def get(self, collection, doc_id):
        doc = self.collections[collection].get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def set(self, collection, doc_id, data):
        self.writes.append(("set", collection, doc_id))
        self.collections[collection][doc_id] = copy.deepcopy(data)

    async def update(self, collection, doc_id, fields):
        self.writes.append(("update", collection, doc_id))
        self.collections[collection].setdefault(doc_id, {}).update(copy.deepcopy(fields))

    async def find_one(self, collection, field, value):
        for doc_id, doc in self.collections[collection].items():
            if doc.get(field) == value:
                return doc_id, copy.deepcopy(doc)
        return None

    async def find(self, collection, field, value, limit=100, newest_by=None):
        hits = [
            (doc_id, copy.deepcopy(doc))
            for doc_id, doc in self.collections[collection].items()
            if doc.get(field) == value
        ]
        if newest_by:
            hits.sort(key=lambda hit: hit[1].get(newest_by) or "", reverse=True)
        return hits[:limit]


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest_asyncio.fixture
async def client(store) -> AsyncGenerator[AsyncClient, None]:
    from app.deps import get_store
    from app.main import app
    app.dependency_overrides[get_store] = lambda: store
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client_without_store() -> AsyncGenerator[AsyncClient, None]:
    from app.deps import get_store
    from app.main import app
    app.dependency_overrides[get_store] = lambda: None
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
