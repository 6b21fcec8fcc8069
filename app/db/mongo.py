from typing import Any

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.db.base import Document, DocumentStore


def _split(raw: dict[str, Any]) -> tuple[str, Document]:
    doc = dict(raw)
    doc_id = doc.pop("_id")
    return str(doc_id), doc


class MongoDocumentStore(DocumentStore):
    def __init__(self, database: AsyncIOMotorDatabase) -> None:
        self.database = database

    async def get(self, collection: str, doc_id: str) -> Document | None:
        raw = await self.database[collection].find_one({"_id": doc_id})
        if raw is None:
            return None
        return _split(raw)[1]

    async def set(self, collection: str, doc_id: str, data: Document) -> None:
        body = {k: v for k, v in data.items() if k != "_id"}
        await self.database[collection].replace_one({"_id": doc_id}, body, upsert=True)

    async def update(self, collection: str, doc_id: str, fields: Document) -> None:
        if not fields:
            return
        await self.database[collection].update_one({"_id": doc_id}, {"$set": fields}, upsert=True)

    async def find_one(self, collection: str, field: str, value: Any) -> tuple[str, Document] | None:
        raw = await self.database[collection].find_one({field: value})
        if raw is None:
            return None
        return _split(raw)

    async def find(
        self,
        collection: str,
        field: str,
        value: Any,
        limit: int = 100,
        newest_by: str | None = None,
    ) -> list[tuple[str, Document]]:
        cursor = self.database[collection].find({field: value})
        if newest_by:
            cursor = cursor.sort(newest_by, -1)
        cursor = cursor.limit(limit)
        return [_split(raw) async for raw in cursor]
