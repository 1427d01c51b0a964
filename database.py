"""
Database helpers

Connection settings come from the environment:
- DATABASE_URL: MongoDB connection string
- DATABASE_NAME: database holding the catalog partitions

Each partition ("products", "collections", ...) is a MongoDB collection whose
documents are keyed by a string `_id`. `store` is None until both variables
are set.
"""

import logging
import os
from typing import Any, Dict, List, Optional

from pymongo import AsyncMongoClient, ReturnDocument
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.database import AsyncDatabase

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")


class Partition:
    """All documents of one entity type"""

    def __init__(self, collection: AsyncCollection):
        self.collection = collection

    @property
    def name(self) -> str:
        return self.collection.name

    async def get_by_id(self, doc_id: str) -> Optional[Dict[str, Any]]:
        return await self.collection.find_one({"_id": doc_id})

    async def query(self, where: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Documents matching every equality predicate in `where`"""
        filt: Dict[str, Any] = dict(where or {})
        return await self.collection.find(filt).to_list()

    async def query_in_ids(
        self, ids: List[str], where: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """Documents whose key is in `ids`, fetched in one round trip"""
        filt: Dict[str, Any] = {"_id": {"$in": list(ids)}}
        filt.update(where or {})
        return await self.collection.find(filt).to_list()

    async def put(self, doc_id: str, data: Dict[str, Any]) -> None:
        # Full overwrite, never a merge
        body = {k: v for k, v in data.items() if k != "_id"}
        await self.collection.replace_one({"_id": doc_id}, body, upsert=True)

    async def create_if_absent(self, doc_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Insert `data` under `doc_id` unless a document exists; return the stored one"""
        body = {k: v for k, v in data.items() if k != "_id"}
        return await self.collection.find_one_and_update(
            {"_id": doc_id},
            {"$setOnInsert": body},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )


class DocumentStore:
    def __init__(self, database: AsyncDatabase):
        self.database = database

    @property
    def name(self) -> str:
        return self.database.name

    def partition(self, name: str) -> Partition:
        return Partition(self.database[name])

    async def list_partitions(self) -> List[str]:
        return await self.database.list_collection_names()


def connect(url: Optional[str], name: Optional[str]) -> Optional[DocumentStore]:
    if not url or not name:
        logger.warning("DATABASE_URL or DATABASE_NAME not set, catalog store disabled")
        return None
    client: AsyncMongoClient = AsyncMongoClient(url)
    return DocumentStore(client[name])


store = connect(DATABASE_URL, DATABASE_NAME)
