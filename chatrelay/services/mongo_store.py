"""
MONGODB HISTORY BACKEND
=======================

One document per user in the `chats` collection:

  {
    "userId": "user_abc123",
    "messages": [{"text": "...", "isUser": true, "timestamp": ISODate}, ...],
    "createdAt": ISODate
  }

append is a single update_one with $push/$each and upsert=True, so the
document is created by the first turn and the pair lands atomically.
clear is update_one with $set messages=[] and no upsert, so clearing an
unknown user creates nothing. Every PyMongoError becomes StoreError.
"""

import logging
from typing import List, Optional

from pymongo import ASCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from chatrelay.models import Message, utc_now
from chatrelay.services.errors import StoreError
from chatrelay.services.history_store import HistoryStore
from config import MONGO_URI, MONGO_DB, MONGO_COLLECTION, MONGO_TIMEOUT_MS

logger = logging.getLogger("chatrelay")


class MongoHistoryStore(HistoryStore):
    """
    History store backed by a MongoDB collection.

    Pass `collection` to use an existing collection (tests use mongomock);
    otherwise a MongoClient is created from MONGO_URI. pymongo connects lazily,
    so an unreachable server shows up as StoreError on the first operation,
    after at most MONGO_TIMEOUT_MS.
    """

    def __init__(
        self,
        uri: str = MONGO_URI,
        db_name: str = MONGO_DB,
        collection_name: str = MONGO_COLLECTION,
        timeout_ms: int = MONGO_TIMEOUT_MS,
        collection: Optional[Collection] = None,
    ):
        super().__init__()
        self._client: Optional[MongoClient] = None
        if collection is None:
            self._client = MongoClient(uri, serverSelectionTimeoutMS=timeout_ms, tz_aware=True)
            collection = self._client[db_name][collection_name]
        self.collection = collection
        self._index_ready = False

    def _ensure_index(self) -> None:
        # Unique userId keeps racing first-turn upserts from creating two documents.
        if self._index_ready:
            return
        self.collection.create_index([("userId", ASCENDING)], unique=True)
        self._index_ready = True

    def _append(self, user_id: str, messages: List[Message]) -> None:
        docs = [m.model_dump(by_alias=True) for m in messages]
        try:
            self._ensure_index()
            self.collection.update_one(
                {"userId": user_id},
                {
                    "$push": {"messages": {"$each": docs}},
                    "$setOnInsert": {"createdAt": utc_now()},
                },
                upsert=True,
            )
        except PyMongoError as e:
            raise StoreError(f"MongoDB append failed for user {user_id}: {e}") from e

    def _get(self, user_id: str) -> List[Message]:
        try:
            doc = self.collection.find_one({"userId": user_id}, {"_id": 0, "messages": 1})
        except PyMongoError as e:
            raise StoreError(f"MongoDB read failed for user {user_id}: {e}") from e
        if not doc:
            return []
        try:
            return [Message.model_validate(m) for m in doc.get("messages") or []]
        except (TypeError, ValueError) as e:
            raise StoreError(f"Malformed history document for user {user_id}: {e}") from e

    def _clear(self, user_id: str) -> None:
        try:
            self.collection.update_one({"userId": user_id}, {"$set": {"messages": []}})
        except PyMongoError as e:
            raise StoreError(f"MongoDB clear failed for user {user_id}: {e}") from e

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            logger.info("MongoDB client closed")
