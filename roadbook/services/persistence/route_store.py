"""
Saved route storage. Every read and delete is scoped by owner id, so a record
owned by someone else behaves exactly like a missing one.
"""
import copy
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from pymongo import DESCENDING, MongoClient

logger = logging.getLogger(__name__)

Document = Dict[str, Any]


class RouteStore(ABC):
    """Owner-scoped record storage"""

    @abstractmethod
    def insert(self, document: Document) -> None:
        pass

    @abstractmethod
    def find_for_owner(self, owner_id: str) -> List[Document]:
        """All records of one owner, newest first"""
        pass

    @abstractmethod
    def find_one(self, route_id: str, owner_id: str) -> Optional[Document]:
        pass

    @abstractmethod
    def delete_one(self, route_id: str, owner_id: str) -> bool:
        pass

    def is_available(self) -> bool:
        return True


class InMemoryRouteStore(RouteStore):
    """Process-local store used when MongoDB is unavailable"""

    def __init__(self):
        self._documents: Dict[str, Document] = {}

    def insert(self, document: Document) -> None:
        self._documents[document["id"]] = copy.deepcopy(document)

    def find_for_owner(self, owner_id: str) -> List[Document]:
        owned = [
            copy.deepcopy(doc)
            for doc in self._documents.values()
            if doc["owner_id"] == owner_id
        ]
        owned.sort(key=lambda doc: (doc["created_at"], doc.get("seq", 0)), reverse=True)
        return owned

    def find_one(self, route_id: str, owner_id: str) -> Optional[Document]:
        doc = self._documents.get(route_id)
        if doc is None or doc["owner_id"] != owner_id:
            return None
        return copy.deepcopy(doc)

    def delete_one(self, route_id: str, owner_id: str) -> bool:
        doc = self._documents.get(route_id)
        if doc is None or doc["owner_id"] != owner_id:
            return False
        del self._documents[route_id]
        return True


class MongoRouteStore(RouteStore):
    """Saved routes in a MongoDB collection, keyed by _id = route id"""

    def __init__(self, collection):
        self.collection = collection
        self._init_collection()

    @classmethod
    def connect(
        cls,
        mongo_uri: str,
        database_name: str,
        collection_name: str,
        timeout_ms: int = 2000,
    ) -> "MongoRouteStore":
        """Connect and verify the server; raises if MongoDB is unreachable"""
        client = MongoClient(mongo_uri, serverSelectionTimeoutMS=timeout_ms, tz_aware=True)
        client.server_info()
        logger.info("MongoDB connection established for saved routes")
        return cls(client[database_name][collection_name])

    def _init_collection(self) -> None:
        """Create indexes that support frequent query patterns."""
        try:
            self.collection.create_index(
                [("owner_id", 1), ("created_at", DESCENDING), ("seq", DESCENDING)]
            )
        except Exception as exc:
            logger.warning("Error initializing saved routes collection: %s", exc)

    @staticmethod
    def _to_record(document: Document) -> Document:
        record = dict(document)
        record["_id"] = record.pop("id")
        return record

    @staticmethod
    def _from_record(record: Document) -> Document:
        document = dict(record)
        document["id"] = str(document.pop("_id"))
        return document

    def insert(self, document: Document) -> None:
        self.collection.insert_one(self._to_record(document))

    def find_for_owner(self, owner_id: str) -> List[Document]:
        cursor = self.collection.find({"owner_id": owner_id}).sort(
            [("created_at", DESCENDING), ("seq", DESCENDING)]
        )
        return [self._from_record(record) for record in cursor]

    def find_one(self, route_id: str, owner_id: str) -> Optional[Document]:
        record = self.collection.find_one({"_id": route_id, "owner_id": owner_id})
        if record is None:
            return None
        return self._from_record(record)

    def delete_one(self, route_id: str, owner_id: str) -> bool:
        result = self.collection.delete_one({"_id": route_id, "owner_id": owner_id})
        return result.deleted_count > 0
