"""
Document store access.

Handlers talk to a ``DocumentStore``: four operations over named collections
with string ids. ``MongoDocumentStore`` backs it with pymongo; tests swap in
their own implementation through ``app.dependency_overrides[get_store]``.

Filters are ``(field, op, value)`` triples with ``op`` one of ``==``, ``>=``,
``<=``, ``>`` and ``<``. Ordering is ``(field, "asc" | "desc")``.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.errors import PyMongoError

from config import DATABASE_NAME, MONGO_URL
from errors import InvalidInput, StorageError

logger = logging.getLogger(__name__)

Filter = Tuple[str, str, Any]
Order = Tuple[str, str]

OPERATORS = {"==": "$eq", ">=": "$gte", "<=": "$lte", ">": "$gt", "<": "$lt"}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentStore(ABC):
    @abstractmethod
    def add(self, collection: str, doc: Dict[str, Any]) -> str:
        """Insert ``doc`` stamped with ``created_at`` and return its new id."""

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Return the document with ``id`` set, or ``None``."""

    @abstractmethod
    def query(
        self,
        collection: str,
        filters: Iterable[Filter] = (),
        order: Optional[Order] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Return every matching document, each with ``id`` set."""

    @abstractmethod
    def update(self, collection: str, doc_id: str, patch: Dict[str, Any]) -> bool:
        """Set the fields of ``patch``; ``False`` when no such document exists."""


def sanitize(doc: Dict) -> Dict:
    if not doc:
        return doc
    d = {**doc}
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    return d


def to_obj_id(id_str: str) -> Optional[ObjectId]:
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        return None


def build_mongo_filter(filters: Iterable[Filter]) -> Dict[str, Any]:
    q: Dict[str, Any] = {}
    for field, op, value in filters:
        if op not in OPERATORS:
            raise InvalidInput(f"Unsupported filter operator: {op}")
        q.setdefault(field, {})[OPERATORS[op]] = value
    return q


class MongoDocumentStore(DocumentStore):
    def __init__(self, db):
        self.db = db

    def add(self, collection, doc):
        to_insert = {**doc, "created_at": utcnow()}
        try:
            res = self.db[collection].insert_one(to_insert)
        except PyMongoError as exc:
            logger.error(f"Insert into {collection} failed: {exc}")
            raise StorageError(str(exc)) from exc
        return str(res.inserted_id)

    def get(self, collection, doc_id):
        oid = to_obj_id(doc_id)
        if oid is None:
            return None
        try:
            doc = self.db[collection].find_one({"_id": oid})
        except PyMongoError as exc:
            logger.error(f"Lookup in {collection} failed: {exc}")
            raise StorageError(str(exc)) from exc
        return sanitize(doc) if doc else None

    def query(self, collection, filters=(), order=None, limit=None):
        try:
            cursor = self.db[collection].find(build_mongo_filter(filters))
            if order:
                field, direction = order
                cursor = cursor.sort([(field, DESCENDING if direction == "desc" else ASCENDING)])
            if limit:
                cursor = cursor.limit(limit)
            return [sanitize(d) for d in cursor]
        except PyMongoError as exc:
            logger.error(f"Query on {collection} failed: {exc}")
            raise StorageError(str(exc)) from exc

    def update(self, collection, doc_id, patch):
        oid = to_obj_id(doc_id)
        if oid is None:
            return False
        if not patch:
            return self.get(collection, doc_id) is not None
        try:
            res = self.db[collection].update_one({"_id": oid}, {"$set": patch})
        except PyMongoError as exc:
            logger.error(f"Update in {collection} failed: {exc}")
            raise StorageError(str(exc)) from exc
        return res.matched_count > 0


_store: Optional[DocumentStore] = None


def get_store() -> DocumentStore:
    global _store
    if _store is None:
        client = MongoClient(MONGO_URL)
        _store = MongoDocumentStore(client[DATABASE_NAME])
        logger.info(f"Connected document store to database {DATABASE_NAME}")
    return _store
