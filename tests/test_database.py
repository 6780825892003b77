from unittest.mock import MagicMock

import pytest
from bson import ObjectId
from pymongo.errors import PyMongoError

from database import MongoDocumentStore, build_mongo_filter
from errors import InvalidInput, StorageError


def test_build_filter_merges_ranges_on_one_field():
    q = build_mongo_filter([("rating", ">=", 3), ("rating", "<", 5), ("city", "==", "Pune")])
    assert q == {"rating": {"$gte": 3, "$lt": 5}, "city": {"$eq": "Pune"}}


def test_build_filter_rejects_unknown_operator():
    with pytest.raises(InvalidInput):
        build_mongo_filter([("name", "~", "x")])


def test_add_stamps_created_at_and_returns_id():
    db = MagicMock()
    oid = ObjectId()
    db["reviews"].insert_one.return_value.inserted_id = oid
    store = MongoDocumentStore(db)

    assert store.add("reviews", {"rating": 5}) == str(oid)
    inserted = db["reviews"].insert_one.call_args[0][0]
    assert inserted["rating"] == 5
    assert "created_at" in inserted


def test_get_sanitizes_id():
    db = MagicMock()
    oid = ObjectId()
    db["users"].find_one.return_value = {"_id": oid, "name": "A"}
    assert MongoDocumentStore(db).get("users", str(oid)) == {"id": str(oid), "name": "A"}


def test_unparseable_id_is_not_found():
    db = MagicMock()
    store = MongoDocumentStore(db)
    assert store.get("users", "not-an-object-id") is None
    assert store.update("users", "not-an-object-id", {"name": "B"}) is False
    db["users"].find_one.assert_not_called()


def test_update_reports_match():
    db = MagicMock()
    db["users"].update_one.return_value.matched_count = 0
    assert MongoDocumentStore(db).update("users", str(ObjectId()), {"name": "B"}) is False


def test_driver_errors_become_storage_errors():
    db = MagicMock()
    db["reviews"].find.side_effect = PyMongoError("connection refused")
    with pytest.raises(StorageError) as exc_info:
        MongoDocumentStore(db).query("reviews", [("professional_id", "==", "p")])
    assert exc_info.value.status_code == 500
