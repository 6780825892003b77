"""Pytest configuration and fixtures for the Planora API tests.

Provides an in-memory document store and an authenticated test client.
"""

from __future__ import annotations

import operator
import os
import uuid
from datetime import datetime, timedelta, timezone

os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from fastapi.testclient import TestClient

import config
from database import DocumentStore, get_store
from main import app
from security import Identity, create_access_token, hash_password

_OPS = {
    "==": operator.eq,
    ">=": operator.ge,
    "<=": operator.le,
    ">": operator.gt,
    "<": operator.lt,
}

_EPOCH = datetime(2026, 1, 1, tzinfo=timezone.utc)


class InMemoryDocumentStore(DocumentStore):
    """Dict-backed store; ``created_at`` advances one second per insert."""

    def __init__(self):
        self.collections: dict[str, dict[str, dict]] = {}
        self._seq = 0

    def add(self, collection, doc):
        doc_id = uuid.uuid4().hex
        self._seq += 1
        self.collections.setdefault(collection, {})[doc_id] = {
            **doc,
            "created_at": _EPOCH + timedelta(seconds=self._seq),
        }
        return doc_id

    def get(self, collection, doc_id):
        doc = self.collections.get(collection, {}).get(doc_id)
        return {**doc, "id": doc_id} if doc is not None else None

    def query(self, collection, filters=(), order=None, limit=None):
        docs = [{**d, "id": i} for i, d in self.collections.get(collection, {}).items()]
        for field, op, value in filters:
            if op == "==":
                docs = [d for d in docs if d.get(field) == value]
            else:
                docs = [d for d in docs if d.get(field) is not None and _OPS[op](d[field], value)]
        if order:
            field, direction = order
            docs.sort(key=lambda d: d[field], reverse=direction == "desc")
        return docs[:limit] if limit else docs

    def update(self, collection, doc_id, patch):
        doc = self.collections.get(collection, {}).get(doc_id)
        if doc is None:
            return False
        doc.update(patch)
        return True


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    target = tmp_path / "uploads"
    monkeypatch.setattr(config, "UPLOAD_DIR", target)
    return target


@pytest.fixture
def client(store, upload_dir):
    """Test client wired to the in-memory store."""
    app.dependency_overrides[get_store] = lambda: store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def user(store) -> Identity:
    user_id = store.add(
        "users",
        {"name": "Asha Rao", "email": "asha@example.com", "password": hash_password("Secret1!"), "role": "user"},
    )
    return Identity(id=user_id, email="asha@example.com", name="Asha Rao", role="user")


@pytest.fixture
def professional(store) -> Identity:
    pro_id = store.add(
        "professionals",
        {
            "name": "Vikram Mehta",
            "email": "vikram@example.com",
            "password": hash_password("Secret1!"),
            "specialization": "Architect",
            "city": "Pune",
            "hourly_rate": 1200.0,
            "role": "professional",
            "rating": 0.0,
            "total_reviews": 0,
            "total_projects": 0,
        },
    )
    return Identity(id=pro_id, email="vikram@example.com", name="Vikram Mehta", role="professional")


def bearer(identity: Identity) -> dict:
    return {"Authorization": f"Bearer {create_access_token(identity)}"}


@pytest.fixture
def user_headers(user) -> dict:
    return bearer(user)


@pytest.fixture
def professional_headers(professional) -> dict:
    return bearer(professional)


@pytest.fixture
def headers_for():
    return bearer
