"""Shared fixtures: an in-memory dev API and a fake transactions backend."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import server
from api_client import ApiError
from database import Base, get_db


@pytest.fixture
def api_server():
    """TestClient for the dev API, backed by a fresh in-memory SQLite database."""

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def _override_get_db():
        db = factory()
        try:
            yield db
        finally:
            db.close()

    server.app.dependency_overrides[get_db] = _override_get_db
    yield TestClient(server.app)
    server.app.dependency_overrides.clear()
    engine.dispose()


class FakeApi:
    """In-memory stand-in for ``TransactionsApi`` that records every call."""

    def __init__(self, rows=None):
        self.rows = list(rows or [])
        self.calls: list[tuple] = []
        self.failing: set[str] = set()

    def _maybe_fail(self, op: str) -> None:
        if op in self.failing:
            raise ApiError(f"{op} failed", status_code=500)

    def list(self, email):
        self.calls.append(("list", email))
        self._maybe_fail("list")
        return list(self.rows)

    def create(self, tx, email):
        self.calls.append(("create", tx, email))
        self._maybe_fail("create")
        return tx

    def update(self, tx, email):
        self.calls.append(("update", tx, email))
        self._maybe_fail("update")
        return tx

    def delete(self, tx_id, email):
        self.calls.append(("delete", tx_id, email))
        self._maybe_fail("delete")

    def ops(self) -> list[str]:
        return [c[0] for c in self.calls]


@pytest.fixture
def fake_api() -> FakeApi:
    return FakeApi()
