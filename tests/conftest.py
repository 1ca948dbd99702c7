"""Shared fixtures: a throwaway SQLite database and upload tree per test run."""
from __future__ import annotations

import os
import shutil
import tempfile

_TMP = tempfile.mkdtemp(prefix="bookpub-tests-")
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(_TMP, "test.db")
os.environ["PUBLIC_DIR"] = os.path.join(_TMP, "public")
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from fastapi.testclient import TestClient

from bookpub import models
from bookpub.config import settings
from bookpub.database import Base, SessionLocal, engine
from bookpub.main import app
from bookpub.uploads import init_storage


@pytest.fixture(autouse=True)
def clean_state():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    shutil.rmtree(settings.UPLOAD_DIR, ignore_errors=True)
    init_storage()
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_client():
    clients = []

    def _make() -> TestClient:
        c = TestClient(app)
        clients.append(c)
        return c

    yield _make
    for c in clients:
        c.close()


@pytest.fixture
def client(make_client):
    return make_client()


@pytest.fixture
def register():
    def _register(client: TestClient, username: str = "alice", email: str | None = None,
                  password: str = "pw1"):
        resp = client.post(
            "/register",
            data={
                "username": username,
                "email": email or f"{username}@x.com",
                "password": password,
                "confirm": password,
            },
            follow_redirects=False,
        )
        assert resp.status_code == 303, resp.text
        assert resp.headers["location"] == "/homepage"
        return resp

    return _register


@pytest.fixture
def create_book():
    def _create(client: TestClient, title: str = "T", category: str = "Fiction",
                content: bytes = b"%PDF-1.4 book body", cover: tuple | None = None,
                **fields):
        data = {
            "title": title,
            "publisher": fields.get("publisher", "P"),
            "description": fields.get("description", "D"),
            "category": category,
        }
        files = {"book_file": ("book.pdf", content, "application/pdf")}
        if cover is not None:
            files["cover_image"] = cover
        return client.post("/createbook", data=data, files=files, follow_redirects=False)

    return _create


@pytest.fixture
def book_by_title(db):
    def _lookup(title: str) -> models.Book | None:
        db.expire_all()
        return db.query(models.Book).filter(models.Book.title == title).first()

    return _lookup


def pytest_sessionfinish(session, exitstatus):
    engine.dispose()
    shutil.rmtree(_TMP, ignore_errors=True)
