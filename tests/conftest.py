# tests/conftest.py
from collections.abc import AsyncIterator, Iterator
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app import create_app
from database import DatabaseManager

ROOT = Path(__file__).resolve().parent.parent
BOARD = "test"


@pytest.fixture()
def db_path(tmp_path: Path) -> str:
    return str(tmp_path / "messageboard.db")


@pytest_asyncio.fixture()
async def store(db_path: str) -> AsyncIterator[DatabaseManager]:
    manager = DatabaseManager(db_path)
    await manager.initialize()
    try:
        yield manager
    finally:
        await manager.close()


@pytest.fixture()
def app(db_path: str) -> FastAPI:
    return create_app(
        DatabaseManager(db_path),
        views_dir=str(ROOT / "views"),
        public_dir=str(ROOT / "public"),
    )


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


def create_thread(client: TestClient, text: str = "Test thread", password: str = "pass",
                  board: str = BOARD) -> str:
    res = client.post(f"/api/threads/{board}", json={"text": text, "delete_password": password})
    assert res.status_code == 200, res.text
    return res.json()["thread"]["_id"]


def create_reply(client: TestClient, thread_id: str, text: str = "Test reply", password: str = "pass",
                 board: str = BOARD) -> str:
    res = client.post(
        f"/api/replies/{board}",
        json={"thread_id": thread_id, "text": text, "delete_password": password},
    )
    assert res.status_code == 200, res.text
    return res.json()["thread"]["_id"]


def send(client: TestClient, method: str, path: str, body: dict[str, Any]):
    """Send a JSON body with any method; TestClient.delete takes no body."""
    return client.request(method, path, json=body)


def contains_key(payload: Any, key: str) -> bool:
    if isinstance(payload, dict):
        return key in payload or any(contains_key(v, key) for v in payload.values())
    if isinstance(payload, list):
        return any(contains_key(item, key) for item in payload)
    return False
