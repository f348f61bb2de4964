"""
Shared pytest fixtures: temporary SQLite store, fake extractor, FastAPI TestClient.
"""
import io
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from utils.database_init import AsyncDatabaseInitializer

SAMPLE_FIELDS: Dict[str, Optional[str]] = {
    "sender_name": "Somchai Jaidee",
    "recipient_name": "Malee Shop",
    "amount": "1,234.50 THB",
    "transaction_date": "2024-01-01",
    "transaction_time": "10:15",
    "transaction_id": "REF123",
    "sender_bank_name": "Kasikornbank",
    "sender_bank_account_number": "xxx-x-x1234-x",
    "recipient_bank_name": "Krungsri",
    "recipient_bank_account_number": "xxx-x-x9876-x",
    "country": "Thailand",
}


class FakeExtractor:
    """Stands in for SlipExtractor; outcomes are keyed by image bytes."""

    def __init__(self) -> None:
        self.calls: List[bytes] = []
        self.outcomes: Dict[bytes, Any] = {}
        self.default: Dict[str, Optional[str]] = dict(SAMPLE_FIELDS)

    async def extract(self, image_bytes: bytes, mime_type: str = "image/jpeg") -> Dict[str, Optional[str]]:
        self.calls.append(image_bytes)
        outcome = self.outcomes.get(image_bytes, self.default)
        if isinstance(outcome, Exception):
            raise outcome
        return dict(outcome)


def make_png(color: str = "white", size=(8, 8)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture()
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture()
def fake_extractor() -> FakeExtractor:
    return FakeExtractor()


@pytest.fixture()
def db_initializer(tmp_path) -> AsyncDatabaseInitializer:
    return AsyncDatabaseInitializer(tmp_path / "db")


@pytest.fixture()
def client(tmp_path, monkeypatch, fake_extractor):
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    monkeypatch.setenv("DATABASE_DIR", str(tmp_path / "appdb"))
    monkeypatch.setenv("PERSIST_DELAY_SECONDS", "0")
    monkeypatch.setenv("VIEWER_BASE_URL", "https://slips.example.com")
    monkeypatch.setenv("APP_ID", "test-app")

    from main import app

    with TestClient(app) as c:
        app.state.slip_extractor = fake_extractor
        yield c
