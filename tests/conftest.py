import pytest
import requests
from fastapi.testclient import TestClient

from courtroom import main
from courtroom.config import Settings
from courtroom.db import Store


@pytest.fixture
def store():
    s = Store("sqlite://").open()
    yield s
    s.close()


@pytest.fixture
def no_key_settings(monkeypatch):
    settings = Settings(gemini_api_key=None)
    monkeypatch.setattr(main, "settings", settings)
    return settings


@pytest.fixture
def client(store, no_key_settings):
    main.app.dependency_overrides[main.get_store] = lambda: store
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        if self._payload is None:
            raise ValueError("no json body")
        return self._payload

    def raise_for_status(self):
        if not self.ok:
            raise requests.HTTPError(f"{self.status_code} error")


def gemini_payload(text, finish_reason="STOP"):
    return {
        "candidates": [
            {"content": {"parts": [{"text": text}]}, "finishReason": finish_reason}
        ]
    }
