from __future__ import annotations

import uuid
from typing import Iterable, List, Optional

import pytest
from fastapi.testclient import TestClient
from langchain_core.messages import AIMessage, BaseMessage

from gembreak.api.gemini_client import ModelReply
from gembreak.database.config.config import settings
from gembreak.database.core.db import reset_engine


def make_reply(text: str = "", tool_calls: Optional[List[dict]] = None,
               block_reason: Optional[str] = None) -> ModelReply:
    calls = [
        {"name": c["name"], "args": c.get("args", {}), "id": c.get("id", f"call-{i}")}
        for i, c in enumerate(tool_calls or [])
    ]
    reply = ModelReply.from_message(AIMessage(content=text, tool_calls=calls))
    reply.block_reason = block_reason
    return reply


class FakeChatModel:
    """Scripted stand-in for the Gemini client; records every invocation."""

    def __init__(self, replies: Iterable = ()):
        self.replies = list(replies)
        self.calls: List[List[BaseMessage]] = []

    def invoke(self, messages):
        self.calls.append(list(messages))
        if not self.replies:
            raise AssertionError("FakeChatModel ran out of scripted replies")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture(autouse=True)
def database(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "DATABASE_URL", f"sqlite:///{tmp_path / 'gembreak-test.db'}")
    reset_engine()
    yield
    reset_engine()


@pytest.fixture
def owner_id() -> str:
    return uuid.uuid4().hex


@pytest.fixture
def fake_model() -> FakeChatModel:
    return FakeChatModel()


@pytest.fixture
def client(fake_model):
    from gembreak.main import create_app

    with TestClient(create_app(chat_model=fake_model)) as test_client:
        yield test_client


@pytest.fixture
def admin_credentials(monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_USERNAME", "admin")
    monkeypatch.setattr(settings, "ADMIN_PASSWORD", "s3cret")
    return {"username": "admin", "password": "s3cret"}
