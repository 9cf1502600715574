import os
from types import SimpleNamespace

# Settings are read at import time, so the environment must be ready first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AI_API_KEY"] = ""
os.environ["ENVIRONMENT"] = "test"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from finsensei.database import engine, SessionLocal  # noqa: E402
from finsensei.main import create_app  # noqa: E402
from finsensei.models import Base  # noqa: E402
from finsensei.services.coach import FinancialCoach  # noqa: E402


class StubCompletions:
    def __init__(self, reply, error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class StubAIClient:
    """Stands in for AsyncOpenAI; records every chat.completions.create call"""

    def __init__(self, reply="Start by building an emergency fund.", error=None):
        self.completions = StubCompletions(reply, error)
        self.chat = SimpleNamespace(completions=self.completions)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def broken_db():
    """Session on a database that has no tables, so every query fails"""
    empty_engine = create_engine("sqlite://")
    session = sessionmaker(bind=empty_engine)()
    try:
        yield session
    finally:
        session.close()
        empty_engine.dispose()


@pytest.fixture
def ai_client():
    return StubAIClient()


@pytest.fixture
def app(db, ai_client):
    application = create_app()
    application.state.coach = FinancialCoach(api_key="", client=ai_client)
    return application


@pytest.fixture
def client(app):
    return TestClient(app)
