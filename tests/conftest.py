import sys
from pathlib import Path
from typing import List, Optional, Union

import pytest

ROOT = Path(__file__).resolve().parents[1]
root_str = str(ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)

from app.backend.config import Settings  # noqa: E402
from app.backend.errors import ConfigurationMissing, ModelUnavailable  # noqa: E402
from app.backend.models import Completion, TokenUsage  # noqa: E402
from app.backend.turn_store import InMemoryTurnStore  # noqa: E402
from app.backend.turns import TurnTracker  # noqa: E402


Reply = Union[str, Exception]


class FakeLLMClient:
    """Scripted stand-in for LLMClient. Each call pops the next reply."""

    model = "claude-sonnet-4-5-20250929"

    def __init__(self, replies: Optional[List[Reply]] = None, configured: bool = True) -> None:
        self.replies: List[Reply] = list(replies or [])
        self.calls: List[dict] = []
        self.configured = configured
        self.closed = False
        self.usage = TokenUsage(input_tokens=1000, output_tokens=200)

    def queue(self, *replies: Reply) -> None:
        self.replies.extend(replies)

    def complete(self, **kwargs) -> Completion:
        self.calls.append(kwargs)
        if not self.configured:
            raise ConfigurationMissing("Missing GPTSAPI_KEY.")
        if not self.replies:
            raise ModelUnavailable("LLM request timed out after 15 seconds.")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return Completion(text=reply, usage=self.usage, model=self.model)

    def close(self) -> None:
        self.closed = True


class FailingTurnStore:
    storage_name = "postgres"

    def max_turn_number(self, user_id, project_id, phase_id):
        raise ConnectionError("database unreachable")

    def append_turn(self, turn):
        raise ConnectionError("database unreachable")

    def list_turns(self, user_id, project_id, phase_id):
        raise ConnectionError("database unreachable")

    def delete_turns(self, user_id, project_id, phase_id):
        raise ConnectionError("database unreachable")


@pytest.fixture
def settings() -> Settings:
    return Settings(llm_api_key="test-key", frontend_origins=("http://localhost:5173",))


@pytest.fixture
def fake_llm() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture
def tracker() -> TurnTracker:
    return TurnTracker(InMemoryTurnStore())


@pytest.fixture
def services(settings, fake_llm, tracker):
    from app.backend.services import build_services

    return build_services(settings, llm=fake_llm, tracker=tracker)


@pytest.fixture
def client(services):
    from fastapi.testclient import TestClient

    from app.backend.web import create_app

    with TestClient(create_app(services)) as test_client:
        yield test_client


WEAK_PITCH = (
    "Wir helfen Startups ihre Pitches zu verbessern. Unsere KI-Lösung macht Pitches besser. "
    "Wir haben schon Kunden. Kontaktiere uns für mehr Infos."
)
