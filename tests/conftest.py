"""Shared test fixtures for the KMC citizen assistant."""
import pytest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from config.settings import LLMConfig, MunicipalityConfig
from core.engine import FreeTextBridge
from core.knowledge_base import KnowledgeBase
from database.session_store import SessionStore
from database.store_memory import InMemoryKeyValueStore
from dialogue.composer import ResponseComposer
from dialogue.controller import DialogueController
from models.schemas import DialogueState, Language, Session


PHONE = "+919876543210"


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def kv(clock) -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore(clock=clock)


@pytest.fixture
def sessions(kv) -> SessionStore:
    return SessionStore(kv, ttl_seconds=3600, history_limit=20)


@pytest.fixture(scope="session")
def knowledge_base() -> KnowledgeBase:
    return KnowledgeBase.from_yaml()


@pytest.fixture(scope="session")
def composer(knowledge_base) -> ResponseComposer:
    return ResponseComposer.from_yaml(knowledge_base)


@pytest.fixture
def bridge():
    """Bridge double: answers every free-text query with a fixed reply."""
    double = MagicMock(spec=FreeTextBridge)
    double.generate = AsyncMock(return_value="AI answer about KMC")
    double.is_fallback = MagicMock(side_effect=FreeTextBridge.is_fallback)
    return double


@pytest.fixture
def controller(sessions, composer, bridge) -> DialogueController:
    return DialogueController(sessions, composer, bridge)


@pytest.fixture
def failing_client():
    """Anthropic-shaped client whose every call raises."""
    return SimpleNamespace(messages=SimpleNamespace(
        create=AsyncMock(side_effect=RuntimeError("completion service down"))))


@pytest.fixture
def real_bridge_factory(knowledge_base):
    """Build a real FreeTextBridge around an injected fake LLM client."""
    def make(client, provider: str = "anthropic", max_steps: int = 10) -> FreeTextBridge:
        return FreeTextBridge(
            llm=LLMConfig(provider=provider, max_steps=max_steps),
            knowledge_base=knowledge_base,
            municipality=MunicipalityConfig(),
            timezone="Asia/Kolkata",
            client=client,
        )
    return make


@pytest.fixture
def seed_session(sessions):
    """Persist a session in a given state before the test drives the controller."""
    async def seed(state: DialogueState = DialogueState.MENU_SHOWN,
                   language: Language = Language.ENGLISH,
                   phone: str = PHONE) -> Session:
        session = Session(state=state, language=language)
        await sessions.save(phone, session)
        return session
    return seed
