import uuid

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from docs_agent.core.config import Settings
from docs_agent.core.database import Base
from docs_agent.core.errors import SessionStoreError
from docs_agent.models import ChatMessage, ChatSession  # noqa: F401
from docs_agent.services.llm.base import LLMProvider
from docs_agent.services.llm.gateway import CompletionGateway
from docs_agent.services.llm.registry import ProviderConfig, ProviderRegistry
from docs_agent.services.orchestrator import RequestOrchestrator
from docs_agent.services.rag.models import ChunkMetadata, RetrievedChunk
from docs_agent.services.session_store import derive_title


def make_settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def make_chunk(chunk_id: str, content: str, score: float = 0.9) -> RetrievedChunk:
    return RetrievedChunk(
        id=chunk_id,
        score=score,
        content=content,
        metadata=ChunkMetadata(title=f"Page {chunk_id}", path=f"/docs/{chunk_id}"),
    )


class FakeProvider(LLMProvider):
    """Scripted provider. With ``error`` set, raises it before delta ``fail_after``."""

    def __init__(self, name, reply="ok", deltas=None, error=None, fail_after=0):
        self.provider_name = name
        self.reply = reply
        self.deltas = ["Hello", " world"] if deltas is None else deltas
        self.error = error
        self.fail_after = fail_after
        self.calls: list[str] = []
        self.system_prompts: list[str] = []
        self.user_texts: list[str] = []
        self.requested = 0
        self.closed = False

    async def complete(self, system_prompt, messages, model, temperature=0.3):
        self.calls.append(model)
        self.system_prompts.append(system_prompt)
        self.user_texts.append(messages[-1].content)
        if self.error is not None:
            raise self.error
        return self.reply

    async def stream(self, system_prompt, messages, model, temperature=0.3):
        self.calls.append(model)
        self.system_prompts.append(system_prompt)
        try:
            for i, delta in enumerate(self.deltas):
                if self.error is not None and i == self.fail_after:
                    raise self.error
                self.requested += 1
                yield delta
        finally:
            self.closed = True


def make_registry(providers: dict, default: str | None = None, api_keys: dict | None = None) -> ProviderRegistry:
    """Registry over ``providers`` (id -> LLMProvider), priority in dict order."""
    api_keys = api_keys or {}
    configs = [
        ProviderConfig(
            id=pid,
            display_name=pid.title(),
            base_url=f"https://{pid}.test/v1",
            api_key=api_keys.get(pid, "test-key"),
            default_model=f"{pid}-default",
            priority=i,
        )
        for i, pid in enumerate(providers)
    ]
    default = default or next(iter(providers))
    return ProviderRegistry(
        configs,
        default_provider=default,
        default_model=f"{default}-default",
        provider_factory=lambda config: providers[config.id],
    )


class FakeRetriever:
    def __init__(self, chunks=None, error=None):
        self.chunks = chunks or []
        self.error = error
        self.calls: list[tuple] = []

    async def retrieve(self, query, collection, limit):
        self.calls.append((query, collection, limit))
        if self.error is not None:
            raise self.error
        return self.chunks

    async def status(self):
        return {"available": True, "collections": {"physical_ai_book": 3}, "message": ""}


class FakeSessionStore:
    """In-memory stand-in with the SessionStore interface."""

    def __init__(self, owner=None, fail_ensure=False, fail_append=False, fail_ping=False):
        self.owner = owner
        self.fail_ensure = fail_ensure
        self.fail_append = fail_append
        self.fail_ping = fail_ping
        self.sessions: dict[str, dict] = {}
        self.messages: list[tuple[str, str, str]] = []

    def identify_caller(self, credentials):
        return self.owner

    async def ensure_session(self, owner, existing_session_id, first_message):
        if self.fail_ensure:
            raise SessionStoreError("Could not create chat session: connection refused")
        if existing_session_id:
            return existing_session_id
        session_id = str(uuid.uuid4())
        self.sessions[session_id] = {"owner": owner, "title": derive_title(first_message)}
        return session_id

    async def append_message(self, session_id, role, content):
        if self.fail_append:
            raise SessionStoreError(f"Could not save {role} message: connection refused")
        self.messages.append((session_id, role, content))

    async def ping(self):
        if self.fail_ping:
            raise SessionStoreError("Session store unreachable: timeout")


def make_orchestrator(providers=None, retriever=None, store=None, registry=None, **settings):
    providers = providers or {"gemini": FakeProvider("gemini")}
    registry = registry or make_registry(providers)
    return RequestOrchestrator(
        retriever=retriever or FakeRetriever([make_chunk("1", "URDF describes robot links.")]),
        gateway=CompletionGateway(registry),
        session_store=store or FakeSessionStore(),
        settings=make_settings(**settings),
    )


@pytest.fixture
async def session_factory():
    """Fresh in-memory SQLite database with the chat tables."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()
