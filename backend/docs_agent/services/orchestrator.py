"""
Request Orchestrator

Top-level coordinator for the three entry points:

- chat (streaming, plus a legacy non-streaming variant):
    validate -> retrieve (best-effort) -> assemble prompt
    -> identify caller / resolve session / save user turn (best-effort)
    -> stream completion -> relay deltas -> save assistant reply (best-effort)
- search: retrieve -> one-shot answer with provider fallback
- translate: one-shot completion with provider fallback

Degradation policy: retrieval and session-store failures are logged and
swallowed here; validation errors and a provider failing before the first
delta are fatal. Retrieval and the session steps are independent and run
concurrently; streaming starts only after the system prompt is complete.
"""

import asyncio
from dataclasses import dataclass, field
from typing import AsyncIterator, Awaitable, Callable

import anyio

from docs_agent.core.config import Settings, get_settings
from docs_agent.core.errors import AgentError, AllProvidersExhausted, InvalidRequest, SessionStoreError
from docs_agent.core.logging import get_logger
from docs_agent.models.chat_message import MessageRole
from docs_agent.services.llm.gateway import CompletionGateway, get_gateway
from docs_agent.services.llm.models import CompletionResult, Turn
from docs_agent.services.prompt_builder import (
    SEARCH_ANSWER_SYSTEM_PROMPT,
    TRANSLATION_SYSTEM_PROMPT,
    compile_agent_prompt,
    compile_search_prompt,
)
from docs_agent.services.rag.context import assemble_context
from docs_agent.services.rag.models import RetrievedChunk
from docs_agent.services.rag.retriever import Retriever, get_retriever
from docs_agent.services.session_store import CallerCredentials, SessionStore, get_session_store

logger = get_logger(__name__)

EMPTY_REPLY = "Sorry, I couldn't generate a response."

DisconnectCheck = Callable[[], Awaitable[bool]]


@dataclass
class Query:
    """One chat request. Lives for the duration of the request only."""

    conversation: list[Turn]
    selected_text: str | None = None
    session_id: str | None = None

    @property
    def text(self) -> str:
        return self.conversation[-1].content if self.conversation else ""


@dataclass
class ChatStream:
    """A started chat completion: resolved session plus the delta relay."""

    session_id: str | None
    provider: str
    model: str
    deltas: AsyncIterator[str]
    upstream: AsyncIterator[str] | None = field(default=None, repr=False)

    async def aclose(self) -> None:
        """Close the relay and the provider stream, even if the relay never started."""
        await self.deltas.aclose()
        if self.upstream is not None:
            await self.upstream.aclose()


@dataclass
class SearchOutcome:
    results: list[RetrievedChunk] = field(default_factory=list)
    answer: CompletionResult | None = None


class RequestOrchestrator:
    def __init__(
        self,
        retriever: Retriever,
        gateway: CompletionGateway,
        session_store: SessionStore,
        settings: Settings | None = None,
    ):
        self.retriever = retriever
        self.gateway = gateway
        self.session_store = session_store
        self.settings = settings or get_settings()

    # ── Validation ───────────────────────────────────────────────────────────

    @staticmethod
    def validate(query: Query) -> None:
        """Reject malformed chat requests before any external call."""
        if not query.conversation:
            raise InvalidRequest("Invalid messages format: conversation is empty")
        last = query.conversation[-1]
        if last.role != "user":
            raise InvalidRequest("Invalid messages format: last message must be from the user")
        if not last.content.strip():
            raise InvalidRequest("Invalid messages format: last message is empty")

    # ── Best-effort steps ────────────────────────────────────────────────────

    async def _retrieve(self, text: str, collection: str) -> list[RetrievedChunk]:
        """Embed + search; any failure degrades to no chunks."""
        try:
            return await self.retriever.retrieve(
                text, collection=collection, limit=self.settings.retrieval_limit
            )
        except AgentError as e:
            logger.warning(f"[RAG] Retrieval failed, continuing without context: {e.message}")
            return []

    async def _persist(self, session_id: str, role: str, content: str) -> bool:
        try:
            await self.session_store.append_message(session_id, role, content)
            return True
        except SessionStoreError as e:
            logger.error(f"[Session] {e.message}")
        except Exception as e:
            logger.error(f"[Session] Unexpected store failure saving {role} message: {e!r}")
        return False

    async def _open_session(self, credentials: CallerCredentials, query: Query) -> str | None:
        """
        Identify the caller, resolve or create the session, save the user turn.

        Returns None for anonymous callers and when the store is unavailable.
        """
        try:
            owner = self.session_store.identify_caller(credentials)
            if not owner:
                logger.info("[Session] Anonymous caller, persistence skipped")
                return None
            session_id = await self.session_store.ensure_session(
                owner, query.session_id, query.text
            )
        except SessionStoreError as e:
            logger.error(f"[Session] {e.message}")
            return None
        except Exception as e:
            logger.error(f"[Session] Unexpected store failure opening session: {e!r}")
            return None

        await self._persist(session_id, MessageRole.USER.value, query.text)
        return session_id

    # ── Chat ─────────────────────────────────────────────────────────────────

    async def start_chat(
        self,
        query: Query,
        credentials: CallerCredentials,
        provider: str | None,
        model: str | None,
        is_disconnected: DisconnectCheck | None = None,
    ) -> ChatStream:
        """
        Run every step up to the first delta and return the relay.

        Raises:
            InvalidRequest: malformed conversation
            ProviderError / ServiceMisconfigured: completion failed before
                producing any text
        """
        self.validate(query)

        chunks, session_id = await asyncio.gather(
            self._retrieve(query.text, self.settings.agent_collection),
            self._open_session(credentials, query),
        )

        context = assemble_context(
            chunks, query.selected_text, max_chars=self.settings.max_context_chars
        )
        system_prompt = compile_agent_prompt(context)

        completion = self.gateway.complete_streaming(
            provider, model, system_prompt, query.conversation
        )

        # Pull the first delta now so a failing provider is still a clean error response
        try:
            first = await anext(completion.deltas)
        except StopAsyncIteration:
            first = None

        return ChatStream(
            session_id=session_id,
            provider=completion.provider,
            model=completion.model,
            deltas=self._relay(completion.deltas, first, session_id, is_disconnected),
            upstream=completion.deltas,
        )

    async def _relay(
        self,
        upstream: AsyncIterator[str],
        first: str | None,
        session_id: str | None,
        is_disconnected: DisconnectCheck | None,
    ) -> AsyncIterator[str]:
        """
        Forward deltas as they arrive while accumulating the reply.

        Stops pulling from the provider once the client is gone. A delta
        counts as delivered once the consumer asks for the next one, so the
        saved reply never includes a delta whose send failed. It is saved
        once, if a session exists and at least one delta was delivered.
        """
        parts: list[str] = []
        try:
            if first is not None:
                yield first
                parts.append(first)

            while True:
                if is_disconnected is not None and await is_disconnected():
                    logger.info(f"[Agent] Client disconnected after {len(parts)} deltas")
                    break
                try:
                    delta = await anext(upstream)
                except StopAsyncIteration:
                    break
                yield delta
                parts.append(delta)
        except AgentError as e:
            logger.error(f"[Agent] Stream failed after {len(parts)} deltas: {e.message}")
            raise
        finally:
            # Runs on completion, error, or cancellation; must not be cancelled itself
            with anyio.CancelScope(shield=True):
                await upstream.aclose()
                if session_id and parts:
                    await self._persist(session_id, MessageRole.ASSISTANT.value, "".join(parts))

    async def chat_once(
        self,
        query: Query,
        credentials: CallerCredentials,
        provider: str | None,
        model: str | None,
    ) -> tuple[str, str | None]:
        """Legacy non-streaming chat: same pipeline, reply collected in full."""
        stream = await self.start_chat(query, credentials, provider, model)
        reply = "".join([delta async for delta in stream.deltas])
        return reply or EMPTY_REPLY, stream.session_id

    # ── Search & translate ───────────────────────────────────────────────────

    async def search(self, query_text: str) -> SearchOutcome:
        """
        Top-K chunks from the search collection plus a generated answer.

        An answer is always attempted; with no chunks the model is told
        retrieval came back empty. Exhausted providers leave it as None.
        """
        query_text = (query_text or "").strip()
        if not query_text:
            raise InvalidRequest("Query is required")

        chunks = await self._retrieve(query_text, self.settings.search_collection)
        context = assemble_context(chunks, max_chars=self.settings.max_context_chars)

        primary = self.gateway.registry.fallback_order()[0]
        try:
            answer = await self.gateway.complete_once(
                primary.id,
                None,
                SEARCH_ANSWER_SYSTEM_PROMPT,
                compile_search_prompt(query_text, context),
            )
        except AllProvidersExhausted:
            logger.error("[Agent] Search answer unavailable, returning results only")
            answer = None

        return SearchOutcome(results=chunks, answer=answer)

    async def translate(
        self,
        content: str,
        provider: str | None = None,
        model: str | None = None,
    ) -> CompletionResult:
        """
        Translate documentation content.

        Raises:
            InvalidRequest: empty content
            AllProvidersExhausted: every provider failed
        """
        if not content or not content.strip():
            raise InvalidRequest("Content is required")

        logger.info(f"[Agent] Attempting translation with {provider or self.gateway.registry.default_provider}")
        return await self.gateway.complete_once(
            provider or self.gateway.registry.default_provider,
            model,
            TRANSLATION_SYSTEM_PROMPT,
            content,
        )


# ── Singleton ─────────────────────────────────────────────────────────────────

_orchestrator: RequestOrchestrator | None = None


def get_orchestrator() -> RequestOrchestrator:
    """Get or create the request orchestrator singleton."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = RequestOrchestrator(
            retriever=get_retriever(),
            gateway=get_gateway(),
            session_store=get_session_store(),
        )
    return _orchestrator
