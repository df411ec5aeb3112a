"""
Session Store Adapter

Best-effort persistence of chat transcripts for authenticated callers:
- identify_caller: two-tier credential resolution (structured lookup,
  then raw-token extraction from the auth cookie)
- ensure_session: reuse the caller's session id or create a new session
- append_message: one row per turn, append-only

Every storage failure is raised as SessionStoreError; the orchestrator
logs it and carries on. Anonymous callers never reach the storage methods.
"""

import asyncio
import base64
import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from urllib.parse import unquote

from sqlalchemy import select, text, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from docs_agent.core.config import Settings, get_settings
from docs_agent.core.database import get_session_factory
from docs_agent.core.errors import AgentError, SessionStoreError
from docs_agent.core.logging import get_logger
from docs_agent.core.security import verify_token
from docs_agent.models.chat_message import ChatMessage
from docs_agent.models.chat_session import ChatSession

logger = get_logger(__name__)

TITLE_PREFIX_LENGTH = 50

_STORE_ERRORS = (SQLAlchemyError, OSError, asyncio.TimeoutError, ValueError, AgentError)


@dataclass
class CallerCredentials:
    """The parts of an HTTP request that can prove who the caller is."""

    authorization: str | None = None
    cookies: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_request(cls, request) -> "CallerCredentials":
        return cls(
            authorization=request.headers.get("Authorization"),
            cookies=dict(request.cookies),
        )


def extract_token(raw_value: str | None) -> str | None:
    """
    Pull an access token out of a raw auth cookie value.

    Auth helpers store the cookie as a URL-encoded JSON array
    ``["access", "refresh", ...]``, a JSON object with ``access_token``,
    or the bare token; newer helpers prefix a base64url-encoded JSON
    payload with ``base64-``.
    """
    if not raw_value:
        return None

    decoded = unquote(raw_value).strip()

    try:
        if decoded.startswith("base64-"):
            encoded = decoded[len("base64-"):]
            decoded = base64.urlsafe_b64decode(encoded + "=" * (-len(encoded) % 4)).decode("utf-8")
        if decoded.startswith("["):
            data = json.loads(decoded)
            token = data[0] if data else None
        elif decoded.startswith("{"):
            token = json.loads(decoded).get("access_token")
        else:
            token = decoded
    except (ValueError, AttributeError, IndexError, TypeError):
        return None

    return token if isinstance(token, str) and token else None


def parse_session_id(raw: str | None) -> str | None:
    """Canonical form of a client-supplied session id, or None unless it is a UUID."""
    if not raw:
        return None
    try:
        return str(uuid.UUID(str(raw)))
    except ValueError:
        return None


def derive_title(first_message: str) -> str:
    title = " ".join((first_message or "").split())
    if len(title) > TITLE_PREFIX_LENGTH:
        return title[:TITLE_PREFIX_LENGTH] + "..."
    return title or "New chat"


class SessionStore:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        settings: Settings | None = None,
    ):
        self._session_factory = session_factory
        self._settings = settings or get_settings()

    def _factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._session_factory = get_session_factory()
        return self._session_factory

    # ── Caller identification ────────────────────────────────────────────────

    def identify_caller(self, credentials: CallerCredentials) -> str | None:
        """
        Resolve the caller's identity, or None for anonymous callers.

        Tries the structured lookup first; if that yields nothing, falls
        back to extracting a token from the raw auth cookie.
        """
        owner = self.identity_from_structured(credentials)
        if owner:
            return owner

        owner = self.identity_from_raw_token(credentials)
        if owner:
            logger.info("[Session] Caller recovered from raw auth cookie")
        return owner

    def identity_from_structured(self, credentials: CallerCredentials) -> str | None:
        """Bearer header, else the plain access-token cookie."""
        token = None
        auth_header = credentials.authorization or ""
        if auth_header.startswith("Bearer "):
            token = auth_header.split(" ", 1)[1].strip()
        if not token:
            token = credentials.cookies.get(self._settings.auth_cookie_name)

        payload = verify_token(token) if token else None
        return payload.sub if payload else None

    def identity_from_raw_token(self, credentials: CallerCredentials) -> str | None:
        """Find the auth cookie, extract a candidate token and validate it."""
        suffix = self._settings.auth_cookie_suffix
        candidates = [
            value for name, value in credentials.cookies.items()
            if suffix and name.endswith(suffix)
        ]
        primary = credentials.cookies.get(self._settings.auth_cookie_name)
        if primary:
            candidates.append(primary)

        for raw in candidates:
            token = extract_token(raw)
            payload = verify_token(token) if token else None
            if payload:
                return payload.sub
        return None

    # ── Persistence ──────────────────────────────────────────────────────────

    async def ensure_session(
        self,
        owner: str,
        existing_session_id: str | None,
        first_message: str,
    ) -> str:
        """
        Return the session id to use for this request.

        A well-formed existing id is trusted as-is (no read round trip);
        otherwise a new session owned by ``owner`` is created.
        """
        if existing_session_id:
            session_id = parse_session_id(existing_session_id)
            if session_id:
                return session_id
            logger.warning("[Session] Malformed session id ignored, creating a new session")

        try:
            async with self._factory()() as db:
                session = ChatSession(owner=owner, title=derive_title(first_message))
                db.add(session)
                await db.commit()
                await db.refresh(session)
        except _STORE_ERRORS as e:
            raise SessionStoreError(f"Could not create chat session: {e}") from e

        logger.info(f"[Session] Created session {session.id}")
        return str(session.id)

    async def append_message(self, session_id: str, role: str, content: str) -> None:
        """Append one turn to a session's transcript."""
        try:
            sid = uuid.UUID(str(session_id))
            async with self._factory()() as db:
                db.add(ChatMessage(session_id=sid, role=role, content=content))
                await db.execute(
                    update(ChatSession)
                    .where(ChatSession.id == sid)
                    .values(updated_at=datetime.utcnow())
                )
                await db.commit()
        except _STORE_ERRORS as e:
            raise SessionStoreError(f"Could not save {role} message: {e}") from e

    async def list_messages(self, session_id: str) -> list[ChatMessage]:
        """Transcript of a session, oldest first."""
        try:
            sid = uuid.UUID(str(session_id))
            async with self._factory()() as db:
                result = await db.execute(
                    select(ChatMessage)
                    .where(ChatMessage.session_id == sid)
                    .order_by(ChatMessage.created_at, ChatMessage.id)
                )
                return list(result.scalars().all())
        except _STORE_ERRORS as e:
            raise SessionStoreError(f"Could not read messages: {e}") from e

    async def get_session(self, session_id: str) -> ChatSession | None:
        try:
            async with self._factory()() as db:
                return await db.get(ChatSession, uuid.UUID(str(session_id)))
        except _STORE_ERRORS as e:
            raise SessionStoreError(f"Could not read session: {e}") from e

    async def ping(self) -> None:
        """
        Lightweight read used by the keep-alive endpoint.

        A missing database URL raises ServiceMisconfigured rather than
        SessionStoreError.
        """
        factory = self._factory()
        try:
            async with factory() as db:
                await db.execute(text("SELECT 1"))
        except _STORE_ERRORS as e:
            raise SessionStoreError(f"Session store unreachable: {e}") from e


# ── Singleton ─────────────────────────────────────────────────────────────────

_store: SessionStore | None = None


def get_session_store() -> SessionStore:
    global _store
    if _store is None:
        _store = SessionStore()
    return _store
