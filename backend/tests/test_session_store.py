import base64
import json
import uuid
from urllib.parse import quote

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from docs_agent.core.errors import SessionStoreError
from docs_agent.core.security import create_access_token
from docs_agent.models import ChatSession
from docs_agent.services.session_store import (
    CallerCredentials,
    SessionStore,
    derive_title,
    extract_token,
    parse_session_id,
)

from conftest import make_settings


# Token extraction

def test_extract_token_from_json_array_cookie():
    raw = quote(json.dumps(["access-abc", "refresh-def", None]))
    assert extract_token(raw) == "access-abc"


def test_extract_token_from_json_object_cookie():
    raw = quote(json.dumps({"access_token": "access-abc", "refresh_token": "r"}))
    assert extract_token(raw) == "access-abc"


def test_extract_token_from_base64_cookie():
    payload = base64.urlsafe_b64encode(json.dumps({"access_token": "access-abc"}).encode()).decode()
    assert extract_token("base64-" + payload.rstrip("=")) == "access-abc"


def test_extract_token_raw_value():
    assert extract_token("eyJhbGciOi.payload.sig") == "eyJhbGciOi.payload.sig"


@pytest.mark.parametrize("raw", [None, "", "[", "{not json", "[]", quote(json.dumps([42]))])
def test_extract_token_rejects_garbage(raw):
    assert extract_token(raw) is None


def test_derive_title():
    assert derive_title("What is a URDF file?") == "What is a URDF file?"
    long_message = "word " * 30
    title = derive_title(long_message)
    assert len(title) == 53
    assert title.endswith("...")
    assert derive_title("   ") == "New chat"


def test_parse_session_id():
    session_id = uuid.uuid4()
    assert parse_session_id(str(session_id)) == str(session_id)
    assert parse_session_id(str(session_id).upper()) == str(session_id)
    for raw in (None, "", "s-1", "\u4f1a\u8bdd-1"):
        assert parse_session_id(raw) is None


# Caller identification

def test_identify_from_bearer_header():
    store = SessionStore(session_factory=None, settings=make_settings())
    token = create_access_token("user-1")
    assert store.identify_caller(CallerCredentials(authorization=f"Bearer {token}")) == "user-1"


def test_identify_from_access_token_cookie():
    store = SessionStore(session_factory=None, settings=make_settings())
    token = create_access_token("user-2")
    assert store.identify_caller(CallerCredentials(cookies={"access_token": token})) == "user-2"


def test_identify_falls_back_to_raw_auth_cookie():
    store = SessionStore(session_factory=None, settings=make_settings())
    token = create_access_token("user-3")
    cookie = quote(json.dumps([token, "refresh"]))
    credentials = CallerCredentials(cookies={"sb-project-auth-token": cookie})

    assert store.identity_from_structured(credentials) is None
    assert store.identity_from_raw_token(credentials) == "user-3"
    assert store.identify_caller(credentials) == "user-3"


def test_identify_rejects_invalid_tokens():
    store = SessionStore(session_factory=None, settings=make_settings())
    credentials = CallerCredentials(
        authorization="Bearer not-a-jwt",
        cookies={"access_token": "garbage", "sb-project-auth-token": quote('["also-garbage"]')},
    )
    assert store.identify_caller(credentials) is None


def test_anonymous_caller():
    store = SessionStore(session_factory=None, settings=make_settings())
    assert store.identify_caller(CallerCredentials()) is None


# Persistence

async def test_ensure_session_creates_owned_session(session_factory):
    store = SessionStore(session_factory, settings=make_settings())

    session_id = await store.ensure_session("user-1", None, "What is a URDF file?")

    session = await store.get_session(session_id)
    assert session is not None
    assert session.owner == "user-1"
    assert session.title == "What is a URDF file?"
    assert uuid.UUID(session_id)


async def test_ensure_session_reuses_existing_id(session_factory):
    store = SessionStore(session_factory, settings=make_settings())
    existing = str(uuid.uuid4())

    assert await store.ensure_session("user-1", existing, "hi") == existing

    async with session_factory() as db:
        count = await db.scalar(select(func.count()).select_from(ChatSession))
    assert count == 0


async def test_ensure_session_replaces_malformed_id(session_factory):
    store = SessionStore(session_factory, settings=make_settings())

    session_id = await store.ensure_session("user-1", "\u4f1a\u8bdd-1", "hi")

    assert session_id != "\u4f1a\u8bdd-1"
    session = await store.get_session(session_id)
    assert session is not None
    assert session.owner == "user-1"


async def test_messages_are_appended_in_order(session_factory):
    store = SessionStore(session_factory, settings=make_settings())
    session_id = await store.ensure_session("user-1", None, "hi")

    await store.append_message(session_id, "user", "hi")
    await store.append_message(session_id, "assistant", "Hello world")

    messages = await store.list_messages(session_id)
    assert [(m.role, m.content) for m in messages] == [("user", "hi"), ("assistant", "Hello world")]


async def test_append_with_malformed_session_id(session_factory):
    store = SessionStore(session_factory, settings=make_settings())
    with pytest.raises(SessionStoreError):
        await store.append_message("not-a-uuid", "user", "hi")


async def test_ping(session_factory):
    store = SessionStore(session_factory, settings=make_settings())
    await store.ping()


async def test_unreachable_store_raises_store_error(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/missing/dir/chat.db")
    store = SessionStore(async_sessionmaker(engine), settings=make_settings())
    try:
        with pytest.raises(SessionStoreError):
            await store.ensure_session("user-1", None, "hi")
        with pytest.raises(SessionStoreError):
            await store.ping()
    finally:
        await engine.dispose()
