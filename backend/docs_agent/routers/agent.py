"""
Agent Router

Documentation chat. Streams the reply as plain text and reports the
resolved session id in the X-Session-Id header (empty for anonymous
callers). Sending "stream": false returns {reply, sessionId} instead.
"""

import anyio
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from docs_agent.core.errors import ProviderError, ServiceMisconfigured
from docs_agent.core.logging import get_logger
from docs_agent.services.llm.models import Role, Turn
from docs_agent.services.orchestrator import ChatStream, Query, RequestOrchestrator, get_orchestrator
from docs_agent.services.session_store import CallerCredentials, parse_session_id

router = APIRouter()
logger = get_logger(__name__)

SESSION_HEADER = "X-Session-Id"
APOLOGY = "Sorry, something went wrong. Please try again."


# Schemas
class AgentMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    role: Role
    content: str
    session_id: str | None = Field(default=None, alias="sessionId")


class AgentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    messages: list[AgentMessage]
    provider: str | None = None
    model: str | None = None
    selected_text: str | None = Field(default=None, alias="selectedText")
    session_id: str | None = Field(default=None, alias="sessionId")
    stream: bool = True

    def to_query(self) -> Query:
        """Build the query; a session id that is not a UUID counts as absent."""
        session_id = self.session_id
        if not session_id and self.messages:
            session_id = self.messages[-1].session_id
        return Query(
            conversation=[Turn(role=m.role, content=m.content) for m in self.messages],
            selected_text=self.selected_text or None,
            session_id=parse_session_id(session_id),
        )


class AgentReply(BaseModel):
    reply: str
    sessionId: str | None = None


class ChatStreamResponse(StreamingResponse):
    """Streams a chat relay and closes it afterwards, even if sending never started."""

    def __init__(self, chat_stream: ChatStream, **kwargs):
        super().__init__(chat_stream.deltas, **kwargs)
        self.chat_stream = chat_stream

    async def __call__(self, scope, receive, send):
        try:
            await super().__call__(scope, receive, send)
        finally:
            with anyio.CancelScope(shield=True):
                await self.chat_stream.aclose()


# Endpoints
@router.post("")
async def chat(
    body: AgentRequest,
    request: Request,
    orchestrator: RequestOrchestrator = Depends(get_orchestrator),
):
    """Answer a documentation question, streaming the reply as it is generated."""
    query = body.to_query()
    credentials = CallerCredentials.from_request(request)

    try:
        if not body.stream:
            reply, session_id = await orchestrator.chat_once(
                query, credentials, body.provider, body.model
            )
            return AgentReply(reply=reply, sessionId=session_id)

        chat_stream = await orchestrator.start_chat(
            query,
            credentials,
            body.provider,
            body.model,
            is_disconnected=request.is_disconnected,
        )
    except (ProviderError, ServiceMisconfigured) as e:
        logger.error(f"[Agent] Completion failed ({e.code}): {e.message}")
        return JSONResponse(status_code=e.http_status, content={"error": APOLOGY})

    return ChatStreamResponse(
        chat_stream,
        media_type="text/plain; charset=utf-8",
        headers={SESSION_HEADER: chat_stream.session_id or ""},
    )
