from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from docs_agent.core.config import get_settings
from docs_agent.core.database import dispose_engine
from docs_agent.core.errors import AgentError
from docs_agent.core.logging import get_logger
from docs_agent.routers import agent, cron, providers, rag, search, translate


settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Clients are created lazily on first use; only the DB pool needs closing
    yield
    await dispose_engine()


app = FastAPI(
    title="Docs Agent API",
    description="Retrieval-augmented documentation assistant",
    version="1.0.0",
    lifespan=lifespan,
)
# Avoid 307 redirects for trailing slash (e.g. /agent/ -> /agent) that can cause redirect loops behind nginx
app.router.redirect_slashes = False

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        settings.frontend_url,
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Session-Id"],
)


@app.exception_handler(AgentError)
async def agent_error_handler(request: Request, exc: AgentError):
    if exc.http_status >= 500:
        logger.error(f"{request.method} {request.url.path} failed ({exc.code}): {exc.message}")
    return JSONResponse(status_code=exc.http_status, content={"error": exc.message})


# Include routers
app.include_router(agent.router, prefix="/agent", tags=["Agent"])
app.include_router(search.router, prefix="/search", tags=["Search"])
app.include_router(translate.router, prefix="/translate", tags=["Translate"])
app.include_router(providers.router, prefix="/providers", tags=["Providers"])
app.include_router(rag.router, prefix="/rag", tags=["RAG"])
app.include_router(cron.router, prefix="/cron", tags=["Cron"])


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
