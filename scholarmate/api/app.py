"""FastAPI application factory and configuration.

Application factory with lifespan management, middleware and router
registration. The factory is the composition root: it builds the one
SessionManager, StreamReducer and ChatService the app uses. There is no
module-level app; servers call `create_app` (uvicorn with `--factory`).
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from scholarmate import __version__
from scholarmate.agent.chat_service import ChatService
from scholarmate.agent.config import ChatConfig
from scholarmate.agent.session_manager import ChatFactory, SessionManager
from scholarmate.agent.stream_reducer import StreamReducer
from scholarmate.api.chat import router as chat_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application startup and shutdown lifecycle.

    Opens the first chat session on startup.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control to the application while it runs.
    """
    # Startup
    logger.info("Starting ScholarMate API...")
    app.state.chat_service.initialize_chat()
    yield
    # Shutdown
    logger.info("Shutting down ScholarMate API...")


def create_app(
    config: ChatConfig | None = None,
    chat_factory: ChatFactory | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Chat configuration. Loads from environment if not provided.
        chat_factory: Optional remote chat factory, mainly for tests.

    Returns:
        Configured FastAPI application instance.
    """
    application = FastAPI(
        title="ScholarMate API",
        description=(
            "Streaming study companion backed by Gemini with Google Search "
            "grounding. Replies arrive incrementally over Server-Sent Events "
            "together with their web citations."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["*"],
    )

    session_manager = SessionManager(config=config, chat_factory=chat_factory)
    application.state.chat_service = ChatService(
        session_manager, StreamReducer(session_manager)
    )

    application.include_router(chat_router)

    @application.get("/health")
    async def health_check() -> dict[str, str]:
        """Check service health status."""
        return {"status": "healthy", "service": "scholarmate"}

    return application
