import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncEngine

from app.api.v1 import auth, chat, chat_websocket, partners, sessions
from app.chat.services import build_chat_services
from app.core import database
from app.core.config import settings
from app.core.logging import configure_logging
from app.core.redis import get_redis_client
from app.middleware.logging import LoggingMiddleware
from app.models import Base
from app.services.ai_service import CompletionProvider
from app.services.openai_service import OpenAIProvider


logger = logging.getLogger("app.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.AUTO_CREATE_TABLES:
        async with app.state.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ensured")

    yield

    # Let in-flight replies reach a terminal state before the process exits
    await app.state.chat.coordinator.wait_idle()
    if app.state.redis is not None:
        await app.state.redis.aclose()


def create_app(
    engine: Optional[AsyncEngine] = None,
    provider: Optional[CompletionProvider] = None,
    redis_client: Optional[Redis] = None,
) -> FastAPI:
    configure_logging()

    app = FastAPI(
        title="Therapy Chat API",
        version="0.1.0",
        lifespan=lifespan,
    )

    # CORS middleware - must be added before other middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Middleware
    app.add_middleware(LoggingMiddleware)

    engine = engine or database.engine
    session_factory = database.build_session_factory(engine)
    if provider is None:
        provider = OpenAIProvider(settings.OPENAI_API_KEY, default_model=settings.OPENAI_MODEL)
    if redis_client is None:
        redis_client = get_redis_client()

    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.redis = redis_client
    app.state.chat = build_chat_services(settings, session_factory, provider, redis_client)

    # API routes
    prefix = settings.API_V1_PREFIX
    app.include_router(auth.router, prefix=prefix)
    app.include_router(sessions.router, prefix=prefix)
    app.include_router(chat.router, prefix=prefix)
    app.include_router(partners.router, prefix=prefix)
    app.include_router(chat_websocket.router, prefix=prefix)

    @app.get("/health", tags=["health"])
    async def health_check() -> dict:
        return {
            "status": "ok",
            "environment": settings.ENVIRONMENT,
            "connections": len(app.state.chat.registry.connected_users()),
            "inFlightReplies": app.state.chat.coordinator.in_flight,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import os
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True,
    )
