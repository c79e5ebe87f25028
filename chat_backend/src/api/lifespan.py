import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from src.db.database import create_db_engine, create_session_factory, init_db
from src.services.openai_client import OpenAIChatClient

logger = logging.getLogger("uvicorn.error")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the database engine and the OpenAI client at startup; release both at shutdown.

    A provider already placed on app.state (tests inject one) is used as-is and left open.
    """
    settings = app.state.settings
    engine = create_db_engine(settings.DATABASE_URL)
    init_db(engine)
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    logger.info(f"Startup: database backend={engine.url.get_backend_name()}")

    owns_provider = getattr(app.state, "provider", None) is None
    if owns_provider:
        app.state.provider = OpenAIChatClient(
            api_key=settings.OPENAI_API_KEY,
            base_url=settings.OPENAI_BASE_URL,
            timeout=settings.OPENAI_TIMEOUT_SECONDS,
        )
    app.state.started_at = time.monotonic()
    try:
        yield
    finally:
        if owns_provider:
            app.state.provider.close()
            app.state.provider = None
        engine.dispose()
        app.state.session_factory = None
        logger.info("Shutdown: database engine disposed")
