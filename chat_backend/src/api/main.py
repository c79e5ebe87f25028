import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware

from src.services.openai_client import OpenAIChatClient
from src.settings import Settings, get_settings

from .errors import register_exception_handlers
from .lifespan import lifespan
from .routes import auth, chat, conversations, health

logger = logging.getLogger("uvicorn.error")


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None, provider: Optional[OpenAIChatClient] = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Explicit settings; defaults to the environment-derived settings.
        provider: Preconstructed OpenAI client; when omitted the lifespan builds one from settings.
    """
    settings = settings or get_settings()
    logger.setLevel(settings.LOG_LEVEL.upper())

    app = FastAPI(
        title=settings.APP_NAME,
        description=settings.APP_DESCRIPTION,
        version=settings.APP_VERSION,
        openapi_tags=[
            {"name": "health", "description": "Service health and metadata"},
            {"name": "auth", "description": "User registration, login and profile"},
            {"name": "conversations", "description": "Conversation storage, search and messages"},
            {"name": "chat", "description": "Language model relay"},
        ],
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.provider = provider

    # Log ALLOWED_HOSTS at startup for diagnostics
    logger.info(f"Startup: ALLOWED_HOSTS={settings.ALLOWED_HOSTS}")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Trusted Host handling:
    allowed_hosts = [h.strip() for h in settings.ALLOWED_HOSTS if str(h).strip()]
    if allowed_hosts and "*" not in allowed_hosts:
        logger.info(f"TrustedHostMiddleware enabled with allowed_hosts={allowed_hosts}")
        app.add_middleware(TrustedHostMiddleware, allowed_hosts=allowed_hosts)
    else:
        logger.warning(
            "TrustedHostMiddleware disabled (ALLOWED_HOSTS unset/empty or includes '*'). "
            "This is suitable for development/preview. Configure explicit hosts for production."
        )

    # Lightweight middleware to log incoming host header for diagnostics
    @app.middleware("http")
    async def log_request_host(request: Request, call_next):
        host = request.headers.get("host", "<none>")
        logger.debug(f"Incoming request host={host}")
        response = await call_next(request)
        return response

    register_exception_handlers(app, production=settings.is_production)

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(conversations.router)
    app.include_router(chat.router)
    return app


app = create_app()
