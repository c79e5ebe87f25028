import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request

from src.db.database import ping
from src.settings import Settings

from ..deps import get_app_settings
from ..schemas import ApiInfo, HealthResponse

router = APIRouter(tags=["health"])


@router.get("/", summary="API Info", description="Returns the API name, version and endpoint groups", response_model=ApiInfo)
def api_info(settings: Settings = Depends(get_app_settings)) -> ApiInfo:
    return ApiInfo(
        message=f"{settings.APP_NAME} is running",
        version=settings.APP_VERSION,
        endpoints={"auth": "/auth", "conversations": "/conversations", "chat": "/chat"},
    )


@router.get("/health", summary="Health Check", description="Returns service status, uptime and database connectivity", response_model=HealthResponse)
def health_check(request: Request) -> HealthResponse:
    state = request.app.state
    connected = ping(state.engine)
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        uptime=round(time.monotonic() - state.started_at, 3),
        database="connected" if connected else "disconnected",
    )
