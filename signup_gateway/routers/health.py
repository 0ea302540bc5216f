import logging

from fastapi import APIRouter, Request
from fastapi.responses import Response

from ..schemas.signup_schema import HealthResponse
from ..utils import utc_timestamp

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health(request: Request):
    logger.info("💓 Health check recibido")
    return HealthResponse(ok=True, service=request.app.state.settings.app_name, time=utc_timestamp())


@router.get("/favicon.ico", tags=["static"])
async def favicon():
    """Handle favicon.ico requests - return 204 No Content"""
    return Response(status_code=204)
