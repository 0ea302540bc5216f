"""
API Router para suscripciones al newsletter de cada marca.

Un único handler genérico, registrado una vez por cada ruta de cada marca.
"""
import json
import logging

from fastapi import APIRouter, Depends, Request

from ..config import BrandSettings, Settings
from ..schemas.signup_schema import SubscribeResponse, ErrorResponse
from ..services.signup_service import SignupService
from ..utils import client_ip, client_address

logger = logging.getLogger(__name__)


def get_signup_service(request: Request) -> SignupService:
    return request.app.state.signup_service


def enforce_rate_limit(request: Request):
    hops = request.app.state.settings.trusted_proxy_hops
    request.app.state.rate_limiter.check(client_address(request, hops))


async def read_payload(request: Request) -> dict:
    """
    Lee el body como JSON o como formulario (urlencoded/multipart).
    Cualquier body ilegible se trata como vacío (termina en 400 por email inválido).
    """
    content_type = request.headers.get("content-type", "").lower()
    try:
        if "application/json" in content_type:
            data = await request.json()
        elif "form" in content_type:
            form = await request.form()
            data = {key: value for key, value in form.items() if isinstance(value, str)}
        else:
            body = await request.body()
            data = json.loads(body) if body.strip() else {}
    except (ValueError, UnicodeDecodeError) as e:
        logger.warning(f"⚠️ Body ilegible ({content_type or 'sin content-type'}): {e}")
        return {}
    return data if isinstance(data, dict) else {}


def _make_endpoint(brand: BrandSettings):
    async def subscribe(request: Request, service: SignupService = Depends(get_signup_service)):
        payload = await read_payload(request)
        record = await service.subscribe(brand, payload, client_ip(request))
        return SubscribeResponse(ok=True, email=record.email)

    subscribe.__name__ = f"subscribe_{brand.slug}"
    subscribe.__doc__ = f"Suscribir un email al newsletter de {brand.display_name}."
    return subscribe


def build_router(settings: Settings) -> APIRouter:
    router = APIRouter(tags=["subscribe"])
    error_responses = {
        400: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    }

    for brand in settings.brands:
        endpoint = _make_endpoint(brand)
        for path in brand.routes:
            router.add_api_route(
                path,
                endpoint,
                methods=["POST"],
                response_model=SubscribeResponse,
                responses=error_responses,
                dependencies=[Depends(enforce_rate_limit)],
            )
            logger.info(f"📍 Ruta de suscripción registrada: POST {path} -> {brand.slug}")

    return router
