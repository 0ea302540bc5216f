"""
Landing pages estáticas de cada marca. El formulario de cada página hace POST
(urlencoded) a la ruta de suscripción de su marca.

Se registra una ruta GET por marca (más "/" para la marca por defecto), así
cualquier otra ruta, incluidas las de suscripción, conserva su 404/405.
"""
import logging
from pathlib import Path

from fastapi import APIRouter
from fastapi.responses import FileResponse

from ..config import BrandSettings, Settings

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).parent.parent / "static"

DEFAULT_BRAND = "erika"


def _make_page(page: Path):
    async def landing():
        return FileResponse(page, media_type="text/html")

    return landing


def _page_for(brand: BrandSettings) -> Path:
    return STATIC_DIR / f"{brand.slug}.html"


def build_router(settings: Settings) -> APIRouter:
    router = APIRouter(tags=["landing"])

    for brand in settings.brands:
        page = _page_for(brand)
        if not page.is_file():
            logger.warning(f"⚠️ [{brand.slug}] Sin landing page en {page}")
            continue
        paths = [f"/{brand.slug}"]
        if brand.slug == DEFAULT_BRAND:
            paths.insert(0, "/")
        for path in paths:
            router.add_api_route(path, _make_page(page), methods=["GET"], include_in_schema=False)
            logger.info(f"📄 Landing registrada: GET {path} -> {brand.slug}")

    return router
