import os
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, get_settings, clear_settings_cache, log_configuration_warnings
from .errors import SignupError
from .routers import health, landing, subscribe
from .services.email_service import Notifier, PostmarkClient
from .services.rate_limit import SlidingWindowRateLimiter
from .services.sheets_service import SheetsRecorder
from .services.signup_service import SignupService


def _log_level() -> int:
    # LOG_LEVEL desconocido (ej: "verbose") -> INFO en vez de romper el arranque
    level = logging.getLevelName(os.getenv("LOG_LEVEL", "INFO").strip().upper())
    return level if isinstance(level, int) else logging.INFO


# Configurar logging
logging.basicConfig(level=_log_level())
logger = logging.getLogger(__name__)

# Cargar variables de entorno desde .env (solo en desarrollo local)
project_dir = Path(__file__).parent.parent  # signup_gateway/ -> raíz del proyecto
env_path = project_dir / ".env"
if load_dotenv(dotenv_path=env_path):
    logger.info(f"Variables de entorno cargadas desde: {env_path}")
    # Descartar settings leídos antes de cargar el .env
    clear_settings_cache()


def add_security_headers(app: FastAPI):
    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        response.headers["Cross-Origin-Opener-Policy"] = "same-origin"
        return response


def add_error_handlers(app: FastAPI):
    @app.exception_handler(SignupError)
    async def signup_error_handler(request: Request, exc: SignupError):
        if exc.status_code >= 500:
            logger.error(f"❌ {request.method} {request.url.path} -> {exc.status_code}: {exc.detail or exc}")
        else:
            logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.detail or exc}")
        # No filtrar detalles internos al cliente
        return JSONResponse(status_code=exc.status_code, content={"error": exc.public_message})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.error(f"❌ Error inesperado en {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Server error"})


def create_app(
    settings: Optional[Settings] = None,
    recorder=None,
    notifier=None,
    rate_limiter: Optional[SlidingWindowRateLimiter] = None,
) -> FastAPI:
    """
    Arma la aplicación. Los colaboradores externos (planilla, email) se pueden
    inyectar; si no, se construyen a partir de la configuración.
    """
    settings = settings or get_settings()
    log_configuration_warnings(settings)

    if recorder is None:
        recorder = SheetsRecorder(settings.google, timeout=settings.http_timeout_seconds)
    if notifier is None:
        notifier = Notifier(PostmarkClient(settings.postmark_server_token, timeout=settings.http_timeout_seconds))
    if rate_limiter is None:
        rate_limiter = SlidingWindowRateLimiter(settings.rate_limit_max, settings.rate_limit_window_seconds)

    app = FastAPI(title=settings.app_name, version="0.1.0", redirect_slashes=False)
    app.state.settings = settings
    app.state.rate_limiter = rate_limiter
    app.state.signup_service = SignupService(settings, recorder, notifier)

    logger.info(f"🌐 Orígenes CORS permitidos: {list(settings.cors_origins)}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )
    add_security_headers(app)
    add_error_handlers(app)

    app.include_router(health.router)
    app.include_router(subscribe.build_router(settings))
    app.include_router(landing.build_router(settings))

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    port = get_settings().port
    logger.info(f"🚀 Signup gateway escuchando en el puerto {port}")
    uvicorn.run("signup_gateway.main:app", host="0.0.0.0", port=port)
