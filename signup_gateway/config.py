"""
Configuración de la aplicación.

Las variables de entorno se leen UNA sola vez al iniciar y se congelan en
modelos pydantic inmutables. Los routers y servicios reciben la configuración
por parámetro, nunca leen os.environ durante un request.
"""
import os
import logging
from typing import Optional, List, Tuple

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

DEFAULT_CORS_ORIGINS = [
    "https://justerika.com",
    "https://www.justerika.com",
]


class BrandSettings(BaseModel):
    """Configuración estática de una marca (Erika, StillAwake, ...)."""

    model_config = ConfigDict(frozen=True)

    slug: str
    display_name: str
    routes: Tuple[str, ...]
    sheet_id: Optional[str] = None
    sheet_range: str = "Sheet1!A:D"  # Email, Source, Tag, Timestamp
    from_email: Optional[str] = None
    operator_email: Optional[str] = None
    welcome_template_id: Optional[str] = None
    notify_template_id: Optional[str] = None
    default_source: str
    default_tag: str

    @property
    def storage_configured(self) -> bool:
        return bool(self.sheet_id)


class GoogleCredentials(BaseModel):
    model_config = ConfigDict(frozen=True)

    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    refresh_token: Optional[str] = None
    token_uri: str = "https://oauth2.googleapis.com/token"

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret and self.refresh_token)


class Settings(BaseModel):
    """Configuración del proceso completo. Se construye con Settings.from_env()."""

    model_config = ConfigDict(frozen=True)

    app_name: str = "Signup Gateway"
    port: int = 8080
    postmark_server_token: Optional[str] = None
    google: GoogleCredentials = GoogleCredentials()
    cors_origins: Tuple[str, ...] = tuple(DEFAULT_CORS_ORIGINS)
    rate_limit_max: int = 20
    rate_limit_window_seconds: float = 60.0
    http_timeout_seconds: float = 10.0
    trusted_proxy_hops: int = 0
    brands: Tuple[BrandSettings, ...] = ()

    def get_brand(self, slug: str) -> Optional[BrandSettings]:
        slug = (slug or "").lower()
        for brand in self.brands:
            if brand.slug == slug:
                return brand
        return None

    def missing_required(self, brand: BrandSettings) -> List[str]:
        """Nombres de los valores obligatorios que faltan para atender a la marca."""
        missing = []
        if not brand.storage_configured:
            missing.append(f"{brand.slug.upper()}_SHEET_ID")
        if not self.google.configured:
            missing.append("GOOGLE_CLIENT_ID/GOOGLE_CLIENT_SECRET/GOOGLE_REFRESH_TOKEN")
        if not self.postmark_server_token:
            missing.append("POSTMARK_SERVER_TOKEN")
        return missing

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            port=_int(env.get("PORT"), 8080),
            postmark_server_token=_clean(env.get("POSTMARK_SERVER_TOKEN")),
            google=GoogleCredentials(
                client_id=_clean(env.get("GOOGLE_CLIENT_ID")),
                client_secret=_clean(env.get("GOOGLE_CLIENT_SECRET")),
                refresh_token=_clean(env.get("GOOGLE_REFRESH_TOKEN")),
                token_uri=_clean(env.get("GOOGLE_TOKEN_URI")) or "https://oauth2.googleapis.com/token",
            ),
            cors_origins=_origins(env.get("CORS_ORIGIN")),
            rate_limit_max=_int(env.get("RATE_LIMIT_MAX"), 20),
            rate_limit_window_seconds=_float(env.get("RATE_LIMIT_WINDOW_SECONDS"), 60.0),
            http_timeout_seconds=_float(env.get("HTTP_TIMEOUT_SECONDS"), 10.0),
            trusted_proxy_hops=max(_int(env.get("TRUSTED_PROXY_HOPS"), 0), 0),
            brands=(_erika_from_env(env), _stillawake_from_env(env)),
        )


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _int(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value not in (None, "") else default
    except ValueError:
        logger.warning(f"⚠️ Valor entero inválido '{value}', usando {default}")
        return default


def _float(value: Optional[str], default: float) -> float:
    try:
        return float(value) if value not in (None, "") else default
    except ValueError:
        logger.warning(f"⚠️ Valor numérico inválido '{value}', usando {default}")
        return default


def _origins(value: Optional[str]) -> Tuple[str, ...]:
    # Permitir múltiples orígenes separados por coma
    if not value:
        return tuple(DEFAULT_CORS_ORIGINS)
    return tuple(origin.strip() for origin in value.split(",") if origin.strip())


def _brand_value(env, prefix: str, name: str, *legacy: str) -> Optional[str]:
    value = _clean(env.get(f"{prefix}_{name}"))
    for legacy_name in legacy:
        if value:
            break
        value = _clean(env.get(legacy_name))
    return value


def _erika_from_env(env) -> BrandSettings:
    # Erika fue la primera marca: acepta también los nombres sin prefijo
    return BrandSettings(
        slug="erika",
        display_name="Just Erika",
        routes=("/subscribe", "/subscribe/erika", "/erikaAPI"),
        sheet_id=_brand_value(env, "ERIKA", "SHEET_ID", "GOOGLE_SHEET_ID"),
        sheet_range=_brand_value(env, "ERIKA", "SHEET_RANGE") or "Sheet1!A:D",
        from_email=_brand_value(env, "ERIKA", "FROM_EMAIL", "FROM_EMAIL"),
        operator_email=_brand_value(env, "ERIKA", "TO_EMAIL", "TO_EMAIL"),
        welcome_template_id=_brand_value(env, "ERIKA", "WELCOME_TEMPLATE_ID", "POSTMARK_WELCOME_TEMPLATE_ID"),
        notify_template_id=_brand_value(env, "ERIKA", "NOTIFY_TEMPLATE_ID", "POSTMARK_NOTIFY_TEMPLATE_ID"),
        default_source=_brand_value(env, "ERIKA", "DEFAULT_SOURCE") or "erika_landing",
        default_tag=_brand_value(env, "ERIKA", "DEFAULT_TAG") or "Intimate Drops",
    )


def _stillawake_from_env(env) -> BrandSettings:
    return BrandSettings(
        slug="stillawake",
        display_name="StillAwake",
        routes=("/subscribe/stillawake",),
        sheet_id=_brand_value(env, "STILLAWAKE", "SHEET_ID"),
        sheet_range=_brand_value(env, "STILLAWAKE", "SHEET_RANGE") or "Sheet1!A:D",
        from_email=_brand_value(env, "STILLAWAKE", "FROM_EMAIL"),
        operator_email=_brand_value(env, "STILLAWAKE", "TO_EMAIL"),
        welcome_template_id=_brand_value(env, "STILLAWAKE", "WELCOME_TEMPLATE_ID"),
        notify_template_id=_brand_value(env, "STILLAWAKE", "NOTIFY_TEMPLATE_ID"),
        default_source=_brand_value(env, "STILLAWAKE", "DEFAULT_SOURCE") or "stillawake_footer",
        default_tag=_brand_value(env, "STILLAWAKE", "DEFAULT_TAG") or "StillAwake",
    )


def log_configuration_warnings(settings: Settings) -> None:
    """Advierte al iniciar sobre valores faltantes (obligatorios u opcionales)."""
    for brand in settings.brands:
        missing = settings.missing_required(brand)
        if missing:
            logger.warning(
                f"⚠️ [{brand.slug}] Configuración obligatoria faltante: {', '.join(missing)}. "
                f"Las suscripciones responderán 500."
            )
        if not brand.from_email:
            logger.warning(f"⚠️ [{brand.slug}] FROM_EMAIL no configurado, no se enviarán emails")
        if not brand.operator_email:
            logger.warning(f"⚠️ [{brand.slug}] TO_EMAIL no configurado, no se notificará al operador")
        if not brand.welcome_template_id:
            logger.info(f"[{brand.slug}] Sin template de bienvenida, se usará el texto por defecto")
        if not brand.notify_template_id:
            logger.info(f"[{brand.slug}] Sin template de notificación, se usará el texto por defecto")


# Instancia singleton de Settings
_settings_instance = None


def get_settings() -> Settings:
    """Retorna la instancia de Settings, leyendo el entorno la primera vez."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings.from_env()
    return _settings_instance


def clear_settings_cache():
    """Descarta la instancia cacheada (la próxima llamada vuelve a leer el entorno)."""
    global _settings_instance
    _settings_instance = None
