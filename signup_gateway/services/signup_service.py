"""
Flujo de una suscripción:

    RECEIVED -> NORMALIZED -> VALIDATED -> RECORDED -> NOTIFIED -> RESPONDED

Estados terminales de error: email inválido (400), marca sin configurar (500)
y fallo al guardar en la planilla (500). Los emails nunca cambian la respuesta
una vez que la fila quedó guardada.
"""
import logging
from typing import Any, Mapping

from ..config import BrandSettings, Settings
from ..errors import ClientInputError, ConfigurationError
from ..schemas.signup_schema import SubscriberRecord
from ..utils import extract_email, is_valid_email, clip_field

logger = logging.getLogger(__name__)


class SignupService:
    def __init__(self, settings: Settings, recorder, notifier):
        self.settings = settings
        self.recorder = recorder
        self.notifier = notifier

    async def subscribe(self, brand: BrandSettings, payload: Mapping[str, Any], signup_ip: str) -> SubscriberRecord:
        email = extract_email(payload)
        source = clip_field(payload.get("source") if payload else None, brand.default_source)
        tag = clip_field(payload.get("tag") if payload else None, brand.default_tag)

        logger.info(f"📨 [{brand.slug}] Suscripción recibida: email={email!r} source={source!r} tag={tag!r}")

        if not is_valid_email(email):
            raise ClientInputError(f"invalid email {email!r}")

        missing = self.settings.missing_required(brand)
        if missing:
            logger.error(f"❌ [{brand.slug}] Configuración faltante: {', '.join(missing)}")
            raise ConfigurationError(f"missing {', '.join(missing)}")

        # Si falla, UpstreamRecordError corta acá y no se envía ningún email
        record = await self.recorder.append(brand, email, source, tag)
        record = record.model_copy(update={"signup_ip": signup_ip})

        results = await self.notifier.notify_all(brand, record)
        summary = ", ".join(f"{r.kind}={r.status}" for r in results)
        logger.info(f"✅ [{brand.slug}] Suscripción completa para {email} ({summary})")
        return record
