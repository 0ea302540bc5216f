"""
Servicio de Email usando Postmark
Documentación: https://postmarkapp.com/developer/api/email-api
"""
import asyncio
from html import escape
import logging
from typing import Optional, List

import httpx

from ..config import BrandSettings
from ..errors import UpstreamNotifyError
from ..schemas.signup_schema import SubscriberRecord, NotifyResult

logger = logging.getLogger(__name__)

POSTMARK_API_URL = "https://api.postmarkapp.com"
MESSAGE_STREAM = "outbound"


class PostmarkClient:
    """Cliente mínimo de la API REST de Postmark (envío simple y por template)."""

    def __init__(self, server_token: str, timeout: float = 10.0, transport: httpx.AsyncBaseTransport = None):
        self.server_token = server_token
        self.timeout = timeout
        self.transport = transport

    async def _post(self, path: str, payload: dict) -> dict:
        headers = {
            "Accept": "application/json",
            "X-Postmark-Server-Token": self.server_token or "",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(f"{POSTMARK_API_URL}{path}", json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise UpstreamNotifyError(f"{type(e).__name__}: {e}") from e

        if response.status_code >= 300:
            raise UpstreamNotifyError(f"Postmark status {response.status_code}: {response.text}")
        return response.json()

    async def send_email(
        self,
        sender: str,
        to: str,
        subject: str,
        text_body: str,
        html_body: Optional[str] = None,
    ) -> dict:
        payload = {
            "From": sender,
            "To": to,
            "Subject": subject,
            "TextBody": text_body,
            "MessageStream": MESSAGE_STREAM,
        }
        if html_body:
            payload["HtmlBody"] = html_body
        return await self._post("/email", payload)

    async def send_with_template(self, template: str, sender: str, to: str, model: dict) -> dict:
        payload = {
            "From": sender,
            "To": to,
            "TemplateModel": model,
            "MessageStream": MESSAGE_STREAM,
        }
        # Postmark acepta el ID numérico o el alias del template
        if str(template).isdigit():
            payload["TemplateId"] = int(template)
        else:
            payload["TemplateAlias"] = template
        return await self._post("/email/withTemplate", payload)


def _welcome_content(brand: BrandSettings, record: SubscriberRecord):
    subject = f"Welcome to {brand.display_name}"
    text_body = f"""
Welcome to {brand.display_name}!

Thanks for signing up with {record.email}. You're on the list and you'll be
the first to hear about new drops.

If this wasn't you, just ignore this email.

---
{brand.display_name}
"""
    html_body = f"""
    <!DOCTYPE html>
    <html>
    <head>
        <meta charset="utf-8">
        <meta name="viewport" content="width=device-width, initial-scale=1.0">
    </head>
    <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #1f2937; max-width: 600px; margin: 0 auto; padding: 20px;">
        <div style="background: #111827; padding: 24px; border-radius: 12px 12px 0 0; text-align: center;">
            <h1 style="color: white; margin: 0; font-size: 22px;">Welcome to {brand.display_name}</h1>
        </div>
        <div style="background: #ffffff; padding: 24px; border: 1px solid #e5e7eb; border-top: none; border-radius: 0 0 12px 12px;">
            <p>Thanks for signing up with <strong>{escape(record.email)}</strong>.</p>
            <p>You're on the list and you'll be the first to hear about new drops.</p>
            <p style="font-size: 12px; color: #9ca3af;">If this wasn't you, just ignore this email.</p>
        </div>
    </body>
    </html>
    """
    return subject, text_body, html_body


def _operator_content(brand: BrandSettings, record: SubscriberRecord):
    subject = f"New Subscriber: {record.email}"
    lines: List[str] = [
        f"Brand: {brand.display_name}",
        f"Source: {record.source}",
        f"Tag: {record.tag}",
        f"Email: {record.email}",
        f"Timestamp: {record.timestamp}",
        f"IP: {record.signup_ip or 'unknown'}",
    ]
    text_body = "\n".join(lines)
    rows = "".join(
        f'<tr><td style="padding: 6px 0; color: #6b7280;">{label}</td>'
        f'<td style="padding: 6px 0; font-weight: 600;">{escape(value)}</td></tr>'
        for label, value in (line.split(": ", 1) for line in lines)
    )
    html_body = f"""
    <!DOCTYPE html>
    <html>
    <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; color: #1f2937; max-width: 640px; margin: 0 auto; padding: 24px;">
        <h1 style="font-size: 20px;">📨 New subscriber</h1>
        <table style="width: 100%; border-collapse: collapse;">{rows}</table>
    </body>
    </html>
    """
    return subject, text_body, html_body


class Notifier:
    """
    Envía el email de bienvenida al suscriptor y el aviso al operador.

    Ningún método levanta excepciones: cada envío devuelve un NotifyResult
    y los errores del proveedor quedan en el log.
    """

    def __init__(self, client: PostmarkClient):
        self.client = client

    async def send_welcome(self, brand: BrandSettings, record: SubscriberRecord) -> NotifyResult:
        if not brand.from_email:
            logger.warning(f"[{brand.slug}] FROM_EMAIL no configurado, no se envía bienvenida")
            return NotifyResult(kind="welcome", status="skipped", detail="sender not configured")

        return await self._deliver(
            kind="welcome",
            brand=brand,
            to=record.email,
            template_id=brand.welcome_template_id,
            record=record,
            fallback=_welcome_content,
        )

    async def notify_operator(self, brand: BrandSettings, record: SubscriberRecord) -> NotifyResult:
        if not brand.from_email or not brand.operator_email:
            logger.warning(f"[{brand.slug}] FROM_EMAIL/TO_EMAIL no configurados, no se avisa al operador")
            return NotifyResult(kind="operator", status="skipped", detail="sender or operator not configured")

        return await self._deliver(
            kind="operator",
            brand=brand,
            to=brand.operator_email,
            template_id=brand.notify_template_id,
            record=record,
            fallback=_operator_content,
        )

    async def notify_all(self, brand: BrandSettings, record: SubscriberRecord) -> List[NotifyResult]:
        """Corre ambos envíos en paralelo; el fallo de uno no afecta al otro."""
        results = await asyncio.gather(
            self.send_welcome(brand, record),
            self.notify_operator(brand, record),
        )
        return list(results)

    async def _deliver(self, kind, brand, to, template_id, record, fallback) -> NotifyResult:
        mode = "template" if template_id else "fallback"
        try:
            if template_id:
                response = await self.client.send_with_template(
                    template_id, brand.from_email, to, record.template_model()
                )
            else:
                subject, text_body, html_body = fallback(brand, record)
                response = await self.client.send_email(brand.from_email, to, subject, text_body, html_body)
        except Exception as e:
            logger.error(f"[{brand.slug}] Error al enviar email {kind} ({mode}) a {to}: {e}", exc_info=True)
            return NotifyResult(kind=kind, status="failed", mode=mode, detail=str(e))

        logger.info(f"✉️ [{brand.slug}] Email {kind} ({mode}) enviado a {to}. ID: {response.get('MessageID', 'N/A')}")
        return NotifyResult(kind=kind, status="sent", mode=mode)
