"""
Recorder de suscriptores sobre Google Sheets (API v4, values:append).

La autorización usa un refresh token offline obtenido una sola vez con
scripts/get_google_token.py. El access token se renueva solo cuando vence.
"""
import asyncio
import logging
from urllib.parse import quote

import httpx
import google.auth.transport.requests
import google.oauth2.credentials

from ..config import BrandSettings, GoogleCredentials
from ..errors import UpstreamRecordError
from ..schemas.signup_schema import SubscriberRecord
from ..utils import utc_timestamp

logger = logging.getLogger(__name__)

SHEETS_API_URL = "https://sheets.googleapis.com/v4/spreadsheets"
SHEETS_SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]


class SheetsRecorder:
    """Agrega una fila por suscripción en la planilla de cada marca."""

    def __init__(
        self,
        google_credentials: GoogleCredentials,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport = None,
        credentials=None,
    ):
        self.timeout = timeout
        self.transport = transport
        self._credentials = credentials or google.oauth2.credentials.Credentials(
            token=None,
            refresh_token=google_credentials.refresh_token,
            client_id=google_credentials.client_id,
            client_secret=google_credentials.client_secret,
            token_uri=google_credentials.token_uri,
            scopes=SHEETS_SCOPES,
        )
        self._refresh_lock = asyncio.Lock()

    async def _access_token(self) -> str:
        async with self._refresh_lock:
            if not self._credentials.valid:
                logger.info("🔑 Renovando access token de Google")
                # google-auth es sincrónico: no bloquear el event loop
                await asyncio.to_thread(
                    self._credentials.refresh, google.auth.transport.requests.Request()
                )
            return self._credentials.token

    async def append(self, brand: BrandSettings, email: str, source: str, tag: str) -> SubscriberRecord:
        """
        Agrega [email, source, tag, timestamp] a la planilla de la marca.

        Returns:
            SubscriberRecord con el timestamp asignado en este momento.

        Raises:
            UpstreamRecordError si no se pudo escribir la fila (sin reintentos).
        """
        timestamp = utc_timestamp()
        values = [[email, source, tag, timestamp]]

        try:
            token = await self._access_token()
            url = f"{SHEETS_API_URL}/{brand.sheet_id}/values/{quote(brand.sheet_range, safe='')}:append"

            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    url,
                    params={"valueInputOption": "USER_ENTERED"},
                    headers={"Authorization": f"Bearer {token}"},
                    json={"values": values},
                )
        except httpx.TimeoutException as e:
            logger.error(f"[Sheets:{brand.slug}] Timeout al agregar fila", exc_info=True)
            raise UpstreamRecordError(f"timeout: {e}") from e
        except Exception as e:
            logger.error(f"[Sheets:{brand.slug}] Error al agregar fila: {e}", exc_info=True)
            raise UpstreamRecordError(str(e)) from e

        if response.status_code >= 300:
            logger.error(
                f"[Sheets:{brand.slug}] Append falló con status {response.status_code}: {response.text}"
            )
            raise UpstreamRecordError(f"status {response.status_code}")

        logger.info(f"📝 [Sheets:{brand.slug}] Suscriptor guardado: {email} ({source}/{tag})")
        return SubscriberRecord(email=email, source=source, tag=tag, timestamp=timestamp)
