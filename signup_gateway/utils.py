import re
from datetime import datetime, timezone
from typing import Any, Mapping

# Claves candidatas en orden de prioridad (gana la primera con valor)
EMAIL_KEYS = ("email", "Email", "emailAddress", "email_address")

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

FIELD_MAX_LENGTH = 100


def extract_email(payload: Mapping[str, Any]) -> str:
    """
    Obtiene el email de un formulario con nombres de campo arbitrarios.

    Primero prueba las claves conocidas (email, Email, emailAddress,
    email_address); si ninguna tiene valor, devuelve el primer campo de texto
    que contenga "@" (en orden de inserción). Si no encuentra nada devuelve "".

    Ejemplos:
    - {"email": "A@B.com "} -> "a@b.com"
    - {"nombre": "x", "contacto": "c@d.com"} -> "c@d.com"
    - {"nombre": "x"} -> ""

    Limitación conocida: un campo no relacionado que contenga "@" puede
    tomarse como email si no hay ninguna clave conocida.
    """
    if not payload:
        return ""

    for key in EMAIL_KEYS:
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip().lower()

    for value in payload.values():
        if isinstance(value, str) and "@" in value:
            return value.strip().lower()

    return ""


def is_valid_email(email: str) -> bool:
    """Chequeo sintáctico mínimo: local@dominio.tld sin espacios."""
    if not email or not isinstance(email, str):
        return False
    return bool(EMAIL_PATTERN.match(email))


def clip_field(value: Any, default: str, limit: int = FIELD_MAX_LENGTH) -> str:
    """Normaliza source/tag: recorta espacios, aplica el default y limita el largo."""
    if not isinstance(value, str) or not value.strip():
        value = default
    return value.strip()[:limit]


def client_ip(request) -> str:
    # Solo informativa (va en los emails): la primera entrada la puede falsear el cliente
    forwarded = request.headers.get("x-forwarded-for", "")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def client_address(request, trusted_hops: int = 0) -> str:
    """
    IP usada como clave del rate limit.

    Con trusted_hops=0 se usa la IP del peer TCP. Con N proxies de confianza
    delante se usa la entrada de X-Forwarded-For que agregó el último de
    ellos (la N-ésima desde la derecha); las entradas de la izquierda las
    controla el cliente.
    """
    if trusted_hops > 0:
        hops = [h.strip() for h in request.headers.get("x-forwarded-for", "").split(",") if h.strip()]
        if len(hops) >= trusted_hops:
            return hops[-trusted_hops]
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def utc_timestamp() -> str:
    """Instante actual en ISO-8601 UTC con milisegundos, ej: 2026-10-19T12:00:00.000Z"""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")
