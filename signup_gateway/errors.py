"""
Errores del flujo de suscripción.

Cada error lleva el status HTTP y el mensaje público que ve el cliente.
El detalle interno (respuesta del proveedor, stack trace) solo va al log.
"""


class SignupError(Exception):
    status_code = 500
    public_message = "Server error"

    def __init__(self, detail: str = "", public_message: str = None):
        super().__init__(detail or self.public_message)
        self.detail = detail
        if public_message is not None:
            self.public_message = public_message


class ClientInputError(SignupError):
    """Email faltante o mal formado."""

    status_code = 400
    public_message = "Valid email is required."


class ConfigurationError(SignupError):
    """Falta un valor obligatorio de la marca (planilla, credenciales)."""

    status_code = 500
    public_message = "Signup is temporarily unavailable."


class UpstreamRecordError(SignupError):
    """Falló el append en la planilla. Corta el request."""

    status_code = 500
    public_message = "Server error"


class UpstreamNotifyError(SignupError):
    """Falló el envío de un email. Solo se loguea, nunca llega al cliente."""


class RateLimitExceeded(SignupError):
    status_code = 429
    public_message = "Too many requests. Try again shortly."
