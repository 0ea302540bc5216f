from pydantic import BaseModel
from typing import Optional


class SubscriberRecord(BaseModel):
    """Fila guardada en la planilla de la marca. timestamp lo asigna el recorder."""
    email: str
    source: str
    tag: str
    timestamp: str
    signup_ip: Optional[str] = None

    def template_model(self) -> dict:
        # Los templates de Postmark usan nombres distintos para los mismos datos
        return {
            "email": self.email,
            "source": self.source,
            "tag": self.tag,
            "timestamp": self.timestamp,
            "subscriber_email": self.email,
            "signup_ip": self.signup_ip or "unknown",
            "signup_source": self.source,
            "signup_timestamp": self.timestamp,
        }


class SubscribeResponse(BaseModel):
    ok: bool = True
    email: str


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    ok: bool = True
    service: str
    time: str


class NotifyResult(BaseModel):
    kind: str  # welcome, operator
    status: str  # sent, skipped, failed
    mode: Optional[str] = None  # template, fallback
    detail: Optional[str] = None

    @property
    def sent(self) -> bool:
        return self.status == "sent"
