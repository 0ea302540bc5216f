"""
Fixtures compartidas: configuración completa de ambas marcas y colaboradores
falsos (planilla y Postmark) que registran cada llamada.
"""
import pytest
from fastapi.testclient import TestClient

from signup_gateway.config import Settings
from signup_gateway.errors import UpstreamRecordError, UpstreamNotifyError
from signup_gateway.main import create_app
from signup_gateway.schemas.signup_schema import SubscriberRecord
from signup_gateway.services.email_service import Notifier
from signup_gateway.services.rate_limit import SlidingWindowRateLimiter
from signup_gateway.utils import utc_timestamp

BASE_ENV = {
    "POSTMARK_SERVER_TOKEN": "pm-test-token",
    "GOOGLE_CLIENT_ID": "client-id",
    "GOOGLE_CLIENT_SECRET": "client-secret",
    "GOOGLE_REFRESH_TOKEN": "refresh-token",
    "GOOGLE_SHEET_ID": "erika-sheet",
    "FROM_EMAIL": "hello@justerika.com",
    "TO_EMAIL": "ops@justerika.com",
    "STILLAWAKE_SHEET_ID": "stillawake-sheet",
    "STILLAWAKE_FROM_EMAIL": "hello@stillawake.com",
    "STILLAWAKE_TO_EMAIL": "ops@stillawake.com",
    "RATE_LIMIT_MAX": "20",
    "RATE_LIMIT_WINDOW_SECONDS": "60",
}


class FakeRecorder:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = []

    async def append(self, brand, email, source, tag):
        self.calls.append({"brand": brand.slug, "email": email, "source": source, "tag": tag})
        if self.fail:
            raise UpstreamRecordError("sheets is down")
        return SubscriberRecord(email=email, source=source, tag=tag, timestamp=utc_timestamp())


class FakePostmark:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    async def send_email(self, sender, to, subject, text_body, html_body=None):
        self.sent.append({"type": "plain", "from": sender, "to": to, "subject": subject, "text": text_body})
        if self.fail:
            raise UpstreamNotifyError("Postmark status 500")
        return {"MessageID": "plain-1"}

    async def send_with_template(self, template, sender, to, model):
        self.sent.append({"type": "template", "template": template, "from": sender, "to": to, "model": model})
        if self.fail:
            raise UpstreamNotifyError("Postmark status 500")
        return {"MessageID": "tmpl-1"}


@pytest.fixture
def env():
    return dict(BASE_ENV)


@pytest.fixture
def settings(env):
    return Settings.from_env(env)


@pytest.fixture
def recorder():
    return FakeRecorder()


@pytest.fixture
def postmark():
    return FakePostmark()


@pytest.fixture
def make_client(recorder, postmark):
    def _make(settings, recorder=recorder, postmark=postmark):
        app = create_app(
            settings=settings,
            recorder=recorder,
            notifier=Notifier(postmark),
            rate_limiter=SlidingWindowRateLimiter(settings.rate_limit_max, settings.rate_limit_window_seconds),
        )
        return TestClient(app)

    return _make


@pytest.fixture
def client(make_client, settings):
    return make_client(settings)
