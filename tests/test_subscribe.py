"""
Escenarios end-to-end de las rutas de suscripción.

Run: python -m pytest tests/ -v
"""
from signup_gateway.config import Settings

from .conftest import FakeRecorder, FakePostmark


class TestErikaRoute:
    def test_json_signup_records_and_notifies(self, client, recorder, postmark):
        res = client.post("/subscribe", json={"email": "a@b.com", "source": "x", "tag": "y"},
                          headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})

        assert res.status_code == 200
        assert res.json() == {"ok": True, "email": "a@b.com"}
        assert recorder.calls == [{"brand": "erika", "email": "a@b.com", "source": "x", "tag": "y"}]

        welcome = next(m for m in postmark.sent if m["to"] == "a@b.com")
        assert welcome["type"] == "plain"
        assert "Welcome to Just Erika" in welcome["text"]
        assert welcome["from"] == "hello@justerika.com"

        operator = next(m for m in postmark.sent if m["to"] == "ops@justerika.com")
        assert "203.0.113.7" in operator["text"]
        assert "Source: x" in operator["text"]

    def test_operator_email_reuses_recorder_timestamp(self, client, postmark):
        client.post("/subscribe", json={"email": "a@b.com"})
        operator = next(m for m in postmark.sent if m["to"] == "ops@justerika.com")
        timestamp = operator["text"].split("Timestamp: ")[1].splitlines()[0]
        assert timestamp.endswith("Z")
        assert "T" in timestamp

    def test_templates_used_when_configured(self, make_client, env, postmark):
        env["POSTMARK_WELCOME_TEMPLATE_ID"] = "123456"
        env["ERIKA_NOTIFY_TEMPLATE_ID"] = "operator-alert"
        client = make_client(Settings.from_env(env))

        res = client.post("/subscribe", json={"email": "a@b.com", "source": "x", "tag": "y"})

        assert res.status_code == 200
        templates = {m["template"]: m for m in postmark.sent}
        assert set(templates) == {"123456", "operator-alert"}
        model = templates["123456"]["model"]
        assert model["email"] == model["subscriber_email"] == "a@b.com"
        assert model["source"] == model["signup_source"] == "x"
        assert model["timestamp"] == model["signup_timestamp"]
        assert templates["operator-alert"]["model"]["timestamp"] == model["timestamp"]

    def test_form_encoded_body(self, client, recorder):
        res = client.post("/subscribe", data={"email": "Form@Example.com", "source": "footer"})
        assert res.status_code == 200
        assert res.json()["email"] == "form@example.com"
        assert recorder.calls[0]["source"] == "footer"

    def test_capitalized_email_key(self, client, recorder):
        res = client.post("/subscribe", json={"Email": "c@d.com"})
        assert res.status_code == 200
        assert res.json() == {"ok": True, "email": "c@d.com"}
        assert recorder.calls[0]["email"] == "c@d.com"

    def test_defaults_applied_when_source_and_tag_missing(self, client, recorder):
        client.post("/subscribe", json={"email": "a@b.com"})
        assert recorder.calls[0]["source"] == "erika_landing"
        assert recorder.calls[0]["tag"] == "Intimate Drops"

    def test_source_and_tag_truncated(self, client, recorder):
        client.post("/subscribe", json={"email": "a@b.com", "source": "s" * 500, "tag": "t" * 500})
        assert len(recorder.calls[0]["source"]) == 100
        assert len(recorder.calls[0]["tag"]) == 100

    def test_legacy_route(self, client, recorder):
        res = client.post("/erikaAPI", data={"email": "a@b.com"})
        assert res.status_code == 200
        assert recorder.calls[0]["brand"] == "erika"

    def test_duplicate_signups_produce_two_records(self, client, recorder):
        client.post("/subscribe", json={"email": "a@b.com"})
        client.post("/subscribe", json={"email": "a@b.com"})
        assert len(recorder.calls) == 2


class TestStillAwakeRoute:
    def test_brand_specific_configuration(self, client, recorder, postmark):
        res = client.post("/subscribe/stillawake", data={"email": "night@owl.io"})

        assert res.status_code == 200
        assert recorder.calls[0]["brand"] == "stillawake"
        assert recorder.calls[0]["source"] == "stillawake_footer"
        welcome = next(m for m in postmark.sent if m["to"] == "night@owl.io")
        assert welcome["from"] == "hello@stillawake.com"
        assert "Welcome to StillAwake" in welcome["text"]


class TestRejections:
    def test_empty_body_is_rejected_without_collaborator_calls(self, client, recorder, postmark):
        res = client.post("/subscribe", json={})
        assert res.status_code == 400
        assert res.json() == {"error": "Valid email is required."}
        assert recorder.calls == []
        assert postmark.sent == []

    def test_no_body_at_all(self, client, recorder):
        res = client.post("/subscribe")
        assert res.status_code == 400
        assert recorder.calls == []

    def test_payload_without_at_sign(self, client, recorder):
        res = client.post("/subscribe", json={"name": "erika", "note": "hello"})
        assert res.status_code == 400
        assert recorder.calls == []

    def test_malformed_email(self, client):
        res = client.post("/subscribe", json={"email": "not@valid"})
        assert res.status_code == 400

    def test_invalid_json(self, client, recorder):
        res = client.post("/subscribe", content=b"{not json", headers={"Content-Type": "application/json"})
        assert res.status_code == 400
        assert recorder.calls == []

    def test_other_methods_not_allowed(self, client):
        res = client.put("/subscribe", json={"email": "a@b.com"})
        assert res.status_code == 405

    def test_get_on_subscribe_routes_is_not_allowed(self, client, recorder):
        for path in ("/subscribe", "/subscribe/erika", "/erikaAPI", "/subscribe/stillawake"):
            res = client.get(path)
            assert res.status_code == 405, path
            assert "POST" in res.headers["allow"]
        assert recorder.calls == []


class TestFailureSemantics:
    def test_recorder_failure_returns_500_and_skips_notifier(self, make_client, settings, postmark):
        failing = FakeRecorder(fail=True)
        client = make_client(settings, recorder=failing)

        res = client.post("/subscribe", json={"email": "a@b.com"})

        assert res.status_code == 500
        assert res.json() == {"error": "Server error"}
        assert len(failing.calls) == 1
        assert postmark.sent == []

    def test_notifier_failure_still_returns_200(self, make_client, settings, recorder):
        broken = FakePostmark(fail=True)
        client = make_client(settings, postmark=broken)

        res = client.post("/subscribe", json={"email": "a@b.com"})

        assert res.status_code == 200
        assert res.json() == {"ok": True, "email": "a@b.com"}
        # Ambos envíos se intentaron aunque el primero falló
        assert len(broken.sent) == 2

    def test_missing_sheet_id_returns_500(self, make_client, env, recorder, postmark):
        env.pop("GOOGLE_SHEET_ID")
        client = make_client(Settings.from_env(env))

        res = client.post("/subscribe", json={"email": "a@b.com"})

        assert res.status_code == 500
        assert res.json() == {"error": "Signup is temporarily unavailable."}
        assert recorder.calls == []
        assert postmark.sent == []

    def test_missing_postmark_token_returns_500(self, make_client, env, recorder):
        env.pop("POSTMARK_SERVER_TOKEN")
        client = make_client(Settings.from_env(env))
        assert client.post("/subscribe", json={"email": "a@b.com"}).status_code == 500
        assert recorder.calls == []

    def test_missing_sender_skips_emails(self, make_client, env, postmark):
        env.pop("FROM_EMAIL")
        client = make_client(Settings.from_env(env))

        res = client.post("/subscribe", json={"email": "a@b.com"})

        assert res.status_code == 200
        assert postmark.sent == []


class TestRateLimit:
    def test_21st_request_is_rejected(self, client, recorder):
        for _ in range(20):
            assert client.post("/subscribe", json={"email": "a@b.com"}).status_code == 200

        res = client.post("/subscribe", json={"email": "a@b.com"})

        assert res.status_code == 429
        assert res.json() == {"error": "Too many requests. Try again shortly."}
        assert len(recorder.calls) == 20

    def test_forwarded_header_does_not_reset_limit(self, client, recorder):
        codes = [
            client.post("/subscribe", json={"email": "a@b.com"},
                        headers={"X-Forwarded-For": f"1.2.3.{i}"}).status_code
            for i in range(30)
        ]

        assert codes[:20] == [200] * 20
        assert set(codes[20:]) == {429}
        assert len(recorder.calls) == 20

    def test_limit_is_per_client_address(self, make_client, env):
        env["TRUSTED_PROXY_HOPS"] = "1"
        client = make_client(Settings.from_env(env))
        for _ in range(20):
            client.post("/subscribe", json={"email": "a@b.com"}, headers={"X-Forwarded-For": "198.51.100.1"})

        blocked = client.post("/subscribe", json={"email": "a@b.com"}, headers={"X-Forwarded-For": "198.51.100.1"})
        other = client.post("/subscribe", json={"email": "a@b.com"}, headers={"X-Forwarded-For": "198.51.100.2"})

        assert blocked.status_code == 429
        assert other.status_code == 200

    def test_only_trusted_hop_is_used_behind_proxy(self, make_client, env, recorder):
        env["TRUSTED_PROXY_HOPS"] = "1"
        client = make_client(Settings.from_env(env))

        codes = [
            client.post("/subscribe", json={"email": "a@b.com"},
                        headers={"X-Forwarded-For": f"spoof-{i}, 198.51.100.9"}).status_code
            for i in range(25)
        ]

        assert codes.count(200) == 20
        assert codes[-1] == 429
        assert len(recorder.calls) == 20


class TestHealthAndPages:
    def test_health(self, client):
        res = client.get("/health")
        assert res.status_code == 200
        body = res.json()
        assert body["ok"] is True
        assert body["service"] == "Signup Gateway"
        assert body["time"].endswith("Z")

    def test_security_headers(self, client):
        res = client.get("/health")
        assert res.headers["X-Content-Type-Options"] == "nosniff"
        assert res.headers["X-Frame-Options"] == "DENY"

    def test_landing_pages(self, client):
        root = client.get("/")
        assert root.status_code == 200
        assert "text/html" in root.headers["content-type"]
        assert "Just Erika" in root.text

        stillawake = client.get("/stillawake")
        assert stillawake.status_code == 200
        assert "/subscribe/stillawake" in stillawake.text

    def test_unknown_brand_page(self, client):
        assert client.get("/nobody").status_code == 404

    def test_favicon(self, client):
        assert client.get("/favicon.ico").status_code == 204
