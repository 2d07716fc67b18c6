from __future__ import annotations

import httpx

from checkin_api.config import load_config
from checkin_api.main import app
from checkin_api.supabase import get_optional_supabase


def test_health_and_root(client):
    assert client.get("/health").json() == {"status": "ok"}
    assert client.get("/").status_code == 200


def test_ping_reports_flags_not_secrets(client, config):
    config.allow_public_access = True

    body = client.get("/ping").json()

    assert body["ok"] is True
    assert body["env"] == {
        "has_SUPABASE_URL": True,
        "has_SUPABASE_SERVICE_ROLE_KEY": True,
        "ALLOW_PUBLIC_ACCESS": True,
    }
    assert "test-service-key" not in str(body)


def test_diag_reports_assistant_configuration(client, config):
    assert client.get("/diag").json() == {"hasOpenAIKey": False, "assistantId": "missing"}

    config.openai_api_key = "sk-test"
    config.assistant_id = "asst_123"
    assert client.get("/diag").json() == {"hasOpenAIKey": True, "assistantId": "set"}


def test_sb_health_reports_provider_status(client, fake_supabase):
    ok = client.get("/sb-health")
    assert ok.status_code == 200
    assert ok.json()["ok"] is True
    assert ok.json()["urlLooksValid"] is False

    fake_supabase.health_status = 503
    down = client.get("/sb-health")
    assert down.status_code == 502
    assert down.json()["status"] == 503


def test_sb_health_reports_unreachable_provider(client, fake_supabase):
    fake_supabase.health_error = httpx.ConnectError("connection refused")

    response = client.get("/sb-health")

    assert response.status_code == 500
    assert response.json()["ok"] is False
    assert "connection refused" in response.json()["error"]


def test_sb_health_without_credentials(client):
    app.dependency_overrides[get_optional_supabase] = lambda: None

    response = client.get("/sb-health")

    assert response.status_code == 500
    assert response.json()["ok"] is False
    assert "SUPABASE_SERVICE_ROLE_KEY" in response.json()["error"]


def test_unknown_route_uses_error_body(client):
    response = client.get("/nope")

    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}


def test_load_config_reads_environment(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://demo.supabase.co")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")
    monkeypatch.delenv("ALLOW_PUBLIC_ACCESS", raising=False)
    monkeypatch.setenv("ALLOW_PUBLIC_CHECKINS", "true")
    monkeypatch.setenv("OTP_RETRY_AFTER_SECONDS", "30")
    monkeypatch.setenv("CORS_ORIGINS", "https://app.example.com, https://admin.example.com")

    config = load_config()

    assert config.supabase_url == "https://demo.supabase.co"
    assert config.auth_key == "anon"
    assert config.allow_public_access is True
    assert config.otp_retry_after_seconds == 30
    assert config.cors_origins == ["https://app.example.com", "https://admin.example.com"]


def test_public_access_flag_is_off_unless_truthy(monkeypatch):
    monkeypatch.delenv("ALLOW_PUBLIC_CHECKINS", raising=False)
    monkeypatch.delenv("ALLOW_PUBLIC_PROGRESS", raising=False)
    monkeypatch.setenv("ALLOW_PUBLIC_ACCESS", "no")

    assert load_config().allow_public_access is False
