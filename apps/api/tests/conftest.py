from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-service-key")

from checkin_api.config import AppConfig, get_config  # noqa: E402
from checkin_api.main import app  # noqa: E402
from checkin_api.supabase import SupabaseError, get_optional_supabase, get_supabase  # noqa: E402

CREATED_BASE = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _matches(row: Dict[str, Any], column: str, expression: str) -> bool:
    op, _, operand = expression.partition(".")
    value = row.get(column)
    if op == "is" and operand == "null":
        return value is None
    if value is None:
        return False
    if op == "eq":
        return str(value) == operand
    if op == "gte":
        return str(value) >= operand
    if op == "lte":
        return str(value) <= operand
    raise AssertionError(f"unsupported filter {column}={expression}")


class FakeSupabase:
    """In-memory stand-in for the auth and REST calls the API makes."""

    def __init__(self) -> None:
        self.users: Dict[str, Dict[str, Any]] = {}
        self.codes: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self.rows: List[Dict[str, Any]] = []
        self.calls: List[tuple] = []
        self.otp_error: Optional[SupabaseError] = None
        self.user_error: Optional[SupabaseError] = None
        self.insert_error: Optional[Exception] = None
        self.select_error: Optional[Exception] = None
        self.insert_returns_nothing = False
        self.health_status = 200
        self.health_error: Optional[Exception] = None
        self._next_id = 1

    def add_user(self, token: str, user_id: str, email: Optional[str] = None) -> None:
        self.users[token] = {"id": user_id, "email": email}

    def issue_code(self, email: str, code: str, session: Dict[str, Any]) -> None:
        self.codes[(email, code)] = session

    async def get_user(self, access_token: str) -> Dict[str, Any]:
        self.calls.append(("get_user", access_token))
        if self.user_error is not None:
            raise self.user_error
        if access_token not in self.users:
            raise SupabaseError(403, "invalid JWT: token is expired", error_code="bad_jwt")
        return dict(self.users[access_token])

    async def sign_in_with_otp(self, email, *, redirect_to=None, create_user=True) -> None:
        self.calls.append(("sign_in_with_otp", email, redirect_to, create_user))
        if self.otp_error is not None:
            raise self.otp_error

    async def verify_otp(self, email, token, *, type="email") -> Dict[str, Any]:
        self.calls.append(("verify_otp", email, token, type))
        session = self.codes.pop((email, token), None)
        if session is None:
            raise SupabaseError(403, "Token has expired or is invalid", error_code="otp_expired")
        return session

    async def insert(self, table, payload, *, params=None) -> List[Dict[str, Any]]:
        self.calls.append(("insert", table, payload, params))
        if self.insert_error is not None:
            raise self.insert_error
        if self.insert_returns_nothing:
            return []
        row = dict(payload)
        row["id"] = self._next_id
        row["created_at"] = (CREATED_BASE + timedelta(seconds=self._next_id)).isoformat()
        self._next_id += 1
        self.rows.append(row)
        return [dict(row)]

    async def select(self, table, params) -> List[Dict[str, Any]]:
        self.calls.append(("select", table, params))
        if self.select_error is not None:
            raise self.select_error
        result = []
        for row in self.rows:
            keep = True
            for key, expression in params.items():
                if key in ("select", "order"):
                    continue
                if key == "and":
                    for clause in expression.strip("()").split(","):
                        column, _, rest = clause.partition(".")
                        keep = keep and _matches(row, column, rest)
                else:
                    keep = keep and _matches(row, key, expression)
            if keep:
                result.append(dict(row))
        return result

    async def health(self) -> httpx.Response:
        self.calls.append(("health",))
        if self.health_error is not None:
            raise self.health_error
        return httpx.Response(self.health_status, json={"name": "GoTrue"})


@pytest.fixture
def fake_supabase() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def config() -> AppConfig:
    return AppConfig(
        supabase_url="http://localhost:54321",
        supabase_service_role_key="test-service-key",
        allow_public_access=False,
        default_redirect_url="http://localhost:3000/welcome",
    )


@pytest.fixture
def client(fake_supabase: FakeSupabase, config: AppConfig):
    app.dependency_overrides[get_supabase] = lambda: fake_supabase
    app.dependency_overrides[get_optional_supabase] = lambda: fake_supabase
    app.dependency_overrides[get_config] = lambda: config
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def lenient_client(client):
    """Client that returns 500 responses instead of re-raising server errors."""
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
