from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, List, Optional

import httpx

from .config import get_config

logger = logging.getLogger(__name__)

RATE_LIMIT_CODES = {"over_email_send_rate_limit", "over_request_rate_limit"}


class SupabaseError(Exception):
    """A non-2xx answer from the auth or REST API."""

    def __init__(
        self,
        status_code: int,
        message: str,
        *,
        error_code: Optional[str] = None,
        retry_after: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.error_code = error_code
        self.retry_after = retry_after

    @property
    def is_rate_limited(self) -> bool:
        return self.status_code == 429 or self.error_code in RATE_LIMIT_CODES


def _parse_retry_after(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    try:
        return max(0, int(value))
    except ValueError:
        return None


def _error_from_response(resp: httpx.Response, action: str) -> SupabaseError:
    try:
        body = resp.json() if resp.content else {}
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    message = (
        body.get("msg")
        or body.get("message")
        or body.get("error_description")
        or body.get("error")
        or resp.text
        or f"Supabase {action} failed with status {resp.status_code}"
    )
    code = body.get("error_code") or body.get("code")
    return SupabaseError(
        resp.status_code,
        str(message),
        error_code=code if isinstance(code, str) else None,
        retry_after=_parse_retry_after(resp.headers.get("Retry-After")),
    )


@dataclass
class SupabaseClient:
    base_url: str
    service_key: str
    auth_key: str
    transport: Optional[httpx.AsyncBaseTransport] = None

    def _headers(
        self,
        *,
        apikey: Optional[str] = None,
        bearer: Optional[str] = None,
        extra: Optional[Dict[str, str]] = None,
    ) -> Dict[str, str]:
        key = apikey or self.service_key
        headers = {
            "apikey": key,
            "Authorization": f"Bearer {bearer or key}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if extra:
            headers.update(extra)
        return headers

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        url = f"{self.base_url}/{path.lstrip('/')}"
        async with httpx.AsyncClient(timeout=15.0, transport=self.transport) as client:
            return await client.request(
                method,
                url,
                params=params,
                json=json,
                headers=headers or self._headers(),
            )

    # auth (GoTrue)

    async def get_user(self, access_token: str) -> Dict[str, Any]:
        resp = await self.request(
            "GET",
            "auth/v1/user",
            headers=self._headers(apikey=self.auth_key, bearer=access_token),
        )
        if resp.status_code >= 400:
            raise _error_from_response(resp, "get user")
        return resp.json() if resp.content else {}

    async def sign_in_with_otp(
        self,
        email: str,
        *,
        redirect_to: Optional[str] = None,
        create_user: bool = True,
    ) -> None:
        params = {"redirect_to": redirect_to} if redirect_to else None
        resp = await self.request(
            "POST",
            "auth/v1/otp",
            params=params,
            json={"email": email, "create_user": create_user},
            headers=self._headers(apikey=self.auth_key),
        )
        if resp.status_code >= 400:
            raise _error_from_response(resp, "otp")

    async def verify_otp(self, email: str, token: str, *, type: str = "email") -> Dict[str, Any]:
        resp = await self.request(
            "POST",
            "auth/v1/verify",
            json={"type": type, "email": email, "token": token},
            headers=self._headers(apikey=self.auth_key),
        )
        if resp.status_code >= 400:
            raise _error_from_response(resp, "verify")
        return resp.json() if resp.content else {}

    async def health(self) -> httpx.Response:
        return await self.request(
            "GET",
            "auth/v1/health",
            headers=self._headers(apikey=self.auth_key),
        )

    # tables (PostgREST)

    async def select(self, table: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        resp = await self.request("GET", f"rest/v1/{table}", params=params)
        if resp.status_code >= 400:
            raise _error_from_response(resp, f"select {table}")
        return resp.json()

    async def insert(
        self,
        table: str,
        payload: Dict[str, Any],
        *,
        params: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        resp = await self.request(
            "POST",
            f"rest/v1/{table}",
            params=params,
            json=payload,
            headers=self._headers(extra={"Prefer": "return=representation"}),
        )
        if resp.status_code >= 400:
            raise _error_from_response(resp, f"insert {table}")
        return resp.json() if resp.content else []


@lru_cache
def get_supabase() -> SupabaseClient:
    config = get_config()
    if not config.supabase_url or not config.supabase_service_role_key:
        raise RuntimeError("Missing SUPABASE_URL/SUPABASE_SERVICE_ROLE_KEY for API access.")
    logger.info("supabase client configured", extra={"base_url": config.supabase_url})
    return SupabaseClient(
        base_url=config.supabase_url.rstrip("/"),
        service_key=config.supabase_service_role_key,
        auth_key=config.auth_key or config.supabase_service_role_key,
    )


def get_optional_supabase() -> Optional[SupabaseClient]:
    """Like ``get_supabase`` but ``None`` when credentials are missing."""
    try:
        return get_supabase()
    except RuntimeError:
        return None
