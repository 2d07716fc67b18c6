"""Python client for the check-in API that carries the stored session."""
from __future__ import annotations

import logging
import os
from datetime import date
from typing import Any, Dict, List, Optional, Union

import httpx

from .token_store import TokenStore

logger = logging.getLogger(__name__)

DEFAULT_API_ROOT = "http://localhost:8000"


class ApiError(Exception):
    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or resp.reason_phrase
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return resp.text or resp.reason_phrase


class CheckinApiClient:
    def __init__(
        self,
        token_store: TokenStore,
        *,
        base_url: Optional[str] = None,
        http: Optional[httpx.Client] = None,
        timeout: float = 15.0,
    ) -> None:
        self.token_store = token_store
        # an injected client belongs to the caller and is left open
        self._owns_http = http is None
        self.http = http or httpx.Client(
            base_url=base_url or os.getenv("CHECKIN_API_URL") or DEFAULT_API_ROOT,
            timeout=timeout,
        )

    def close(self) -> None:
        if self._owns_http:
            self.http.close()

    def __enter__(self) -> "CheckinApiClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _headers(self) -> Dict[str, str]:
        token = self.token_store.get_access_token()
        return {"Authorization": f"Bearer {token}"} if token else {}

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        resp = self.http.request(method, path, params=params, json=json, headers=self._headers())
        if not resp.is_success:
            message = _error_message(resp)
            logger.debug("%s %s failed: %s %s", method, path, resp.status_code, message)
            raise ApiError(resp.status_code, message)
        return resp.json() if resp.content else {}

    def start_otp(self, email: str, redirect_to: Optional[str] = None) -> None:
        body: Dict[str, Any] = {"email": email}
        if redirect_to:
            body["redirectTo"] = redirect_to
        self._request("POST", "/otp/start", json=body)

    def verify_otp(self, email: str, token: str) -> str:
        data = self._request("POST", "/otp/verify", json={"email": email, "token": token})
        self.token_store.save(data["accessToken"], data.get("expiresIn"))
        return data["accessToken"]

    def sign_out(self) -> None:
        self.token_store.clear()

    @property
    def signed_in(self) -> bool:
        return self.token_store.get_access_token() is not None

    def get_checkins(
        self,
        child_email: str,
        *,
        goal: Optional[str] = None,
        since: Optional[Union[date, str]] = None,
        until: Optional[Union[date, str]] = None,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"childEmail": child_email}
        if goal:
            params["goal"] = goal
        if since:
            params["since"] = str(since)
        if until:
            params["until"] = str(until)
        return self._request("GET", "/checkins", params=params).get("rows", [])

    def save_checkin(self, **fields: Any) -> Dict[str, Any]:
        body = {key: value.isoformat() if isinstance(value, date) else value for key, value in fields.items()}
        return self._request("POST", "/checkins", json=body)

    def ask(self, message: str) -> str:
        return self._request("POST", "/ask-attune", json={"message": message})["reply"]
