"""Request authorization: bearer token or explicit public mode."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from fastapi import Depends, Header

from .config import AppConfig, get_config
from .errors import InternalError, Unauthorized
from .supabase import SupabaseClient, SupabaseError, get_supabase

logger = logging.getLogger(__name__)

MISSING_TOKEN = "Missing Authorization Bearer token"
INVALID_TOKEN = "Invalid or expired token"
MALFORMED_HEADER = "Invalid Authorization header; expected 'Bearer <token>'"


@dataclass(frozen=True)
class AccessScope:
    """Who is asking, and which check-in rows they may touch.

    ``user_id`` is ``None`` only when the deployment allows public access
    and the request carried no credential at all.
    """

    user_id: Optional[str]
    user_email: Optional[str] = None

    @property
    def is_public(self) -> bool:
        return self.user_id is None

    @property
    def mode(self) -> str:
        return "public" if self.is_public else "owner"

    def owner_filter(self) -> Dict[str, str]:
        if self.user_id is None:
            return {"user_id": "is.null"}
        return {"user_id": f"eq.{self.user_id}"}


def parse_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if authorization is None or not authorization.strip():
        return None
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise Unauthorized(MALFORMED_HEADER)
    return parts[1]


async def resolve_scope(
    authorization: Optional[str],
    *,
    supabase: SupabaseClient,
    allow_public: bool,
) -> AccessScope:
    token = parse_bearer_token(authorization)
    if token is None:
        if allow_public:
            return AccessScope(user_id=None)
        raise Unauthorized(MISSING_TOKEN)

    # A presented token is never downgraded to public access.
    try:
        user = await supabase.get_user(token)
    except SupabaseError as exc:
        if exc.status_code >= 500:
            logger.warning("token lookup failed upstream", extra={"provider_status": exc.status_code})
            raise InternalError(exc.message) from exc
        raise Unauthorized(INVALID_TOKEN) from exc

    user_id = user.get("id") if isinstance(user, dict) else None
    if not user_id:
        raise Unauthorized(INVALID_TOKEN)
    return AccessScope(user_id=str(user_id), user_email=user.get("email"))


async def get_access_scope(
    authorization: Optional[str] = Header(None),
    config: AppConfig = Depends(get_config),
    supabase: SupabaseClient = Depends(get_supabase),
) -> AccessScope:
    return await resolve_scope(
        authorization,
        supabase=supabase,
        allow_public=config.allow_public_access,
    )
