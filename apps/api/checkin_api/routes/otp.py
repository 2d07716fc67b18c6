"""Passwordless sign-in: send a one-time code, then trade it for a session."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from ..config import AppConfig, get_config
from ..errors import BadRequest, InternalError, TooManyRequests, Unauthorized
from ..schemas import OkResponse, StartOtpPayload, VerifyOtpPayload, VerifyOtpResponse
from ..supabase import SupabaseClient, SupabaseError, get_supabase

router = APIRouter(prefix="/otp", tags=["otp"])
logger = logging.getLogger(__name__)

DEFAULT_EXPIRES_IN = 3600


@router.post("/start", response_model=OkResponse)
async def start_otp(
    payload: StartOtpPayload,
    config: AppConfig = Depends(get_config),
    supabase: SupabaseClient = Depends(get_supabase),
) -> OkResponse:
    email = (payload.email or "").strip()
    if not email:
        raise BadRequest('Missing or invalid "email"')

    try:
        await supabase.sign_in_with_otp(
            email,
            redirect_to=payload.redirect_to or config.default_redirect_url,
            create_user=True,
        )
    except SupabaseError as exc:
        if exc.is_rate_limited:
            retry_after = exc.retry_after
            if retry_after is None:
                retry_after = config.otp_retry_after_seconds
            logger.warning("otp issuance rate limited", extra={"retry_after": retry_after})
            raise TooManyRequests(exc.message, retry_after) from exc
        logger.warning(
            "otp issuance failed",
            extra={"provider_status": exc.status_code, "error_code": exc.error_code},
        )
        raise BadRequest(exc.message) from exc
    return OkResponse()


@router.post("/verify", response_model=VerifyOtpResponse)
async def verify_otp(
    payload: VerifyOtpPayload,
    supabase: SupabaseClient = Depends(get_supabase),
) -> VerifyOtpResponse:
    email = (payload.email or "").strip()
    token = (payload.token or "").strip()
    if not email or not token:
        raise BadRequest("Missing email or token")

    try:
        data = await supabase.verify_otp(email, token, type="email")
    except SupabaseError as exc:
        raise Unauthorized(exc.message) from exc

    # GoTrue returns the session at the top level; SDK wrappers nest it.
    session = data.get("session") or data
    access_token = session.get("access_token")
    if not access_token:
        logger.error("otp verified without an access token")
        raise InternalError("Verification succeeded but no access token was issued")
    return VerifyOtpResponse(
        access_token=access_token,
        expires_in=session.get("expires_in") or DEFAULT_EXPIRES_IN,
    )
