"""Deployment sanity checks. Report presence of settings, never their values."""
from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Optional

import httpx
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..config import AppConfig, get_config
from ..supabase import SupabaseClient, get_optional_supabase

router = APIRouter(tags=["diagnostics"])

_SUPABASE_URL_PATTERN = re.compile(r"^https://.*\.supabase\.co$")


@router.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@router.get("/ping")
async def ping(config: AppConfig = Depends(get_config)) -> dict:
    return {
        "ok": True,
        "now": datetime.now(timezone.utc).isoformat(),
        "env": {
            "has_SUPABASE_URL": bool(config.supabase_url),
            "has_SUPABASE_SERVICE_ROLE_KEY": bool(config.supabase_service_role_key),
            "ALLOW_PUBLIC_ACCESS": config.allow_public_access,
        },
    }


@router.get("/diag")
async def diag(config: AppConfig = Depends(get_config)) -> dict:
    return {
        "hasOpenAIKey": bool(config.openai_api_key),
        "assistantId": "set" if config.assistant_id else "missing",
    }


@router.get("/sb-health")
async def supabase_health(
    config: AppConfig = Depends(get_config),
    supabase: Optional[SupabaseClient] = Depends(get_optional_supabase),
) -> JSONResponse:
    env_url = (config.supabase_url or "").rstrip("/")
    result = {
        "envUrl": env_url,
        "hasKey": bool(config.supabase_service_role_key),
        "urlLooksValid": bool(_SUPABASE_URL_PATTERN.match(env_url)),
    }
    try:
        if not env_url.startswith("https://") and not env_url.startswith("http://"):
            raise RuntimeError("SUPABASE_URL must be an http(s) URL")
        if supabase is None:
            raise RuntimeError("SUPABASE_SERVICE_ROLE_KEY is not set")
        resp = await supabase.health()
    except (RuntimeError, httpx.HTTPError) as exc:
        result.update(ok=False, error=str(exc) or exc.__class__.__name__)
        return JSONResponse(status_code=500, content=result)

    result.update(status=resp.status_code, ok=resp.is_success)
    if not resp.is_success:
        result["error"] = f"auth health returned {resp.status_code}"
    return JSONResponse(status_code=200 if resp.is_success else 502, content=result)
