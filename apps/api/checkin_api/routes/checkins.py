from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..auth import AccessScope, get_access_scope
from ..checkins import (
    CheckinFilters,
    create_checkin,
    list_checkins,
    parse_date_param,
    require_child_email,
)
from ..schemas import CheckinCreate, CheckinCreated, CheckinList
from ..supabase import SupabaseClient, get_supabase

router = APIRouter(tags=["checkins"])
logger = logging.getLogger(__name__)


def checkin_filters(
    child_email: Optional[str] = Query(None, alias="childEmail", description="Child email"),
    child_email_snake: Optional[str] = Query(None, alias="child_email", include_in_schema=False),
    goal: Optional[str] = Query(None),
    since: Optional[str] = Query(None, description="Inclusive start date (YYYY-MM-DD)"),
    until: Optional[str] = Query(None, description="Inclusive end date (YYYY-MM-DD)"),
) -> CheckinFilters:
    # Declared ahead of the auth dependency so a missing child is always a 400.
    return CheckinFilters(
        child_email=require_child_email(child_email or child_email_snake),
        goal=(goal or "").strip() or None,
        since=parse_date_param(since, "since"),
        until=parse_date_param(until, "until"),
    )


@router.get("/checkins", response_model=CheckinList)
async def get_checkins(
    filters: CheckinFilters = Depends(checkin_filters),
    scope: AccessScope = Depends(get_access_scope),
    supabase: SupabaseClient = Depends(get_supabase),
) -> CheckinList:
    """Return one child's check-ins, oldest first, within the caller's scope."""

    logger.info(
        "child-scoped request",
        extra={"method": "GET", "path": "/checkins", "mode": scope.mode},
    )
    rows = await list_checkins(supabase, scope, filters)
    return CheckinList(rows=rows)


@router.post("/checkins", response_model=CheckinCreated)
async def save_checkin(
    payload: CheckinCreate,
    scope: AccessScope = Depends(get_access_scope),
    supabase: SupabaseClient = Depends(get_supabase),
) -> CheckinCreated:
    logger.info(
        "child-scoped request",
        extra={"method": "POST", "path": "/checkins", "mode": scope.mode},
    )
    record = await create_checkin(supabase, scope, payload)
    return CheckinCreated(id=record.id, created_at=record.created_at)
