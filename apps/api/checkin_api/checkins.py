"""Check-in storage, always scoped through an ``AccessScope``."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from .auth import AccessScope
from .errors import BadRequest, InternalError
from .schemas import CheckinCreate, CheckinRecord
from .supabase import SupabaseClient

logger = logging.getLogger(__name__)

TABLE = "checkins"
SCORE_MIN, SCORE_MAX = 1, 5
SLEEP_MAX_HOURS = 24


@dataclass(frozen=True)
class CheckinFilters:
    child_email: str
    goal: Optional[str] = None
    since: Optional[date] = None
    until: Optional[date] = None

    @property
    def range_is_empty(self) -> bool:
        return self.since is not None and self.until is not None and self.since > self.until


def require_child_email(value: Optional[str]) -> str:
    email = (value or "").strip()
    if not email:
        raise BadRequest("childEmail is required")
    return email


def parse_date_param(value: Optional[str], label: str) -> Optional[date]:
    if value is None or not value.strip():
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise BadRequest(f"{label} must be an ISO 8601 date (YYYY-MM-DD)") from exc


def validate_score(value: Any, label: str) -> int:
    message = f"{label} must be an integer between {SCORE_MIN} and {SCORE_MAX}"
    if value is None or isinstance(value, bool):
        raise BadRequest(message)
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            raise BadRequest(message) from None
    elif isinstance(value, float):
        if not value.is_integer():
            raise BadRequest(message)
        value = int(value)
    elif not isinstance(value, int):
        raise BadRequest(message)
    if not SCORE_MIN <= value <= SCORE_MAX:
        raise BadRequest(message)
    return value


def validate_sleep_hours(value: Any) -> Optional[float]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    message = f"sleepHours must be a number between 0 and {SLEEP_MAX_HOURS}"
    if isinstance(value, bool):
        raise BadRequest(message)
    try:
        hours = float(value)
    except (TypeError, ValueError):
        raise BadRequest(message) from None
    if not math.isfinite(hours) or not 0 <= hours <= SLEEP_MAX_HOURS:
        raise BadRequest(message)
    return hours


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def build_insert_row(
    payload: CheckinCreate,
    scope: AccessScope,
    *,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    child_email = require_child_email(payload.child_email)
    completion = validate_score(payload.completion_score, "completionScore")
    mood = validate_score(payload.mood_score, "moodScore")
    sleep_hours = validate_sleep_hours(payload.sleep_hours)
    checkin_date = payload.checkin_date or today or datetime.now(timezone.utc).date()
    return {
        "user_id": scope.user_id,
        "child_email": child_email,
        "child_name": _blank_to_none(payload.child_name),
        "goal": _blank_to_none(payload.goal),
        "activity": _blank_to_none(payload.activity),
        "completion_score": completion,
        "mood_score": mood,
        "sleep_hours": sleep_hours,
        "notes": _blank_to_none(payload.notes),
        "checkin_date": checkin_date.isoformat(),
    }


def build_list_params(scope: AccessScope, filters: CheckinFilters) -> Dict[str, str]:
    params = {
        "select": "*",
        "child_email": f"eq.{filters.child_email}",
        "order": "checkin_date.asc,created_at.asc",
    }
    params.update(scope.owner_filter())
    if filters.goal:
        params["goal"] = f"eq.{filters.goal}"
    if filters.since and filters.until:
        params["and"] = (
            f"(checkin_date.gte.{filters.since.isoformat()},"
            f"checkin_date.lte.{filters.until.isoformat()})"
        )
    elif filters.since:
        params["checkin_date"] = f"gte.{filters.since.isoformat()}"
    elif filters.until:
        params["checkin_date"] = f"lte.{filters.until.isoformat()}"
    return params


def _chronological_key(record: CheckinRecord) -> tuple:
    created = record.created_at
    if created is not None and created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return (record.checkin_date, created is not None, created.timestamp() if created else 0.0)


async def create_checkin(
    supabase: SupabaseClient,
    scope: AccessScope,
    payload: CheckinCreate,
    *,
    today: Optional[date] = None,
) -> CheckinRecord:
    row = build_insert_row(payload, scope, today=today)
    rows = await supabase.insert(TABLE, row)
    if not rows:
        raise InternalError("Check-in was not returned by the database")
    logger.info(
        "checkin saved",
        extra={"mode": scope.mode, "checkin_date": row["checkin_date"]},
    )
    return CheckinRecord.from_row(rows[0])


async def list_checkins(
    supabase: SupabaseClient,
    scope: AccessScope,
    filters: CheckinFilters,
) -> List[CheckinRecord]:
    if filters.range_is_empty:
        return []
    rows = await supabase.select(TABLE, params=build_list_params(scope, filters))
    records = [CheckinRecord.from_row(row) for row in rows or []]
    records.sort(key=_chronological_key)
    logger.info(
        "checkins query",
        extra={"mode": scope.mode, "goal": filters.goal, "count": len(records)},
    )
    return records
