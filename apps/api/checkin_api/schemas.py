"""Pydantic schemas shared across the API."""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """camelCase on the wire; snake_case keys are accepted on input too."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CheckinRecord(ApiModel):
    id: Union[int, str]
    owner_user_id: Optional[str] = None
    child_email: str
    child_name: Optional[str] = None
    goal: Optional[str] = None
    activity: Optional[str] = None
    completion_score: int
    mood_score: int
    sleep_hours: Optional[float] = None
    notes: Optional[str] = None
    checkin_date: date
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "CheckinRecord":
        return cls(
            id=row["id"],
            owner_user_id=row.get("user_id"),
            child_email=row["child_email"],
            child_name=row.get("child_name"),
            goal=row.get("goal"),
            activity=row.get("activity"),
            completion_score=row["completion_score"],
            mood_score=row["mood_score"],
            sleep_hours=row.get("sleep_hours"),
            notes=row.get("notes"),
            checkin_date=row["checkin_date"],
            created_at=row.get("created_at"),
        )


class CheckinCreate(ApiModel):
    # Scores and sleep arrive from form inputs as numbers or strings; they
    # are validated by hand so the error names the field.
    child_email: Optional[str] = None
    child_name: Optional[str] = None
    goal: Optional[str] = None
    activity: Optional[str] = None
    completion_score: Any = None
    mood_score: Any = None
    sleep_hours: Any = None
    notes: Optional[str] = None
    checkin_date: Optional[date] = None


class CheckinCreated(ApiModel):
    ok: bool = True
    id: Union[int, str]
    created_at: Optional[datetime] = None


class CheckinList(ApiModel):
    rows: List[CheckinRecord] = Field(default_factory=list)


class StartOtpPayload(ApiModel):
    email: Optional[str] = None
    redirect_to: Optional[str] = None


class VerifyOtpPayload(ApiModel):
    email: Optional[str] = None
    token: Optional[str] = None


class VerifyOtpResponse(ApiModel):
    access_token: str
    expires_in: int = 3600


class OkResponse(ApiModel):
    ok: bool = True


class AskPayload(ApiModel):
    message: Optional[str] = None


class AskResponse(ApiModel):
    reply: str
