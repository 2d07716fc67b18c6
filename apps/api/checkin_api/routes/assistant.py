from __future__ import annotations

import logging

from fastapi import APIRouter
from openai import APIError

from ..assistant import AssistantError, get_assistant
from ..errors import BadRequest, InternalError
from ..schemas import AskPayload, AskResponse

router = APIRouter(tags=["assistant"])
logger = logging.getLogger(__name__)


@router.post("/ask-attune", response_model=AskResponse)
def ask_attune(payload: AskPayload) -> AskResponse:
    message = (payload.message or "").strip()
    if not message:
        raise BadRequest("Missing message")
    try:
        reply = get_assistant().ask(message)
    except (AssistantError, APIError) as exc:
        logger.warning("assistant request failed: %s", exc)
        raise InternalError(str(exc) or "Assistant request failed") from exc
    return AskResponse(reply=reply)
