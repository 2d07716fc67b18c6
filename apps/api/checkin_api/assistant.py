"""OpenAI Assistants passthrough used by the ask-attune chat."""
from __future__ import annotations

import logging
import time
from functools import lru_cache
from typing import Any, Callable, Optional

from openai import OpenAI

from .config import get_config

logger = logging.getLogger(__name__)

FAILED_RUN_STATUSES = {"failed", "cancelled", "expired"}
EMPTY_REPLY = "No reply."


class AssistantError(Exception):
    pass


class AssistantNotConfigured(AssistantError):
    pass


def _first_text(messages: Any) -> Optional[str]:
    data = getattr(messages, "data", None) or []
    if not data:
        return None
    for part in getattr(data[0], "content", None) or []:
        text = getattr(part, "text", None)
        value = getattr(text, "value", None) if text is not None else None
        if value:
            return value
    return None


class AttuneAssistant:
    """Runs one user message through a hosted assistant and returns its reply."""

    def __init__(
        self,
        client: OpenAI,
        assistant_id: str,
        *,
        max_polls: int = 20,
        poll_interval: float = 1.2,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.client = client
        self.assistant_id = assistant_id
        self.max_polls = max_polls
        self.poll_interval = poll_interval
        self._sleep = sleep

    def ask(self, message: str) -> str:
        threads = self.client.beta.threads
        thread = threads.create()
        threads.messages.create(thread.id, role="user", content=message)
        run = threads.runs.create(thread_id=thread.id, assistant_id=self.assistant_id)

        status = run.status
        polls = 0
        while status != "completed":
            if status in FAILED_RUN_STATUSES:
                raise AssistantError(f"Run {status}")
            if polls >= self.max_polls:
                raise AssistantError("Assistant run did not complete in time")
            self._sleep(self.poll_interval)
            run = threads.runs.retrieve(run.id, thread_id=thread.id)
            status = run.status
            polls += 1

        messages = threads.messages.list(thread.id, limit=1)
        return _first_text(messages) or EMPTY_REPLY


@lru_cache
def get_assistant() -> AttuneAssistant:
    config = get_config()
    if not config.openai_api_key or not config.assistant_id:
        raise AssistantNotConfigured("Assistant is not configured")
    return AttuneAssistant(
        OpenAI(api_key=config.openai_api_key),
        config.assistant_id,
        max_polls=config.assistant_max_polls,
        poll_interval=config.assistant_poll_interval,
    )
