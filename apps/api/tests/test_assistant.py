from __future__ import annotations

from types import SimpleNamespace

import pytest

from checkin_api.assistant import AssistantError, AssistantNotConfigured, AttuneAssistant


class FakeThreads:
    def __init__(self, statuses, reply="Try a shorter reading goal."):
        self.statuses = list(statuses)
        self.reply = reply
        self.posted = []
        self.retrieves = 0
        self.messages = SimpleNamespace(create=self._post_message, list=self._list_messages)
        self.runs = SimpleNamespace(create=self._create_run, retrieve=self._retrieve_run)

    def create(self):
        return SimpleNamespace(id="thread-1")

    def _post_message(self, thread_id, *, role, content):
        self.posted.append((thread_id, role, content))

    def _create_run(self, *, thread_id, assistant_id):
        self.assistant_id = assistant_id
        return SimpleNamespace(id="run-1", status=self.statuses.pop(0))

    def _retrieve_run(self, run_id, *, thread_id):
        self.retrieves += 1
        return SimpleNamespace(id=run_id, status=self.statuses.pop(0))

    def _list_messages(self, thread_id, *, limit):
        if self.reply is None:
            return SimpleNamespace(data=[])
        text = SimpleNamespace(text=SimpleNamespace(value=self.reply))
        return SimpleNamespace(data=[SimpleNamespace(content=[text])])


def _assistant(threads, **kwargs):
    client = SimpleNamespace(beta=SimpleNamespace(threads=threads))
    return AttuneAssistant(client, "asst_test", sleep=lambda _: None, **kwargs)


def test_ask_polls_until_complete():
    threads = FakeThreads(["queued", "in_progress", "completed"])

    reply = _assistant(threads).ask("How do I keep my kid motivated?")

    assert reply == "Try a shorter reading goal."
    assert threads.posted == [("thread-1", "user", "How do I keep my kid motivated?")]
    assert threads.assistant_id == "asst_test"
    assert threads.retrieves == 2


@pytest.mark.parametrize("status", ["failed", "cancelled", "expired"])
def test_ask_raises_on_terminal_failure(status):
    threads = FakeThreads(["queued", status])

    with pytest.raises(AssistantError, match=status):
        _assistant(threads).ask("hello")


def test_ask_gives_up_after_max_polls():
    threads = FakeThreads(["queued"] * 5)

    with pytest.raises(AssistantError):
        _assistant(threads, max_polls=3).ask("hello")
    assert threads.retrieves == 3


def test_ask_without_messages_returns_placeholder():
    threads = FakeThreads(["completed"], reply=None)

    assert _assistant(threads).ask("hello") == "No reply."


def test_route_returns_reply(client, monkeypatch):
    fake = _assistant(FakeThreads(["completed"], reply="Celebrate small wins."))
    monkeypatch.setattr("checkin_api.routes.assistant.get_assistant", lambda: fake)

    response = client.post("/ask-attune", json={"message": "Any tips?"})

    assert response.status_code == 200
    assert response.json() == {"reply": "Celebrate small wins."}


def test_route_requires_message(client):
    response = client.post("/ask-attune", json={})

    assert response.status_code == 400
    assert response.json() == {"error": "Missing message"}


def test_route_reports_assistant_failures(client, monkeypatch):
    fake = _assistant(FakeThreads(["failed"]))
    monkeypatch.setattr("checkin_api.routes.assistant.get_assistant", lambda: fake)

    response = client.post("/ask-attune", json={"message": "Any tips?"})

    assert response.status_code == 500
    assert response.json() == {"error": "Run failed"}


def test_route_reports_missing_configuration(client, monkeypatch):
    def not_configured():
        raise AssistantNotConfigured("Assistant is not configured")

    monkeypatch.setattr("checkin_api.routes.assistant.get_assistant", not_configured)

    response = client.post("/ask-attune", json={"message": "Any tips?"})

    assert response.status_code == 500
    assert response.json() == {"error": "Assistant is not configured"}
