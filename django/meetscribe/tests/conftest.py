import json

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from intelligence.ratelimit import reset_transcription_limiter


class FakeResponse:
    def __init__(self, status_code=200, text="", json_data=None, headers=None):
        self.status_code = status_code
        self._json = json_data
        self.text = text if json_data is None else json.dumps(json_data)
        self.headers = headers or {}

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        if self._json is None:
            raise ValueError("No JSON body")
        return self._json


def chat_payload(content):
    if not isinstance(content, str):
        content = json.dumps(content)
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


DEFAULT_SUMMARY = {
    "key_points": ["Budget approved", "Launch moved to May", "Hiring paused"],
    "action_items": ["Ana drafts the launch plan", "Sam updates the forecast"],
    "main_topics": ["Budget", "Launch"],
}


class FakeUpstream:
    """Stands in for ``requests.post`` against the speech and chat endpoints."""

    def __init__(self):
        self.calls = []
        self.transcriptions = []
        self.summary = FakeResponse(json_data=chat_payload(DEFAULT_SUMMARY))

    def __call__(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if url.endswith("/audio/transcriptions"):
            index = len(self.transcription_calls) - 1
            if index < len(self.transcriptions):
                outcome = self.transcriptions[index]
            else:
                outcome = FakeResponse(text=f"part {index}\n")
        else:
            outcome = self.summary
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    @property
    def transcription_calls(self):
        return [kwargs for url, kwargs in self.calls if url.endswith("/audio/transcriptions")]

    @property
    def summary_calls(self):
        return [kwargs for url, kwargs in self.calls if url.endswith("/chat/completions")]


class FakeLimiter:
    def __init__(self):
        self.calls = 0

    def acquire(self):
        self.calls += 1
        return 0.0


@pytest.fixture
def upstream(monkeypatch):
    fake = FakeUpstream()
    monkeypatch.setattr("intelligence.services.requests.post", fake)
    return fake


@pytest.fixture(autouse=True)
def limiter():
    fake = FakeLimiter()
    reset_transcription_limiter(fake)
    yield fake
    reset_transcription_limiter(None)


@pytest.fixture
def user(db):
    return get_user_model().objects.create_user(username="ana", password="pw")


@pytest.fixture
def other_user(db):
    return get_user_model().objects.create_user(username="sam", password="pw")


@pytest.fixture
def api_client(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client
