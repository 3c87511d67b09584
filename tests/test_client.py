"""Tests for client – the UI's view of the score server."""

from __future__ import annotations

import json

import pytest
import requests

import config
from client import ApiClient
from errors import StorageUnavailable, TypingError, UpstreamUnavailable, ValidationError
from metrics import Summary
from session import Prompt


class FakeResponse:
    def __init__(self, status_code: int = 200, payload=None, reason: str = "") -> None:
        self.status_code = status_code
        self.payload = payload
        self.reason = reason
        self.content = b"" if payload is None else json.dumps(payload).encode()

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self):
        if self.payload is None:
            raise ValueError("no body")
        return self.payload


class FakeSession:
    def __init__(self) -> None:
        self.headers: dict[str, str] = {}
        self.responses: dict[tuple[str, str], FakeResponse | Exception] = {}
        self.sent: list[tuple[str, str, dict]] = []

    def request(self, method, url, **kwargs):
        self.sent.append((method, url, kwargs))
        path = url.split("://", 1)[-1].split("/", 1)[-1]
        result = self.responses[(method, "/" + path)]
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture()
def http() -> FakeSession:
    return FakeSession()


@pytest.fixture()
def api(http: FakeSession) -> ApiClient:
    return ApiClient(base_url="http://server/", user="alice", session=http)


SUMMARY = Summary(correct_chars=3, total_chars=4, elapsed_seconds=10, accuracy=75.0, wpm=3.6, score=22)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class TestRequests:
    def test_identity_header(self, api, http):
        assert http.headers[config.IDENTITY_HEADER] == "alice"

    def test_check(self, api, http):
        http.responses[("GET", "/api/check")] = FakeResponse(payload={"username": "alice"})
        assert api.check() == "alice"
        assert http.sent[0][1] == "http://server/api/check"

    def test_fetch_prompts(self, api, http):
        http.responses[("GET", "/api/questions")] = FakeResponse(
            payload=[{"question": "Largest planet?", "answer": "Jupiter"}]
        )
        assert api.fetch_prompts() == [Prompt(prompt="Largest planet?", expected_answer="Jupiter")]

    def test_submit_score_body(self, api, http):
        http.responses[("POST", "/api/scores")] = FakeResponse(201, payload={"id": 7})
        assert api.submit_score(SUMMARY) == {"id": 7}
        assert http.sent[0][2]["json"] == {"score": 22, "wpm": 3.6, "accuracy": 75.0}

    def test_ranking_limit(self, api, http):
        http.responses[("GET", "/api/scores/ranking")] = FakeResponse(payload=[])
        assert api.ranking(5) == []
        assert http.sent[0][2]["params"] == {"limit": 5}

    def test_history_404_is_empty(self, api, http):
        http.responses[("GET", "/api/scores")] = FakeResponse(404, payload={"message": "none"})
        assert api.history() == []


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class TestErrors:
    def test_validation_error(self, api, http):
        http.responses[("POST", "/api/scores")] = FakeResponse(400, payload={"message": "wpm missing"})
        with pytest.raises(ValidationError, match="wpm missing"):
            api.submit_score(SUMMARY)

    def test_storage_unavailable(self, api, http):
        http.responses[("POST", "/api/scores")] = FakeResponse(503, payload={"message": "try again"})
        with pytest.raises(StorageUnavailable):
            api.submit_score(SUMMARY)

    def test_unauthorized(self, api, http):
        http.responses[("GET", "/api/scores/ranking")] = FakeResponse(401, payload={"detail": "login required"})
        with pytest.raises(TypingError) as info:
            api.ranking()
        assert info.value.status_code == 401
        assert info.value.message == "login required"

    def test_network_failure(self, api, http):
        http.responses[("GET", "/api/scores/ranking")] = requests.ConnectionError("refused")
        with pytest.raises(StorageUnavailable):
            api.ranking()

    def test_prompt_fetch_network_failure(self, api, http):
        http.responses[("GET", "/api/questions")] = requests.Timeout("slow")
        with pytest.raises(UpstreamUnavailable):
            api.fetch_prompts()

    def test_prompt_source_down(self, api, http):
        http.responses[("GET", "/api/questions")] = FakeResponse(502, payload={"message": "no questions"})
        with pytest.raises(UpstreamUnavailable, match="no questions"):
            api.fetch_prompts()

    @pytest.mark.parametrize(
        "payload",
        [
            [{"question": "Largest planet?"}],
            ["Jupiter"],
            {"message": "ok"},
        ],
    )
    def test_malformed_question_list(self, api, http, payload):
        http.responses[("GET", "/api/questions")] = FakeResponse(payload=payload)
        with pytest.raises(UpstreamUnavailable, match="malformed"):
            api.fetch_prompts()

    def test_error_without_body(self, api, http):
        http.responses[("GET", "/api/check")] = FakeResponse(500, reason="Internal Server Error")
        with pytest.raises(TypingError, match="Internal Server Error"):
            api.check()
