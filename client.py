from __future__ import annotations

import logging
from typing import Any

import requests

import config
from errors import StorageUnavailable, UpstreamUnavailable, error_for_status
from metrics import Summary
from session import Prompt

logger = logging.getLogger(__name__)


class ApiClient:
    """Talks to the score server on behalf of one user."""

    def __init__(
        self,
        base_url: str = config.API_URL,
        user: str | None = None,
        session: requests.Session | None = None,
        timeout: float = config.HTTP_TIMEOUT_S,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.user = user or config.current_user()
        self.timeout = timeout
        self.http = session or requests.Session()
        self.http.headers.update(
            {
                config.IDENTITY_HEADER: self.user,
                "Accept": "application/json",
            }
        )

    def check(self) -> str:
        return self._request("GET", "/api/check")["username"]

    def fetch_prompts(self) -> list[Prompt]:
        try:
            data = self._request("GET", "/api/questions")
        except StorageUnavailable as e:
            raise UpstreamUnavailable(e.message) from e
        try:
            return [Prompt(prompt=item["question"], expected_answer=item["answer"]) for item in data]
        except (KeyError, TypeError) as e:
            logger.warning("Unexpected question list from server: %r", data)
            raise UpstreamUnavailable("the server sent a malformed question list") from e

    def submit_score(self, summary: Summary) -> dict[str, Any]:
        return self._request(
            "POST",
            "/api/scores",
            json={"score": summary.score, "wpm": summary.wpm, "accuracy": summary.accuracy},
        )

    def ranking(self, limit: int = config.RANKING_LIMIT) -> list[dict[str, Any]]:
        return self._request("GET", "/api/scores/ranking", params={"limit": limit})

    def history(self) -> list[dict[str, Any]]:
        response = self._send("GET", "/api/scores")
        if response.status_code == 404:
            return []
        return self._decode(response)

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        return self._decode(self._send(method, path, **kwargs))

    def _send(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        try:
            return self.http.request(method, self.base_url + path, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise StorageUnavailable("server unreachable") from e

    def _decode(self, response: requests.Response) -> Any:
        if response.ok:
            if response.status_code == 204 or not response.content:
                return None
            return response.json()

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        message = body.get("message") or body.get("detail") or response.reason or "request failed"
        logger.warning("Server answered %s: %s", response.status_code, message)
        raise error_for_status(response.status_code, str(message))
