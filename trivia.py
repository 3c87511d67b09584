from __future__ import annotations

import html
import logging
from dataclasses import dataclass

import requests

from errors import UpstreamUnavailable

logger = logging.getLogger(__name__)

TRIVIA_URL = "https://opentdb.com/api.php"
TRANSLATE_URL = "https://api.mymemory.translated.net/get"
USER_AGENT = "typing-trivia/0.1 (python requests)"


@dataclass
class Question:
    question: str
    answer: str


def _decode(text: str) -> str:
    return html.unescape(text or "").strip()


def translate(text: str, target: str, source: str = "en", timeout: float = 8) -> str:
    """Translate ``text`` through MyMemory. Falls back to the input on any failure."""
    if not text or not target:
        return text
    try:
        response = requests.get(
            TRANSLATE_URL,
            params={"q": text, "langpair": f"{source}|{target}"},
            timeout=timeout,
            headers={"User-Agent": USER_AGENT},
        )
        response.raise_for_status()
        translated = response.json()["responseData"]["translatedText"]
    except (requests.RequestException, ValueError, KeyError, TypeError) as e:
        logger.warning("Translation failed, keeping original text: %s", e)
        return text
    return _decode(translated) or text


def fetch_questions(amount: int = 10, translate_to: str = "", timeout: float = 8) -> list[Question]:
    try:
        response = requests.get(
            TRIVIA_URL,
            params={"amount": amount, "type": "multiple"},
            timeout=timeout,
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
        )
        response.raise_for_status()
        data = response.json()
    except (requests.RequestException, ValueError) as e:
        logger.error("Trivia fetch failed: %s", e)
        raise UpstreamUnavailable("could not fetch questions") from e

    if data.get("response_code", 0) != 0:
        logger.error("Trivia source answered with code %s", data.get("response_code"))
        raise UpstreamUnavailable("question source returned no results")

    questions = []
    for item in data.get("results") or []:
        question = _decode(item.get("question", ""))
        answer = _decode(item.get("correct_answer", ""))
        if not question:
            continue
        if translate_to:
            question = translate(question, translate_to, timeout=timeout)
            answer = translate(answer, translate_to, timeout=timeout)
        questions.append(Question(question=question, answer=answer))

    return questions
