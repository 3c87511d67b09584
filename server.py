"""HTTP surface for prompts and scores.

Every ``/api`` route runs behind the identity gate: the authenticating proxy
in front of this app puts the verified user name in a request header, and a
request without one is answered with 401 before any handler runs.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Callable, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

import config
from errors import TypingError
from scores import ScoreAggregator, ScoreRecord
from store import KeyValueStore
from trivia import Question, fetch_questions

logger = logging.getLogger(__name__)

IdentityResolver = Callable[[Request], Optional[str]]
QuestionSource = Callable[[], List[Question]]


class ScoreSubmission(BaseModel):
    model_config = ConfigDict(strict=True, allow_inf_nan=False)

    score: float
    wpm: float
    accuracy: float = Field(..., ge=0, le=100)


class ScoreOut(BaseModel):
    id: int
    owner: str
    score: float
    wpm: float
    accuracy: float
    created_at: str

    @classmethod
    def of(cls, record: ScoreRecord) -> "ScoreOut":
        return cls(**record.to_dict())


class QuestionOut(BaseModel):
    question: str
    answer: str


def header_identity(header: str = config.IDENTITY_HEADER) -> IdentityResolver:
    def resolve(request: Request) -> Optional[str]:
        value = request.headers.get(header, "").strip()
        return value or None

    return resolve


def create_app(
    aggregator: Optional[ScoreAggregator] = None,
    question_source: Optional[QuestionSource] = None,
    identity: Optional[IdentityResolver] = None,
    ranking_limit: int = config.RANKING_LIMIT,
) -> FastAPI:
    if aggregator is None:
        aggregator = ScoreAggregator(KeyValueStore(config.DATA_FILE))
    if question_source is None:
        def question_source() -> List[Question]:
            return fetch_questions(
                amount=config.QUESTION_COUNT,
                translate_to=config.TRANSLATE_TO,
                timeout=config.HTTP_TIMEOUT_S,
            )
    resolve_identity = identity or header_identity()

    app = FastAPI(title="Typing Trivia")

    def current_owner(request: Request) -> str:
        owner = resolve_identity(request)
        if not owner:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="login required")
        return owner

    @app.exception_handler(TypingError)
    async def typing_error_handler(request: Request, exc: TypingError) -> JSONResponse:
        return JSONResponse({"message": exc.message}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        fields = sorted({str(err["loc"][-1]) for err in exc.errors() if err.get("loc")})
        message = "score, wpm and accuracy are required numbers"
        if fields:
            message = f"{message} (invalid: {', '.join(fields)})"
        return JSONResponse({"message": message}, status_code=status.HTTP_400_BAD_REQUEST)

    @app.get("/api/check")
    def check(owner: str = Depends(current_owner)) -> dict:
        return {"username": owner}

    @app.get("/api/questions", response_model=List[QuestionOut])
    def questions(owner: str = Depends(current_owner)) -> List[QuestionOut]:
        return [QuestionOut(**asdict(q)) for q in question_source()]

    @app.post("/api/scores", status_code=status.HTTP_201_CREATED, response_model=ScoreOut)
    def submit_score(
        payload: ScoreSubmission,
        response: Response,
        owner: str = Depends(current_owner),
    ) -> ScoreOut:
        record = aggregator.submit_score(owner, payload.score, payload.wpm, payload.accuracy)
        response.headers["Location"] = f"/scores/{record.id}"
        return ScoreOut.of(record)

    @app.get("/api/scores/ranking", response_model=List[ScoreOut])
    def ranking(limit: int = ranking_limit, owner: str = Depends(current_owner)) -> List[ScoreOut]:
        return [ScoreOut.of(r) for r in aggregator.list_ranking(limit)]

    @app.get("/api/scores", response_model=List[ScoreOut])
    def history(owner: str = Depends(current_owner)):
        records = aggregator.list_history(owner)
        if not records:
            return JSONResponse({"message": "no scores recorded yet"}, status_code=status.HTTP_404_NOT_FOUND)
        return [ScoreOut.of(r) for r in records]

    @app.delete("/api/scores", status_code=status.HTTP_204_NO_CONTENT)
    def clear_history(owner: str = Depends(current_owner)) -> Response:
        aggregator.clear_history(owner)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return app


def main() -> None:
    import uvicorn

    config.configure_logging()
    uvicorn.run(create_app(), host="127.0.0.1", port=8000)


if __name__ == "__main__":
    main()
