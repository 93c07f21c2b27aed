"""FastAPI server exposing the outfit recommendation endpoint."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from pydantic import BaseModel

from outfit_app.app import OutfitRecommenderApp
from outfit_app.errors import OutfitRecommenderError, ValidationError
from outfit_app.logging_config import configure_logging, get_logger

configure_logging()
LOGGER = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Connect the store and load clothing rules once at startup.

    A store that cannot be reached is logged and the server keeps serving;
    rule retrieval then degrades to an empty rule list per request.
    """

    recommender = OutfitRecommenderApp()
    try:
        recommender.connect()
        report = recommender.load_rules()
        LOGGER.info("Clothing rules loaded", extra={"inserted": report.inserted, "failed": report.failed})
    except OutfitRecommenderError as exc:
        LOGGER.error("Failed to initialise the rule store", extra={"error": str(exc)})
    app.state.recommender = recommender
    try:
        yield
    finally:
        recommender.close()


app = FastAPI(title="Outfit Recommender", version="0.1.0", lifespan=lifespan)


class RecommendationResponse(BaseModel):
    recommendation: str


def get_recommender(request: Request) -> OutfitRecommenderApp:
    recommender = getattr(request.app.state, "recommender", None)
    if recommender is None:
        raise HTTPException(status_code=503, detail="Recommender is not ready")
    return recommender


@app.get("/healthz")
async def healthcheck(recommender: OutfitRecommenderApp = Depends(get_recommender)) -> dict:
    """Lightweight readiness probe."""

    return {
        "status": "ok",
        "service": "outfit-recommender",
        "environment": recommender.config.environment or "local",
        "model": recommender.config.llm_model,
    }


@app.get("/ai_agents/outfit_recommend", response_model=RecommendationResponse)
def outfit_recommend(
    question: str | None = Query(None, description="Free-text question from the user"),
    pref: str | None = Query(None, description="Style preference, e.g. casual or formal"),
    loc: str | None = Query(None, description="City used for the weather lookup"),
    recommender: OutfitRecommenderApp = Depends(get_recommender),
) -> RecommendationResponse:
    """Recommend an outfit for the question, preference and location."""

    if not question or not question.strip():
        raise HTTPException(status_code=400, detail="Missing 'question' parameter")

    try:
        result = recommender.recommend(question, pref, loc)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except OutfitRecommenderError as exc:
        raise HTTPException(status_code=500, detail=f"Error: {exc}") from exc
    return RecommendationResponse(recommendation=result.text)


def get_app() -> FastAPI:
    """Expose the FastAPI instance for ASGI servers."""

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("server.api:app", host="0.0.0.0", port=8080, reload=False)
