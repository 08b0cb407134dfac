from __future__ import annotations
from typing import List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import Field

from ..insights import Insight, InsightSummary, ScaleInsights, generate_insights, scale_insights, summarize_insights
from ..reference_data import RECOMMENDATIONS
from ..schemas import CamelModel
from ..scoring import AssessmentInputError, ScoreResult, ScoringInput, score_payload
from ..settings import settings


router = APIRouter(prefix="/scoring", tags=["scoring"])


class InsightRequest(ScoringInput):
    threshold: Optional[float] = Field(default=None, ge=0, le=100)


class ScoreWithInsights(CamelModel):
    score: ScoreResult
    insights: List[Insight]
    summary: InsightSummary
    scale: ScaleInsights


def _score(payload: ScoringInput) -> ScoreResult:
    try:
        return score_payload(payload, pass_threshold=settings.pass_threshold)
    except AssessmentInputError as err:
        raise HTTPException(status_code=400, detail=str(err))


@router.post("/evaluate", response_model=ScoreResult)
def evaluate(payload: ScoringInput):
    """Score an ad-hoc response set without touching stored assessments."""
    return _score(payload)


@router.post("/insights", response_model=ScoreWithInsights)
def evaluate_insights(payload: InsightRequest):
    result = _score(payload)
    threshold = payload.threshold if payload.threshold is not None else settings.insight_threshold
    insights = generate_insights(result.per_section, RECOMMENDATIONS, threshold=threshold)
    return ScoreWithInsights(
        score=result,
        insights=insights,
        summary=summarize_insights(insights),
        scale=scale_insights(result.statistics),
    )
