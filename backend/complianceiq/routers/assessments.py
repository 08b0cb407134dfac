from __future__ import annotations
import logging
import uuid
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from ..db import get_db
from ..insights import Insight, InsightSummary, ScaleInsights, generate_insights, scale_insights, summarize_insights
from ..models import Assessment, Question
from ..reference_data import RECOMMENDATIONS
from ..schemas import CamelModel
from ..scoring import AssessmentStatus, ResponseInput, ScoreResult, is_valid_response_value
from ..services import recompute_assessment, score_stored_assessment, stored_blockers, upsert_responses
from ..settings import settings
from .auth import User, get_current_user
from .organizations import get_organization_or_404


router = APIRouter(prefix="/assessments", tags=["assessments"])

logger = logging.getLogger(__name__)


class AssessmentCreate(BaseModel):
    organization_id: int
    name: str = Field(min_length=1, max_length=256)


class AssessmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    organization_id: int
    name: str
    current_score: int
    status: AssessmentStatus
    blockers: List[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None


class ResponseBatch(CamelModel):
    responses: List[ResponseInput]


class ResponseOut(CamelModel):
    question_id: str
    value: float
    answered_at: datetime


class ResponseWriteResult(CamelModel):
    written: int
    score: ScoreResult


class InsightsOut(CamelModel):
    assessment_id: str
    overall_score: int
    status: AssessmentStatus
    insights: List[Insight]
    summary: InsightSummary
    scale: ScaleInsights


def _assessment_out(assessment: Assessment) -> AssessmentOut:
    return AssessmentOut(
        id=assessment.id,
        organization_id=assessment.organization_id,
        name=assessment.name,
        current_score=assessment.current_score,
        status=assessment.status,
        blockers=stored_blockers(assessment),
        created_at=assessment.created_at,
        updated_at=assessment.updated_at,
        completed_at=assessment.completed_at,
    )


def _get_assessment_or_404(db: Session, assessment_id: str) -> Assessment:
    assessment = db.get(Assessment, assessment_id)
    if assessment is None:
        raise HTTPException(status_code=404, detail="assessment not found")
    return assessment


@router.get("", response_model=List[AssessmentOut])
def list_assessments(
    organization_id: Optional[int] = None,
    status: Optional[AssessmentStatus] = None,
    limit: int = 50,
    db: Session = Depends(get_db),
):
    query = db.query(Assessment)
    if organization_id is not None:
        query = query.filter(Assessment.organization_id == organization_id)
    if status is not None:
        query = query.filter(Assessment.status == status.value)
    limit = max(1, min(limit, 500))
    rows = query.order_by(Assessment.updated_at.desc()).limit(limit).all()
    return [_assessment_out(a) for a in rows]


@router.post("", response_model=AssessmentOut, status_code=201)
def create_assessment(req: AssessmentCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    get_organization_or_404(db, req.organization_id)
    assessment = Assessment(id=uuid.uuid4().hex, organization_id=req.organization_id, name=req.name.strip())
    db.add(assessment)
    recompute_assessment(db, assessment)
    db.commit()
    db.refresh(assessment)
    logger.info("Assessment %s created for organization %s by %s", assessment.id, req.organization_id, user.username)
    return _assessment_out(assessment)


@router.get("/{assessment_id}", response_model=AssessmentOut)
def get_assessment(assessment_id: str, db: Session = Depends(get_db)):
    return _assessment_out(_get_assessment_or_404(db, assessment_id))


@router.delete("/{assessment_id}", status_code=204)
def delete_assessment(assessment_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    assessment = _get_assessment_or_404(db, assessment_id)
    db.delete(assessment)
    db.commit()
    logger.info("Assessment %s deleted by %s", assessment_id, user.username)


@router.get("/{assessment_id}/responses", response_model=List[ResponseOut])
def list_responses(assessment_id: str, db: Session = Depends(get_db)):
    assessment = _get_assessment_or_404(db, assessment_id)
    rows = sorted(assessment.responses, key=lambda r: r.question_id)
    return [ResponseOut(question_id=r.question_id, value=r.value, answered_at=r.answered_at) for r in rows]


@router.put("/{assessment_id}/responses", response_model=ResponseWriteResult)
def put_responses(assessment_id: str, req: ResponseBatch, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    assessment = _get_assessment_or_404(db, assessment_id)
    # Only well-formed answers are persisted; scoring of payloads reports these as conditions instead
    for response in req.responses:
        if not is_valid_response_value(response.value):
            raise HTTPException(status_code=400, detail=f"value for '{response.question_id}' must be a number from 1 to 5")
    question_ids = {response.question_id for response in req.responses}
    if question_ids:
        known = {row.id for row in db.query(Question.id).filter(Question.id.in_(question_ids)).all()}
        unknown = sorted(question_ids - known)
        if unknown:
            raise HTTPException(status_code=400, detail=f"unknown question ids: {', '.join(unknown)}")
    written = upsert_responses(db, assessment, req.responses)
    db.commit()
    db.refresh(assessment)
    score = score_stored_assessment(db, assessment)
    logger.info("Assessment %s: %d responses written by %s, score=%d", assessment_id, written, user.username, score.overall_score)
    return ResponseWriteResult(written=written, score=score)


@router.get("/{assessment_id}/score", response_model=ScoreResult)
def get_score(assessment_id: str, db: Session = Depends(get_db)):
    return score_stored_assessment(db, _get_assessment_or_404(db, assessment_id))


@router.get("/{assessment_id}/insights", response_model=InsightsOut)
def get_insights(assessment_id: str, db: Session = Depends(get_db)):
    result = score_stored_assessment(db, _get_assessment_or_404(db, assessment_id))
    insights = generate_insights(result.per_section, RECOMMENDATIONS, threshold=settings.insight_threshold)
    return InsightsOut(
        assessment_id=assessment_id,
        overall_score=result.overall_score,
        status=result.status,
        insights=insights,
        summary=summarize_insights(insights),
        scale=scale_insights(result.statistics),
    )
