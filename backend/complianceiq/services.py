from __future__ import annotations
import json
import logging
from datetime import datetime, timezone
from typing import Iterable, List, Tuple

from sqlalchemy.orm import Session

from .models import Assessment, Question, Response, Section
from .scoring import (
	AssessmentStatus,
	QuestionInput,
	ResponseInput,
	ScoreResult,
	SectionInput,
	score_assessment,
)
from .settings import settings


logger = logging.getLogger(__name__)


def load_reference_tables(db: Session) -> Tuple[List[SectionInput], List[QuestionInput]]:
	sections = [
		SectionInput(
			id=row.id,
			title=row.title,
			position=row.position,
			weight=row.weight,
			is_critical_blocker=row.is_critical_blocker,
		)
		for row in db.query(Section).order_by(Section.position, Section.id).all()
	]
	questions = [
		QuestionInput(id=row.id, section_id=row.section_id, weight=row.weight)
		for row in db.query(Question).order_by(Question.position, Question.id).all()
	]
	return sections, questions


def score_stored_assessment(db: Session, assessment: Assessment) -> ScoreResult:
	"""Score an assessment from the responses currently stored for it."""
	sections, questions = load_reference_tables(db)
	responses = [
		ResponseInput(question_id=row.question_id, value=row.value, answered_at=row.answered_at)
		for row in assessment.responses
	]
	return score_assessment(
		assessment.id,
		responses,
		sections,
		questions,
		pass_threshold=settings.pass_threshold,
	)


def recompute_assessment(db: Session, assessment: Assessment) -> ScoreResult:
	"""Refresh the derived score/status/blockers columns. Caller commits."""
	result = score_stored_assessment(db, assessment)
	assessment.current_score = result.overall_score
	assessment.status = result.status.value
	assessment.blockers_json = json.dumps(result.blockers)
	if result.status is AssessmentStatus.COMPLETED:
		if assessment.completed_at is None:
			assessment.completed_at = datetime.utcnow()
	else:
		assessment.completed_at = None
	db.add(assessment)
	logger.debug(
		"Recomputed assessment %s: score=%s status=%s blockers=%s",
		assessment.id, result.overall_score, result.status.value, result.blockers,
	)
	return result


def recompute_all(db: Session) -> int:
	"""Refresh every assessment after the reference tables change. Caller commits."""
	assessments = db.query(Assessment).all()
	for assessment in assessments:
		recompute_assessment(db, assessment)
	if assessments:
		logger.info("Recomputed %d assessments after reference data change", len(assessments))
	return len(assessments)


def _naive_utc(moment: datetime) -> datetime:
	if moment.tzinfo is None:
		return moment
	return moment.astimezone(timezone.utc).replace(tzinfo=None)


def upsert_responses(db: Session, assessment: Assessment, responses: Iterable[ResponseInput]) -> int:
	"""Store responses, keeping the later answer per question. Returns rows written."""
	existing = {row.question_id: row for row in assessment.responses}
	written = 0
	for response in responses:
		answered_at = _naive_utc(response.answered_at) if response.answered_at else datetime.utcnow()
		row = existing.get(response.question_id)
		if row is None:
			row = Response(
				assessment_id=assessment.id,
				question_id=response.question_id,
				value=float(response.value),
				answered_at=answered_at,
			)
			assessment.responses.append(row)
			existing[response.question_id] = row
			written += 1
			continue
		if answered_at < row.answered_at:
			# Stale write; the stored answer is newer
			continue
		row.value = float(response.value)
		row.answered_at = answered_at
		written += 1
	recompute_assessment(db, assessment)
	return written


def stored_blockers(assessment: Assessment) -> List[str]:
	if not assessment.blockers_json:
		return []
	try:
		return list(json.loads(assessment.blockers_json))
	except ValueError:
		return []
