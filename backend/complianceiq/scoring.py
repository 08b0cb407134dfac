"""Assessment scoring.

Turns an assessment's responses plus the static section/question weight tables
into per-section and overall scores, the blocker list and the derived status.

Policy:
- earned points for a question are ``value / 5 * weight``
- a section's max counts every question defined for it, answered or not, so
  partial completion lowers the percentage instead of being excluded
- a critical section below the pass threshold keeps the assessment
  ``in_progress`` whatever the overall number says
- percentages are computed on exact fractions and rounded half-up once, so a
  true 22.5 reports 23

Bad data never raises here: unknown ids, out-of-range values and empty weight
tables are reported as conditions on an otherwise well-formed result. Only a
missing assessment id or a missing response collection is an error.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from enum import Enum
from fractions import Fraction
from typing import Any, Dict, Iterable, List, Optional

from pydantic import Field

from .schemas import CamelModel


DEFAULT_PASS_THRESHOLD = 70.0
MIN_RESPONSE_VALUE = 1
MAX_RESPONSE_VALUE = 5


class AssessmentStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ConditionCode(str, Enum):
    INSUFFICIENT_REFERENCE_DATA = "insufficient_reference_data"
    INVALID_RESPONSE_VALUE = "invalid_response_value"
    UNKNOWN_SECTION_OR_QUESTION = "unknown_section_or_question"


class PerformanceBand(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    AVERAGE = "average"
    NEEDS_IMPROVEMENT = "needs_improvement"
    CRITICAL_GAP = "critical_gap"


class OverallRating(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    CRITICAL = "critical"


class AssessmentInputError(ValueError):
    """Required scoring input is missing altogether."""


class ResponseInput(CamelModel):
    question_id: str
    # Left untyped so a bad value becomes a condition instead of a validation error
    value: Any = None
    answered_at: Optional[datetime] = None


class SectionInput(CamelModel):
    id: str
    title: Optional[str] = None
    position: int = 0
    weight: int = Field(default=0, ge=0)
    is_critical_blocker: bool = False


class QuestionInput(CamelModel):
    id: str
    section_id: str
    weight: int = Field(default=1, ge=0)


class ScoringInput(CamelModel):
    assessment_id: Optional[str] = None
    responses: Optional[List[ResponseInput]] = None
    sections: List[SectionInput] = Field(default_factory=list)
    questions: List[QuestionInput] = Field(default_factory=list)


class Condition(CamelModel):
    code: ConditionCode
    detail: str
    ref: Optional[str] = None


class SectionScore(CamelModel):
    section_id: str
    title: Optional[str] = None
    position: int = 0
    percentage: int
    earned_points: float
    max_points: int
    answered_questions: int
    total_questions: int
    completion_percentage: int
    is_critical_blocker: bool = False
    performance_band: PerformanceBand = PerformanceBand.CRITICAL_GAP


def _empty_distribution() -> Dict[int, int]:
    return {score: 0 for score in range(MIN_RESPONSE_VALUE, MAX_RESPONSE_VALUE + 1)}


class ScaleStatistics(CamelModel):
    """Spread of the 1-5 answers themselves, independent of question weights."""
    answered: int = 0
    average_score: float = 0.0
    distribution: Dict[int, int] = Field(default_factory=_empty_distribution)
    most_common_score: int = 0
    variance: float = 0.0
    improvement_areas: int = 0
    rating: Optional[OverallRating] = None


class ScoreResult(CamelModel):
    assessment_id: str
    overall_score: int
    status: AssessmentStatus
    completion_percentage: int = 0
    per_section: List[SectionScore] = Field(default_factory=list)
    blockers: List[str] = Field(default_factory=list)
    conditions: List[Condition] = Field(default_factory=list)
    statistics: ScaleStatistics = Field(default_factory=ScaleStatistics)


def as_fraction(value: Any) -> Fraction:
    # Floats go through their shortest repr so 0.55 means 11/20, not its binary neighbour
    if isinstance(value, float):
        return Fraction(repr(value))
    return Fraction(value)


def round_half_up(value: Any) -> int:
    return math.floor(as_fraction(value) + Fraction(1, 2))


def percentage(part: Any, whole: Any) -> int:
    if whole <= 0:
        return 0
    return max(0, min(100, round_half_up(100 * as_fraction(part) / as_fraction(whole))))


def performance_band(score: int, completion: int) -> PerformanceBand:
    """Band a section by its score and how much of it has been answered."""
    if score >= 80 and completion >= 90:
        return PerformanceBand.EXCELLENT
    if score >= 70 and completion >= 80:
        return PerformanceBand.GOOD
    if score >= 60 and completion >= 70:
        return PerformanceBand.AVERAGE
    if score >= 40 and completion >= 50:
        return PerformanceBand.NEEDS_IMPROVEMENT
    return PerformanceBand.CRITICAL_GAP


def overall_rating(average_score: Any) -> OverallRating:
    average = as_fraction(average_score)
    if average >= Fraction(9, 2):
        return OverallRating.EXCELLENT
    if average >= Fraction(7, 2):
        return OverallRating.GOOD
    if average >= Fraction(5, 2):
        return OverallRating.FAIR
    if average >= Fraction(3, 2):
        return OverallRating.POOR
    return OverallRating.CRITICAL


def scale_statistics(values: Iterable[Any]) -> ScaleStatistics:
    """Average, distribution, mode and variance of valid 1-5 answers.

    Fractional answers are bucketed to the nearest whole score for the
    distribution and mode. Ties for the mode go to the higher score.
    """
    answers = [as_fraction(value) for value in values if is_valid_response_value(value)]
    if not answers:
        return ScaleStatistics()
    distribution = _empty_distribution()
    for answer in answers:
        distribution[round_half_up(answer)] += 1
    mean = sum(answers, Fraction(0)) / len(answers)
    variance = sum(((answer - mean) ** 2 for answer in answers), Fraction(0)) / len(answers)
    return ScaleStatistics(
        answered=len(answers),
        average_score=round(float(mean), 2),
        distribution=distribution,
        most_common_score=max(distribution, key=lambda score: (distribution[score], score)),
        variance=round(float(variance), 4),
        improvement_areas=sum(1 for answer in answers if answer <= 2),
        rating=overall_rating(mean),
    )


def is_valid_response_value(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    if math.isnan(value):
        return False
    return MIN_RESPONSE_VALUE <= value <= MAX_RESPONSE_VALUE


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _supersedes(candidate: ResponseInput, current: ResponseInput) -> bool:
    # Later timestamp wins; without timestamps on both, the later list entry wins
    if candidate.answered_at is None or current.answered_at is None:
        return True
    return _as_utc(candidate.answered_at) >= _as_utc(current.answered_at)


def latest_responses(
    responses: Iterable[ResponseInput],
    known_questions: Dict[str, QuestionInput],
    conditions: List[Condition],
) -> Dict[str, ResponseInput]:
    """Keep one valid response per known question, reporting the rest as conditions."""
    latest: Dict[str, ResponseInput] = {}
    for response in responses:
        if response.question_id not in known_questions:
            conditions.append(Condition(
                code=ConditionCode.UNKNOWN_SECTION_OR_QUESTION,
                detail=f"Response refers to unknown question '{response.question_id}'",
                ref=response.question_id,
            ))
            continue
        if not is_valid_response_value(response.value):
            conditions.append(Condition(
                code=ConditionCode.INVALID_RESPONSE_VALUE,
                detail=f"Response value {response.value!r} for '{response.question_id}' is outside {MIN_RESPONSE_VALUE}-{MAX_RESPONSE_VALUE}",
                ref=response.question_id,
            ))
            continue
        current = latest.get(response.question_id)
        if current is None or _supersedes(response, current):
            latest[response.question_id] = response
    return latest


def score_assessment(
    assessment_id: Optional[str],
    responses: Optional[Iterable[ResponseInput]],
    sections: Iterable[SectionInput],
    questions: Iterable[QuestionInput],
    *,
    pass_threshold: float = DEFAULT_PASS_THRESHOLD,
) -> ScoreResult:
    """Score one assessment from its response set and the weight tables.

    Args:
        assessment_id: Identifier echoed back in the result (required)
        responses: Responses recorded for the assessment (required, may be empty)
        sections: Section reference rows
        questions: Question reference rows
        pass_threshold: Percentage a critical section must reach to not block

    Returns:
        ScoreResult with per-section breakdown, blockers and conditions
    """
    if not assessment_id:
        raise AssessmentInputError("assessment id is required")
    if responses is None:
        raise AssessmentInputError("response collection is required")

    responses = list(responses)
    sections = list(sections)
    questions = list(questions)
    conditions: List[Condition] = []

    if not sections or not questions:
        conditions.append(Condition(
            code=ConditionCode.INSUFFICIENT_REFERENCE_DATA,
            detail="Section and question weight tables must both be non-empty",
        ))
        status = AssessmentStatus.IN_PROGRESS if responses else AssessmentStatus.NOT_STARTED
        return ScoreResult(assessment_id=assessment_id, overall_score=0, status=status, conditions=conditions)

    sections_by_id: Dict[str, SectionInput] = {}
    for section in sections:
        if section.id in sections_by_id:
            conditions.append(Condition(
                code=ConditionCode.UNKNOWN_SECTION_OR_QUESTION,
                detail=f"Duplicate section id '{section.id}'; the first definition is used",
                ref=section.id,
            ))
            continue
        sections_by_id[section.id] = section

    questions_by_id: Dict[str, QuestionInput] = {}
    questions_by_section: Dict[str, List[QuestionInput]] = {section_id: [] for section_id in sections_by_id}
    for question in questions:
        if question.section_id not in sections_by_id:
            conditions.append(Condition(
                code=ConditionCode.UNKNOWN_SECTION_OR_QUESTION,
                detail=f"Question '{question.id}' refers to unknown section '{question.section_id}'",
                ref=question.id,
            ))
            continue
        if question.id in questions_by_id:
            conditions.append(Condition(
                code=ConditionCode.UNKNOWN_SECTION_OR_QUESTION,
                detail=f"Duplicate question id '{question.id}'; the first definition is used",
                ref=question.id,
            ))
            continue
        questions_by_id[question.id] = question
        questions_by_section[question.section_id].append(question)

    answered = latest_responses(responses, questions_by_id, conditions)

    per_section: List[SectionScore] = []
    blockers: List[str] = []
    total_earned = Fraction(0)
    total_max = 0
    for section in sorted(sections_by_id.values(), key=lambda s: (s.position, s.id)):
        section_questions = questions_by_section[section.id]
        earned = Fraction(0)
        max_points = 0
        answered_count = 0
        for question in section_questions:
            max_points += question.weight
            response = answered.get(question.id)
            if response is None:
                continue
            answered_count += 1
            earned += as_fraction(response.value) * question.weight / MAX_RESPONSE_VALUE
        section_pct = percentage(earned, max_points)
        section_completion = percentage(answered_count, len(section_questions))
        per_section.append(SectionScore(
            section_id=section.id,
            title=section.title,
            position=section.position,
            percentage=section_pct,
            earned_points=round(float(earned), 4),
            max_points=max_points,
            answered_questions=answered_count,
            total_questions=len(section_questions),
            completion_percentage=section_completion,
            is_critical_blocker=section.is_critical_blocker,
            performance_band=performance_band(section_pct, section_completion),
        ))
        if section.is_critical_blocker and section_pct < pass_threshold:
            blockers.append(section.id)
        total_earned += earned
        total_max += max_points

    if not answered:
        status = AssessmentStatus.NOT_STARTED
    elif len(answered) == len(questions_by_id) and not blockers:
        status = AssessmentStatus.COMPLETED
    else:
        status = AssessmentStatus.IN_PROGRESS

    return ScoreResult(
        assessment_id=assessment_id,
        overall_score=percentage(total_earned, total_max),
        status=status,
        completion_percentage=percentage(len(answered), len(questions_by_id)),
        per_section=per_section,
        blockers=blockers,
        conditions=conditions,
        statistics=scale_statistics(response.value for response in answered.values()),
    )


def score_payload(payload: ScoringInput, *, pass_threshold: float = DEFAULT_PASS_THRESHOLD) -> ScoreResult:
    return score_assessment(
        payload.assessment_id,
        payload.responses,
        payload.sections,
        payload.questions,
        pass_threshold=pass_threshold,
    )
