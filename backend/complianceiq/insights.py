"""Learning insights derived from section scores.

Every call recomputes from the current section percentages; insights are never
stored or updated in place.
"""

from __future__ import annotations

from enum import Enum
from fractions import Fraction
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from pydantic import Field

from .schemas import CamelModel
from .scoring import OverallRating, ScaleStatistics, SectionScore, as_fraction, round_half_up


DEFAULT_INSIGHT_THRESHOLD = 70.0
HIGH_SEVERITY_BELOW = 50

GENERIC_RECOMMENDATIONS: List[str] = [
    "Assign an owner to close the gaps identified in this section",
    "Collect supporting evidence for each requirement before re-assessing",
    "Schedule a follow-up review once remediation is in place",
]


class InsightSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RemediationEffort(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class InsightType(str, Enum):
    GAP_ANALYSIS = "gap_analysis"
    RISK_ASSESSMENT = "risk_assessment"


SEVERITY_RANK: Dict[InsightSeverity, int] = {
    InsightSeverity.CRITICAL: 0,
    InsightSeverity.HIGH: 1,
    InsightSeverity.MEDIUM: 2,
    InsightSeverity.LOW: 3,
}


class Insight(CamelModel):
    section_id: str
    section_title: Optional[str] = None
    type: InsightType
    severity: InsightSeverity
    confidence: int
    percentage: int
    gap: float
    remediation_priority: int
    estimated_effort: RemediationEffort
    recommendations: List[str] = Field(default_factory=list)


class InsightSummary(CamelModel):
    total: int = 0
    by_severity: Dict[InsightSeverity, int] = Field(default_factory=dict)
    critical_sections: List[str] = Field(default_factory=list)


def severity_for(section: SectionScore, threshold: float = DEFAULT_INSIGHT_THRESHOLD) -> Optional[InsightSeverity]:
    """Severity of the insight a section should produce, or None."""
    if section.percentage >= threshold:
        return None
    # Nothing to answer means no measured gap; only a critical one still blocks
    if section.total_questions == 0 and not section.is_critical_blocker:
        return None
    if section.is_critical_blocker:
        return InsightSeverity.CRITICAL
    if section.percentage < HIGH_SEVERITY_BELOW:
        return InsightSeverity.HIGH
    return InsightSeverity.MEDIUM


def confidence_for(percentage: float, threshold: float = DEFAULT_INSIGHT_THRESHOLD) -> int:
    # Widens with the gap: 50 at the threshold, capped at 100
    return round_half_up(min(Fraction(100), (as_fraction(threshold) - as_fraction(percentage)) * 2 + 50))


def remediation_priority(section: SectionScore, gap: float) -> int:
    """Priority 5-10: critical sections, wide gaps and unfinished sections rank higher."""
    priority = 5
    if section.is_critical_blocker:
        priority += 3
    if gap > 30:
        priority += 2
    if section.completion_percentage < 70:
        priority += 1
    return min(priority, 10)


def estimate_effort(section: SectionScore, gap: float) -> RemediationEffort:
    if gap > 40 or section.is_critical_blocker:
        return RemediationEffort.HIGH
    if gap > 20:
        return RemediationEffort.MEDIUM
    return RemediationEffort.LOW


def generate_insights(
    sections: Iterable[SectionScore],
    recommendations: Optional[Mapping[str, Sequence[str]]] = None,
    *,
    threshold: float = DEFAULT_INSIGHT_THRESHOLD,
) -> List[Insight]:
    """Build the ordered insight list for sections scoring below threshold.

    Ordered by severity (critical first), then confidence descending, then
    section position.
    """
    recommendations = recommendations or {}
    ranked = []
    for section in sections:
        severity = severity_for(section, threshold)
        if severity is None:
            continue
        gap = round(threshold - section.percentage, 2)
        insight = Insight(
            section_id=section.section_id,
            section_title=section.title,
            type=InsightType.RISK_ASSESSMENT if severity is InsightSeverity.CRITICAL else InsightType.GAP_ANALYSIS,
            severity=severity,
            confidence=confidence_for(section.percentage, threshold),
            percentage=section.percentage,
            gap=gap,
            remediation_priority=remediation_priority(section, gap),
            estimated_effort=estimate_effort(section, gap),
            recommendations=list(recommendations.get(section.section_id) or GENERIC_RECOMMENDATIONS),
        )
        ranked.append((SEVERITY_RANK[severity], -insight.confidence, section.position, section.section_id, insight))
    ranked.sort(key=lambda item: item[:4])
    return [item[-1] for item in ranked]


def summarize_insights(insights: Iterable[Insight]) -> InsightSummary:
    summary = InsightSummary(by_severity={severity: 0 for severity in InsightSeverity})
    for insight in insights:
        summary.total += 1
        summary.by_severity[insight.severity] += 1
        if insight.severity is InsightSeverity.CRITICAL:
            summary.critical_sections.append(insight.section_id)
    return summary


RATING_ADVICE: Dict[OverallRating, str] = {
    OverallRating.CRITICAL: "Immediate action required - overall score indicates significant gaps",
    OverallRating.POOR: "Immediate action required - overall score indicates significant gaps",
    OverallRating.FAIR: "Improvement needed - focus on areas with low scores",
    OverallRating.GOOD: "Good progress - continue building on strengths",
    OverallRating.EXCELLENT: "Excellent performance - maintain current practices",
}


class ScaleInsights(CamelModel):
    rating: Optional[OverallRating] = None
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


def scale_insights(statistics: ScaleStatistics) -> ScaleInsights:
    """Plain-language reading of the answer distribution."""
    if not statistics.answered:
        return ScaleInsights()
    counts = statistics.distribution
    result = ScaleInsights(rating=statistics.rating)
    for score, label in ((5, "Strongly Agree"), (4, "Agree")):
        if counts.get(score):
            result.strengths.append(f'{counts[score]} question(s) rated as "{label}"')
    for score, label in ((1, "Strongly Disagree"), (2, "Disagree")):
        if counts.get(score):
            result.weaknesses.append(f'{counts[score]} question(s) rated as "{label}"')

    result.recommendations.append(RATING_ADVICE[statistics.rating])
    if statistics.improvement_areas:
        result.recommendations.append(f"{statistics.improvement_areas} area(s) need immediate attention (scores <= 2)")
    return result
