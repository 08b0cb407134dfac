"""AskRexi: keyword-driven compliance assistant.

Questions are categorised by simple keyword checks; off-topic questions get a
polite scoped refusal. Answers are canned per category unless an LLM client is
configured to phrase them.
"""

from __future__ import annotations

import hashlib
import json
import re
from typing import Any, Dict, List, Optional, Tuple

from pydantic import Field

from .schemas import CamelModel


CATEGORY_KEYWORDS: List[Tuple[str, Tuple[str, ...]]] = [
    ("regulatory", ("fda", "ema", "ich", "regulatory", "regulation", "guideline")),
    ("assessment", ("assessment", "question", "section")),
    ("analytics", ("analytics", "score", "performance")),
]

COMPLIANCE_KEYWORDS: Tuple[str, ...] = (
    "fda", "ema", "ich", "regulation", "guideline", "compliance", "regulatory",
    "assessment", "question", "section", "requirement", "evidence", "documentation",
    "analytics", "report", "performance", "score", "trend", "metric", "dashboard",
    "ai", "artificial intelligence", "machine learning", "model", "algorithm",
    "pharmaceutical", "pharma", "drug", "medicine", "therapeutic", "clinical",
    "quality", "governance", "risk", "safety", "efficacy", "validation",
)

OFF_TOPIC_PATTERNS: List[Tuple[str, str]] = [
    (r"weather|temperature|rain|snow|sunny|cloudy|forecast|climate", "weather"),
    (r"football|soccer|basketball|baseball|tennis|golf|sports|game|match|team|player", "sports"),
    (r"movie|film|actor|actress|celebrity|music|song|band|concert|entertainment", "entertainment"),
    (r"politics|election|president|government|news|current events", "news"),
    (r"personal health|medical advice|doctor|symptoms|illness|disease|treatment", "health"),
    (r"smartphone|phone|computer|laptop|gaming|video game|social media", "technology"),
    (r"travel|vacation|hotel|flight|airline|tourism|destination|trip", "travel"),
    (r"recipe|cooking|food|restaurant|meal|ingredient|kitchen|chef", "food"),
    (r"shopping|store|price|buy|purchase|deal|discount|retail", "shopping"),
    (r"history|geography|science|math|literature|art|culture|philosophy", "general knowledge"),
]

ANSWERS: Dict[str, str] = {
    "regulatory": "For regulatory guidance, I can help you understand FDA, EMA, and ICH requirements for pharmaceutical AI compliance. What specific regulatory question do you have?",
    "assessment": "I can help you with assessment questions and provide guidance on completing your compliance evaluation. What assessment area would you like help with?",
    "analytics": "I can provide insights on your compliance analytics, performance metrics, and recommendations for improvement. What analytics would you like to explore?",
    "general": "I'm AskRexi, your regulatory compliance assistant. I can help you with regulatory guidance, assessment questions, and compliance analytics.",
}

IMPACT_LEVELS: Dict[str, str] = {
    "regulatory": "high",
    "assessment": "medium",
    "analytics": "medium",
    "general": "low",
}

ACTION_ITEMS: List[str] = [
    "Ask about specific regulations",
    "Get assessment guidance",
    "Request compliance insights",
]

OFF_TOPIC_ACTION_ITEMS: List[str] = [
    "Ask about FDA, EMA, or ICH regulations",
    "Get guidance on assessment questions",
    "Request analytics and performance insights",
    "Learn about compliance requirements",
]

RELATED_QUESTIONS: Dict[str, List[str]] = {
    "regulatory": [
        "What are the latest FDA guidelines for AI in healthcare?",
        "What regulations apply to our therapeutic area?",
    ],
    "assessment": [
        "How do I complete the data governance assessment section?",
        "Which sections are blocking completion?",
    ],
    "analytics": [
        "What is our current compliance score?",
        "Which sections have the largest gaps?",
    ],
    "general": [
        "What are the latest FDA guidelines?",
        "How do I complete the assessment?",
        "What is our compliance score?",
    ],
}


class AskRexiAnswer(CamelModel):
    answer: str
    category: str
    keywords: List[str] = Field(default_factory=list)
    action_items: List[str] = Field(default_factory=list)
    impact_level: str = Field(default="low")
    related_questions: List[str] = Field(default_factory=list)
    off_topic: Optional[str] = Field(default=None)


def normalize_question(question: str) -> str:
    return " ".join(question.strip().lower().split())


def _contains(text: str, keyword: str) -> bool:
    # Whole-word match (plurals allowed) so "ai" does not fire on "maintain"
    return re.search(rf"\b{re.escape(keyword)}(?:s|es)?\b", text) is not None


def extract_keywords(question: str) -> List[str]:
    text = normalize_question(question)
    return [keyword for keyword in COMPLIANCE_KEYWORDS if _contains(text, keyword)]


def detect_off_topic(question: str) -> Optional[str]:
    """Return the off-topic category, or None when the question is in scope."""
    text = normalize_question(question)
    if extract_keywords(text):
        return None
    for pattern, category in OFF_TOPIC_PATTERNS:
        if re.search(pattern, text):
            return category
    return None


def categorize_question(question: str) -> str:
    text = normalize_question(question)
    for category, keywords in CATEGORY_KEYWORDS:
        if any(_contains(text, keyword) for keyword in keywords):
            return category
    return "general"


def build_answer(question: str) -> AskRexiAnswer:
    off_topic = detect_off_topic(question)
    if off_topic:
        return AskRexiAnswer(
            answer=(
                "I'm AskRexi, your regulatory compliance assistant. I specialize in helping with regulatory "
                "intelligence, assessment support, and analytics for pharmaceutical AI compliance. "
                f"I can't help with {off_topic} questions, but I'd be happy to assist you with compliance-related questions!"
            ),
            category="general",
            action_items=list(OFF_TOPIC_ACTION_ITEMS),
            impact_level="low",
            related_questions=list(RELATED_QUESTIONS["general"]),
            off_topic=off_topic,
        )
    category = categorize_question(question)
    return AskRexiAnswer(
        answer=ANSWERS[category],
        category=category,
        keywords=extract_keywords(question),
        action_items=list(ACTION_ITEMS),
        impact_level=IMPACT_LEVELS[category],
        related_questions=list(RELATED_QUESTIONS[category]),
    )


def question_hash(question: str, context: Optional[Dict[str, Any]] = None) -> str:
    context_json = json.dumps(context, sort_keys=True, default=str) if context else ""
    return hashlib.sha256(f"{normalize_question(question)}:{context_json}".encode("utf-8")).hexdigest()
