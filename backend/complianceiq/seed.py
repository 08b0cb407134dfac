from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from .models import Question, Section
from .reference_data import DEFAULT_SECTIONS


logger = logging.getLogger(__name__)


def seed_reference_data(db: Session, sections: Optional[List[Dict[str, Any]]] = None) -> int:
	"""Insert the default sections and questions if the sections table is empty.

	Returns the number of sections inserted (0 when data already exists).
	"""
	if db.query(Section).first() is not None:
		return 0
	sections = sections if sections is not None else DEFAULT_SECTIONS
	for position, entry in enumerate(sections, start=1):
		section = Section(
			id=entry["id"],
			title=entry["title"],
			description=entry.get("description"),
			position=position,
			weight=entry.get("weight", 0),
			is_critical_blocker=entry.get("is_critical_blocker", False),
		)
		db.add(section)
		for q_position, (question_id, text, weight) in enumerate(entry.get("questions", []), start=1):
			db.add(Question(id=question_id, section_id=section.id, text=text, weight=weight, position=q_position))
	db.commit()
	logger.info("Seeded %d assessment sections", len(sections))
	return len(sections)
