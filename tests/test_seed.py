"""Tests for the default reference data and startup seeding."""

from backend.complianceiq.models import Question, Section
from backend.complianceiq.reference_data import DEFAULT_SECTIONS, RECOMMENDATIONS
from backend.complianceiq.seed import seed_reference_data


class TestDefaultReferenceData:

    def test_section_ids_are_unique(self):
        ids = [section["id"] for section in DEFAULT_SECTIONS]
        assert len(ids) == len(set(ids)) == 12

    def test_question_ids_are_unique_and_weighted(self):
        questions = [q for section in DEFAULT_SECTIONS for q in section["questions"]]
        assert len({qid for qid, _, _ in questions}) == len(questions)
        assert all(weight > 0 for _, _, weight in questions)

    def test_every_section_has_recommendations(self):
        assert set(RECOMMENDATIONS) == {section["id"] for section in DEFAULT_SECTIONS}

    def test_organizational_readiness_is_not_critical(self):
        flags = {section["id"]: section.get("is_critical_blocker", False) for section in DEFAULT_SECTIONS}
        assert flags["organizational-readiness"] is False
        assert flags["regulatory-compliance"] is True


class TestSeeding:

    def test_seeds_once(self, db):
        assert seed_reference_data(db) == 12
        assert seed_reference_data(db) == 0
        assert db.query(Section).count() == 12
        expected = sum(len(section["questions"]) for section in DEFAULT_SECTIONS)
        assert db.query(Question).count() == expected

    def test_positions_follow_list_order(self, db):
        seed_reference_data(db)
        ordered = [row.id for row in db.query(Section).order_by(Section.position).all()]
        assert ordered == [section["id"] for section in DEFAULT_SECTIONS]
