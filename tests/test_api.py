"""End-to-end tests for the HTTP routes against an in-memory database."""

from datetime import datetime, timedelta

from backend.complianceiq.cleanup import purge_stale_rows
from backend.complianceiq.main import refresh_stored_scores
from backend.complianceiq.models import AuthSession, ChatResponseCache, ChatUsageLog
from backend.complianceiq.routers.auth import ensure_seed_user
from backend.complianceiq.settings import settings


def put(client, assessment_id, *responses):
    return client.put(f"/assessments/{assessment_id}/responses", json={"responses": list(responses)})


def answer(question_id, value, answered_at=None):
    item = {"questionId": question_id, "value": value}
    if answered_at:
        item["answeredAt"] = answered_at
    return item


class TestOrganizations:

    def test_create_list_get(self, seeded_client, organization_id):
        listed = seeded_client.get("/organizations").json()
        assert [org["name"] for org in listed] == ["Acme Pharma"]
        resp = seeded_client.get(f"/organizations/{organization_id}")
        assert resp.status_code == 200
        assert resp.json()["industry_type"] == "Pharmaceutical"

    def test_duplicate_name(self, seeded_client, organization_id):
        resp = seeded_client.post("/organizations", json={"name": "Acme Pharma"})
        assert resp.status_code == 409

    def test_soft_delete(self, seeded_client, organization_id):
        assert seeded_client.delete(f"/organizations/{organization_id}").status_code == 204
        assert seeded_client.get(f"/organizations/{organization_id}").status_code == 404
        assert seeded_client.get("/organizations").json() == []

    def test_missing(self, seeded_client):
        assert seeded_client.get("/organizations/999").status_code == 404


class TestSections:

    def test_seeded_sections(self, seeded_client):
        sections = seeded_client.get("/sections", params={"include_questions": True}).json()
        assert [s["id"] for s in sections] == ["governance", "operations"]
        assert sections[0]["is_critical_blocker"] is True
        assert sections[0]["total_points"] == 10
        assert [q["id"] for q in sections[1]["questions"]] == ["ops-1", "ops-2"]

    def test_create_section_and_question(self, seeded_client):
        resp = seeded_client.post("/sections", json={"id": "security", "title": "Security", "is_critical_blocker": True})
        assert resp.status_code == 201
        assert resp.json()["position"] == 3
        resp = seeded_client.post("/sections/security/questions", json={"id": "sec-1", "text": "Pen-tested?", "weight": 3})
        assert resp.status_code == 201
        questions = seeded_client.get("/sections/security/questions").json()
        assert [q["id"] for q in questions] == ["sec-1"]

    def test_duplicate_section(self, seeded_client):
        resp = seeded_client.post("/sections", json={"id": "governance", "title": "Again"})
        assert resp.status_code == 409

    def test_question_for_missing_section(self, seeded_client):
        resp = seeded_client.post("/sections/nope/questions", json={"id": "x-1", "text": "?"})
        assert resp.status_code == 404

    def test_new_question_rescores_stored_assessments(self, seeded_client, assessment_id):
        put(seeded_client, assessment_id, answer("gov-1", 5), answer("gov-2", 5), answer("ops-1", 5), answer("ops-2", 5))
        assert seeded_client.get(f"/assessments/{assessment_id}").json()["status"] == "completed"

        seeded_client.post("/sections/operations/questions", json={"id": "ops-3", "text": "Monitored?", "weight": 10})

        stored = seeded_client.get(f"/assessments/{assessment_id}").json()
        score = seeded_client.get(f"/assessments/{assessment_id}/score").json()
        assert stored["current_score"] == score["overallScore"] == 67
        assert stored["status"] == "in_progress"
        assert stored["completed_at"] is None


class TestAssessments:

    def test_new_assessment_is_not_started(self, seeded_client, assessment_id):
        body = seeded_client.get(f"/assessments/{assessment_id}").json()
        assert body["current_score"] == 0
        assert body["status"] == "not_started"
        assert body["blockers"] == []

    def test_unknown_organization(self, seeded_client):
        resp = seeded_client.post("/assessments", json={"organization_id": 42, "name": "x"})
        assert resp.status_code == 404

    def test_partial_answers(self, seeded_client, assessment_id):
        resp = put(seeded_client, assessment_id, answer("gov-1", 5))
        assert resp.status_code == 200
        body = resp.json()
        assert body["written"] == 1
        assert body["score"]["overallScore"] == 25
        assert body["score"]["status"] == "in_progress"
        assert body["score"]["blockers"] == ["governance"]

        stored = seeded_client.get(f"/assessments/{assessment_id}").json()
        assert stored["current_score"] == 25
        assert stored["blockers"] == ["governance"]

    def test_completed_assessment(self, seeded_client, assessment_id):
        put(seeded_client, assessment_id, answer("gov-1", 4), answer("gov-2", 4), answer("ops-1", 3), answer("ops-2", 5))
        stored = seeded_client.get(f"/assessments/{assessment_id}").json()
        # gov 8/10, ops 2.4+6=8.4/10
        assert stored["current_score"] == 82
        assert stored["status"] == "completed"
        assert stored["completed_at"] is not None

    def test_stored_score_matches_recomputed_score(self, seeded_client, assessment_id):
        put(seeded_client, assessment_id, answer("gov-1", 2), answer("ops-2", 4))
        put(seeded_client, assessment_id, answer("gov-1", 3))
        stored = seeded_client.get(f"/assessments/{assessment_id}").json()
        score = seeded_client.get(f"/assessments/{assessment_id}/score").json()
        assert stored["current_score"] == score["overallScore"]
        assert stored["status"] == score["status"]

    def test_later_answer_overwrites(self, seeded_client, assessment_id):
        put(seeded_client, assessment_id, answer("gov-1", 2))
        put(seeded_client, assessment_id, answer("gov-1", 5))
        responses = seeded_client.get(f"/assessments/{assessment_id}/responses").json()
        assert len(responses) == 1
        assert responses[0]["value"] == 5

    def test_stale_answer_ignored(self, seeded_client, assessment_id):
        put(seeded_client, assessment_id, answer("gov-1", 5, "2026-01-02T00:00:00Z"))
        resp = put(seeded_client, assessment_id, answer("gov-1", 1, "2026-01-01T00:00:00Z"))
        assert resp.json()["written"] == 0
        responses = seeded_client.get(f"/assessments/{assessment_id}/responses").json()
        assert responses[0]["value"] == 5

    def test_invalid_value_rejected(self, seeded_client, assessment_id):
        resp = put(seeded_client, assessment_id, answer("gov-1", 7))
        assert resp.status_code == 400
        assert seeded_client.get(f"/assessments/{assessment_id}/responses").json() == []

    def test_unknown_question_rejected(self, seeded_client, assessment_id):
        resp = put(seeded_client, assessment_id, answer("gov-1", 3), answer("made-up", 3))
        assert resp.status_code == 400
        assert "made-up" in resp.json()["detail"]

    def test_filters(self, seeded_client, organization_id, assessment_id):
        put(seeded_client, assessment_id, answer("gov-1", 5))
        other = seeded_client.post("/assessments", json={"organization_id": organization_id, "name": "Q4"}).json()
        in_progress = seeded_client.get("/assessments", params={"status": "in_progress"}).json()
        assert [a["id"] for a in in_progress] == [assessment_id]
        not_started = seeded_client.get("/assessments", params={"status": "not_started"}).json()
        assert [a["id"] for a in not_started] == [other["id"]]
        assert len(seeded_client.get("/assessments", params={"organization_id": organization_id}).json()) == 2

    def test_delete(self, seeded_client, assessment_id):
        put(seeded_client, assessment_id, answer("gov-1", 5))
        assert seeded_client.delete(f"/assessments/{assessment_id}").status_code == 204
        assert seeded_client.get(f"/assessments/{assessment_id}").status_code == 404

    def test_insights(self, seeded_client, assessment_id):
        put(seeded_client, assessment_id, answer("gov-1", 5))
        body = seeded_client.get(f"/assessments/{assessment_id}/insights").json()
        assert [i["sectionId"] for i in body["insights"]] == ["governance", "operations"]
        assert body["insights"][0]["severity"] == "critical"
        assert body["insights"][0]["confidence"] == 90
        assert body["insights"][1]["severity"] == "high"
        assert body["insights"][1]["recommendations"]
        assert body["summary"]["criticalSections"] == ["governance"]

    def test_score_reports_bands_and_answer_statistics(self, seeded_client, assessment_id):
        put(seeded_client, assessment_id, answer("gov-1", 5), answer("ops-1", 2))
        body = seeded_client.get(f"/assessments/{assessment_id}/score").json()
        bands = {s["sectionId"]: s["performanceBand"] for s in body["perSection"]}
        assert bands == {"governance": "needs_improvement", "operations": "critical_gap"}
        stats = body["statistics"]
        assert stats["answered"] == 2
        assert stats["averageScore"] == 3.5
        assert stats["mostCommonScore"] == 5
        assert stats["distribution"]["2"] == 1
        assert stats["rating"] == "good"

    def test_insights_carry_remediation_and_scale_reading(self, seeded_client, assessment_id):
        put(seeded_client, assessment_id, answer("gov-1", 5), answer("ops-1", 2))
        body = seeded_client.get(f"/assessments/{assessment_id}/insights").json()
        governance = body["insights"][0]
        assert governance["remediationPriority"] == 9
        assert governance["estimatedEffort"] == "high"
        assert body["scale"]["rating"] == "good"
        assert body["scale"]["weaknesses"] == ['1 question(s) rated as "Disagree"']
        assert "1 area(s) need immediate attention (scores <= 2)" in body["scale"]["recommendations"]

    def test_startup_refresh_applies_new_pass_threshold(self, seeded_client, assessment_id, session_factory, monkeypatch):
        put(seeded_client, assessment_id, answer("gov-1", 4), answer("gov-2", 4), answer("ops-1", 5), answer("ops-2", 5))
        assert seeded_client.get(f"/assessments/{assessment_id}").json()["status"] == "completed"

        monkeypatch.setattr(settings, "pass_threshold", 90)
        score = seeded_client.get(f"/assessments/{assessment_id}/score").json()
        assert score["status"] == "in_progress"
        assert score["blockers"] == ["governance"]
        assert seeded_client.get(f"/assessments/{assessment_id}").json()["status"] == "completed"

        assert refresh_stored_scores(session_factory) == 1
        stored = seeded_client.get(f"/assessments/{assessment_id}").json()
        assert stored["current_score"] == score["overallScore"] == 90
        assert stored["status"] == score["status"]
        assert stored["blockers"] == score["blockers"]


class TestStatelessScoring:

    PAYLOAD = {
        "assessmentId": "adhoc",
        "sections": [
            {"id": "gov", "title": "Governance", "position": 1, "isCriticalBlocker": True},
            {"id": "ops", "title": "Operations", "position": 2},
        ],
        "questions": [
            {"id": "g1", "sectionId": "gov", "weight": 10},
            {"id": "o1", "sectionId": "ops", "weight": 20},
        ],
    }

    def test_evaluate(self, client):
        payload = dict(self.PAYLOAD, responses=[{"questionId": "g1", "value": 3}, {"questionId": "o1", "value": 5}])
        body = client.post("/scoring/evaluate", json=payload).json()
        assert body["overallScore"] == 87
        assert body["blockers"] == ["gov"]
        assert body["status"] == "in_progress"

    def test_invalid_values_become_conditions(self, client):
        payload = dict(self.PAYLOAD, responses=[{"questionId": "g1", "value": 9}])
        body = client.post("/scoring/evaluate", json=payload).json()
        assert body["conditions"][0]["code"] == "invalid_response_value"

    def test_empty_reference_tables(self, client):
        body = client.post("/scoring/evaluate", json={"assessmentId": "adhoc", "responses": []}).json()
        assert body["overallScore"] == 0
        assert body["conditions"][0]["code"] == "insufficient_reference_data"

    def test_missing_assessment_id(self, client):
        payload = dict(self.PAYLOAD, responses=[])
        del payload["assessmentId"]
        assert client.post("/scoring/evaluate", json=payload).status_code == 400

    def test_missing_responses(self, client):
        assert client.post("/scoring/evaluate", json=self.PAYLOAD).status_code == 400

    def test_insights_with_threshold(self, client):
        payload = dict(self.PAYLOAD, responses=[{"questionId": "g1", "value": 5}, {"questionId": "o1", "value": 4}], threshold=90)
        body = client.post("/scoring/insights", json=payload).json()
        assert body["score"]["overallScore"] == 87
        assert [i["sectionId"] for i in body["insights"]] == ["ops"]
        assert body["summary"]["total"] == 1


class TestMonitoring:

    def test_evaluate(self, client):
        body = client.post("/monitoring/evaluate", json={"errorRate": 1.0}).json()
        assert body["healthScore"] == 45
        assert body["status"] == "critical"

    def test_samples_and_trend(self, client):
        for error_rate in (0.3, 0.2, 0.1):
            resp = client.post("/monitoring/samples", json={"errorRate": error_rate, "requestsPerSec": 5})
            assert resp.status_code == 201
        trend = client.get("/monitoring/trend").json()
        assert trend["trend"] == "up"
        assert trend["samples"] == 3
        report = client.get("/monitoring/health").json()
        assert report["current"]["metrics"]["errorRate"] == 0.1
        history = client.get("/monitoring/history").json()
        assert history["count"] == 3
        assert history["capacity"] == 24

    def test_empty_history(self, client):
        report = client.get("/monitoring/health").json()
        assert report["current"] is None
        assert report["trend"]["trend"] == "flat"

    def test_negative_metric_rejected(self, client):
        assert client.post("/monitoring/evaluate", json={"errorRate": -1}).status_code == 422

    def test_rate_above_one_rejected(self, client):
        assert client.post("/monitoring/evaluate", json={"errorRate": 1.5}).status_code == 422
        assert client.post("/monitoring/samples", json={"memoryUtil": 1.2}).status_code == 422


class TestAskRexi:

    def test_answer_then_cache_hit(self, client):
        first = client.post("/askrexi", json={"question": "What does the FDA expect?"}).json()
        assert first["category"] == "regulatory"
        assert first["cached"] is False
        second = client.post("/askrexi", json={"question": "  what does the fda EXPECT? "}).json()
        assert second["cached"] is True
        assert second["answer"] == first["answer"]

        stats = client.get("/askrexi/stats").json()
        assert stats["total"] == 2
        assert stats["cachedHits"] == 1
        assert stats["byCategory"] == {"regulatory": 2}
        assert stats["cacheEntries"] == 1

    def test_off_topic(self, client):
        body = client.post("/askrexi", json={"question": "Any good recipe ideas?"}).json()
        assert body["offTopic"] == "food"
        assert body["actionItems"]

    def test_empty_question(self, client):
        assert client.post("/askrexi", json={"question": "   "}).status_code == 400


class TestAuth:

    def test_register_login_logout(self, anonymous_client):
        client = anonymous_client
        resp = client.post("/auth/register", json={"username": "qa-lead", "password": "s3cret-pass"})
        assert resp.status_code == 201
        assert client.post("/auth/register", json={"username": "qa-lead", "password": "x"}).status_code == 409

        assert client.post("/auth/token", data={"username": "qa-lead", "password": "wrong"}).status_code == 401
        token = client.post("/auth/token", data={"username": "qa-lead", "password": "s3cret-pass"}).json()["access_token"]
        headers = {"Authorization": f"Bearer {token}"}
        assert client.get("/auth/me", headers=headers).json() == {"username": "qa-lead"}

        assert client.post("/organizations", json={"name": "Beta Bio"}, headers=headers).status_code == 201

        assert client.post("/auth/logout", headers=headers).status_code == 204
        assert client.get("/auth/me", headers=headers).status_code == 401

    def test_seed_user_can_log_in(self, anonymous_client, db, monkeypatch):
        monkeypatch.setattr(settings, "seed_username", "admin")
        monkeypatch.setattr(settings, "seed_password_plain", "admin-pass")
        assert ensure_seed_user(db) is True
        assert ensure_seed_user(db) is False
        resp = anonymous_client.post("/auth/token", data={"username": "admin", "password": "admin-pass"})
        assert resp.status_code == 200
        assert resp.json()["token_type"] == "bearer"

    def test_writes_require_token(self, anonymous_client):
        assert anonymous_client.post("/organizations", json={"name": "Gamma"}).status_code == 401
        assert anonymous_client.get("/organizations").status_code == 200


class TestCleanup:

    def test_purges_only_stale_rows(self, db):
        now = datetime(2026, 6, 1)
        old = now - timedelta(days=30)
        db.add_all([
            ChatResponseCache(question_hash="old", question="q", category="general", response_json="{}", last_accessed_at=old),
            ChatResponseCache(question_hash="new", question="q", category="general", response_json="{}", last_accessed_at=now),
            ChatUsageLog(question="q", category="general", created_at=old),
            ChatUsageLog(question="q", category="general", created_at=now),
            AuthSession(session_id="stale", username="u", last_activity_at=old),
            AuthSession(session_id="live", username="u", last_activity_at=now),
        ])
        db.commit()

        assert purge_stale_rows(db, retention_days=7, now=now) == 3
        assert [row.question_hash for row in db.query(ChatResponseCache).all()] == ["new"]
        assert db.query(ChatUsageLog).count() == 1
        assert [row.session_id for row in db.query(AuthSession).all()] == ["live"]
