"""Tests for the dashboard view model."""

import json
from datetime import datetime

import pytest

from geoeval.core import state as dash
from geoeval.core.constants import EvaluationConstants
from geoeval.core.models import Analysis, GeoMetrics, Provider, QuestionResult
from geoeval.core.state import DashboardState, InvalidTransition, Status


def make_state(**overrides):
    base = dict(
        domain="acme.com",
        nation="USA",
        state="Texas",
        analysis=Analysis(brand_name="Acme"),
        results=(
            QuestionResult(id="0", category="General", question="Best plumber?"),
            QuestionResult(id="1", category="Pricing", question="Cheap plumber?", full_answer="Acme", found=True),
        ),
        status=Status.QUESTIONS_READY,
    )
    base.update(overrides)
    return DashboardState(**base)


class TestTransitions:
    """Status transition table."""

    def test_allowed_moves(self):
        assert dash.can_transition(Status.IDLE, Status.ANALYZING)
        assert dash.can_transition(Status.EVALUATING, Status.COMPLETED)
        assert dash.can_transition(Status.COMPLETED, Status.ANALYZING)
        assert dash.can_transition(Status.ERROR, Status.ANALYZING)

    def test_rejected_moves(self):
        assert not dash.can_transition(Status.IDLE, Status.EVALUATING)
        assert not dash.can_transition(Status.ANALYZING, Status.COMPLETED)
        assert not dash.can_transition(Status.GENERATING, Status.ANALYZING)

    def test_transition_raises(self):
        with pytest.raises(InvalidTransition):
            dash.transition(DashboardState(), Status.EVALUATING)

    def test_transition_accepts_region_change(self):
        s = dash.transition(DashboardState(), Status.ANALYZING, state="Texas")
        assert s.state == "Texas"
        assert s.status == Status.ANALYZING

    def test_transition_applies_changes(self):
        s = dash.transition(DashboardState(domain="acme.com"), Status.ANALYZING, progress=5)
        assert s.status == Status.ANALYZING
        assert s.progress == 5
        assert s.domain == "acme.com"

    def test_fail_sets_message_and_clears_loading(self):
        s = make_state(status=Status.ANALYZING, results=(
            QuestionResult(id="0", category="General", question="q", loading=True),
        ))
        failed = dash.fail(s, None)
        assert failed.status == Status.ERROR
        assert failed.error == EvaluationConstants.ANALYSIS_FALLBACK_ERROR
        assert not failed.results[0].loading

    def test_busy(self):
        assert dash.is_busy(make_state(status=Status.EVALUATING))
        assert not dash.is_busy(make_state(status=Status.COMPLETED))


class TestReducers:
    """Question list edits."""

    def test_input_normalizes_domain_and_clears_error(self):
        s = dash.set_input(DashboardState(error="boom"), "domain", "https://Acme.com/x")
        assert s.domain == "acme.com"
        assert s.error is None

    def test_unknown_input_field(self):
        with pytest.raises(ValueError):
            dash.set_input(DashboardState(), "status", "completed")

    def test_edit_clears_answer(self):
        s = dash.edit_question(make_state(), "1", "New text?")
        edited = dash.find_result(s, "1")
        assert edited.question == "New text?"
        assert edited.full_answer == ""
        assert not edited.found
        assert edited.status_label == "pending"

    def test_edit_does_not_mutate_original(self):
        original = make_state()
        dash.edit_question(original, "1", "New text?")
        assert dash.find_result(original, "1").full_answer == "Acme"

    def test_add_question_unique_ids(self):
        s = dash.add_question(make_state(), "Custom one?")
        s = dash.add_question(s, "Custom two?", category_id="c1", category_name="Local")
        ids = [r.id for r in s.results]
        assert len(ids) == len(set(ids)) == 4
        assert s.results[-1].category == "Local"
        assert s.results[-1].category_id == "c1"
        assert s.results[-2].category == EvaluationConstants.CUSTOM_CATEGORY

    def test_add_blank_question_ignored(self):
        s = make_state()
        assert dash.add_question(s, "   ") is s

    def test_add_after_delete_keeps_ids_unique(self):
        s = dash.add_question(make_state(), "A?")
        s = dash.add_question(s, "B?")
        s = dash.delete_question(s, "custom-3")
        s = dash.add_question(s, "C?")
        ids = [r.id for r in s.results]
        assert len(ids) == len(set(ids))

    def test_delete(self):
        s = dash.delete_question(make_state(), "0")
        assert [r.id for r in s.results] == ["1"]

    def test_set_provider(self):
        s = dash.set_provider(make_state(), "0", Provider.GEMINI)
        assert dash.find_result(s, "0").provider == Provider.GEMINI

    def test_set_metrics(self):
        metrics = GeoMetrics.from_dict({"brand_name": "Acme", "total_prompts": 2})
        when = datetime(2024, 5, 1, 12, 0)
        s = dash.set_metrics(make_state(is_calculating_metrics=True), metrics, when)
        assert s.metrics is metrics
        assert s.metrics_checked
        assert not s.is_calculating_metrics
        assert s.metrics_date == when


class TestStats:
    """Visibility score."""

    def test_empty(self):
        assert dash.stats(DashboardState()) == {"score": 0, "found_count": 0, "total": 0}

    def test_rounding_half_up(self):
        results = tuple(
            QuestionResult(id=str(i), category="c", question="q", full_answer="a", found=i < 1)
            for i in range(8)
        )
        # 1/8 = 12.5% rounds to 13
        assert dash.stats(DashboardState(results=results))["score"] == 13

    def test_score(self):
        assert dash.stats(make_state()) == {"score": 50, "found_count": 1, "total": 2}

    def test_round_half_up(self):
        assert dash.round_half_up(2.5) == 3
        assert dash.round_half_up(62.5) == 63
        assert dash.round_half_up(2.4) == 2


class TestHydrate:
    """Restoring saved projects."""

    def setup_method(self):
        self.snapshot = {
            "_id": "pq-1",
            "website_url": "acme.com",
            "nation": "USA",
            "state": "Texas",
            "chatgpt_website_analysis": json.dumps({"brandName": "Acme", "niche": "Plumbing", "services": ["Drains"]}),
            "qna": [
                {"question": "Best plumber?", "answer": "Acme is best", "capture": True, "category_name": "General"},
                {"question": "Cheap plumber?", "answer": EvaluationConstants.PLACEHOLDER_ANSWER, "capture": True},
            ],
        }

    def test_partial_snapshot_is_questions_ready(self):
        s = dash.hydrate_from_snapshot(DashboardState(), self.snapshot)
        assert s.status == Status.QUESTIONS_READY
        assert s.progress == EvaluationConstants.PROGRESS_EVALUATION_START
        assert s.question_set_id == "pq-1"
        assert s.brand_name == "Acme"
        assert s.analysis.services == ["Drains"]
        assert [r.id for r in s.results] == ["qna-0", "qna-1"]
        assert s.results[0].found
        # placeholder means no answer, so not found either
        assert s.results[1].full_answer == ""
        assert not s.results[1].found
        assert s.results[1].category == EvaluationConstants.DEFAULT_CATEGORY

    def test_complete_snapshot_is_completed(self):
        self.snapshot["qna"][1]["answer"] = "Try Joe"
        self.snapshot["qna"][1]["capture"] = False
        s = dash.hydrate_from_snapshot(DashboardState(), self.snapshot)
        assert s.status == Status.COMPLETED
        assert s.progress == 100

    def test_missing_snapshot(self):
        s = DashboardState(domain="acme.com")
        assert dash.hydrate_from_snapshot(s, None) is s
        assert dash.hydrate_from_snapshot(s, {"qna": []}) is s

    def test_region_restored_from_snapshot(self):
        """The saved region lands in the state field without clashing with the state argument."""
        s = dash.hydrate_from_snapshot(DashboardState(state="Ohio"), self.snapshot)
        assert s.state == "Texas"
        assert s.domain == "acme.com"

    def test_unreadable_analysis_is_skipped(self):
        self.snapshot["chatgpt_website_analysis"] = "not json"
        s = DashboardState(domain="acme.com")
        assert dash.hydrate_from_snapshot(s, self.snapshot) is s

    def test_non_object_analysis_is_skipped(self):
        s = DashboardState(domain="acme.com")
        for raw in ("null", "[1, 2]", ["Acme"]):
            self.snapshot["chatgpt_website_analysis"] = raw
            assert dash.hydrate_from_snapshot(s, self.snapshot) is s

    def test_analysis_as_object(self):
        self.snapshot["chatgpt_website_analysis"] = {"brandName": "Acme"}
        s = dash.hydrate_from_snapshot(DashboardState(), self.snapshot)
        assert s.brand_name == "Acme"


def test_to_dict():
    data = dash.to_dict(make_state())
    assert data["status"] == "questions_ready"
    assert data["brand_name"] == "Acme"
    assert [r["status"] for r in data["results"]] == ["pending", "found"]


def test_visibility_ignores_order():
    results = [
        QuestionResult(id=str(i), category="c", question="q", full_answer="a", found=i % 3 == 0)
        for i in range(7)
    ]
    expected = dash.stats(DashboardState(results=tuple(results)))
    for shuffled in (results[::-1], results[3:] + results[:3], sorted(results, key=lambda r: r.found)):
        assert dash.stats(DashboardState(results=tuple(shuffled))) == expected


def test_provider_labels():
    assert Provider.CHATGPT.label == "ChatGPT"
    assert Provider.GEMINI.label == "Gemini"
