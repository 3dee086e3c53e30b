"""Tests for the evaluation runner."""

import threading
from dataclasses import replace
from unittest.mock import Mock

from geoeval.core.constants import EvaluationConstants
from geoeval.core.evaluation import EvaluationRunner, evaluation_progress
from geoeval.core.models import Analysis, Provider, QuestionResult
from geoeval.core.state import DashboardState, Status
from geoeval.services.api_client import ApiError


def make_questions(n):
    return [QuestionResult(id=str(i), category="General", question=f"Question {i}?") for i in range(n)]


class TestEvaluationRunner:
    """Pipeline from analysis to completion."""

    def setup_method(self):
        self.client = Mock()
        self.client.analyze_website.return_value = (Analysis(brand_name="Acme", niche="Plumbing"), "pq-1")
        self.client.generate_questions.return_value = make_questions(5)
        self.updates = []
        self.runner = EvaluationRunner(self.client, on_update=self.updates.append)
        self.state = DashboardState(domain="acme.com", nation="USA", state="Texas")

    def test_five_questions_two_succeed(self):
        """Failed questions stay pending and never stop the batch."""
        self.client.ask.side_effect = [
            "Acme Plumbing is the best choice.",
            ApiError("Failed to get answer"),
            "Try Joe's Pipes instead.",
            ApiError("Failed to get answer"),
            ApiError("Failed to get answer"),
        ]

        final = self.runner.start(self.state, review_first=False)

        assert final.status == Status.COMPLETED
        assert final.progress == 100
        assert self.client.ask.call_count == 5
        assert [r.status_label for r in final.results] == ["found", "pending", "miss", "pending", "pending"]
        assert not any(r.loading for r in final.results)

    def test_progress_is_monotonic(self):
        self.client.ask.return_value = "Acme"
        self.runner.start(self.state, review_first=False)

        progress = [u.progress for u in self.updates]
        assert progress == sorted(progress)
        assert progress.count(100) == progress[-1:].count(100) == 1
        statuses = [u.status for u in self.updates]
        assert statuses[0] == Status.ANALYZING
        assert Status.GENERATING in statuses
        assert statuses[-1] == Status.COMPLETED

    def test_progress_checkpoints(self):
        self.client.ask.return_value = "Acme"
        self.runner.start(self.state, review_first=False)
        progress = {u.progress for u in self.updates}
        assert {5, 20, 30, 44, 58, 72, 86, 100} <= progress

    def test_questions_asked_in_order_with_location(self):
        self.client.ask.return_value = "nothing"
        self.runner.start(self.state, review_first=False)
        asked = [c.args[0] for c in self.client.ask.call_args_list]
        assert asked == [f"Question {i}?" for i in range(5)]
        first = self.client.ask.call_args_list[0]
        assert first.args[1:] == ("USA", "Texas")
        assert first.kwargs["provider"] == Provider.CHATGPT
        assert first.kwargs["prompt_questions_id"] == "pq-1"

    def test_location_fallback(self):
        state = DashboardState(domain="acme.com", nation="USA", state="")
        self.runner.start(state, review_first=True)
        assert self.client.analyze_website.call_args.args[2] == "across country"

    def test_review_first_stops_before_asking(self):
        ready = self.runner.start(self.state, review_first=True)
        assert ready.status == Status.QUESTIONS_READY
        assert ready.progress == EvaluationConstants.PROGRESS_EVALUATION_START
        assert len(ready.results) == 5
        self.client.ask.assert_not_called()

    def test_missing_input(self):
        result = self.runner.start(DashboardState(domain="", nation="USA"))
        assert result.error == EvaluationConstants.MISSING_INPUT_ERROR
        assert result.status == Status.IDLE
        self.client.analyze_website.assert_not_called()

    def test_analysis_failure(self):
        self.client.analyze_website.side_effect = ApiError("Failed to analyze website")
        result = self.runner.start(self.state)
        assert result.status == Status.ERROR
        assert result.error == "Failed to analyze website"
        self.client.generate_questions.assert_not_called()

    def test_generation_failure(self):
        self.client.generate_questions.side_effect = ApiError("Failed to generate questions")
        result = self.runner.start(self.state)
        assert result.status == Status.ERROR
        assert result.error == "Failed to generate questions"
        assert result.analysis is not None

    def test_rerun_discards_previous_results(self):
        self.client.ask.return_value = "Acme"
        done = self.runner.start(self.state, review_first=False)
        self.client.generate_questions.return_value = make_questions(2)
        again = self.runner.start(done, review_first=True)
        assert len(again.results) == 2
        assert not any(r.has_answer for r in again.results)
        assert again.metrics is None

    def test_run_all_skips_answered(self):
        ready = self.runner.start(self.state, review_first=True)
        self.client.ask.side_effect = ["Acme", ApiError("x"), "Acme", "Acme", "Acme"]
        partial = self.runner.run_all(ready)
        assert partial.status == Status.COMPLETED

        self.client.ask.reset_mock(side_effect=True)
        self.client.ask.return_value = "Joe"
        final = self.runner.run_all(partial)
        assert self.client.ask.call_count == 1
        assert final.results[1].status_label == "miss"

    def test_run_all_without_analysis_is_noop(self):
        assert self.runner.run_all(self.state) is self.state

    def test_cancel_returns_to_questions_ready(self):
        ready = self.runner.start(self.state, review_first=True)

        def answer(*args, **kwargs):
            self.runner.cancel()
            return "Acme"

        self.client.ask.side_effect = answer
        result = self.runner.run_all(ready)
        assert result.status == Status.QUESTIONS_READY
        assert self.client.ask.call_count == 1
        assert [r.has_answer for r in result.results] == [True, False, False, False, False]

    def test_pause_and_resume(self):
        ready = self.runner.start(self.state, review_first=True)
        self.client.ask.return_value = "Acme"

        self.runner.pause()
        assert self.runner.is_paused
        timer = threading.Timer(0.05, self.runner.resume)
        timer.start()
        result = self.runner.run_all(ready)
        timer.join()

        assert not self.runner.is_paused
        assert result.status == Status.COMPLETED
        assert self.client.ask.call_count == 5

    def test_run_single(self):
        ready = self.runner.start(self.state, review_first=True)
        self.client.ask.return_value = "Ask acme.com"
        result = self.runner.run_single(ready, "2")
        assert result.results[2].found
        assert result.status == Status.QUESTIONS_READY

        # already answered: untouched unless forced
        assert self.runner.run_single(result, "2") is result
        self.client.ask.return_value = "Joe"
        forced = self.runner.run_single(result, "2", force=True)
        assert forced.results[2].status_label == "miss"

    def test_run_single_uses_record_provider(self):
        ready = self.runner.start(self.state, review_first=True)
        ready = replace(ready, results=(
            QuestionResult(id="g", category="General", question="Q?", provider=Provider.GEMINI),
        ))
        self.client.ask.return_value = "x"
        self.runner.run_single(ready, "g")
        assert self.client.ask.call_args.kwargs["provider"] == Provider.GEMINI

    def test_run_single_failure_keeps_pending(self):
        ready = self.runner.start(self.state, review_first=True)
        self.client.ask.side_effect = ApiError("Failed to get answer")
        result = self.runner.run_single(ready, "0")
        assert result.results[0].status_label == "pending"


def test_evaluation_progress():
    assert evaluation_progress(0, 5) == 30
    assert evaluation_progress(1, 5) == 44
    assert evaluation_progress(2, 3) == 76
    assert evaluation_progress(1, 0) == 30
