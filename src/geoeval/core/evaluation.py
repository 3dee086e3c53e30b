"""Evaluation pipeline: analyze, generate questions, then ask each question in turn."""

import logging
import math
import threading
from dataclasses import replace
from typing import Callable, Optional

from .config import settings
from .constants import EvaluationConstants
from .matching import is_found
from .models import Provider
from . import state as st
from .state import DashboardState, Status

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[DashboardState], None]


def evaluation_progress(completed: int, total: int) -> int:
    """Progress after ``completed`` of ``total`` questions were attempted."""
    if total <= 0:
        return EvaluationConstants.PROGRESS_EVALUATION_START
    return EvaluationConstants.PROGRESS_EVALUATION_START + math.floor(
        completed / total * EvaluationConstants.PROGRESS_EVALUATION_SPAN
    )


class EvaluationRunner:
    """Drives one dashboard through the pipeline, one backend call at a time.

    Questions are asked strictly in order with a single call outstanding, which
    keeps the assistant endpoints rate-limited and progress monotonic. A failed
    question is logged and left unanswered; it never stops the batch.

    ``pause``/``resume``/``cancel`` take effect between questions. Pause blocks
    the loop, so only call it when the runner is driven from another thread;
    ``cancel`` is also safe from inside ``on_update``.
    """

    def __init__(self, client, on_update: Optional[UpdateCallback] = None,
                 default_provider: Optional[Provider] = None):
        self.client = client
        self.on_update = on_update
        self.default_provider = default_provider or Provider(settings.default_provider)
        self._running = threading.Event()
        self._running.set()
        self._cancelled = threading.Event()

    # --- control hooks ---

    def pause(self) -> None:
        logger.info("Evaluation paused")
        self._running.clear()

    def resume(self) -> None:
        logger.info("Evaluation resumed")
        self._running.set()

    def cancel(self) -> None:
        logger.info("Evaluation cancel requested")
        self._cancelled.set()
        self._running.set()

    @property
    def is_paused(self) -> bool:
        return not self._running.is_set()

    def _emit(self, state: DashboardState) -> DashboardState:
        if self.on_update:
            self.on_update(state)
        return state

    # --- pipeline ---

    def start(self, state: DashboardState, review_first: bool = True) -> DashboardState:
        """Analyze the website and generate questions, discarding any previous run.

        With ``review_first`` the run stops at ``questions_ready`` so the operator
        can edit questions before any assistant call; otherwise it goes straight
        on to ``run_all``.
        """
        if not state.domain or not state.nation:
            return self._emit(replace(state, error=EvaluationConstants.MISSING_INPUT_ERROR))

        state = self._emit(st.transition(
            state,
            Status.ANALYZING,
            progress=EvaluationConstants.PROGRESS_ANALYZING,
            results=(),
            analysis=None,
            question_set_id=None,
            metrics=None,
            metrics_checked=False,
            metrics_date=None,
            error=None,
        ))
        location = st.location_label(state)

        try:
            analysis, question_set_id = self.client.analyze_website(
                state.domain, state.nation, location, state.query_context,
                company_id=state.company_id, project_id=state.project_id,
            )
            state = self._emit(st.transition(
                state,
                Status.GENERATING,
                analysis=analysis,
                question_set_id=question_set_id,
                progress=EvaluationConstants.PROGRESS_GENERATING,
            ))

            questions = self.client.generate_questions(
                analysis, state.domain, state.nation, location, question_set_id,
            )
        except Exception as e:
            logger.error(f"Analysis failed: {e}")
            return self._emit(st.fail(state, str(e) or None))

        if review_first:
            return self._emit(st.transition(
                state,
                Status.QUESTIONS_READY,
                results=tuple(questions),
                progress=EvaluationConstants.PROGRESS_EVALUATION_START,
            ))

        state = replace(state, results=tuple(questions))
        return self._evaluate(state)

    def run_all(self, state: DashboardState) -> DashboardState:
        """Ask every unanswered question, in list order."""
        if state.analysis is None or not state.results:
            return state
        return self._evaluate(state)

    def _evaluate(self, state: DashboardState) -> DashboardState:
        self._cancelled.clear()
        state = self._emit(st.transition(
            state, Status.EVALUATING, progress=EvaluationConstants.PROGRESS_EVALUATION_START,
        ))

        queue = [r.id for r in state.results]
        total = len(queue)
        for i, result_id in enumerate(queue):
            self._running.wait()
            if self._cancelled.is_set():
                logger.info(f"Evaluation cancelled after {i} of {total} questions")
                self._cancelled.clear()
                return self._emit(st.transition(
                    state,
                    Status.QUESTIONS_READY,
                    results=tuple(replace(r, loading=False) if r.loading else r for r in state.results),
                ))

            result = st.find_result(state, result_id)
            if result is not None and not result.has_answer:
                state = self._ask(state, result_id)

            if i < total - 1:
                progress = max(state.progress, evaluation_progress(i + 1, total))
                state = self._emit(replace(state, progress=progress))

        answered = sum(1 for r in state.results if r.has_answer)
        logger.info(f"Evaluation finished: {answered}/{len(state.results)} questions answered")
        return self._emit(st.transition(state, Status.COMPLETED, progress=EvaluationConstants.PROGRESS_DONE))

    def run_single(self, state: DashboardState, result_id: str, force: bool = False) -> DashboardState:
        """Ask one question. Answered questions are left alone unless ``force`` is set."""
        result = st.find_result(state, result_id)
        if result is None or state.analysis is None or result.loading:
            return state
        if result.has_answer and not force:
            return state
        return self._ask(state, result_id)

    def _ask(self, state: DashboardState, result_id: str) -> DashboardState:
        result = st.find_result(state, result_id)
        state = self._emit(st.replace_result(state, result_id, loading=True))
        provider = result.provider or self.default_provider

        try:
            answer = self.client.ask(
                result.question,
                state.nation,
                st.location_label(state),
                provider=provider,
                prompt_questions_id=state.question_set_id,
                category_id=result.category_id,
                uuid=result.uuid,
            )
        except Exception as e:
            logger.error(f"Question evaluation failed for {result_id}: {e}")
            return self._emit(st.replace_result(state, result_id, loading=False))

        found = is_found(answer, state.brand_name, state.domain)
        logger.debug(f"Question {result_id} answered via {provider.value}, found={found}")
        return self._emit(st.replace_result(
            state, result_id, full_answer=answer, found=found, loading=False,
        ))
