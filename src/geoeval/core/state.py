"""Dashboard view model and its reducer-style transitions.

Every function here is pure: it takes a ``DashboardState`` and returns a new
one. The results list is a tuple of frozen records, so a render that happens
between two updates always sees a complete list.
"""

import json
import logging
import math
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .config import settings
from .constants import EvaluationConstants
from .matching import normalize_domain
from .models import Analysis, GeoMetrics, Provider, QuestionResult

logger = logging.getLogger(__name__)


class Status(Enum):
    IDLE = "idle"
    ANALYZING = "analyzing"
    GENERATING = "generating"
    QUESTIONS_READY = "questions_ready"
    EVALUATING = "evaluating"
    COMPLETED = "completed"
    ERROR = "error"


TRANSITIONS = {
    Status.IDLE: {Status.ANALYZING, Status.QUESTIONS_READY, Status.COMPLETED},
    Status.ANALYZING: {Status.GENERATING, Status.ERROR},
    Status.GENERATING: {Status.EVALUATING, Status.QUESTIONS_READY, Status.ERROR},
    Status.QUESTIONS_READY: {Status.EVALUATING, Status.ANALYZING, Status.QUESTIONS_READY, Status.COMPLETED},
    Status.EVALUATING: {Status.COMPLETED, Status.QUESTIONS_READY, Status.ERROR},
    Status.COMPLETED: {Status.ANALYZING, Status.EVALUATING, Status.QUESTIONS_READY, Status.COMPLETED},
    Status.ERROR: {Status.ANALYZING, Status.QUESTIONS_READY, Status.COMPLETED},
}

# statuses during which a backend call is in flight
BUSY_STATUSES = {Status.ANALYZING, Status.GENERATING, Status.EVALUATING}


class InvalidTransition(ValueError):
    """Raised when a status change is not in the transition table."""

    def __init__(self, current: Status, target: Status):
        super().__init__(f"Cannot move from '{current.value}' to '{target.value}'")
        self.current = current
        self.target = target


@dataclass(frozen=True)
class DashboardState:
    """Everything the dashboard shows for one project."""
    domain: str = ""
    nation: str = settings.default_nation
    state: str = ""
    query_context: str = ""
    status: Status = Status.IDLE
    analysis: Optional[Analysis] = None
    results: Tuple[QuestionResult, ...] = ()
    error: Optional[str] = None
    progress: int = 0
    question_set_id: Optional[str] = None
    metrics: Optional[GeoMetrics] = None
    metrics_checked: bool = False
    is_calculating_metrics: bool = False
    metrics_date: Optional[datetime] = None
    company_id: Optional[str] = None
    project_id: Optional[str] = None

    @property
    def brand_name(self) -> str:
        return self.analysis.brand_name if self.analysis else ""


def round_half_up(value: float) -> int:
    """Round like JavaScript's Math.round (0.5 goes up)."""
    return int(math.floor(value + 0.5))


def can_transition(current: Status, target: Status) -> bool:
    return target in TRANSITIONS.get(current, set())


def transition(current: DashboardState, status: Status, /, **changes) -> DashboardState:
    """Move to ``status`` and apply ``changes``; rejects moves outside the table.

    ``changes`` may name any field, including ``state`` (the region).
    """
    if not can_transition(current.status, status):
        raise InvalidTransition(current.status, status)
    logger.debug(f"Status {current.status.value} -> {status.value}")
    return replace(current, status=status, **changes)


def fail(state: DashboardState, message: Optional[str]) -> DashboardState:
    return transition(
        state,
        Status.ERROR,
        error=message or EvaluationConstants.ANALYSIS_FALLBACK_ERROR,
        results=tuple(replace(r, loading=False) if r.loading else r for r in state.results),
    )


def set_input(state: DashboardState, field_name: str, value: str) -> DashboardState:
    """Update one of the operator's inputs and clear any error banner."""
    if field_name not in ("domain", "nation", "state", "query_context"):
        raise ValueError(f"Unknown input field: {field_name}")
    if field_name == "domain":
        value = normalize_domain(value)
    return replace(state, error=None, **{field_name: value})


def location_label(state: DashboardState) -> str:
    return state.state or settings.location_fallback


def find_result(state: DashboardState, result_id: str) -> Optional[QuestionResult]:
    return next((r for r in state.results if r.id == result_id), None)


def replace_result(state: DashboardState, result_id: str, **changes) -> DashboardState:
    return replace(
        state,
        results=tuple(replace(r, **changes) if r.id == result_id else r for r in state.results),
    )


def edit_question(state: DashboardState, result_id: str, new_text: str) -> DashboardState:
    """Change a question's text; its previous answer no longer applies."""
    return replace_result(state, result_id, question=new_text, full_answer="", found=False)


def add_question(
    state: DashboardState,
    question_text: str,
    category_id: Optional[str] = None,
    category_name: str = EvaluationConstants.CUSTOM_CATEGORY,
    provider: Optional[Provider] = None,
) -> DashboardState:
    """Append a custom question at the end of the list."""
    text = (question_text or "").strip()
    if not text:
        return state
    used = {r.id for r in state.results}
    n = len(state.results) + 1
    while f"{EvaluationConstants.CUSTOM_ID_PREFIX}{n}" in used:
        n += 1
    record = QuestionResult(
        id=f"{EvaluationConstants.CUSTOM_ID_PREFIX}{n}",
        category=category_name or EvaluationConstants.CUSTOM_CATEGORY,
        category_id=category_id,
        question=text,
        provider=provider,
    )
    return replace(state, results=state.results + (record,))


def delete_question(state: DashboardState, result_id: str) -> DashboardState:
    return replace(state, results=tuple(r for r in state.results if r.id != result_id))


def set_provider(state: DashboardState, result_id: str, provider: Optional[Provider]) -> DashboardState:
    return replace_result(state, result_id, provider=provider)


def set_metrics(state: DashboardState, metrics: Optional[GeoMetrics], metrics_date: Optional[datetime] = None) -> DashboardState:
    return replace(
        state,
        metrics=metrics,
        metrics_date=metrics_date,
        metrics_checked=True,
        is_calculating_metrics=False,
    )


def hydrate_from_snapshot(state: DashboardState, snapshot: Optional[Dict[str, Any]]) -> DashboardState:
    """Restore analysis and questions saved by the backend for a project."""
    if not snapshot or not snapshot.get("chatgpt_website_analysis"):
        return state

    raw_analysis = snapshot["chatgpt_website_analysis"]
    if isinstance(raw_analysis, str):
        try:
            raw_analysis = json.loads(raw_analysis)
        except ValueError as e:
            logger.warning(f"No existing prompt data found: unreadable website analysis ({e})")
            return state
    if not isinstance(raw_analysis, dict):
        logger.warning("No existing prompt data found: website analysis is not an object")
        return state
    analysis = Analysis.from_dict(raw_analysis)

    results = []
    for idx, item in enumerate(snapshot.get("qna") or []):
        answer = item.get("answer") or ""
        if answer == EvaluationConstants.PLACEHOLDER_ANSWER:
            answer = ""
        results.append(QuestionResult(
            id=f"{EvaluationConstants.SNAPSHOT_ID_PREFIX}{idx}",
            category=item.get("category_name") or EvaluationConstants.DEFAULT_CATEGORY,
            category_id=item.get("category_id"),
            uuid=item.get("uuid"),
            question=item.get("question") or "",
            full_answer=answer,
            found=bool(item.get("capture")) if answer else False,
        ))

    changes = dict(
        domain=snapshot.get("website_url") or state.domain,
        nation=snapshot.get("nation") or state.nation,
        state=snapshot.get("state") or state.state,
        query_context=snapshot.get("context") or state.query_context,
        analysis=analysis,
        question_set_id=snapshot.get("_id") or state.question_set_id,
        results=tuple(results),
        error=None,
    )
    if not results:
        return replace(state, **changes)
    if all(r.has_answer for r in results):
        return transition(state, Status.COMPLETED, progress=EvaluationConstants.PROGRESS_DONE, **changes)
    return transition(state, Status.QUESTIONS_READY, progress=EvaluationConstants.PROGRESS_EVALUATION_START, **changes)


def stats(state: DashboardState) -> Dict[str, int]:
    """Visibility score (percent of questions found) and the found count."""
    total = len(state.results)
    if total == 0:
        return {"score": 0, "found_count": 0, "total": 0}
    found_count = sum(1 for r in state.results if r.found)
    return {
        "score": round_half_up(found_count / total * 100),
        "found_count": found_count,
        "total": total,
    }


def is_busy(state: DashboardState) -> bool:
    return state.status in BUSY_STATUSES


def has_unanswered_questions(state: DashboardState) -> bool:
    return any(not r.has_answer for r in state.results)


def is_any_loading(state: DashboardState) -> bool:
    return any(r.loading for r in state.results)


def to_dict(state: DashboardState) -> Dict[str, Any]:
    """Plain-data view of the state (for logging and debugging panes)."""
    return {
        "domain": state.domain,
        "nation": state.nation,
        "state": state.state,
        "status": state.status.value,
        "progress": state.progress,
        "error": state.error,
        "question_set_id": state.question_set_id,
        "brand_name": state.brand_name,
        "results": [
            {
                "id": r.id,
                "category": r.category,
                "question": r.question,
                "answer": r.full_answer,
                "status": r.status_label,
                "provider": r.provider.value if r.provider else None,
            }
            for r in state.results
        ],
        "metrics_date": state.metrics_date.isoformat() if state.metrics_date else None,
    }
