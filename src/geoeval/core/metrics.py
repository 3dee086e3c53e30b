"""Fetching and recalculating the backend's visibility metrics."""

import logging
from collections import defaultdict
from dataclasses import replace
from datetime import datetime
from typing import Dict, List

from .models import GeoMetrics
from .state import DashboardState, Status, set_metrics

logger = logging.getLogger(__name__)


class MetricsConsumer:
    """Holds metrics snapshots per question set.

    Snapshots are only appended: recalculating adds a new entry with its own
    timestamp and never touches earlier ones.
    """

    def __init__(self, client):
        self.client = client
        self._history: Dict[str, List[GeoMetrics]] = defaultdict(list)

    def history(self, question_set_id: str) -> List[GeoMetrics]:
        return list(self._history.get(question_set_id, []))

    def latest(self, question_set_id: str):
        snapshots = self._history.get(question_set_id)
        return snapshots[-1] if snapshots else None

    def _record(self, question_set_id: str, metrics: GeoMetrics) -> None:
        self._history[question_set_id].append(metrics)

    def check(self, state: DashboardState) -> DashboardState:
        """Look up previously generated metrics once per completed run; never computes them."""
        if state.status != Status.COMPLETED or not state.question_set_id or state.metrics_checked:
            return state

        try:
            metrics = self.client.get_generated_metrics(state.question_set_id)
        except Exception as e:
            logger.error(f"Failed to get generated metrics for {state.question_set_id}: {e}")
            return set_metrics(state, None)

        if metrics is None:
            logger.info(f"No pre-generated metrics found for {state.question_set_id}")
            return set_metrics(state, None)

        logger.info(f"Using pre-generated metrics for {state.question_set_id}")
        self._record(state.question_set_id, metrics)
        return set_metrics(state, metrics, metrics.created_at)

    def recalculate(self, state: DashboardState) -> DashboardState:
        """Ask the backend for a fresh snapshot and make it the current one."""
        if not state.question_set_id:
            return state

        state = replace(state, is_calculating_metrics=True)
        try:
            metrics = self.client.calculate_metrics(state.question_set_id)
        except Exception:
            logger.error(f"Failed to calculate metrics for {state.question_set_id}")
            raise

        if metrics.created_at is None:
            metrics = replace(metrics, created_at=datetime.now())
        self._record(state.question_set_id, metrics)
        logger.info(f"Calculated metrics for {state.question_set_id} at {metrics.created_at.isoformat()}")
        return set_metrics(state, metrics, metrics.created_at)
