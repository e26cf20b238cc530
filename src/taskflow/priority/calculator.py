"""Priority score calculation.

Formula::

    score = round((user * 0.4 + decay * 0.3 + urgency * 0.2 + bumps * 0.1) * effort_boost)

rounded half up (62.5 scores 63) and clamped to 0-100. Every weight and
threshold comes from ``ScoringConfig``. The time-based components are
functions of "now", so scores are recomputed on every read rather than cached.
"""

import math
from collections.abc import Callable, Iterable
from datetime import datetime

from taskflow.config import ScoringConfig
from taskflow.models.tasks import PriorityBreakdown, Task, TaskEffort, as_utc, utcnow

SECONDS_PER_DAY = 86_400.0


def _days_between(start: datetime, end: datetime) -> float:
    return (as_utc(end) - as_utc(start)).total_seconds() / SECONDS_PER_DAY


def _clamp_score(value: float) -> int:
    """Round half up, then clamp to 0-100."""
    return min(100, max(0, math.floor(value + 0.5)))


class PriorityCalculator:
    """Computes 0-100 priority scores from weighted, time-varying factors."""

    def __init__(
        self,
        config: ScoringConfig | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.config = config or ScoringConfig()
        self._clock = clock

    def now(self) -> datetime:
        return as_utc(self._clock())

    # =========================================================================
    # Public API
    # =========================================================================

    def calculate(self, task: Task) -> int:
        """Compute the priority score for a task."""
        score, _ = self.calculate_with_breakdown(task)
        return score

    def calculate_with_breakdown(self, task: Task) -> tuple[int, PriorityBreakdown]:
        """Compute the score along with its raw and weighted components."""
        cfg = self.config
        now = self.now()

        user = self.user_component(task.user_priority)
        decay = self.time_decay(_days_between(task.created_at, now))
        urgency = self.deadline_urgency(task.due_date, now)
        bumps = self.bump_penalty(task.bump_count)
        boost = self.effort_boost(task.estimated_effort)

        breakdown = PriorityBreakdown(
            user_priority=user,
            time_decay=decay,
            deadline_urgency=urgency,
            bump_penalty=bumps,
            effort_boost=boost,
            user_priority_weighted=user * cfg.user_priority_weight,
            time_decay_weighted=decay * cfg.time_decay_weight,
            deadline_urgency_weighted=urgency * cfg.deadline_urgency_weight,
            bump_penalty_weighted=bumps * cfg.bump_penalty_weight,
        )

        # Effort boost multiplies the whole weighted sum
        return _clamp_score(breakdown.weighted_sum * boost), breakdown

    def calculate_for_subtask(self, subtask: Task, parent_score: int) -> int:
        """Score a subtask, lifted by a share of its parent's score."""
        own = self.calculate(subtask)
        return _clamp_score(own + parent_score * self.config.subtask_parent_boost)

    def is_at_risk(self, task: Task) -> bool:
        """A task is at risk when bumped repeatedly or overdue for several days."""
        if task.bump_count >= self.config.at_risk_bump_threshold:
            return True
        if task.due_date is not None:
            overdue_days = _days_between(task.due_date, self.now())
            if overdue_days >= self.config.at_risk_overdue_days:
                return True
        return False

    def rank(
        self, tasks: Iterable[Task], score: Callable[[Task], int] | None = None
    ) -> list[Task]:
        """Order tasks by score (highest first), then due date, then age.

        ``score`` overrides the plain formula, e.g. to apply the subtask lift.
        """
        score = score or self.calculate
        scored = [(score(t), t) for t in tasks]

        def sort_key(item: tuple[int, Task]) -> tuple[int, float, float]:
            value, task = item
            due = task.due_date.timestamp() if task.due_date else float("inf")
            return (-value, due, task.created_at.timestamp())

        scored.sort(key=sort_key)
        return [t.model_copy(update={"priority_score": s}) for s, t in scored]

    # =========================================================================
    # Components
    # =========================================================================

    def user_component(self, user_priority: int) -> float:
        return min(100.0, max(0.0, user_priority * self.config.user_priority_scale))

    def time_decay(self, age_days: float) -> float:
        """Linear growth from 0 at creation to 100 at the end of the decay window."""
        if age_days <= 0:
            return 0.0
        return min(100.0, age_days / self.config.time_decay_window_days * 100)

    def deadline_urgency(self, due_date: datetime | None, now: datetime | None = None) -> float:
        """Quadratic rise over the final days before the deadline; 100 once overdue."""
        if due_date is None:
            return 0.0

        now = now or self.now()
        days_remaining = _days_between(now, due_date)
        if days_remaining < 0:
            return 100.0

        window = self.config.deadline_window_days
        if days_remaining > window:
            return 0.0

        return max(0.0, 100 * (1 - (days_remaining / window) ** 2))

    def bump_penalty(self, bump_count: int) -> float:
        return min(self.config.max_bump_penalty, max(0, bump_count) * self.config.bump_points)

    def effort_boost(self, effort: TaskEffort | None) -> float:
        if effort is None:
            return self.config.default_effort_boost
        return self.config.effort_boosts.get(effort, self.config.default_effort_boost)
