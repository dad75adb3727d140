"""
Adaptive difficulty: adjust a topic's difficulty level from its rolling
performance history and the latest attempt.

Statistics over the last ``performance_window`` scores:

- recent performance: mean (0.5 with no history)
- learning rate: mean of first differences (0 with fewer than 2 samples)
- consistency: ``1 / (1 + variance)`` (1.0 with fewer than 3 samples)

Each adjustment rule fires independently; the summed delta is
applied to the previous difficulty and clamped to the configured range.
"""

import logging
from typing import Dict, List, Optional, Sequence

import numpy as np

from learnpath.config import EngineConfig
from learnpath.models import DifficultyAdjustment, PerformanceHistory
from learnpath.store import PerformanceRepository

logger = logging.getLogger(__name__)

# Minimum samples before consistency counts as a signal.
MIN_CONSISTENCY_SAMPLES = 3

HIGH_PERFORMANCE = 0.7
LOW_PERFORMANCE = 0.3
FAST_RATIO = 0.7
SLOW_RATIO = 1.5
MAX_ATTEMPTS = 3
RAPID_IMPROVEMENT = 0.1
HIGH_CONSISTENCY = 0.8

REASON_HIGH_PERFORMANCE = "Consistent high performance"
REASON_STRUGGLING = "Struggling with current difficulty"
REASON_FAST = "Completing tasks quickly"
REASON_SLOW = "Taking longer than expected"
REASON_ATTEMPTS = "Multiple attempts needed"
REASON_IMPROVEMENT = "Rapid improvement shown"
REASON_CONSISTENT = "Showing consistent performance"


# =========================================================================
# Statistics
# =========================================================================


def recent_performance(scores: Sequence[float], window: int = 5) -> float:
    tail = np.asarray(scores[-window:], dtype=float)
    if tail.size == 0:
        return 0.5
    return float(tail.mean())


def learning_rate(scores: Sequence[float], window: int = 5) -> float:
    """Average step-to-step change over the window."""
    tail = np.asarray(scores[-window:], dtype=float)
    if tail.size < 2:
        return 0.0
    return float(np.diff(tail).mean())


def consistency_score(scores: Sequence[float], window: int = 5) -> float:
    tail = np.asarray(scores[-window:], dtype=float)
    if tail.size < MIN_CONSISTENCY_SAMPLES:
        return 1.0
    return float(1.0 / (1.0 + np.var(tail)))


def expected_time(difficulty: float) -> float:
    """Minutes a task at *difficulty* is expected to take."""
    return 5.0 * 1.5 ** (difficulty - 1)


# =========================================================================
# Feedback
# =========================================================================

_FEEDBACK_TEMPLATES: Dict[str, List[str]] = {
    "increased": [
        "Difficulty raised from {old:.1f} to {new:.1f}: {reasons}.",
        "You're ready for more challenging material on this topic.",
    ],
    "decreased": [
        "Difficulty lowered from {old:.1f} to {new:.1f}: {reasons}.",
        "Take time to review the fundamentals before moving on.",
    ],
    "unchanged": [
        "Difficulty stays at {new:.1f}: {reasons}.",
        "Keep practicing at this level to build confidence.",
    ],
}


def build_feedback(old: float, new: float, reasons: str) -> List[str]:
    if new > old:
        key = "increased"
    elif new < old:
        key = "decreased"
    else:
        key = "unchanged"
    return [t.format(old=old, new=new, reasons=reasons) for t in _FEEDBACK_TEMPLATES[key]]


# =========================================================================
# Adjuster
# =========================================================================


class DifficultyAdjuster:
    """Owns per-topic performance histories and difficulty levels."""

    def __init__(
        self,
        repository: PerformanceRepository,
        config: Optional[EngineConfig] = None,
    ) -> None:
        self.repository = repository
        self.config = config or EngineConfig()

    def get_history(self, topic_id: str, scope: str = "") -> PerformanceHistory:
        return self.repository.get(scope, topic_id)

    def adjust_difficulty(
        self,
        topic_id: str,
        performance_score: float,
        time_spent_minutes: float,
        attempt_count: int,
        scope: str = "",
    ) -> DifficultyAdjustment:
        """Record one attempt and return the recommended difficulty.

        Args:
            topic_id: Topic the attempt belongs to.
            performance_score: Score of the attempt in [0, 1].
            time_spent_minutes: Time the attempt took.
            attempt_count: Number of tries needed.
            scope: History namespace, normally the learner id.

        Returns:
            A ``DifficultyAdjustment``. The stored difficulty and history
            are updated as a side effect.
        """
        cfg = self.config
        history = self.repository.get(scope, topic_id)
        previous = history.difficulty if history.difficulty is not None else cfg.default_difficulty

        history.scores.append(float(performance_score))
        if len(history.scores) > cfg.history_cap:
            history.scores = history.scores[-cfg.history_cap:]

        window = cfg.performance_window
        scores = history.scores
        recent = recent_performance(scores, window)
        rate = learning_rate(scores, window)
        consistency = consistency_score(scores, window)
        expected = expected_time(previous)

        delta = 0.0
        reasons: List[str] = []
        if recent > HIGH_PERFORMANCE:
            delta += 0.5
            reasons.append(REASON_HIGH_PERFORMANCE)
        if recent < LOW_PERFORMANCE:
            delta -= 0.5
            reasons.append(REASON_STRUGGLING)
        if time_spent_minutes < FAST_RATIO * expected:
            delta += 0.3
            reasons.append(REASON_FAST)
        if time_spent_minutes > SLOW_RATIO * expected:
            delta -= 0.3
            reasons.append(REASON_SLOW)
        if attempt_count > MAX_ATTEMPTS:
            delta -= 0.2
            reasons.append(REASON_ATTEMPTS)
        if rate > RAPID_IMPROVEMENT:
            delta += 0.2
            reasons.append(REASON_IMPROVEMENT)
        if len(scores[-window:]) >= MIN_CONSISTENCY_SAMPLES and consistency > HIGH_CONSISTENCY:
            delta += 0.1
            reasons.append(REASON_CONSISTENT)

        new = min(cfg.max_difficulty, max(cfg.min_difficulty, previous + delta))
        new = round(new, 4)

        history.difficulty = new
        self.repository.put(scope, history)

        joined = ", ".join(reasons)
        logger.debug(
            "Difficulty %r: %.2f → %.2f (recent=%.3f, rate=%.3f, consistency=%.3f, "
            "expected=%.1fmin) [%s]",
            topic_id, previous, new, recent, rate, consistency, expected, joined or "-",
        )
        return DifficultyAdjustment(
            previous_difficulty=previous,
            new_difficulty=new,
            reason=joined,
            adaptive_feedback=build_feedback(previous, new, joined or "no adjustment signals"),
        )
