"""
Boundary validation for caller-supplied numbers and labels.

Values are checked with the pydantic input models and rejected with
``InvalidInputError`` rather than clamped.
"""

from pydantic import ValidationError

from learnpath.errors import InvalidInputError
from learnpath.models import SKILL_LEVELS, AttemptSample, PerformanceSample, SkillLevel


def _first_error(exc: ValidationError) -> str:
    err = exc.errors()[0]
    field = ".".join(str(p) for p in err.get("loc", ()))
    return f"{field}: {err.get('msg')} (got {err.get('input')!r})"


def check_score(score: float) -> float:
    """Return *score* if it lies in [0, 1]."""
    try:
        return PerformanceSample(score=score).score
    except ValidationError as exc:
        raise InvalidInputError(f"Invalid performance score: {_first_error(exc)}") from exc


def check_attempt(
    performance_score: float,
    time_spent_minutes: float,
    attempt_count: int,
) -> AttemptSample:
    """Validate one difficulty-adjustment attempt."""
    try:
        return AttemptSample(
            performance_score=performance_score,
            time_spent_minutes=time_spent_minutes,
            attempt_count=attempt_count,
        )
    except ValidationError as exc:
        raise InvalidInputError(f"Invalid attempt: {_first_error(exc)}") from exc


def check_skill_level(skill_level: str) -> SkillLevel:
    """Normalise and validate a skill level label."""
    normalised = str(skill_level).strip().lower()
    if normalised not in SKILL_LEVELS:
        raise InvalidInputError(
            f"Unknown skill level {skill_level!r}; expected one of {', '.join(SKILL_LEVELS)}"
        )
    return normalised  # type: ignore[return-value]


def check_learner_id(learner_id: str) -> str:
    """Learner ids must be non-empty strings."""
    if not isinstance(learner_id, str) or not learner_id.strip():
        raise InvalidInputError(f"Invalid learner id: {learner_id!r}")
    return learner_id
