"""
Exception hierarchy for the learning path engine.
"""


class LearningPathError(Exception):
    """Base class for every error raised by ``learnpath``."""


class InvalidInputError(LearningPathError, ValueError):
    """A caller passed a score, duration, count or skill level out of range."""


class GraphCycleError(LearningPathError):
    """The prerequisite relation of a topic dataset contains a cycle."""

    def __init__(self, cycle):
        self.cycle = list(cycle)
        path = " → ".join(self.cycle + self.cycle[:1])
        super().__init__(f"Prerequisite cycle detected: {path}")


class ConfigError(LearningPathError):
    """A configuration or dataset file could not be read or is invalid."""
