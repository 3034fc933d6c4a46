from __future__ import annotations


class SchedulingError(ValueError):
    """Base class for every error raised by the scheduling core."""


class InvalidConfiguration(SchedulingError):
    """Run parameters are unusable (no units, bad quantum, bad assignment)."""


class InvalidJob(SchedulingError):
    """A job has a non-positive length, a negative arrival or a bad deadline."""


class InvalidResource(SchedulingError):
    """An execution unit has a non-positive speed or a negative ready time."""


class EmptyResultSet(SchedulingError):
    """Metrics were requested for a schedule with no completed jobs."""


class ScheduleMismatch(SchedulingError):
    """A realized schedule disagrees with the completion-time model."""
