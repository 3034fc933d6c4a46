from __future__ import annotations

from typing import Dict, List, Sequence

from .errors import InvalidResource
from .models import ExecutionUnit, Job


def execution_time(work: float, unit: ExecutionUnit) -> float:
    """
    Time needed by ``unit`` to process ``work`` instructions.
    """
    if unit.speed_mips <= 0:
        raise InvalidResource(f"unit {unit.id}: speed must be positive (got {unit.speed_mips})")
    return work / unit.speed_mips


def estimate_completion(job: Job, unit: ExecutionUnit, ready_time: float) -> float:
    """
    Completion time of ``job`` if it starts on ``unit`` at ``ready_time``.

    Every policy and the hill-climbing objective go through this function
    (or :func:`execution_time`), so all of them agree on the same numbers.
    """
    return ready_time + execution_time(job.length, unit)


def completion_time_matrix(jobs: Sequence[Job], units: Sequence[ExecutionUnit]) -> Dict[int, List[float]]:
    """
    Execution time of every job on every unit, keyed by job id.

    Row values follow the order of ``units``.
    """
    return {job.id: [execution_time(job.length, unit) for unit in units] for job in jobs}
