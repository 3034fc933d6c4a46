from __future__ import annotations

from dataclasses import replace
from typing import List, Sequence, Tuple

from .errors import InvalidConfiguration, InvalidJob, InvalidResource
from .models import Assignment, ExecutionUnit, Job


def validate_units(units: Sequence[ExecutionUnit]) -> None:
    if not units:
        raise InvalidConfiguration("at least one execution unit is required")

    seen: set[int] = set()
    for unit in units:
        if unit.id in seen:
            raise InvalidConfiguration(f"duplicate unit id {unit.id}")
        seen.add(unit.id)
        if unit.speed_mips <= 0:
            raise InvalidResource(f"unit {unit.id}: speed must be positive (got {unit.speed_mips})")
        if unit.ready_time < 0:
            raise InvalidResource(f"unit {unit.id}: ready time cannot be negative (got {unit.ready_time})")


def validate_jobs(jobs: Sequence[Job]) -> None:
    seen: set[int] = set()
    for job in jobs:
        if job.id in seen:
            raise InvalidJob(f"duplicate job id {job.id}")
        seen.add(job.id)
        if job.length <= 0:
            raise InvalidJob(f"job {job.id}: length must be positive (got {job.length})")
        if job.arrival_time < 0:
            raise InvalidJob(f"job {job.id}: arrival time cannot be negative (got {job.arrival_time})")
        if job.deadline is not None and job.deadline <= 0:
            raise InvalidJob(f"job {job.id}: deadline must be positive (got {job.deadline})")


def validate_assignment(assignment: Assignment, jobs: Sequence[Job], units: Sequence[ExecutionUnit]) -> None:
    job_ids = {job.id for job in jobs}
    unit_ids = {unit.id for unit in units}

    missing = job_ids - assignment.keys()
    if missing:
        raise InvalidConfiguration(f"assignment is missing jobs {sorted(missing)}")
    extra = assignment.keys() - job_ids
    if extra:
        raise InvalidConfiguration(f"assignment names unknown jobs {sorted(extra)}")
    for job_id, unit_id in assignment.items():
        if unit_id not in unit_ids:
            raise InvalidConfiguration(f"job {job_id} is assigned to unknown unit {unit_id}")


def prepare_run(
    units: Sequence[ExecutionUnit], jobs: Sequence[Job]
) -> Tuple[List[ExecutionUnit], List[Job]]:
    """
    Validate the inputs and return private copies for a single policy run.

    Policies mutate unit ready times and job remaining work; working on
    copies keeps the caller's models untouched between runs.
    """
    validate_units(units)
    validate_jobs(jobs)
    return [replace(u) for u in units], [replace(j, remaining=j.length) for j in jobs]
