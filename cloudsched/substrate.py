from __future__ import annotations

import math
from typing import Dict, List, Protocol, Sequence

from .errors import ScheduleMismatch
from .estimator import estimate_completion, execution_time
from .models import Assignment, ExecutionUnit, Job, ScheduleEntry
from .validation import validate_assignment, validate_jobs, validate_units


class ExecutionSubstrate(Protocol):
    """
    Something that runs an assignment and reports when each job really ran.
    """

    def execute(
        self, assignment: Assignment, jobs: Sequence[Job], units: Sequence[ExecutionUnit]
    ) -> List[ScheduleEntry]:
        ...


class SpaceSharedSubstrate:
    """
    Runs the jobs of each unit one at a time, in assignment order.

    A unit starts from its own ready time and never begins a job before the
    job has arrived.
    """

    def execute(
        self, assignment: Assignment, jobs: Sequence[Job], units: Sequence[ExecutionUnit]
    ) -> List[ScheduleEntry]:
        validate_units(units)
        validate_jobs(jobs)
        validate_assignment(assignment, jobs, units)

        jobs_by_id = {job.id: job for job in jobs}
        units_by_id = {unit.id: unit for unit in units}
        clocks: Dict[int, float] = {unit.id: unit.ready_time for unit in units}

        entries: List[ScheduleEntry] = []
        for job_id, unit_id in assignment.items():
            job = jobs_by_id[job_id]
            unit = units_by_id[unit_id]

            start_time = max(clocks[unit_id], job.arrival_time)
            finish_time = estimate_completion(job, unit, start_time)
            clocks[unit_id] = finish_time

            entries.append(
                ScheduleEntry(job_id=job_id, unit_id=unit_id, start_time=start_time, finish_time=finish_time)
            )
        return entries


def check_schedule(
    entries: Sequence[ScheduleEntry],
    jobs: Sequence[Job],
    units: Sequence[ExecutionUnit],
    rel_tol: float = 1e-9,
) -> None:
    """
    Check a realized non-preemptive schedule against the completion-time model.

    Raises :class:`ScheduleMismatch` on the first violation found.
    """
    jobs_by_id = {job.id: job for job in jobs}
    units_by_id = {unit.id: unit for unit in units}

    seen: set[int] = set()
    for entry in entries:
        if entry.job_id not in jobs_by_id:
            raise ScheduleMismatch(f"unknown job {entry.job_id}")
        if entry.job_id in seen:
            raise ScheduleMismatch(f"job {entry.job_id} is scheduled more than once")
        seen.add(entry.job_id)
        if entry.unit_id not in units_by_id:
            raise ScheduleMismatch(f"job {entry.job_id} ran on unknown unit {entry.unit_id}")

        job = jobs_by_id[entry.job_id]
        unit = units_by_id[entry.unit_id]

        if entry.start_time > entry.finish_time:
            raise ScheduleMismatch(f"job {job.id} finishes before it starts")
        if entry.start_time < job.arrival_time:
            raise ScheduleMismatch(f"job {job.id} starts at {entry.start_time} before arriving at {job.arrival_time}")

        expected = execution_time(job.length, unit)
        actual = entry.finish_time - entry.start_time
        if not math.isclose(actual, expected, rel_tol=rel_tol, abs_tol=1e-12):
            raise ScheduleMismatch(f"job {job.id} ran for {actual} on unit {unit.id}, expected {expected}")

    missing = jobs_by_id.keys() - seen
    if missing:
        raise ScheduleMismatch(f"jobs {sorted(missing)} were never scheduled")

    by_unit: Dict[int, List[ScheduleEntry]] = {}
    for entry in entries:
        by_unit.setdefault(entry.unit_id, []).append(entry)
    for unit_id, unit_entries in by_unit.items():
        unit_entries.sort(key=lambda e: (e.start_time, e.finish_time))
        for prev, nxt in zip(unit_entries, unit_entries[1:]):
            if nxt.start_time < prev.finish_time and not math.isclose(nxt.start_time, prev.finish_time, rel_tol=rel_tol):
                raise ScheduleMismatch(f"jobs {prev.job_id} and {nxt.job_id} overlap on unit {unit_id}")
