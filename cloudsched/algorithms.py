from __future__ import annotations

import logging
import math
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .errors import InvalidConfiguration
from .estimator import estimate_completion
from .hill_climbing import schedule_hill_climbing
from .metrics import attach_metrics
from .models import Assignment, ExecutionRecord, ExecutionUnit, Job, ScheduleEntry, ScheduleResult
from .round_robin import schedule_round_robin
from .validation import prepare_run

logger = logging.getLogger(__name__)


class _Commits:
    """
    Collects the (job, unit) decisions of a non-preemptive run.
    """

    def __init__(self, algorithm: str) -> None:
        self.result = ScheduleResult(algorithm=algorithm)

    def commit(self, job: Job, unit: ExecutionUnit, start_time: float, finish_time: float) -> None:
        unit.ready_time = finish_time
        job.remaining = 0

        self.result.entries.append(
            ScheduleEntry(job_id=job.id, unit_id=unit.id, start_time=start_time, finish_time=finish_time)
        )
        self.result.timeline.append(
            ExecutionRecord(
                step=len(self.result.timeline) + 1,
                job_id=job.id,
                unit_id=unit.id,
                start_time=start_time,
                end_time=finish_time,
                work_done=job.length,
                remaining=0,
            )
        )
        self.result.assignment[job.id] = unit.id
        logger.debug(
            "%s: job %d -> unit %d (start %.3f, finish %.3f)",
            self.result.algorithm,
            job.id,
            unit.id,
            start_time,
            finish_time,
        )

    def finish(self, units: Sequence[ExecutionUnit], jobs: Sequence[Job]) -> ScheduleResult:
        result = self.result
        result.unit_ready_times = {u.id: u.ready_time for u in units}
        attach_metrics(result, jobs)
        if result.metrics is not None:
            logger.info(
                "%s scheduled %d jobs on %d units, makespan %.3f",
                result.algorithm,
                len(result.entries),
                len(units),
                result.metrics.makespan,
            )
        return result


def _best_unit(job: Job, units: Sequence[ExecutionUnit], not_before: float) -> Tuple[ExecutionUnit, float, float]:
    """
    Unit giving ``job`` the earliest completion if it may not start before
    ``not_before``. Ties go to the lowest unit id.
    """
    if not units:
        raise InvalidConfiguration("at least one execution unit is required")

    best: Optional[Tuple[float, int, ExecutionUnit, float]] = None
    for unit in units:
        start = max(unit.ready_time, not_before)
        finish = estimate_completion(job, unit, start)
        if best is None or (finish, unit.id) < (best[0], best[1]):
            best = (finish, unit.id, unit, start)

    finish, _, unit, start = best
    return unit, start, finish


def schedule_fcfs(
    units: Sequence[ExecutionUnit], jobs: Sequence[Job], quantum: Optional[float] = None
) -> ScheduleResult:
    """
    First-Come First-Serve (non-preemptive).

    Jobs run in arrival order (lowest id first on equal arrivals), each on the
    unit that completes it earliest.
    """
    units, jobs = prepare_run(units, jobs)
    commits = _Commits("FCFS")

    clock = 0.0
    for job in sorted(jobs, key=lambda j: (j.arrival_time, j.id)):
        clock = max(clock, job.arrival_time)
        unit, start_time, finish_time = _best_unit(job, units, clock)
        commits.commit(job, unit, start_time, finish_time)

    return commits.finish(units, jobs)


def _schedule_arrival_gated(
    name: str,
    units: Sequence[ExecutionUnit],
    jobs: Sequence[Job],
    priority: Callable[[Job], float],
) -> ScheduleResult:
    """
    Shared loop of SJF and EDF.

    The clock follows the earliest-free unit. Among jobs that have arrived by
    then, the one with the smallest ``priority`` (then lowest id) is placed on
    the unit that finishes it first. When nothing has arrived, the clock
    jumps to the next arrival.
    """
    units, jobs = prepare_run(units, jobs)
    commits = _Commits(name)

    remaining: List[Job] = list(jobs)
    clock = 0.0

    while remaining:
        clock = max(clock, min(u.ready_time for u in units))

        ready = [j for j in remaining if j.arrival_time <= clock]
        if not ready:
            clock = min(j.arrival_time for j in remaining)
            continue

        job = min(ready, key=lambda j: (priority(j), j.id))
        unit, start_time, finish_time = _best_unit(job, units, clock)
        commits.commit(job, unit, start_time, finish_time)
        remaining.remove(job)

    return commits.finish(units, jobs)


def schedule_sjf(
    units: Sequence[ExecutionUnit], jobs: Sequence[Job], quantum: Optional[float] = None
) -> ScheduleResult:
    """
    Shortest Job First (non-preemptive): smallest length among arrived jobs.
    """
    return _schedule_arrival_gated("SJF", units, jobs, lambda j: j.length)


def schedule_edf(
    units: Sequence[ExecutionUnit], jobs: Sequence[Job], quantum: Optional[float] = None
) -> ScheduleResult:
    """
    Earliest Deadline First (non-preemptive). Jobs without a deadline go last.
    """
    return _schedule_arrival_gated(
        "EDF",
        units,
        jobs,
        lambda j: j.deadline if j.deadline is not None else math.inf,
    )


def schedule_min_min(
    units: Sequence[ExecutionUnit], jobs: Sequence[Job], quantum: Optional[float] = None
) -> ScheduleResult:
    """
    Min-Min: commit the (job, unit) pair with the globally smallest
    completion time, over all remaining jobs and all units.
    """
    units, jobs = prepare_run(units, jobs)
    commits = _Commits("Min-Min")

    remaining: List[Job] = sorted(jobs, key=lambda j: j.id)
    while remaining:
        best = None
        for job in remaining:
            for unit in units:
                start = max(unit.ready_time, job.arrival_time)
                finish = estimate_completion(job, unit, start)
                key = (finish, job.id, unit.id)
                if best is None or key < best[0]:
                    best = (key, job, unit, start, finish)

        _, job, unit, start_time, finish_time = best
        commits.commit(job, unit, start_time, finish_time)
        remaining.remove(job)

    return commits.finish(units, jobs)


def schedule_min_max(
    units: Sequence[ExecutionUnit], jobs: Sequence[Job], quantum: Optional[float] = None
) -> ScheduleResult:
    """
    Min-Max: like Min-Min, but among the per-job best completion times pick
    the largest one, so long jobs are not pushed to the end.
    """
    units, jobs = prepare_run(units, jobs)
    commits = _Commits("Min-Max")

    remaining: List[Job] = sorted(jobs, key=lambda j: j.id)
    while remaining:
        chosen = None
        for job in remaining:
            unit, start, finish = _best_unit(job, units, job.arrival_time)
            # strict '>' keeps the lowest job id on ties
            if chosen is None or finish > chosen[3]:
                chosen = (job, unit, start, finish)

        job, unit, start_time, finish_time = chosen
        commits.commit(job, unit, start_time, finish_time)
        remaining.remove(job)

    return commits.finish(units, jobs)


def schedule_deadline_min_min(
    units: Sequence[ExecutionUnit], jobs: Sequence[Job], quantum: Optional[float] = None
) -> ScheduleResult:
    """
    Deadline-aware Min-Min.

    Jobs are taken in deadline order; equal deadlines fall back to the
    Min-Min rule (smallest completion time, then job id, then unit id).
    """
    units, jobs = prepare_run(units, jobs)
    commits = _Commits("Deadline Min-Min")

    remaining: List[Job] = sorted(jobs, key=lambda j: j.id)
    while remaining:
        best = None
        for job in remaining:
            deadline = job.deadline if job.deadline is not None else math.inf
            for unit in units:
                start = max(unit.ready_time, job.arrival_time)
                finish = estimate_completion(job, unit, start)
                key = (deadline, finish, job.id, unit.id)
                if best is None or key < best[0]:
                    best = (key, job, unit, start, finish)

        _, job, unit, start_time, finish_time = best
        if job.deadline is not None and finish_time > job.deadline:
            logger.warning("job %d is expected to miss its deadline (%.3f > %.3f)", job.id, finish_time, job.deadline)
        commits.commit(job, unit, start_time, finish_time)
        remaining.remove(job)

    return commits.finish(units, jobs)


ALGORITHMS: Dict[str, Callable[..., ScheduleResult]] = {
    "fcfs": schedule_fcfs,
    "sjf": schedule_sjf,
    "edf": schedule_edf,
    "minmin": schedule_min_min,
    "minmax": schedule_min_max,
    "deadline-minmin": schedule_deadline_min_min,
    "rr": schedule_round_robin,
    "hill": schedule_hill_climbing,
}

PREEMPTIVE = {"rr"}


def run_algorithm(
    name: str,
    units: Sequence[ExecutionUnit],
    jobs: Sequence[Job],
    quantum: Optional[float] = None,
    initial_assignment: Optional[Assignment] = None,
    seed: Optional[int] = None,
) -> ScheduleResult:
    """
    Dispatch to the requested policy.

    ``quantum`` is used by round-robin only; ``initial_assignment`` and
    ``seed`` by hill climbing only.
    """
    name = name.lower()
    if name not in ALGORITHMS:
        raise InvalidConfiguration(f"Unknown algorithm '{name}' (choose from {', '.join(ALGORITHMS)})")

    func = ALGORITHMS[name]
    if name == "hill":
        return func(units, jobs, initial_assignment=initial_assignment, seed=seed)
    return func(units, jobs, quantum=quantum)
