from __future__ import annotations

import logging
from dataclasses import dataclass, field
from random import Random
from typing import Dict, List, Optional, Sequence

from .estimator import execution_time
from .metrics import attach_metrics
from .models import Assignment, ExecutionRecord, ExecutionUnit, Job, ScheduleResult
from .substrate import ExecutionSubstrate, SpaceSharedSubstrate
from .validation import prepare_run, validate_assignment, validate_jobs, validate_units

logger = logging.getLogger(__name__)


@dataclass
class Move:
    job_id: int
    from_unit: int
    to_unit: int
    makespan_before: float
    makespan_after: float


@dataclass
class HillClimbResult:
    assignment: Assignment
    initial_makespan: float
    makespan: float
    moves: List[Move] = field(default_factory=list)

    @property
    def rounds(self) -> int:
        return len(self.moves)


def makespan(assignment: Assignment, jobs: Sequence[Job], units: Sequence[ExecutionUnit]) -> float:
    """
    Largest total execution time over all units.

    Arrival times and unit ready times are ignored: this is the load-balance
    objective, not a simulated finish time.
    """
    jobs_by_id = {job.id: job for job in jobs}
    units_by_id = {unit.id: unit for unit in units}

    loads: Dict[int, float] = {unit.id: 0.0 for unit in units}
    for job_id, unit_id in assignment.items():
        loads[unit_id] += execution_time(jobs_by_id[job_id].length, units_by_id[unit_id])
    return max(loads.values(), default=0.0)


def random_assignment(jobs: Sequence[Job], units: Sequence[ExecutionUnit], seed: Optional[int] = None) -> Assignment:
    """
    Map every job to a uniformly chosen unit, in job id order.
    """
    validate_units(units)
    rng = Random(seed)
    unit_ids = [unit.id for unit in units]
    return {job.id: rng.choice(unit_ids) for job in sorted(jobs, key=lambda j: j.id)}


def hill_climb(
    assignment: Assignment, jobs: Sequence[Job], units: Sequence[ExecutionUnit]
) -> HillClimbResult:
    """
    Steepest-descent local search over single-job reassignments.

    Each round tries every job on every other unit (job id order, then unit
    id order) and keeps the move with the lowest makespan. The move is
    applied only if it is strictly better than the current makespan;
    otherwise the search stops at a local optimum.
    """
    validate_units(units)
    validate_jobs(jobs)
    validate_assignment(assignment, jobs, units)

    current: Assignment = dict(assignment)
    current_makespan = makespan(current, jobs, units)
    result = HillClimbResult(assignment=current, initial_makespan=current_makespan, makespan=current_makespan)

    job_ids = sorted(job.id for job in jobs)
    unit_ids = sorted(unit.id for unit in units)

    while True:
        best_move: Optional[Move] = None
        best_makespan = current_makespan

        for job_id in job_ids:
            for unit_id in unit_ids:
                if current[job_id] == unit_id:
                    continue
                neighbour = dict(current)
                neighbour[job_id] = unit_id
                candidate = makespan(neighbour, jobs, units)
                if candidate < best_makespan:
                    best_makespan = candidate
                    best_move = Move(job_id, current[job_id], unit_id, current_makespan, candidate)

        if best_move is None:
            break

        current[best_move.job_id] = best_move.to_unit
        current_makespan = best_makespan
        result.moves.append(best_move)
        logger.debug(
            "hill climbing: move job %d from unit %d to unit %d, makespan %.3f -> %.3f",
            best_move.job_id,
            best_move.from_unit,
            best_move.to_unit,
            best_move.makespan_before,
            best_move.makespan_after,
        )

    result.assignment = current
    result.makespan = current_makespan
    logger.info(
        "hill climbing finished after %d moves, makespan %.3f -> %.3f",
        result.rounds,
        result.initial_makespan,
        result.makespan,
    )
    return result


def schedule_hill_climbing(
    units: Sequence[ExecutionUnit],
    jobs: Sequence[Job],
    quantum: Optional[float] = None,
    initial_assignment: Optional[Assignment] = None,
    seed: Optional[int] = None,
    substrate: Optional[ExecutionSubstrate] = None,
) -> ScheduleResult:
    """
    Optimize an assignment by hill climbing, then execute it.

    Without ``initial_assignment`` the search starts from a random one drawn
    with ``seed``. Start and finish times come from ``substrate``
    (space-shared by default).
    """
    units, jobs = prepare_run(units, jobs)
    if initial_assignment is None:
        initial_assignment = random_assignment(jobs, units, seed=seed)

    climb = hill_climb(initial_assignment, jobs, units)
    entries = (substrate or SpaceSharedSubstrate()).execute(climb.assignment, jobs, units)

    jobs_by_id = {job.id: job for job in jobs}
    timeline = [
        ExecutionRecord(
            step=i,
            job_id=e.job_id,
            unit_id=e.unit_id,
            start_time=e.start_time,
            end_time=e.finish_time,
            work_done=jobs_by_id[e.job_id].length,
            remaining=0,
        )
        for i, e in enumerate(sorted(entries, key=lambda e: (e.start_time, e.unit_id)), start=1)
    ]

    ready: Dict[int, float] = {u.id: u.ready_time for u in units}
    for e in entries:
        ready[e.unit_id] = max(ready[e.unit_id], e.finish_time)

    result = ScheduleResult(
        algorithm="Hill Climbing",
        entries=entries,
        timeline=timeline,
        assignment=dict(climb.assignment),
        unit_ready_times=ready,
    )
    attach_metrics(result, jobs)
    return result
