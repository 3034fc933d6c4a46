from __future__ import annotations

import logging
from collections import deque
from enum import Enum
from fractions import Fraction
from typing import Deque, Dict, List, Optional, Sequence

from .errors import InvalidConfiguration
from .estimator import execution_time
from .metrics import attach_metrics
from .models import (
    COMPLETED,
    PREEMPTED,
    ExecutionRecord,
    ExecutionUnit,
    Job,
    ScheduleEntry,
    ScheduleResult,
)
from .validation import prepare_run

logger = logging.getLogger(__name__)


class JobState(Enum):
    PENDING = "pending"
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"


def _exact(amount):
    """
    Work amount as ``int`` or ``Fraction`` so repeated subtraction is exact.
    """
    if isinstance(amount, float):
        if amount.is_integer():
            return int(amount)
        return Fraction(str(amount))
    return amount


class RoundRobinScheduler:
    """
    Preemptive round-robin over several units of different speed.

    The quantum is an amount of work (instructions), so a fast unit burns
    through it in less time than a slow one. Each slice goes to the unit
    that becomes free first (lowest id on ties), not to a fixed rotation.

    Jobs wait in a pending list until the earliest unit ready time reaches
    their arrival; only then do they join the FIFO queue. Arrivals during a
    slice are queued ahead of the preempted job. When the queue runs dry the
    clock jumps to the next arrival.
    """

    def __init__(self, units: Sequence[ExecutionUnit], jobs: Sequence[Job], quantum: float) -> None:
        if quantum is None or quantum <= 0:
            raise InvalidConfiguration("Round Robin requires a positive quantum (use --quantum)")

        self.quantum = quantum
        self._quantum = _exact(quantum)
        self.units, self.jobs = prepare_run(units, jobs)
        for job in self.jobs:
            job.remaining = _exact(job.length)

        self._pending: Deque[Job] = deque(sorted(self.jobs, key=lambda j: (j.arrival_time, j.id)))
        self._queue: Deque[Job] = deque()
        self.state: Dict[int, JobState] = {j.id: JobState.PENDING for j in self.jobs}
        self.start_times: Dict[int, float] = {}
        self.finish_times: Dict[int, float] = {}
        self.last_unit: Dict[int, int] = {}
        self.timeline: List[ExecutionRecord] = []
        self.context_switches = 0

        self._admit(self._clock())

    @property
    def done(self) -> bool:
        return not self._queue and not self._pending

    def _clock(self) -> float:
        return min(u.ready_time for u in self.units)

    def _admit(self, now: float) -> None:
        while self._pending and self._pending[0].arrival_time <= now:
            job = self._pending.popleft()
            self._queue.append(job)
            self.state[job.id] = JobState.QUEUED

    def _pick_unit(self) -> ExecutionUnit:
        return min(self.units, key=lambda u: (u.ready_time, u.id))

    def step(self) -> ExecutionRecord:
        """
        Run the job at the head of the queue for one slice.
        """
        if self.done:
            raise InvalidConfiguration("no queued jobs left to run")

        if not self._queue:
            next_arrival = self._pending[0].arrival_time
            logger.debug("RR queue empty, clock jumps to next arrival at %.3f", next_arrival)
            self._admit(next_arrival)

        job = self._queue.popleft()
        unit = self._pick_unit()
        self.state[job.id] = JobState.RUNNING

        start_time = max(unit.ready_time, job.arrival_time)
        if job.id not in self.start_times:
            self.start_times[job.id] = start_time

        slice_work = min(self._quantum, job.remaining)
        end_time = start_time + float(execution_time(slice_work, unit))

        unit.ready_time = end_time
        job.remaining -= slice_work
        self.last_unit[job.id] = unit.id

        self._admit(self._clock())

        if job.remaining > 0:
            status = PREEMPTED
            self._queue.append(job)
            self.state[job.id] = JobState.QUEUED
            self.context_switches += 1
        else:
            status = COMPLETED
            self.state[job.id] = JobState.COMPLETED
            self.finish_times[job.id] = end_time

        record = ExecutionRecord(
            step=len(self.timeline) + 1,
            job_id=job.id,
            unit_id=unit.id,
            start_time=start_time,
            end_time=end_time,
            work_done=slice_work,
            remaining=job.remaining,
            status=status,
        )
        self.timeline.append(record)
        logger.debug(
            "RR step %d: job %d on unit %d [%.3f, %.3f] work %s, %s left (%s)",
            record.step,
            job.id,
            unit.id,
            start_time,
            end_time,
            slice_work,
            job.remaining,
            status,
        )
        return record

    def run(self) -> ScheduleResult:
        while not self.done:
            self.step()

        entries = [
            ScheduleEntry(
                job_id=job.id,
                unit_id=self.last_unit[job.id],
                start_time=self.start_times[job.id],
                finish_time=self.finish_times[job.id],
            )
            for job in sorted(self.jobs, key=lambda j: self.finish_times[j.id])
        ]

        result = ScheduleResult(
            algorithm="Round Robin",
            quantum=self.quantum,
            entries=entries,
            timeline=list(self.timeline),
            assignment={e.job_id: e.unit_id for e in entries},
            context_switches=self.context_switches,
            unit_ready_times={u.id: u.ready_time for u in self.units},
        )
        attach_metrics(result, self.jobs)
        logger.info(
            "Round Robin (quantum %s) finished %d jobs in %d slices, %d context switches",
            self.quantum,
            len(entries),
            len(self.timeline),
            self.context_switches,
        )
        return result


def schedule_round_robin(
    units: Sequence[ExecutionUnit], jobs: Sequence[Job], quantum: Optional[float] = None
) -> ScheduleResult:
    """
    Round Robin scheduling with a fixed work quantum.
    """
    return RoundRobinScheduler(units, jobs, quantum).run()
