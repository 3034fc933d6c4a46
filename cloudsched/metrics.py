from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from .errors import EmptyResultSet, InvalidConfiguration
from .models import ExecutionRecord, Job, JobMetrics, RunMetrics, ScheduleEntry, ScheduleResult


def build_job_metrics(entries: Sequence[ScheduleEntry], jobs: Sequence[Job]) -> List[JobMetrics]:
    """
    Per-job waiting and turnaround times, in the order of ``entries``.
    """
    jobs_by_id = {job.id: job for job in jobs}

    rows: List[JobMetrics] = []
    for entry in entries:
        try:
            job = jobs_by_id[entry.job_id]
        except KeyError:
            raise InvalidConfiguration(f"schedule names unknown job {entry.job_id}") from None

        rows.append(
            JobMetrics(
                job_id=job.id,
                unit_id=entry.unit_id,
                length=job.length,
                arrival_time=job.arrival_time,
                start_time=entry.start_time,
                finish_time=entry.finish_time,
                waiting_time=entry.start_time - job.arrival_time,
                turnaround_time=entry.finish_time - job.arrival_time,
                deadline=job.deadline,
            )
        )
    return rows


def compute_metrics(
    entries: Sequence[ScheduleEntry],
    jobs: Sequence[Job],
    timeline: Optional[Sequence[ExecutionRecord]] = None,
) -> RunMetrics:
    """
    Aggregate a completed schedule into averages, makespan and deadline misses.

    Busy time per unit is taken from ``timeline`` when given (preemptive runs
    interleave jobs on a unit), otherwise from each entry's start/finish span.
    """
    if not entries:
        raise EmptyResultSet("metrics need at least one completed job")

    rows = build_job_metrics(entries, jobs)
    n = len(rows)

    makespan = max(r.finish_time for r in rows)

    busy: Dict[int, float] = {}
    if timeline is not None:
        for record in timeline:
            busy[record.unit_id] = busy.get(record.unit_id, 0.0) + (record.end_time - record.start_time)
    else:
        for entry in entries:
            busy[entry.unit_id] = busy.get(entry.unit_id, 0.0) + (entry.finish_time - entry.start_time)

    with_deadline = [r for r in rows if r.deadline is not None]
    missed: Optional[int] = None
    miss_rate: Optional[float] = None
    if with_deadline:
        missed = sum(1 for r in with_deadline if r.missed_deadline)
        miss_rate = missed / len(with_deadline)

    return RunMetrics(
        avg_waiting=sum(r.waiting_time for r in rows) / n,
        avg_turnaround=sum(r.turnaround_time for r in rows) / n,
        makespan=makespan,
        throughput=n / makespan if makespan > 0 else 0.0,
        missed_deadlines=missed,
        deadline_miss_rate=miss_rate,
        unit_busy_time=busy,
        unit_utilization={uid: t / makespan if makespan > 0 else 0.0 for uid, t in busy.items()},
        jobs=rows,
    )


def attach_metrics(result: ScheduleResult, jobs: Sequence[Job]) -> Optional[RunMetrics]:
    """
    Populate ``result.metrics``. An empty schedule is left without metrics.
    """
    if not result.entries:
        result.metrics = None
        return None

    result.metrics = compute_metrics(result.entries, jobs, result.timeline or None)
    return result.metrics


def summarize(metrics: Optional[RunMetrics]) -> dict:
    """
    Return the headline numbers used in comparison tables.
    """
    if metrics is None:
        return {
            "avg_waiting": 0.0,
            "avg_turnaround": 0.0,
            "makespan": 0.0,
            "missed_deadlines": None,
            "deadline_miss_rate": None,
        }

    return {
        "avg_waiting": metrics.avg_waiting,
        "avg_turnaround": metrics.avg_turnaround,
        "makespan": metrics.makespan,
        "missed_deadlines": metrics.missed_deadlines,
        "deadline_miss_rate": metrics.deadline_miss_rate,
    }
