import pytest

from cloudsched.algorithms import schedule_fcfs
from cloudsched.errors import EmptyResultSet, InvalidConfiguration
from cloudsched.metrics import compute_metrics, summarize
from cloudsched.models import ExecutionRecord, ExecutionUnit, Job, ScheduleEntry


def _fcfs_jobs():
    return [
        Job(0, 100000, arrival_time=0, deadline=200),
        Job(1, 50000, arrival_time=2, deadline=170),
        Job(2, 20000, arrival_time=1, deadline=150),
    ]


def test_fcfs_metrics():
    res = schedule_fcfs([ExecutionUnit(0, 1000)], _fcfs_jobs())
    m = res.metrics

    # waits: 0, 100 - 1, 120 - 2; turnarounds: 100, 120 - 1, 170 - 2
    assert m.avg_waiting == pytest.approx((0 + 99 + 118) / 3)
    assert m.avg_turnaround == pytest.approx((100 + 119 + 168) / 3)
    assert m.makespan == 170
    assert m.missed_deadlines == 0
    assert m.deadline_miss_rate == 0.0
    assert m.unit_busy_time == {0: 170}
    assert m.unit_utilization == {0: pytest.approx(1.0)}
    assert m.throughput == pytest.approx(3 / 170)


def test_makespan_is_max_finish():
    entries = [ScheduleEntry(0, 0, 0, 4.25), ScheduleEntry(1, 1, 1, 9.5), ScheduleEntry(2, 0, 4.25, 7)]
    jobs = [Job(0, 10), Job(1, 10), Job(2, 10)]
    assert compute_metrics(entries, jobs).makespan == 9.5


def test_missed_deadlines_counted():
    entries = [ScheduleEntry(0, 0, 0, 5), ScheduleEntry(1, 0, 5, 10)]
    jobs = [Job(0, 5, deadline=5), Job(1, 5, deadline=9)]
    m = compute_metrics(entries, jobs)
    assert m.missed_deadlines == 1
    assert m.deadline_miss_rate == pytest.approx(0.5)
    assert [row.missed_deadline for row in m.jobs] == [False, True]


def test_no_deadlines_means_no_miss_count():
    m = compute_metrics([ScheduleEntry(0, 0, 0, 1)], [Job(0, 1)])
    assert m.missed_deadlines is None
    assert m.deadline_miss_rate is None
    assert m.jobs[0].missed_deadline is None


def test_busy_time_from_timeline():
    entries = [ScheduleEntry(0, 0, 0, 4), ScheduleEntry(1, 0, 1, 3)]
    timeline = [
        ExecutionRecord(1, 0, 0, 0, 1, 1, 3),
        ExecutionRecord(2, 1, 0, 1, 3, 2, 0),
        ExecutionRecord(3, 0, 0, 3, 4, 1, 0),
    ]
    m = compute_metrics(entries, [Job(0, 2), Job(1, 2)], timeline)
    assert m.unit_busy_time == {0: 4}


def test_empty_result_set():
    with pytest.raises(EmptyResultSet):
        compute_metrics([], [Job(0, 1)])


def test_unknown_job_in_schedule():
    with pytest.raises(InvalidConfiguration):
        compute_metrics([ScheduleEntry(7, 0, 0, 1)], [Job(0, 1)])


def test_summarize_handles_missing_metrics():
    assert summarize(None)["makespan"] == 0.0


def test_miss_rate_counts_only_jobs_with_deadlines():
    entries = [ScheduleEntry(0, 0, 0, 5), ScheduleEntry(1, 0, 5, 10), ScheduleEntry(2, 0, 10, 12)]
    jobs = [Job(0, 5, deadline=4), Job(1, 5), Job(2, 2, deadline=20)]
    m = compute_metrics(entries, jobs)
    assert m.missed_deadlines == 1
    assert m.deadline_miss_rate == pytest.approx(0.5)
    assert summarize(m)["deadline_miss_rate"] == pytest.approx(0.5)
