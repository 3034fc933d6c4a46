import pytest

from cloudsched.algorithms import (
    ALGORITHMS,
    _best_unit,
    run_algorithm,
    schedule_deadline_min_min,
    schedule_edf,
    schedule_fcfs,
    schedule_min_max,
    schedule_min_min,
    schedule_sjf,
)
from cloudsched.errors import InvalidConfiguration, InvalidJob, InvalidResource
from cloudsched.models import ExecutionUnit, Job
from cloudsched.substrate import check_schedule

NON_PREEMPTIVE = ["fcfs", "sjf", "edf", "minmin", "minmax", "deadline-minmin"]


def _units(*speeds):
    return [ExecutionUnit(id=i, speed_mips=s) for i, s in enumerate(speeds)]


def _jobs():
    return [
        Job(0, 100000, arrival_time=0),
        Job(1, 50000, arrival_time=2),
        Job(2, 20000, arrival_time=1),
    ]


def _mixed_jobs():
    return [
        Job(0, 12000, arrival_time=0, deadline=30),
        Job(1, 3000, arrival_time=0, deadline=5),
        Job(2, 8000, arrival_time=4, deadline=20),
        Job(3, 1000, arrival_time=4),
        Job(4, 15000, arrival_time=9, deadline=40),
        Job(5, 500, arrival_time=25, deadline=27),
    ]


def test_fcfs_order():
    res = schedule_fcfs(_units(1000), _jobs())
    assert [e.job_id for e in res.entries] == [0, 2, 1]
    assert [(e.start_time, e.finish_time) for e in res.entries] == [(0, 100), (100, 120), (120, 170)]


def test_fcfs_multi_unit_picks_earliest_completion():
    res = schedule_fcfs(_units(1000, 2000), [Job(0, 4000), Job(1, 4000)])
    # job 0 finishes first on the fast unit; job 1 ties at t=4 and takes the lower unit id
    assert [(e.job_id, e.unit_id) for e in res.entries] == [(0, 1), (1, 0)]
    assert res.entry_for(1).finish_time == 4


def test_sjf_order():
    res = schedule_sjf(_units(1000), _jobs())
    # only job 0 has arrived at t=0; job 2 is shorter than job 1 afterwards
    assert [e.job_id for e in res.entries] == [0, 2, 1]
    assert res.entries[0].start_time == 0


def test_sjf_prefers_short_jobs_among_arrived():
    jobs = [Job(0, 10000, arrival_time=0), Job(1, 5000, arrival_time=1), Job(2, 2000, arrival_time=1)]
    res = schedule_sjf(_units(1000), jobs)
    assert [e.job_id for e in res.entries] == [0, 2, 1]
    assert [(e.start_time, e.finish_time) for e in res.entries] == [(0, 10), (10, 12), (12, 17)]


def test_sjf_tie_breaks_on_job_id():
    jobs = [Job(0, 3000), Job(1, 2000), Job(2, 2000)]
    res = schedule_sjf(_units(1000), jobs)
    assert [e.job_id for e in res.entries] == [1, 2, 0]


def test_sjf_clock_jumps_to_next_arrival():
    res = schedule_sjf(_units(1000), [Job(0, 1000, arrival_time=5)])
    assert res.entries[0].start_time == 5
    assert res.entries[0].finish_time == 6


def test_edf_order_and_missing_deadline_last():
    jobs = [Job(0, 1000, deadline=10), Job(1, 1000, deadline=3), Job(2, 1000)]
    res = schedule_edf(_units(1000), jobs)
    assert [e.job_id for e in res.entries] == [1, 0, 2]
    assert res.metrics.missed_deadlines == 0


def test_edf_respects_arrival():
    jobs = [Job(0, 5000, arrival_time=0, deadline=100), Job(1, 1000, arrival_time=1, deadline=2)]
    res = schedule_edf(_units(1000), jobs)
    assert [e.job_id for e in res.entries] == [0, 1]
    assert res.entry_for(1).finish_time == 6
    assert res.metrics.missed_deadlines == 1


def test_min_min_first_selection():
    units = _units(500, 1000, 1500)
    jobs = [Job(i, length) for i, length in enumerate([2000, 4000, 8000, 10000])]
    res = schedule_min_min(units, jobs)

    first = res.entries[0]
    assert (first.job_id, first.unit_id) == (0, 2)
    assert first.finish_time == pytest.approx(2000 / 1500)

    # unit 2's ready time moved to the first completion
    nxt = next(e for e in res.entries[1:] if e.unit_id == 2)
    assert nxt.start_time == first.finish_time


def test_min_min_single_unit_runs_shortest_first():
    jobs = [Job(0, 1000), Job(1, 3000), Job(2, 2000)]
    res = schedule_min_min(_units(1000), jobs)
    assert [e.job_id for e in res.entries] == [0, 2, 1]


def test_min_max_runs_longest_best_time_first():
    jobs = [Job(0, 1000), Job(1, 3000), Job(2, 2000)]
    res = schedule_min_max(_units(1000), jobs)
    assert [e.job_id for e in res.entries] == [1, 2, 0]
    assert [(e.start_time, e.finish_time) for e in res.entries] == [(0, 3), (3, 5), (5, 6)]


def test_min_max_tie_breaks_on_job_id():
    res = schedule_min_max(_units(1000), [Job(0, 2000), Job(1, 2000)])
    assert [e.job_id for e in res.entries] == [0, 1]


def test_deadline_min_min():
    jobs = [Job(0, 4000, deadline=10), Job(1, 2000, deadline=1.5), Job(2, 2000, deadline=10)]
    res = schedule_deadline_min_min(_units(1000, 2000), jobs)
    assert [(e.job_id, e.unit_id) for e in res.entries] == [(1, 1), (2, 0), (0, 1)]
    assert res.entry_for(0).finish_time == 3
    assert res.metrics.missed_deadlines == 0


@pytest.mark.parametrize("name", NON_PREEMPTIVE)
def test_every_job_scheduled_once_with_model_duration(name):
    units = _units(500, 1000, 1500)
    jobs = _mixed_jobs()
    res = run_algorithm(name, units, jobs)

    assert sorted(e.job_id for e in res.entries) == [j.id for j in jobs]
    speeds = {u.id: u.speed_mips for u in units}
    for e in res.entries:
        job = jobs[e.job_id]
        assert e.finish_time - e.start_time == pytest.approx(job.length / speeds[e.unit_id])
        assert e.start_time >= job.arrival_time
    check_schedule(res.entries, jobs, units)
    assert set(res.assignment) == {j.id for j in jobs}


@pytest.mark.parametrize("name", NON_PREEMPTIVE)
def test_ready_times_never_go_back(name):
    res = run_algorithm(name, _units(500, 1000, 1500), _mixed_jobs())
    last_finish = {}
    for e in res.entries:
        assert e.finish_time >= last_finish.get(e.unit_id, 0)
        last_finish[e.unit_id] = e.finish_time
    assert res.unit_ready_times == {uid: last_finish.get(uid, 0) for uid in (0, 1, 2)}


def test_caller_models_are_not_mutated():
    units = _units(1000, 2000)
    jobs = _jobs()
    schedule_min_min(units, jobs)
    assert [u.ready_time for u in units] == [0, 0]
    assert [j.remaining for j in jobs] == [j.length for j in jobs]


def test_runs_are_reproducible():
    first = run_algorithm("sjf", _units(500, 1000), _mixed_jobs())
    second = run_algorithm("sjf", _units(500, 1000), _mixed_jobs())
    assert first.entries == second.entries


@pytest.mark.parametrize("name", NON_PREEMPTIVE)
def test_empty_job_set_is_not_an_error(name):
    res = run_algorithm(name, _units(1000), [])
    assert res.entries == []
    assert res.metrics is None


def test_no_units_is_invalid_configuration():
    with pytest.raises(InvalidConfiguration):
        schedule_fcfs([], _jobs())


def test_best_unit_needs_a_unit():
    with pytest.raises(InvalidConfiguration):
        _best_unit(Job(0, 1000), [], 0)

    unit, start, finish = _best_unit(Job(0, 1000), _units(500, 1000), 2)
    assert (unit.id, start, finish) == (1, 2, 3)


def test_zero_speed_is_invalid_resource():
    with pytest.raises(InvalidResource):
        schedule_min_min(_units(1000, 0), _jobs())


@pytest.mark.parametrize(
    "job",
    [Job(0, 0), Job(0, -5), Job(0, 100, arrival_time=-1), Job(0, 100, deadline=0)],
)
def test_bad_jobs_are_rejected(job):
    with pytest.raises(InvalidJob):
        schedule_sjf(_units(1000), [job])


def test_unknown_algorithm():
    with pytest.raises(InvalidConfiguration):
        run_algorithm("lottery", _units(1000), _jobs())


def test_dispatch_is_case_insensitive():
    assert run_algorithm("MinMin", _units(1000), _jobs()).algorithm == "Min-Min"
    assert set(NON_PREEMPTIVE) < set(ALGORITHMS)
