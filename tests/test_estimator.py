import pytest

from cloudsched.errors import InvalidResource
from cloudsched.estimator import completion_time_matrix, estimate_completion, execution_time
from cloudsched.models import ExecutionUnit, Job


def test_estimate_completion():
    assert estimate_completion(Job(0, 2000), ExecutionUnit(2, 1500), 0) == pytest.approx(4 / 3)
    assert estimate_completion(Job(0, 50000), ExecutionUnit(0, 1000), 120) == 170


def test_estimate_is_pure():
    unit = ExecutionUnit(0, 1000, ready_time=7)
    job = Job(0, 1000)
    estimate_completion(job, unit, 3)
    assert unit.ready_time == 7
    assert job.remaining == 1000


@pytest.mark.parametrize("speed", [0, -100])
def test_non_positive_speed(speed):
    with pytest.raises(InvalidResource):
        execution_time(100, ExecutionUnit(0, speed))


def test_completion_time_matrix():
    units = [ExecutionUnit(0, 500), ExecutionUnit(1, 1000)]
    matrix = completion_time_matrix([Job(0, 2000), Job(1, 4000)], units)
    assert matrix == {0: [4, 2], 1: [8, 4]}
