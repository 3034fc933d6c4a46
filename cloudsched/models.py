from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

# Job id -> unit id. Insertion order is the execution order on each unit.
Assignment = Dict[int, int]

PREEMPTED = "PREEMPTED"
COMPLETED = "COMPLETED"


@dataclass
class ExecutionUnit:
    id: int
    speed_mips: float
    ready_time: float = 0.0


@dataclass
class Job:
    id: int
    length: float
    arrival_time: float = 0.0
    deadline: Optional[float] = None
    remaining: Optional[float] = None

    def __post_init__(self) -> None:
        if self.remaining is None:
            self.remaining = self.length


@dataclass
class ScheduleEntry:
    """
    Placement of one job: the unit that ran it and when it started and finished.
    """

    job_id: int
    unit_id: int
    start_time: float
    finish_time: float


@dataclass
class ExecutionRecord:
    """
    One contiguous slice of execution of a job on a unit.

    Non-preemptive policies emit a single completed slice per job; the
    Round-Robin scheduler emits one record per quantum.
    """

    step: int
    job_id: int
    unit_id: int
    start_time: float
    end_time: float
    work_done: float
    remaining: float
    status: str = COMPLETED


@dataclass
class JobMetrics:
    job_id: int
    unit_id: int
    length: float
    arrival_time: float
    start_time: float
    finish_time: float
    waiting_time: float
    turnaround_time: float
    deadline: Optional[float] = None

    @property
    def missed_deadline(self) -> Optional[bool]:
        if self.deadline is None:
            return None
        return self.finish_time > self.deadline


@dataclass
class RunMetrics:
    avg_waiting: float
    avg_turnaround: float
    makespan: float
    throughput: float
    missed_deadlines: Optional[int] = None
    deadline_miss_rate: Optional[float] = None
    unit_busy_time: Dict[int, float] = field(default_factory=dict)
    unit_utilization: Dict[int, float] = field(default_factory=dict)
    jobs: List[JobMetrics] = field(default_factory=list)


@dataclass
class ScheduleResult:
    algorithm: str
    quantum: Optional[float] = None
    entries: List[ScheduleEntry] = field(default_factory=list)
    timeline: List[ExecutionRecord] = field(default_factory=list)
    assignment: Assignment = field(default_factory=dict)
    context_switches: int = 0
    unit_ready_times: Dict[int, float] = field(default_factory=dict)
    metrics: Optional[RunMetrics] = None

    def entry_for(self, job_id: int) -> ScheduleEntry:
        for entry in self.entries:
            if entry.job_id == job_id:
                return entry
        raise KeyError(job_id)
