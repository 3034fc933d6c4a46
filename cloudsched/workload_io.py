from __future__ import annotations

import csv
import json
from dataclasses import dataclass, field
from pathlib import Path
from random import Random
from typing import Iterable, List, Mapping, Optional, Sequence

from .models import ExecutionUnit, Job


@dataclass
class Workload:
    units: List[ExecutionUnit] = field(default_factory=list)
    jobs: List[Job] = field(default_factory=list)


def load_workload(path: str | Path) -> Workload:
    """
    Load jobs (and, for JSON objects, units) from a JSON or CSV file.

    A JSON file may hold ``{"units": [...], "jobs": [...]}`` or a plain list
    of jobs. A CSV file holds jobs only.
    """
    path = Path(path)
    suffix = path.suffix.lower()

    if suffix == ".json":
        with path.open("r", encoding="utf-8") as f:
            raw = json.load(f)
        if isinstance(raw, Mapping):
            return Workload(
                units=[_unit_from_mapping(u) for u in raw.get("units", [])],
                jobs=[_job_from_mapping(j) for j in raw.get("jobs", [])],
            )
        return Workload(jobs=_jobs_from_list(raw))
    if suffix == ".csv":
        return Workload(jobs=[_job_from_mapping(row) for row in _read_csv(path)])

    raise ValueError(f"Unsupported workload format: {suffix} (use .json or .csv)")


def load_units(path: str | Path) -> List[ExecutionUnit]:
    """
    Load execution units from a JSON list or a CSV file (``id,speed_mips``).
    """
    path = Path(path)
    suffix = path.suffix.lower()

    if suffix == ".json":
        with path.open("r", encoding="utf-8") as f:
            raw = json.load(f)
        if isinstance(raw, Mapping):
            raw = raw.get("units", [])
        if not isinstance(raw, Iterable):
            raise ValueError("JSON units must be a list of unit objects")
        return [_unit_from_mapping(entry) for entry in raw]
    if suffix == ".csv":
        return [_unit_from_mapping(row) for row in _read_csv(path)]

    raise ValueError(f"Unsupported units format: {suffix} (use .json or .csv)")


def units_from_speeds(speeds: Sequence[float]) -> List[ExecutionUnit]:
    return [ExecutionUnit(id=i, speed_mips=speed) for i, speed in enumerate(speeds)]


def random_units(count: int, seed: Optional[int] = None, low: int = 100, high: int = 1600) -> List[ExecutionUnit]:
    """
    Units with integer speeds drawn uniformly from ``[low, high]``.
    """
    if count < 1:
        raise ValueError("need at least one unit")
    rng = Random(seed)
    return [ExecutionUnit(id=i, speed_mips=rng.randint(low, high)) for i in range(count)]


def parse_number_list(raw: str) -> List[float]:
    """
    Parse a comma-separated list such as ``500,1000,1500``.
    """
    try:
        values = [parse_number(item) for item in raw.split(",") if item.strip()]
    except ValueError as exc:
        raise ValueError(f"Invalid number list: {raw!r}") from exc
    if not values:
        raise ValueError("number list must contain at least one value")
    return values


def _read_csv(path: Path) -> List[dict]:
    with path.open("r", encoding="utf-8", newline="") as f:
        return list(csv.DictReader(f))


def _jobs_from_list(raw) -> List[Job]:
    if not isinstance(raw, Iterable):
        raise ValueError("JSON workload must be a list of job objects")
    return [_job_from_mapping(entry) for entry in raw]


def parse_number(value) -> float:
    """
    Keep integral values as ``int`` so work tracking stays exact.
    """
    if isinstance(value, (int, float)):
        return value
    text = str(value).strip()
    try:
        return int(text)
    except ValueError:
        return float(text)


def _job_from_mapping(mapping) -> Job:
    try:
        job_id = int(mapping["id"])
        length = parse_number(mapping["length"])
        arrival_val = mapping.get("arrival_time")
        arrival_time = parse_number(arrival_val) if arrival_val not in (None, "") else 0
        deadline_val = mapping.get("deadline")
        deadline = parse_number(deadline_val) if deadline_val not in (None, "") else None
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise ValueError(f"Invalid job entry: {mapping!r}") from exc

    return Job(id=job_id, length=length, arrival_time=arrival_time, deadline=deadline)


def _unit_from_mapping(mapping) -> ExecutionUnit:
    try:
        unit_id = int(mapping["id"])
        speed = parse_number(mapping["speed_mips"])
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise ValueError(f"Invalid unit entry: {mapping!r}") from exc

    return ExecutionUnit(id=unit_id, speed_mips=speed)
