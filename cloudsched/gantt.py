from __future__ import annotations

from typing import Dict, List, Sequence, Tuple

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .models import ExecutionRecord

DEFAULT_WIDTH = 60


def _columns(records: Sequence[ExecutionRecord], width: int) -> Tuple[float, Dict[int, List[Tuple[int, int, int]]]]:
    """
    Map each slice onto character columns, grouped by unit.

    Returns the makespan and, per unit id, ``(first_col, last_col, job_id)``
    triples sorted by start. Every slice gets at least one column.
    """
    makespan = max(r.end_time for r in records)
    scale = width / makespan if makespan > 0 else 1.0

    rows: Dict[int, List[Tuple[int, int, int]]] = {}
    for rec in sorted(records, key=lambda r: (r.unit_id, r.start_time, r.end_time)):
        first = int(round(rec.start_time * scale))
        last = max(first + 1, int(round(rec.end_time * scale)))
        row = rows.setdefault(rec.unit_id, [])
        if row and first < row[-1][1]:
            first = row[-1][1]
            last = max(last, first + 1)
        row.append((first, last, rec.job_id))
    return makespan, rows


def render_gantt(records: Sequence[ExecutionRecord], width: int = DEFAULT_WIDTH) -> str:
    """
    Plain-text Gantt chart, one line per unit.
    """
    if not records:
        return "(no execution)"

    makespan, rows = _columns(records, width)

    lines = ["Gantt Chart:"]
    for unit_id in sorted(rows):
        line = ""
        for first, last, job_id in rows[unit_id]:
            line += "." * (first - len(line))
            label = str(job_id)[: last - first]
            line += label.ljust(last - first, "=")
        lines.append(f"U{unit_id:<3}|{line}|")
    lines.append(f"     0{'':{max(0, width - 1)}}{makespan:.2f}")
    return "\n".join(lines)


def build_rich_gantt(records: Sequence[ExecutionRecord], width: int = DEFAULT_WIDTH) -> tuple[Panel, str]:
    """
    Build a Rich Panel with one colored lane per unit and a string with time marks.
    """
    if not records:
        panel = Panel("No execution", title="Gantt Chart")
        return panel, ""

    colors = ["red", "green", "yellow", "blue", "magenta", "cyan"]
    job_to_color: Dict[int, str] = {}

    def job_color(job_id: int) -> str:
        if job_id not in job_to_color:
            idx = len(job_to_color) % len(colors)
            job_to_color[job_id] = colors[idx]
        return job_to_color[job_id]

    makespan, rows = _columns(records, width)

    table = Table.grid(padding=(0, 1))
    for unit_id in sorted(rows):
        lane = Text()
        pos = 0
        for first, last, job_id in rows[unit_id]:
            if first > pos:
                lane.append(" " * (first - pos))
            label = str(job_id)[: last - first].center(last - first)
            lane.append(label, style=f"bold on {job_color(job_id)}")
            pos = last
        table.add_row(Text(f"U{unit_id}", style="bold"), lane)

    time_marks = f"0 .. {makespan:.2f}"
    panel = Panel.fit(table, title="Gantt Chart")
    return panel, time_marks
