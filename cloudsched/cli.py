from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .algorithms import ALGORITHMS, PREEMPTIVE, run_algorithm
from .estimator import completion_time_matrix
from .gantt import build_rich_gantt
from .metrics import summarize
from .models import ExecutionUnit, ScheduleResult
from .workload_io import (
    Workload,
    load_units,
    load_workload,
    parse_number,
    parse_number_list,
    random_units,
    units_from_speeds,
)

logger = logging.getLogger(__name__)

DEFAULT_COMPARE = ["fcfs", "sjf", "edf", "minmin", "minmax", "rr", "hill"]
DEFAULT_SWEEP = "10,20,50"


def _fmt(value: float) -> str:
    return f"{value:.3f}"


def _add_workload_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--workload",
        "-w",
        required=True,
        help="Path to JSON or CSV workload file.",
    )
    units = parser.add_mutually_exclusive_group()
    units.add_argument(
        "--units",
        "-u",
        default=None,
        help="Path to JSON or CSV file with execution units (id, speed_mips).",
    )
    units.add_argument(
        "--speeds",
        "-s",
        default=None,
        help="Comma-separated unit speeds in MIPS, e.g. 500,1000,1500.",
    )
    units.add_argument(
        "--random-units",
        type=int,
        default=None,
        metavar="N",
        help="Generate N units with random speeds between 100 and 1600 MIPS.",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for random units and the random hill-climbing start.",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cloudsched",
        description="Job-to-unit scheduler (FCFS, SJF, EDF, Min-Min, Min-Max, RR, Hill Climbing).",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="count",
        default=0,
        help="Log scheduling decisions (-v for summaries, -vv for every commit).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run one scheduling policy on a workload.")
    run_parser.add_argument(
        "--algorithm",
        "-a",
        required=True,
        help=f"Policy to use ({', '.join(ALGORITHMS)}).",
    )
    _add_workload_args(run_parser)
    run_parser.add_argument(
        "--quantum",
        "-q",
        type=parse_number,
        default=None,
        help="Quantum in instructions for round-robin (ignored by the other policies).",
    )
    run_parser.add_argument(
        "--trace",
        action="store_true",
        help="Print the execution-order table (always shown for round-robin).",
    )

    compare_parser = subparsers.add_parser(
        "compare",
        help="Run multiple policies on the same workload and compare average metrics.",
    )
    _add_workload_args(compare_parser)
    compare_parser.add_argument(
        "--algorithms",
        "-a",
        nargs="+",
        default=DEFAULT_COMPARE,
        help=f"Policies to compare (default: {' '.join(DEFAULT_COMPARE)}).",
    )
    compare_parser.add_argument(
        "--quantum",
        "-q",
        type=parse_number,
        default=10,
        help="Quantum used for round-robin when included (default: 10).",
    )

    sweep_parser = subparsers.add_parser(
        "sweep",
        help="Run round-robin with several quanta and show the effect on the schedule.",
    )
    _add_workload_args(sweep_parser)
    sweep_parser.add_argument(
        "--quanta",
        default=DEFAULT_SWEEP,
        help=f"Comma-separated quanta in instructions (default: {DEFAULT_SWEEP}).",
    )

    matrix_parser = subparsers.add_parser(
        "matrix",
        help="Show the execution time of every job on every unit.",
    )
    _add_workload_args(matrix_parser)

    return parser


def configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(show_path=False)],
    )


def _resolve_units(args: argparse.Namespace, workload: Workload) -> List[ExecutionUnit]:
    if args.units:
        return load_units(Path(args.units))
    if args.speeds:
        return units_from_speeds(parse_number_list(args.speeds))
    if args.random_units is not None:
        return random_units(args.random_units, seed=args.seed)
    return workload.units


def _load(args: argparse.Namespace) -> Workload:
    workload = load_workload(Path(args.workload))
    workload.units = _resolve_units(args, workload)
    logger.info("loaded %d jobs and %d units from %s", len(workload.jobs), len(workload.units), args.workload)
    return workload


def _print_units(units: Sequence[ExecutionUnit], console: Console) -> None:
    table = Table(title="Execution units", box=box.SIMPLE_HEAVY)
    table.add_column("Unit", justify="center")
    table.add_column("MIPS", justify="right")
    for unit in units:
        table.add_row(str(unit.id), f"{unit.speed_mips:g}")
    console.print(table)


def _print_trace(result: ScheduleResult, console: Console) -> None:
    table = Table(title="Execution order", box=box.SIMPLE_HEAVY)
    for h in ["Step", "Job", "Unit", "Start", "End", "Work", "Remaining", "Status"]:
        table.add_column(h, justify="center" if h in {"Job", "Unit", "Status"} else "right")

    for rec in result.timeline:
        table.add_row(
            str(rec.step),
            str(rec.job_id),
            str(rec.unit_id),
            _fmt(rec.start_time),
            _fmt(rec.end_time),
            f"{float(rec.work_done):g}",
            f"{float(rec.remaining):g}",
            rec.status,
        )
    console.print(table)


def _print_result(result: ScheduleResult, console: Console, trace: bool = False) -> None:
    console.print(f"[bold]Algorithm:[/bold] {result.algorithm}")
    if result.quantum is not None:
        console.print(f"[bold]Quantum:[/bold] {result.quantum:g} instructions")

    console.print()

    panel, time_marks = build_rich_gantt(result.timeline)
    console.print(panel)
    if time_marks:
        console.print(time_marks)

    console.print()

    if trace:
        _print_trace(result, console)
        console.print()

    if result.metrics is None:
        console.print("[yellow]No jobs were scheduled.[/yellow]")
        return

    headers = [
        "Job",
        "Unit",
        "Arrive",
        "Length",
        "Start",
        "Finish",
        "Wait",
        "Turnaround",
        "Deadline",
        "Met",
    ]

    job_table = Table(title="Per-job metrics", box=box.SIMPLE_HEAVY)
    for h in headers:
        justify = "center" if h in {"Job", "Unit", "Met"} else "right"
        job_table.add_column(h, justify=justify)

    for row in result.metrics.jobs:
        met = ""
        if row.missed_deadline is not None:
            met = "[red]MISSED[/red]" if row.missed_deadline else "[green]MET[/green]"
        job_table.add_row(
            str(row.job_id),
            str(row.unit_id),
            _fmt(row.arrival_time),
            f"{row.length:g}",
            _fmt(row.start_time),
            _fmt(row.finish_time),
            _fmt(row.waiting_time),
            _fmt(row.turnaround_time),
            "" if row.deadline is None else _fmt(row.deadline),
            met,
        )

    console.print(job_table)
    console.print()

    m = result.metrics
    sys_table = Table(title="System metrics", box=box.SIMPLE_HEAVY)
    sys_table.add_column("Metric")
    sys_table.add_column("Value", justify="right")

    sys_table.add_row("Avg waiting", _fmt(m.avg_waiting))
    sys_table.add_row("Avg turnaround", _fmt(m.avg_turnaround))
    sys_table.add_row("Makespan", _fmt(m.makespan))
    sys_table.add_row("Throughput (jobs/time)", _fmt(m.throughput))
    if m.missed_deadlines is not None:
        sys_table.add_row("Missed deadlines", str(m.missed_deadlines))
        sys_table.add_row("Deadline miss rate", f"{m.deadline_miss_rate*100:.1f}%")
    if result.algorithm == "Round Robin":
        sys_table.add_row("Context switches", str(result.context_switches))
    for unit_id in sorted(m.unit_utilization):
        sys_table.add_row(f"Unit {unit_id} utilization", f"{m.unit_utilization[unit_id]*100:.1f}%")

    console.print(sys_table)


def _run_compare(workload: Workload, algorithms: Sequence[str], quantum: float, seed: Optional[int], console: Console) -> None:
    summary_table = Table(title="Algorithm comparison", box=box.SIMPLE_HEAVY)
    summary_table.add_column("Algorithm")
    summary_table.add_column("Quantum", justify="right")
    summary_table.add_column("Avg waiting", justify="right")
    summary_table.add_column("Avg turnaround", justify="right")
    summary_table.add_column("Makespan", justify="right")
    summary_table.add_column("Missed", justify="right")
    summary_table.add_column("Miss rate", justify="right")

    for alg in algorithms:
        q = quantum if alg.lower() in PREEMPTIVE else None
        result = run_algorithm(alg, workload.units, workload.jobs, quantum=q, seed=seed)
        summary = summarize(result.metrics)
        summary_table.add_row(
            result.algorithm,
            "" if result.quantum is None else f"{result.quantum:g}",
            _fmt(summary["avg_waiting"]),
            _fmt(summary["avg_turnaround"]),
            _fmt(summary["makespan"]),
            "" if summary["missed_deadlines"] is None else str(summary["missed_deadlines"]),
            "" if summary["deadline_miss_rate"] is None else f"{summary['deadline_miss_rate']*100:.1f}%",
        )

    console.print(summary_table)


def _run_sweep(workload: Workload, quanta: Sequence[float], console: Console) -> None:
    table = Table(title="Round-robin quantum sweep", box=box.SIMPLE_HEAVY)
    table.add_column("Quantum", justify="right")
    table.add_column("Slices", justify="right")
    table.add_column("Context switches", justify="right")
    table.add_column("Avg waiting", justify="right")
    table.add_column("Avg turnaround", justify="right")
    table.add_column("Makespan", justify="right")

    for q in quanta:
        result = run_algorithm("rr", workload.units, workload.jobs, quantum=q)
        summary = summarize(result.metrics)
        table.add_row(
            f"{q:g}",
            str(len(result.timeline)),
            str(result.context_switches),
            _fmt(summary["avg_waiting"]),
            _fmt(summary["avg_turnaround"]),
            _fmt(summary["makespan"]),
        )

    console.print(table)
    console.print("[dim]Smaller quanta mean more context switches; large quanta approach FCFS.[/dim]")


def _print_matrix(workload: Workload, console: Console) -> None:
    matrix = completion_time_matrix(workload.jobs, workload.units)

    table = Table(title="Execution time per job and unit", box=box.SIMPLE_HEAVY)
    table.add_column("Job", justify="center")
    for unit in workload.units:
        table.add_column(f"U{unit.id} ({unit.speed_mips:g})", justify="right")
    table.add_column("Best", justify="right")

    for job in workload.jobs:
        row = matrix[job.id]
        table.add_row(str(job.id), *(_fmt(t) for t in row), _fmt(min(row)))

    console.print(table)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.verbose)
    console = Console()

    try:
        workload = _load(args)

        if args.command == "run":
            result = run_algorithm(
                args.algorithm,
                workload.units,
                workload.jobs,
                quantum=args.quantum,
                seed=args.seed,
            )
            _print_units(workload.units, console)
            _print_result(result, console, trace=args.trace or args.algorithm.lower() in PREEMPTIVE)
            return 0

        if args.command == "compare":
            _run_compare(workload, args.algorithms, args.quantum, args.seed, console)
            return 0

        if args.command == "sweep":
            _run_sweep(workload, parse_number_list(args.quanta), console)
            return 0

        if args.command == "matrix":
            _print_matrix(workload, console)
            return 0
    except ValueError as exc:
        console.print(f"[red]Error: {exc}[/red]")
        return 2

    parser.error(f"Unknown command: {args.command}")
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
