"""
Cloud job scheduling package.

Assigns jobs of a given length onto execution units of heterogeneous speed
using greedy, preemptive and local-search policies, and reports per-job
timing and aggregate performance.
"""

__all__ = [
    "algorithms",
    "cli",
    "errors",
    "estimator",
    "hill_climbing",
    "metrics",
    "models",
    "round_robin",
    "substrate",
    "workload_io",
]
