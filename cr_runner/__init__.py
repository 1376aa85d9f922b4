"""Benchmark runners executed on cluster nodes."""

from cr_runner.api import EscalationController, RunLease, wait_for_completion

__all__ = ["EscalationController", "RunLease", "wait_for_completion"]
