"""Execution-time orchestration for generated cloud report drivers."""

from cr_controller.api import DriverOptions, Orchestrator, run_driver

__all__ = ["DriverOptions", "Orchestrator", "run_driver"]
