"""Shared helpers for cloud-report."""

from cr_common.api import CRError, RenderContext, WaitOutcome, configure_logging

__all__ = ["configure_logging", "CRError", "RenderContext", "WaitOutcome"]
