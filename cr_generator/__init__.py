"""Driver script generation for cloud report targets."""

from cr_generator.api import ReportConfig, ScriptRenderer, generate_scripts, load_report_config

__all__ = ["ReportConfig", "ScriptRenderer", "generate_scripts", "load_report_config"]
