"""Self-contained copy of the TPC-C runner for upload to cluster nodes.

``scripts/gen/tpcc.sh`` execs ``python3 -m cr_runner`` with ``~/cr-runner``
on ``PYTHONPATH``; the upload phase puts this bundle there and installs its
requirements with pip.
"""

from __future__ import annotations

import importlib
import shutil
from pathlib import Path
from typing import List, Tuple

REMOTE_RUNNER_DIR = "cr-runner"
REQUIREMENTS_FILE = "requirements.txt"
RUNNER_PACKAGES: Tuple[str, ...] = ("cr_common", "cr_runner")
RUNNER_REQUIREMENTS: Tuple[str, ...] = (
    "psutil>=5.9",
    "pydantic>=2.5",
    "rich>=13.0",
    "structlog>=24.1",
    "typer>=0.12",
)


def _package_dir(name: str) -> Path:
    module = importlib.import_module(name)
    return Path(module.__file__).resolve().parent


def build_runner_bundle(dest: Path) -> Path:
    """Copy the runner packages and a requirements file into ``dest``."""
    dest = Path(dest)
    dest.mkdir(parents=True, exist_ok=True)
    for name in RUNNER_PACKAGES:
        shutil.copytree(
            _package_dir(name),
            dest / name,
            ignore=shutil.ignore_patterns("__pycache__", "*.pyc"),
            dirs_exist_ok=True,
        )
    (dest / REQUIREMENTS_FILE).write_text(
        "\n".join(RUNNER_REQUIREMENTS) + "\n", encoding="utf-8"
    )
    return dest


def install_command() -> List[str]:
    """Remote argv installing the bundle's requirements for the login user."""
    return [
        "python3",
        "-m",
        "pip",
        "install",
        "--user",
        "--quiet",
        "-r",
        f"./{REMOTE_RUNNER_DIR}/{REQUIREMENTS_FILE}",
    ]
