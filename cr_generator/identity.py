"""Deterministic transient cluster identities."""

from __future__ import annotations

import re
import zlib
from datetime import datetime
from typing import Optional

CLUSTER_PREFIX = "cldrprt"
_INVALID_CHARS = re.compile(r"[^A-Za-z0-9-]")


def hash_strings(*values: str) -> int:
    """IEEE CRC-32 over the concatenation of ``values``."""
    checksum = 0
    for value in values:
        checksum = zlib.crc32(value.encode("utf-8"), checksum)
    return checksum & 0xFFFFFFFF


def sanitize_identity(name: str) -> str:
    return _INVALID_CHARS.sub("-", name)


def format_machine_type(machine_type: str) -> str:
    """File-name friendly form of a machine shape."""
    return machine_type.replace(".", "-")


def cluster_identity(
    cloud: str,
    group: str,
    report_version: str,
    machine_type: str,
    year: Optional[int] = None,
) -> str:
    """Cluster name for a target.

    Identical inputs in the same year always yield the same name, so re-runs
    address the cluster created by an earlier run.
    """
    if year is None:
        year = datetime.now().year
    checksum = hash_strings(cloud, group, report_version)
    name = f"{CLUSTER_PREFIX}{(1 + year) % 1000}-{machine_type}-{checksum}"
    return sanitize_identity(name)
