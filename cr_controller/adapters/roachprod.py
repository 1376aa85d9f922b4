"""Adapter over the roachprod cluster-management CLI."""

from __future__ import annotations

import logging
import shlex
import subprocess
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence

from cr_common.errors import RemoteCommandError

logger = logging.getLogger(__name__)

ROACHPROD = "roachprod"


@dataclass
class CommandResult:
    """Outcome of one external command."""

    argv: List[str]
    returncode: int
    stdout: str = ""


class CommandRunner(Protocol):
    """Executes an argv and reports its exit status.

    Implementations raise ``subprocess.TimeoutExpired`` when ``timeout``
    elapses before the command exits.
    """

    def __call__(
        self, argv: Sequence[str], *, timeout: Optional[float] = None
    ) -> CommandResult: ...


class SubprocessRunner:
    """Run commands locally, capturing stdout and passing stderr through."""

    def __call__(
        self, argv: Sequence[str], *, timeout: Optional[float] = None
    ) -> CommandResult:
        logger.debug("exec: %s", shlex.join(argv))
        proc = subprocess.run(
            list(argv),
            stdout=subprocess.PIPE,
            text=True,
            timeout=timeout,
            check=False,
        )
        for line in (proc.stdout or "").splitlines():
            if line.strip():
                logger.info("%s", line)
        return CommandResult(argv=list(argv), returncode=proc.returncode, stdout=proc.stdout or "")


def node_target(cluster: str, nodes: str | int | None = None) -> str:
    """Address a whole cluster, one node (``3``) or a range (``1-3``)."""
    if nodes is None or nodes == "":
        return cluster
    return f"{cluster}:{nodes}"


class ClusterManager:
    """Typed wrappers for the roachprod operations the driver needs.

    Every command is fail-fast: a non-zero exit raises RemoteCommandError and
    nothing is retried.
    """

    def __init__(self, runner: Optional[CommandRunner] = None, binary: str = ROACHPROD):
        self.runner: CommandRunner = runner or SubprocessRunner()
        self.binary = binary

    def _exec(self, *args: str, timeout: Optional[float] = None) -> str:
        argv = [self.binary, *args]
        result = self.runner(argv, timeout=timeout)
        if result.returncode != 0:
            raise RemoteCommandError(
                f"{self.binary} {args[0]} failed with exit code {result.returncode}",
                context={"argv": argv, "returncode": result.returncode},
            )
        return result.stdout

    def create(
        self,
        cluster: str,
        nodes: int,
        lifetime: str,
        cloud: str,
        machine_type: str,
        extra_flags: Sequence[str] = (),
    ) -> None:
        self._exec(
            "create",
            cluster,
            "-n",
            str(nodes),
            "--lifetime",
            lifetime,
            "--clouds",
            cloud,
            f"--{cloud}-machine-type",
            machine_type,
            *extra_flags,
        )

    def run(self, target: str, *command: str, timeout: Optional[float] = None) -> str:
        return self._exec("run", target, "--", *command, timeout=timeout)

    def put(self, target: str, local_path: str, remote_path: str) -> None:
        self._exec("put", target, local_path, remote_path)

    def get(self, target: str, remote_path: str, local_path: str) -> None:
        self._exec("get", target, remote_path, local_path)

    def stage(self, target: str, artifact: str) -> None:
        self._exec("stage", target, artifact)

    def start(self, target: str, args: str = "") -> None:
        if args:
            self._exec("start", target, f"--args={args}")
        else:
            self._exec("start", target)

    def ip(self, target: str) -> str:
        return self._exec("ip", target).strip()

    def pgurl(self, target: str) -> List[str]:
        return self._exec("pgurl", target).split()

    def destroy(self, cluster: str) -> None:
        self._exec("destroy", cluster)
