"""Thin wrapper around subprocess.run for testability."""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Mapping

logger = logging.getLogger(__name__)


class RunnerError(Exception):
    """Raised when a subprocess command fails."""

    def __init__(self, cmd: list[str], returncode: int, output: str = "") -> None:
        self.cmd = cmd
        self.returncode = returncode
        self.output = output
        detail = f": {output.strip()}" if output.strip() else ""
        super().__init__(
            f"Command {cmd} failed with exit code {returncode}{detail}"
        )


class Runner:
    """Single point of subprocess execution.

    Captured output is combined: stderr is folded into stdout so log lines and
    payload lines keep the order terragrunt wrote them in.
    """

    def __init__(
        self, *, verbose: bool = False, log: logging.Logger | None = None
    ) -> None:
        self.verbose = verbose
        self.log = log or logger

    def run(
        self,
        cmd: list[str],
        *,
        check: bool = True,
        capture: bool = False,
        cwd: str | None = None,
        env: Mapping[str, str] | None = None,
    ) -> subprocess.CompletedProcess[str]:
        if self.verbose:
            self.log.info("$ %s", " ".join(cmd))

        full_env = None
        if env:
            full_env = {**os.environ, **env}

        try:
            result = subprocess.run(
                cmd,
                check=False,
                stdout=subprocess.PIPE if capture else None,
                stderr=subprocess.STDOUT if capture else None,
                stdin=subprocess.DEVNULL,
                text=True,
                errors="replace",
                cwd=cwd,
                env=full_env,
            )
        except FileNotFoundError as exc:
            # Missing binary or missing working directory.
            raise RunnerError(cmd, 127, str(exc)) from exc
        except OSError as exc:
            raise RunnerError(cmd, -1, str(exc)) from exc

        output = result.stdout if capture else ""
        if output:
            self.log.debug("%s", output.rstrip("\n"))

        if check and result.returncode != 0:
            raise RunnerError(cmd, result.returncode, output or "")

        return result
