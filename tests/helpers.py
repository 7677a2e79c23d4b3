"""Mock runner and sample output shared by the tgstack tests."""

from __future__ import annotations

import subprocess
from unittest.mock import MagicMock

from tgstack.runner import Runner

LOG_LINE = (
    "time=2023-07-11T10:30:45Z level=info prefix=terragrunt "
    'binary=terragrunt msg="Initializing..."'
)


def completed(stdout: str = "", returncode: int = 0) -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout)


def make_runner(*results: str | Exception, experiment: bool = False) -> MagicMock:
    """Return a mock Runner.

    The ``-experiment stack`` check exits 0 only when *experiment* is True.
    Every other call consumes the next item of *results*: a string is the
    command output, an exception is raised. With no results left, commands
    print nothing.
    """
    pending = list(results)
    mock = MagicMock(spec=Runner)

    def run(cmd, **kwargs):
        if cmd[1:] == ["-experiment", "stack"]:
            return completed(returncode=0 if experiment else 1)
        if not pending:
            return completed()
        item = pending.pop(0)
        if isinstance(item, Exception):
            raise item
        return completed(item)

    mock.run.side_effect = run
    return mock


def command_calls(runner: MagicMock) -> list[list[str]]:
    """Argument vectors of every call on *runner* other than the experiment check."""
    return [
        c.args[0]
        for c in runner.run.call_args_list
        if c.args[0][1:] != ["-experiment", "stack"]
    ]
