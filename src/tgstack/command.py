"""Argument builders for terragrunt stack commands."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from tgstack.options import DEFAULT_BINARY, Options
from tgstack.runner import Runner, RunnerError

logger = logging.getLogger(__name__)

STACK_COMMAND_RUN = "run"
EXPERIMENT_FLAGS = ["-experiment", "stack"]
_NO_COLOR_FLAGS = ("-no-color", "--no-color")


@dataclass(frozen=True)
class Invocation:
    """A fully built command: binary, arguments, directory and environment."""

    binary: str
    args: tuple[str, ...]
    working_dir: str
    env: Mapping[str, str] = field(default_factory=dict)

    @property
    def argv(self) -> list[str]:
        return [self.binary, *self.args]

    def describe(self) -> str:
        return f"{self.binary} {list(self.args)}"


def supports_stack_experiment(runner: Runner, binary: str) -> bool:
    """Return True if *binary* accepts ``-experiment stack``.

    Older terragrunt releases gate stacks behind the experiment flag; newer
    ones reject it. The check output is discarded.
    """
    try:
        result = runner.run([binary, *EXPERIMENT_FLAGS], check=False, capture=True)
    except RunnerError:
        return False
    supported = result.returncode == 0
    logger.debug("%s -experiment stack supported: %s", binary, supported)
    return supported


def common_args(
    options: Options, args: list[str], trailing: list[str] | None = None
) -> list[str]:
    """Append the flags terragrunt itself needs for unattended runs.

    *trailing* holds arguments that will follow the result; a no-color flag
    there counts as already present.
    """
    final = list(args)
    present = [*final, *(trailing or [])]
    if os.path.basename(options.terragrunt_binary) == DEFAULT_BINARY:
        final.append("--non-interactive")
    if options.no_color and not any(flag in present for flag in _NO_COLOR_FLAGS):
        final.append("--no-color")
    return final


def build_stack_args(
    options: Options,
    subcommand: str,
    additional_args: list[str],
    runner: Runner,
) -> list[str]:
    """Build the argument vector for ``terragrunt stack [subcommand] ...``.

    Arguments for ``run`` go after a ``--`` so terragrunt forwards them to
    each unit. Every other subcommand takes its arguments inline; a ``--``
    there gives empty output, ignored flags or a parse error::

        terragrunt stack output --format json       # works
        terragrunt stack -- output --format json    # breaks
    """
    args = ["stack"]
    if subcommand:
        args.append(subcommand)

    if supports_stack_experiment(runner, options.terragrunt_binary):
        args = [*EXPERIMENT_FLAGS, *args]

    if subcommand == STACK_COMMAND_RUN:
        # Everything after "--" belongs to terraform, not terragrunt.
        return [*common_args(options, args), "--", *additional_args]
    return [*common_args(options, args, additional_args), *additional_args]


def build_output_args(options: Options, output_args: list[str]) -> list[str]:
    """Build ``stack output <output_args>``; output never takes a ``--``."""
    return [*common_args(options, ["stack", "output"], output_args), *output_args]


def build_invocation(options: Options, args: list[str]) -> Invocation:
    return Invocation(
        binary=options.terragrunt_binary,
        args=tuple(args),
        working_dir=options.terragrunt_dir,
        env=MappingProxyType(dict(options.env_vars)),
    )
