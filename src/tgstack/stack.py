"""Run terragrunt stack commands and read stack outputs.

Every operation raises on failure. The ``*_or_fail`` twins are meant to be
called inside a test: they turn any error into a pytest failure.
"""

from __future__ import annotations

import functools
from collections.abc import Callable
from typing import TypeVar

import pytest

from tgstack.command import (
    STACK_COMMAND_RUN,
    Invocation,
    build_invocation,
    build_output_args,
    build_stack_args,
)
from tgstack.options import Options, OptionsError, validate_options
from tgstack.output import OutputParseError, clean_json_output, clean_output
from tgstack.retry import MaxRetriesExceeded, do_with_retryable_errors
from tgstack.runner import Runner, RunnerError
from tgstack.warning_check import WarningAsError, check_warnings

STACK_ERRORS = (
    OptionsError,
    RunnerError,
    MaxRetriesExceeded,
    WarningAsError,
    OutputParseError,
)

T = TypeVar("T")


def _default_runner(options: Options) -> Runner:
    return Runner(verbose=True, log=options.logger)


def execute(options: Options, invocation: Invocation, runner: Runner) -> str:
    """Run *invocation* with retries and return its combined output.

    Output containing a warning from ``options.warnings_as_errors`` raises
    WarningAsError. That error is not a RunnerError, so it is never retried.
    """

    def attempt() -> str:
        result = runner.run(
            invocation.argv,
            capture=True,
            cwd=invocation.working_dir,
            env=invocation.env,
        )
        output = result.stdout or ""
        check_warnings(output, options.warnings_as_errors)
        return output

    return do_with_retryable_errors(
        invocation.describe(),
        options.retryable_errors,
        options.max_retries,
        options.time_between_retries,
        attempt,
        log=options.logger,
    )


def run_stack_command(
    options: Options,
    subcommand: str,
    *additional_args: str,
    runner: Runner | None = None,
) -> str:
    """Run ``terragrunt stack [subcommand] ...`` and return the raw output."""
    validate_options(options)
    runner = runner or _default_runner(options)
    args = build_stack_args(options, subcommand, list(additional_args), runner)
    return execute(options, build_invocation(options, args), runner)


def stack_run(options: Options, *args: str, runner: Runner | None = None) -> str:
    """Run ``terragrunt stack run -- <args>`` across every unit of the stack."""
    return run_stack_command(
        options, STACK_COMMAND_RUN, *args, *options.extra_args, runner=runner
    )


def stack_init(options: Options, runner: Runner | None = None) -> str:
    """Run ``terraform init`` in every unit of the stack."""
    return stack_run(options, "init", runner=runner)


def stack_generate(options: Options, runner: Runner | None = None) -> str:
    """Generate the ``.terragrunt-stack`` directory from the stack file."""
    return run_stack_command(options, "generate", *options.extra_args, runner=runner)


def _output_args(options: Options, flags: list[str], key: str) -> list[str]:
    args = [*flags, *options.extra_args]
    if key:
        args.append(key)
    return args


def _run_output_command(
    options: Options, output_args: list[str], runner: Runner | None
) -> str:
    validate_options(options)
    runner = runner or _default_runner(options)
    args = build_output_args(options, output_args)
    return execute(options, build_invocation(options, args), runner)


def stack_output(options: Options, key: str = "", runner: Runner | None = None) -> str:
    """Return the stack output *key* as a string.

    Quoted scalars come back without their quotes; maps and lists come back
    as the JSON text terragrunt printed.
    """
    raw = _run_output_command(options, _output_args(options, ["-no-color"], key), runner)
    return clean_output(raw)


def stack_output_json(
    options: Options, key: str = "", runner: Runner | None = None
) -> str:
    """Return the stack output *key* as indented JSON.

    With an empty *key* every output of the stack is returned.
    """
    raw = _run_output_command(
        options, _output_args(options, ["-no-color", "-json"], key), runner
    )
    return clean_json_output(raw)


def _fail_on_error(func: Callable[..., T]) -> Callable[..., T]:
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except STACK_ERRORS as exc:
            pytest.fail(str(exc), pytrace=False)

    wrapper.__doc__ = f"Like :func:`{func.__name__}`, but fails the current test on error."
    return wrapper


run_stack_command_or_fail = _fail_on_error(run_stack_command)
stack_run_or_fail = _fail_on_error(stack_run)
stack_init_or_fail = _fail_on_error(stack_init)
stack_generate_or_fail = _fail_on_error(stack_generate)
stack_output_or_fail = _fail_on_error(stack_output)
stack_output_json_or_fail = _fail_on_error(stack_output_json)
