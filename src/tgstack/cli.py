"""CLI entrypoint for tgstack."""

import logging
from pathlib import Path
from typing import Annotated, List, Optional

import typer

from tgstack.options import Options, load_options
from tgstack.stack import (
    STACK_ERRORS,
    stack_generate,
    stack_init,
    stack_output,
    stack_output_json,
    stack_run,
)

app = typer.Typer(help="Run terragrunt stack commands the way integration tests do.")

DirOption = Annotated[
    Optional[Path], typer.Option("--dir", "-d", help="Directory holding terragrunt.stack.hcl.")
]
BinaryOption = Annotated[
    Optional[str], typer.Option("--binary", help="terragrunt binary to run.")
]
ConfigOption = Annotated[
    Optional[Path], typer.Option("--config", "-c", help="YAML file with tgstack options.")
]
NoColorOption = Annotated[
    bool, typer.Option("--no-color", help="Pass --no-color to terragrunt.")
]
MaxRetriesOption = Annotated[
    Optional[int], typer.Option("--max-retries", help="Retries for known transient errors.")
]
VerboseOption = Annotated[
    bool, typer.Option("--verbose", "-v", help="Log every command and its output.")
]


def _options(
    terragrunt_dir: Optional[Path],
    binary: Optional[str],
    config: Optional[Path],
    no_color: bool,
    max_retries: Optional[int],
) -> Options:
    overrides = {
        "terragrunt_dir": str(terragrunt_dir) if terragrunt_dir else None,
        "terragrunt_binary": binary,
        "max_retries": max_retries,
        "no_color": no_color or None,
    }
    if config is not None:
        return load_options(config, **overrides)
    options = Options(terragrunt_dir=str(terragrunt_dir or Path(".")))
    for key, value in overrides.items():
        if value is not None and key != "terragrunt_dir":
            setattr(options, key, value)
    return options


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )


def _call(func, settings: tuple, *args) -> None:
    try:
        result = func(_options(*settings), *args)
    except STACK_ERRORS as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)
    typer.echo(result)


@app.command(
    context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False}
)
def run(
    args: Annotated[
        Optional[List[str]], typer.Argument(help="Command to run in every unit, e.g. plan.")
    ] = None,
    terragrunt_dir: DirOption = None,
    binary: BinaryOption = None,
    config: ConfigOption = None,
    no_color: NoColorOption = False,
    max_retries: MaxRetriesOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Run a terraform command across the stack (terragrunt stack run -- ARGS).

    tgstack options go before the command; everything from the first
    argument on is passed to terraform untouched.
    """
    _setup_logging(verbose)
    settings = (terragrunt_dir, binary, config, no_color, max_retries)
    _call(stack_run, settings, *(args or []))


@app.command()
def init(
    terragrunt_dir: DirOption = None,
    binary: BinaryOption = None,
    config: ConfigOption = None,
    no_color: NoColorOption = False,
    max_retries: MaxRetriesOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Initialize every unit of the stack."""
    _setup_logging(verbose)
    settings = (terragrunt_dir, binary, config, no_color, max_retries)
    _call(stack_init, settings)


@app.command()
def generate(
    terragrunt_dir: DirOption = None,
    binary: BinaryOption = None,
    config: ConfigOption = None,
    no_color: NoColorOption = False,
    max_retries: MaxRetriesOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Generate the .terragrunt-stack directory."""
    _setup_logging(verbose)
    settings = (terragrunt_dir, binary, config, no_color, max_retries)
    _call(stack_generate, settings)


@app.command()
def output(
    key: Annotated[str, typer.Argument(help="Output name; empty for all outputs.")] = "",
    as_json: Annotated[bool, typer.Option("--json", help="Print indented JSON.")] = False,
    terragrunt_dir: DirOption = None,
    binary: BinaryOption = None,
    config: ConfigOption = None,
    no_color: NoColorOption = False,
    max_retries: MaxRetriesOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Print a stack output value with terragrunt's log lines removed."""
    _setup_logging(verbose)
    settings = (terragrunt_dir, binary, config, no_color, max_retries)
    _call(stack_output_json if as_json else stack_output, settings, key)


if __name__ == "__main__":
    app()
