"""Options for terragrunt stack commands and their YAML config file."""

from __future__ import annotations

import dataclasses
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

DEFAULT_BINARY = "terragrunt"

# Transient terraform/terragrunt failures that are safe to retry.
DEFAULT_RETRYABLE_ERRORS: dict[str, str] = {
    ".*read: connection reset by peer.*": "Failed to reach helm charts repository.",
    ".*transport is closing.*": "Failed to reach Kubernetes API.",
    ".*unable to verify signature.*": "Failed to retrieve plugin due to transient network error.",
    ".*unable to verify checksum.*": "Failed to retrieve plugin due to transient network error.",
    ".*no provider exists with the given name.*": "Failed to retrieve plugin due to transient network error.",
    ".*registry service is unreachable.*": "Failed to retrieve plugin due to transient network error.",
    ".*Error installing provider.*": "Failed to retrieve plugin due to transient network error.",
    ".*Failed to query available provider packages.*": "Failed to retrieve plugin due to transient network error.",
    ".*timeout while waiting for plugin to start.*": "Failed to retrieve plugin due to transient network error.",
    ".*timed out waiting for server handshake.*": "Failed to retrieve plugin due to transient network error.",
    ".*net/http: TLS handshake timeout.*": "Failed to reach remote endpoint due to TLS handshake timeout.",
    "(?s).*Could not download module.*The requested URL returned error: 429.*": "Failed to download module due to rate limiting.",
    ".*Client.Timeout exceeded while awaiting headers.*": "Client timeout exceeded while awaiting headers.",
}
DEFAULT_MAX_RETRIES = 3
DEFAULT_TIME_BETWEEN_RETRIES = 5.0


class OptionsError(Exception):
    """Raised for missing or invalid configuration."""


def _default_logger() -> logging.Logger:
    return logging.getLogger("tgstack")


@dataclass
class Options:
    """Configuration for one terragrunt stack invocation.

    Pattern tables are evaluated in insertion order; the first matching
    entry wins.
    """

    terragrunt_dir: str = ""
    terragrunt_binary: str = DEFAULT_BINARY
    env_vars: dict[str, str] = field(default_factory=dict)
    extra_args: list[str] = field(default_factory=list)
    retryable_errors: dict[str, str] = field(default_factory=dict)
    max_retries: int = 0
    time_between_retries: float = 0.0
    warnings_as_errors: dict[str, str] = field(default_factory=dict)
    no_color: bool = False
    logger: logging.Logger = field(default_factory=_default_logger, repr=False)


_CONFIG_FIELDS = {f.name for f in dataclasses.fields(Options)} - {"logger"}


def compile_patterns(patterns: dict[str, str], kind: str) -> list[re.Pattern[str]]:
    """Compile every key of *patterns*, raising OptionsError on the first bad one."""
    compiled = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as exc:
            raise OptionsError(
                f"Invalid {kind} pattern {pattern!r}: {exc}"
            ) from exc
    return compiled


def warning_pattern(pattern: str) -> str:
    """Wrap a warning pattern so it matches a whole ``Warning:`` line."""
    return f"\nWarning: {pattern}[^\n]*\n"


def compile_warning_patterns(warnings_as_errors: dict[str, str]) -> list[re.Pattern[str]]:
    """Compile warning patterns, checking each one on its own before wrapping.

    Wrapping can turn a broken pattern into a valid one (``[`` becomes a
    character class), so the bare pattern is compiled first.
    """
    compile_patterns(warnings_as_errors, "warning")
    return compile_patterns(
        {warning_pattern(p): m for p, m in warnings_as_errors.items()},
        "warning",
    )


def validate_options(options: Options) -> None:
    """Check required fields and regex tables before anything is executed."""
    if not options.terragrunt_binary:
        raise OptionsError("terragrunt_binary is required")
    if not options.terragrunt_dir:
        raise OptionsError("terragrunt_dir is required")
    if options.max_retries < 0:
        raise OptionsError(
            f"max_retries must not be negative, got {options.max_retries}"
        )
    if options.time_between_retries < 0:
        raise OptionsError(
            "time_between_retries must not be negative, "
            f"got {options.time_between_retries}"
        )
    compile_patterns(options.retryable_errors, "retryable error")
    compile_warning_patterns(options.warnings_as_errors)


def with_default_retryable_errors(options: Options) -> Options:
    """Return a copy of *options* that retries the usual transient failures.

    Entries already set on *options* take precedence over the defaults, and a
    retry budget set by the caller is kept.
    """
    retryable = {**DEFAULT_RETRYABLE_ERRORS, **options.retryable_errors}
    return dataclasses.replace(
        options,
        retryable_errors=retryable,
        max_retries=options.max_retries or DEFAULT_MAX_RETRIES,
        time_between_retries=(
            options.time_between_retries or DEFAULT_TIME_BETWEEN_RETRIES
        ),
    )


def load_options(path: Path, **overrides: Any) -> Options:
    """Build Options from a YAML file, then apply non-None *overrides*.

    Relative ``terragrunt_dir`` values are resolved against the file's
    directory.
    """
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise OptionsError(f"Could not read config {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise OptionsError(f"Config {path} must be a mapping, got {type(data).__name__}")

    unknown = sorted(set(data) - _CONFIG_FIELDS)
    if unknown:
        raise OptionsError(f"Unknown keys in {path}: {', '.join(unknown)}")

    terragrunt_dir = data.get("terragrunt_dir")
    if terragrunt_dir and not Path(terragrunt_dir).is_absolute():
        data["terragrunt_dir"] = str(path.parent / terragrunt_dir)

    data.update({k: v for k, v in overrides.items() if v is not None})

    for key in ("env_vars", "retryable_errors", "warnings_as_errors"):
        if key in data and not isinstance(data[key], dict):
            raise OptionsError(f"{key} in {path} must be a mapping")
        if key in data:
            data[key] = {str(k): str(v) for k, v in data[key].items()}
    if "extra_args" in data:
        if not isinstance(data["extra_args"], list):
            raise OptionsError(f"extra_args in {path} must be a list")
        data["extra_args"] = [str(arg) for arg in data["extra_args"]]

    return Options(**data)
