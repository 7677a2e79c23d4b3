"""Bounded retry loop for commands that fail with known transient errors."""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable
from typing import TypeVar

from tgstack.options import OptionsError
from tgstack.runner import RunnerError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MaxRetriesExceeded(Exception):
    """Raised when every allowed attempt failed with a retryable error."""

    def __init__(self, description: str, retries: int, last_error: RunnerError) -> None:
        self.description = description
        self.retries = retries
        self.last_error = last_error
        super().__init__(
            f"'{description}' unsuccessful after {retries} retries: {last_error}"
        )


def _compile(retryable_errors: dict[str, str]) -> list[tuple[re.Pattern[str], str]]:
    compiled = []
    for pattern, reason in retryable_errors.items():
        try:
            compiled.append((re.compile(pattern, re.DOTALL), reason))
        except re.error as exc:
            raise OptionsError(
                f"Invalid retryable error pattern {pattern!r}: {exc}"
            ) from exc
    return compiled


def do_with_retryable_errors(
    description: str,
    retryable_errors: dict[str, str],
    max_retries: int,
    time_between_retries: float,
    action: Callable[[], T],
    log: logging.Logger | None = None,
) -> T:
    """Call *action*, retrying while it raises a RunnerError matching a pattern.

    A RunnerError that matches no pattern is re-raised at once. Any other
    exception is never retried. *action* runs at most ``max_retries + 1``
    times.
    """
    if max_retries < 0:
        raise OptionsError(f"max_retries must not be negative, got {max_retries}")
    log = log or logger
    patterns = _compile(retryable_errors)

    last_error: RunnerError | None = None
    for attempt in range(max_retries + 1):
        if attempt:
            log.info(
                "Sleeping for %ss before retry %d of %d of '%s'",
                time_between_retries, attempt, max_retries, description,
            )
            time.sleep(time_between_retries)

        log.info("Running '%s'", description)
        try:
            return action()
        except RunnerError as exc:
            text = str(exc)
            reason = next(
                (reason for regex, reason in patterns if regex.search(text)), None
            )
            if reason is None:
                raise
            log.warning(
                "'%s' failed with an expected error that warrants a retry: %s",
                description, reason,
            )
            last_error = exc

    raise MaxRetriesExceeded(description, max_retries, last_error) from last_error
