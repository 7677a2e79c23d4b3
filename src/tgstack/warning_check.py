"""Promote configured terragrunt warnings to hard failures."""

from __future__ import annotations

from tgstack.options import compile_warning_patterns


class WarningAsError(Exception):
    """Raised when command output contains a warning configured as an error."""

    def __init__(self, message: str, warnings: list[str]) -> None:
        self.message = message
        self.warnings = warnings
        super().__init__(
            f"warning(s) were found: {message}:\n" + "\n".join(warnings)
        )


def check_warnings(output: str, warnings_as_errors: dict[str, str]) -> None:
    """Raise WarningAsError for the first pattern with a ``Warning:`` line in *output*.

    Each pattern matches ``\\nWarning: <pattern>...`` up to the end of that
    line. Patterns are tried in insertion order and only the first one that
    matches is reported. All patterns are compiled up front, so a malformed
    one raises OptionsError even when nothing would have matched.
    """
    compiled = compile_warning_patterns(warnings_as_errors)
    for regex, message in zip(compiled, warnings_as_errors.values()):
        matches = [m.group(0).strip("\n") for m in regex.finditer(output)]
        if matches:
            raise WarningAsError(message, matches)
