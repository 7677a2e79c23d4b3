"""Extract output values from terragrunt's log-interleaved stack output."""

from __future__ import annotations

import json
import re

# Key-value log lines, e.g.
#   time=2023-07-11T10:30:45Z level=info prefix=terragrunt binary=terragrunt msg="Initializing..."
LOG_LINE = re.compile(r".*time=\S+ level=\S+ prefix=\S+ binary=\S+ msg=.*")


class OutputParseError(Exception):
    """Raised when JSON output cannot be parsed."""


def _strip_log_lines(raw: str) -> str:
    cleaned = LOG_LINE.sub("", raw)
    lines = [
        line.strip()
        for line in cleaned.split("\n")
        if line.strip() and " msg=" not in line
    ]
    return "\n".join(lines)


def clean_output(raw: str) -> str:
    """Return the value terragrunt printed, without log lines.

    JSON documents (starting with ``{`` or ``[``) are returned as they are.
    A scalar wrapped in double quotes loses exactly the outer pair::

        time=... level=info prefix=terragrunt binary=terragrunt msg="Initializing..."
        "my-bucket-name"

    becomes ``my-bucket-name``. Output with nothing left after filtering
    gives an empty string.
    """
    value = _strip_log_lines(raw).strip()
    if value.startswith(("{", "[")):
        return value
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        value = value[1:-1]
    return value


def clean_json_output(raw: str) -> str:
    """Return the JSON document in *raw* re-serialized with 2-space indentation.

    Key order is preserved. Raises OutputParseError if what remains after
    dropping log lines is not valid JSON.
    """
    text = _strip_log_lines(raw)
    try:
        value = json.loads(text)
    except json.JSONDecodeError as exc:
        raise OutputParseError(f"Invalid JSON in stack output: {exc}") from exc
    return json.dumps(value, indent=2, ensure_ascii=False)
