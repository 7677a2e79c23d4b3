"""Shared fixtures for tgstack tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from tgstack.options import Options


@pytest.fixture()
def stack_dir(tmp_path: Path) -> Path:
    """Return a temporary directory acting as a stack root."""
    return tmp_path


@pytest.fixture()
def options(stack_dir: Path) -> Options:
    return Options(terragrunt_dir=str(stack_dir))
