"""Shared fixtures: Go packages written to a temporary module."""

import textwrap
from pathlib import Path

import pytest

GO_MOD = "module example.com/fixture\n\ngo 1.18\n"


@pytest.fixture
def go_package(tmp_path):
    """Return a function writing Go files into a module rooted at tmp_path.

    Keys are paths relative to the module root; values are dedented source.
    The function returns the module root.
    """
    (tmp_path / "go.mod").write_text(GO_MOD)

    def write(files: dict[str, str]) -> Path:
        for name, text in files.items():
            path = tmp_path / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(textwrap.dedent(text).lstrip())
        return tmp_path

    return write
