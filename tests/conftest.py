from __future__ import annotations

import shutil
import sys
from collections.abc import Iterator
from pathlib import Path
from uuid import uuid4

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

SAMPLE_TEXT = """# Reference

Notes before the first heading.

## Schema Commands

- [ ] `\\dn` - List schemas
- [x] `\\dt` - List tables
  ```sql
  \\dt inventory.*
  ```
  > Pattern filters by schema.
"""


@pytest.fixture(name="tmp_path")
def workspace_tmp_path() -> Iterator[Path]:
    """Per-test scratch directory kept under the project root at ``.tmp_pytest/``.

    Overrides pytest's builtin ``tmp_path`` so reference files written by the
    store and CLI land next to the checkout rather than in system temp.
    """
    base = ROOT / ".tmp_pytest"
    base.mkdir(parents=True, exist_ok=True)
    path = base / str(uuid4())
    path.mkdir(parents=True, exist_ok=False)
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)
        try:
            next(base.iterdir())
        except StopIteration:
            base.rmdir()
        except FileNotFoundError:
            pass


@pytest.fixture
def sample_file(tmp_path: Path) -> Path:
    path = tmp_path / "COMMANDS.md"
    path.write_text(SAMPLE_TEXT, encoding="utf-8")
    return path


@pytest.fixture
def sample_text() -> str:
    return SAMPLE_TEXT
