"""Pytest configuration to ensure the `src` package layout is importable.

This adds the `src/` directory to `sys.path` so tests can import the
`hexbattle` package (e.g., `from hexbattle.api.app import create_app`) without
requiring an editable install in CI.  The `tests/` directory is added as well
so test modules can share the battle builders in `tests/builders.py`.
"""

import sys
from pathlib import Path

TESTS_PATH = Path(__file__).resolve().parent
SRC_PATH = TESTS_PATH.parent / "src"
for path in (SRC_PATH, TESTS_PATH):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))
