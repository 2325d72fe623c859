"""Test helper that normalizes sys.path and environment defaults."""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


_DEFAULT_ENV_VARS: dict[str, str] = {
    "APP_ENV": "test",
    "APP_LOG_LEVEL": "WARNING",
    "STORAGE_BACKEND": "sqlite",
    "SQLITE_PATH": str(Path(tempfile.gettempdir()) / "afterwave-tests" / "afterwave.db"),
    "COOKIE_SECURE": "false",
    "AWS_REGION": "us-east-1",
}

for key, value in _DEFAULT_ENV_VARS.items():
    os.environ.setdefault(key, value)
