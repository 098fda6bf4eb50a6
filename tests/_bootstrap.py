"""Test helper that normalizes sys.path and environment defaults."""

from __future__ import annotations

import os
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


_DEFAULT_ENV_VARS: dict[str, str] = {
    "X_CLIENT_ID": "test-client-id",
    "X_CLIENT_SECRET": "test-client-secret",
    "X_REDIRECT_URI": "https://example.com/api/auth/callback",
    "X_BEARER_TOKEN": "test-app-token",
    "X_API_KEY_SECRET": "s3cr3t",
    "X_API_BASE_URL": "https://api.x.test/2",
}

for key, value in _DEFAULT_ENV_VARS.items():
    os.environ.setdefault(key, value)
