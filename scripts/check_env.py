"""Report whether an env file configures everything the dashboard needs.

The server boots without X credentials but answers 500 on every route that
needs a missing one. Run this before deploying to catch that early::

    python -m scripts.check_env --env-file .env
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from pydantic import ValidationError

from aa_dashboard.core.config import AppSettings, _load_env_file

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_RUNTIME_ERROR = 5


def missing_credentials(env_file: Path) -> list[str]:
    """Load settings from ``env_file`` and return the unset credential names."""
    _load_env_file(str(env_file))
    settings = AppSettings(_env_file=env_file)
    return settings.x_api.missing_credentials()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        "--env-file",
        default=".env",
        type=Path,
        help="Path to the environment file (default: .env in the repo root).",
    )
    args = parser.parse_args(argv)
    env_file: Path = args.env_file

    if not env_file.exists():
        print(f"Environment file {env_file} does not exist.", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    try:
        missing = missing_credentials(env_file)
    except ValidationError as exc:
        print(f"Invalid settings in {env_file}:\n{exc.json(indent=2)}", file=sys.stderr)
        return EXIT_VALIDATION_ERROR

    if missing:
        print(
            f"Missing X credentials: {', '.join(missing)}. "
            "Routes that need them will answer 500.",
            file=sys.stderr,
        )
        return EXIT_VALIDATION_ERROR

    print("All X credentials are configured.")
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
