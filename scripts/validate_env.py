"""
CLI helper to check the backend environment before deploying.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from cms_backend.config import Settings
from cms_backend.env import EnvValidationError, validate_env


def main() -> int:
    parser = argparse.ArgumentParser(description="Validate content backend environment")
    parser.add_argument(
        "--env-file",
        type=str,
        default=".env",
        help="Path to a .env file to read in addition to the process environment",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Treat warnings as failures",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    settings = Settings(_env_file=args.env_file)
    try:
        config = validate_env(settings)
    except EnvValidationError as exc:
        print(f"Invalid environment ({len(exc.errors)} error(s)):")
        for error in exc.errors:
            print(f"  - {error}")
        return 1

    print("Environment OK")
    print(f"  database:  {'in-memory' if config.database.in_memory else 'configured'}")
    print(f"  live sync: {'redis' if config.is_realtime_configured else 'in-process'}")
    print(f"  email:     {'configured' if config.is_email_configured else 'disabled'}")
    print(f"  site url:  {config.site.url}")
    if config.warnings and args.strict:
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
