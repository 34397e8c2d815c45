"""
Run the hobbyboard app under uvicorn.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import uvicorn

from hobbyboard.config import get_settings


def main() -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Serve the hobbyboard app")
    parser.add_argument("--host", type=str, default="0.0.0.0", help="Bind address")
    parser.add_argument(
        "-p", "--port", type=int, default=settings.port, help="Bind port"
    )
    parser.add_argument(
        "--reload", action="store_true", help="Auto-reload on code changes"
    )
    args = parser.parse_args()

    uvicorn.run(
        "hobbyboard.app:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
