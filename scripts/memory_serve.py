"""
CLI for launching the memory API server.

Usage:
    python scripts/memory_serve.py
    python scripts/memory_serve.py --port 8080 --workspace ./workspace
"""

import argparse
import os
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import uvicorn

from tiered_memory.config.logging import setup_logging
from tiered_memory.config.settings import Settings


def main():
    parser = argparse.ArgumentParser(
        description="Launch the tiered memory FastAPI server"
    )

    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host to bind to",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind to",
    )
    parser.add_argument(
        "--workspace",
        type=str,
        default=None,
        help="Workspace root; logs go to <workspace>/memory",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )

    args = parser.parse_args()

    if args.workspace:
        os.environ["TIERED_MEMORY_WORKSPACE"] = args.workspace

    settings = Settings.from_env()
    setup_logging(settings)

    print(f"Starting memory API server on {args.host}:{args.port}")
    print(f"Memory logs: {settings.paths.memory_dir}")
    print(f"API documentation available at: http://localhost:{args.port}/docs")

    uvicorn.run(
        "tiered_memory.api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )

    return 0


if __name__ == "__main__":
    sys.exit(main())
