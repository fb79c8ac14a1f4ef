#!/usr/bin/env python3
"""
Start the Pace dashboard chat API with uvicorn.

Configuration comes from the environment (or .env); see pace_dashboard/core/config.py.
"""

import argparse
import sys
from pathlib import Path

import uvicorn

# Allow running from a checkout without installing the package
sys.path.insert(0, str(Path(__file__).parent.parent))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Run the Pace dashboard chat API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                          # Serve on 127.0.0.1:8000
  %(prog)s --host 0.0.0.0 --port 3001
  %(prog)s --reload                 # Restart on code changes

Environment variables:
- LLM_PROVIDER=anthropic|ollama (default anthropic)
- ANTHROPIC_API_KEY=... (required for anthropic)
- STORE_BACKEND=memory|local|supabase (default local)
- DASHBOARD_BACKEND=none|sqlite|supabase (default sqlite)
        """
    )
    parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="Port (default: 8000)")
    parser.add_argument("--reload", action="store_true", help="Reload on code changes")
    parser.add_argument("--log-level", default="info",
                        choices=["critical", "error", "warning", "info", "debug"],
                        help="uvicorn log level")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    uvicorn.run(
        "pace_dashboard.api.main:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()
