#!/usr/bin/env python3
"""Run the ClawQuest game server.

    python run.py --port 8080 --reload
"""

import argparse

import uvicorn


def main():
    parser = argparse.ArgumentParser(description="Run the ClawQuest game server")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to (default: 8000)")
    parser.add_argument("--reload", action="store_true", help="Restart on code changes")
    parser.add_argument("--workers", type=int, default=1, help="Worker processes, ignored with --reload")
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error", "critical"],
        default="info",
        help="uvicorn access/error log level; game logs follow CLAWQUEST_LOG_LEVEL",
    )
    args = parser.parse_args()

    print(f"ClawQuest listening on http://{args.host}:{args.port}  (docs at /docs)")
    uvicorn.run(
        "clawquest.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        workers=1 if args.reload else args.workers,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()
