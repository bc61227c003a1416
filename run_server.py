#!/usr/bin/env python
"""
Server Entry Point

Starts the retention analytics API with Uvicorn.
Usage:
    Development:  python run_server.py --dev
    Production:   python run_server.py

Uploaded datasets live in process memory, so the API runs as a single
worker process.
"""

import argparse
import os

from retention_analytics.config import get_settings


def run_dev_server(port: int):
    """Run development server with auto-reload."""
    import uvicorn

    uvicorn.run(
        "retention_analytics.main:app",
        host="0.0.0.0",
        port=port,
        reload=True,
        reload_dirs=["retention_analytics"],
        log_level="debug",
        access_log=True,
    )


def run_prod_server(port: int):
    """Run production server with Uvicorn directly."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "retention_analytics.main:app",
        host=settings.api_host,
        port=port,
        workers=1,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
        access_log=True,
        proxy_headers=True,
        forwarded_allow_ips="*",
        server_header=False,
        date_header=True,
    )


def main():
    parser = argparse.ArgumentParser(description="Salon Retention Analytics API Server")
    parser.add_argument(
        "--dev",
        action="store_true",
        help="Run in development mode with auto-reload"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to run on (default: API_PORT or 8000)"
    )

    args = parser.parse_args()
    port = args.port or get_settings().api_port

    if args.dev:
        print("Starting development server...")
        run_dev_server(port)
    else:
        print("Starting production server with Uvicorn...")
        run_prod_server(port)


if __name__ == "__main__":
    main()
