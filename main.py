#!/usr/bin/env python3
"""
Parsley - Page View Graph Server Entry Point

Stores browsing events as a graph of page views and serves ingest, update
and time-windowed search requests over HTTP.
"""

import argparse
import sys

import uvicorn

from parsley.config import settings
from parsley.utils.logger import app_logger, setup_logging


def main():
    """Main entry point for the API server."""
    parser = argparse.ArgumentParser(description="Parsley - Page View Graph Server")
    parser.add_argument("--host", default=settings.api_host, help="Host to bind")
    parser.add_argument("--port", type=int, default=settings.api_port, help="Port to bind")
    parser.add_argument("--backend", choices=["json", "neo4j"], default=settings.graph_backend,
                        help="Graph storage backend")
    parser.add_argument("--storage-path", default=settings.graph_storage_path,
                        help="JSON graph file (json backend only)")
    parser.add_argument("--log-level", default=settings.log_level, help="Log level")

    args = parser.parse_args()

    if args.log_level != settings.log_level:
        setup_logging(args.log_level, settings.log_file)
    settings.graph_backend = args.backend
    settings.graph_storage_path = args.storage_path

    app_logger.info("Starting Parsley page view server")
    app_logger.info(f"Graph backend: {args.backend}")

    try:
        # The app builds its graph client from settings on import
        from api_server import app

        app_logger.info(f"Using HTTP transport on {args.host}:{args.port}")
        uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level.lower())
    except KeyboardInterrupt:
        app_logger.info("Shutting down...")
    except Exception as e:
        app_logger.error(f"Error starting server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
