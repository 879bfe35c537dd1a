"""
Run script for starting the SalesVoice server with low-latency WebSocket settings.

This script configures and starts the FastAPI server with WebSocket settings suited
to real-time audio streaming between Twilio and Gemini Live.

Usage:
    python run.py [--port PORT] [--host HOST] [--log-level LEVEL]
"""

import argparse
import os
import sys

import uvicorn

from salesvoice.config.logging_config import configure_logging
from salesvoice.config.settings import get_settings


def parse_args(argv=None):
    """Parse command line arguments."""
    settings = get_settings()
    parser = argparse.ArgumentParser(
        description="Start the SalesVoice Twilio to Gemini Live bridge"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=settings.port,
        help="Port to run the server on (default: 8080 or PORT env var)",
    )
    parser.add_argument(
        "--host",
        default=settings.host,
        help="Host to bind the server to (default: 0.0.0.0 or HOST env var)",
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level.upper(),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO or LOG_LEVEL env var)",
    )
    return parser.parse_args(argv)


def main():
    """Main entry point for starting the server."""
    args = parse_args()
    logger = configure_logging(args.log_level)
    settings = get_settings()

    if not settings.gemini_api_key:
        logger.error("GEMINI_API_KEY environment variable not set")
        print("Error: GEMINI_API_KEY environment variable is required")
        sys.exit(1)

    logger.info(f"Starting server on http://{args.host}:{args.port}")
    logger.info(f"Log level: {args.log_level}")

    uvicorn.run(
        "salesvoice.main:app",
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
        # Use HTTP/1.1 for lower overhead than HTTP/2
        http="h11",
        access_log=False,
        websocket_ping_interval=5,
        websocket_ping_timeout=20,
        reload=os.getenv("ENV", "production").lower() == "development",
    )


if __name__ == "__main__":
    main()
