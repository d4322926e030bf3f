"""
Run script for starting the voice relay server.

Usage:
    python run.py [--port PORT] [--host HOST] [--log-level LEVEL]
"""

import argparse
import sys

import dotenv
import uvicorn

dotenv.load_dotenv()

from voice_relay.config.logging_config import configure_logging
from voice_relay.config.settings import ConfigurationError, get_settings

# Configure logging
logger = configure_logging()


def parse_args(settings, argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Start the voice relay server")
    parser.add_argument(
        "--port",
        type=int,
        default=settings.port,
        help=f"Port to run the server on (default from settings: {settings.port})",
    )
    parser.add_argument(
        "--host",
        default=settings.host,
        help=f"Host to bind the server to (default from settings: {settings.host})",
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help=f"Logging level (default from settings: {settings.log_level})",
    )
    return parser.parse_args(argv)


def main():
    """Main entry point for starting the server."""
    try:
        settings = get_settings()
    except ConfigurationError as e:
        logger.error(str(e))
        sys.exit(1)

    args = parse_args(settings)

    if not settings.openai_api_key:
        logger.error("OPENAI_API_KEY environment variable not set")
        print("Error: OPENAI_API_KEY environment variable is required")
        sys.exit(1)

    logger.info(f"Starting server on http://{args.host}:{args.port}")
    logger.info(f"Log level: {args.log_level}")
    logger.info(f"Environment: {settings.app_env}")

    uvicorn.run(
        "voice_relay.main:app",
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
        # Use HTTP/1.1 for lower overhead than HTTP/2
        http="h11",
        # Disable access logs, we have our own logging
        access_log=False,
        # Reload on code changes during development
        reload=settings.app_env == "development",
    )


if __name__ == "__main__":
    main()
