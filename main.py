"""
Intent Engine - Main Entry Point
================================
Run this file to start the FastAPI server.

Usage:
    python main.py                    # Start server on port 8000
    python main.py --port 8080        # Start server on custom port
    python main.py --reload           # Start with auto-reload (dev mode)

API Documentation:
    http://localhost:8000/docs        # Swagger UI
    http://localhost:8000/redoc       # ReDoc
"""

import argparse
import logging
import os

import uvicorn
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from intent_engine import __version__
from intent_engine.config.logging_config import setup_logging

logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Intent Engine API Server")
    parser.add_argument(
        "--host",
        type=str,
        default="0.0.0.0",
        help="Host to bind the server to (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to run the server on (default: 8000)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Number of worker processes (default: 1)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Log level (default: LOG_LEVEL or INFO)",
    )

    args = parser.parse_args()
    setup_logging(args.log_level)

    llm_status = "enabled" if os.getenv("OPENROUTER_API_KEY") else "disabled (no API key)"
    embed_status = "enabled" if os.getenv("OPENAI_API_KEY") else "fallback only"
    logger.info(f"Intent Engine {__version__} starting on http://{args.host}:{args.port}")
    logger.info(f"API docs: http://localhost:{args.port}/docs")
    logger.info(f"AI scoring: {llm_status}; embeddings API: {embed_status}")

    uvicorn.run(
        "intent_engine.api.endpoints:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        workers=args.workers if not args.reload else 1,
    )


if __name__ == "__main__":
    main()
