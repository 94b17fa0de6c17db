"""Application entry point for the ID document scanning API server."""

import argparse

import uvicorn

from src.api.app import app
from src.utils.config import load_config
from src.utils.logger import setup_logging


def main(argv: list[str] | None = None) -> None:
    """Start the FastAPI application server."""
    parser = argparse.ArgumentParser(description="ID Document Scanner API server")
    parser.add_argument("--host", default="0.0.0.0", help="Bind address")
    parser.add_argument("--port", type=int, default=8000, help="Bind port")
    args = parser.parse_args(argv)

    config = load_config()
    setup_logging(config.log_level)
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
