"""Command line entry point.

    decisiondocs serve --base-dir ./records
    decisiondocs check ./records
"""

import argparse
import logging
import sys
from typing import List, Optional

import uvicorn
from pydantic import ValidationError

from config import ServerConfig
from indexer import CorpusError, create_index
from observability import setup_logging

logger = logging.getLogger(__name__)


def _config_from_args(args: argparse.Namespace) -> ServerConfig:
    values = ServerConfig.from_env().model_dump()
    overrides = {
        'base_dir': getattr(args, 'base_dir', None),
        'extension': getattr(args, 'extension', None),
        'host': getattr(args, 'host', None),
        'port': getattr(args, 'port', None),
        'strict_load': True if getattr(args, 'strict', False) else None,
        'log_level': getattr(args, 'log_level', None),
    }
    values.update({k: v for k, v in overrides.items() if v is not None})
    return ServerConfig(**values)


def serve(config: ServerConfig) -> int:
    from server.app import create_app

    try:
        app = create_app(config)
    except CorpusError as e:
        logger.critical(f"Cannot start: {e}")
        return 1

    logger.info(f"Starting server on {config.host}:{config.port}")
    # uvicorn handles SIGINT/SIGTERM and drains connections before exiting
    uvicorn.run(
        app,
        host=config.host,
        port=config.port,
        timeout_keep_alive=config.keep_alive_timeout,
        timeout_graceful_shutdown=config.shutdown_timeout,
        log_config=None
    )
    logger.info("Shutting down")
    return 0


def check(config: ServerConfig) -> int:
    """Load and index a corpus, report the outcome, fail on bad records."""
    try:
        indexed = create_index(config.base_dir, extension=config.extension, strict=config.strict_load)
    except CorpusError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    corpus = indexed.corpus
    print(f"Indexed {indexed.index.doc_count} records from {corpus.base_dir} "
          f"({corpus.skipped} skipped, {corpus.ignored} ignored)")
    for error in corpus.errors:
        print(f"  {error.source}: {error.error_type}: {error.message}", file=sys.stderr)
    return 1 if corpus.errors else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="decisiondocs", description="Browse and search decision records")
    parser.add_argument("--log-level", dest="log_level", help="Log level (default: LOG_LEVEL or INFO)")
    sub = parser.add_subparsers(dest="command", required=True)

    serve_parser = sub.add_parser("serve", help="Run the HTTP server")
    serve_parser.add_argument("--base-dir", dest="base_dir", help="Directory holding the records")
    serve_parser.add_argument("--host", help="Bind address")
    serve_parser.add_argument("--port", type=int, help="Bind port")
    serve_parser.add_argument("--extension", help="Record file extension")
    serve_parser.add_argument("--strict", action="store_true", help="Refuse to start if any record is invalid")

    check_parser = sub.add_parser("check", help="Validate and index a record directory")
    check_parser.add_argument("base_dir", help="Directory holding the records")
    check_parser.add_argument("--extension", help="Record file extension")
    check_parser.add_argument("--strict", action="store_true", help="Stop at the first invalid record")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = _config_from_args(args)
    except ValidationError as e:
        print(f"error: invalid configuration: {e}", file=sys.stderr)
        return 2
    setup_logging(level=config.log_level, log_file=config.log_file, use_json=config.log_json)

    if args.command == "serve":
        return serve(config)
    return check(config)


if __name__ == "__main__":
    sys.exit(main())
