"""Command-line entry point for the metadata hub."""

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv

from .config import load_config
from .logging_config import get_logger, set_log_level, setup_logging
from .rules import RuleConfigError

logger = get_logger(__name__, namespace='api')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="OP25 Metadata Hub")
    parser.add_argument("--host", default=None, help="Host to bind to (default: HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, default=None, help="Port to listen on (default: PORT or 3000)")
    parser.add_argument("--rules", type=Path, default=None, help="Rule file (default: RULES_PATH or ./regex-config.json)")
    parser.add_argument("--strict-rules", action="store_true", help="Refuse to start if the rule file is invalid")
    parser.add_argument("--log-level", default=None, help="Log level (default: HUB_LOG_LEVEL or INFO)")
    parser.add_argument("--env-file", type=Path, default=None, help="Path to a .env file")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    load_dotenv(args.env_file)

    setup_logging()
    if args.log_level:
        set_log_level(args.log_level)

    config = load_config()
    if args.host:
        config.host = args.host
    if args.port:
        config.port = args.port
    if args.rules:
        config.rules_path = args.rules
    if args.strict_rules:
        config.strict_rules = True

    import uvicorn
    from .server import create_app

    try:
        app = create_app(config)
    except RuleConfigError as e:
        logger.error(f"Refusing to start: {e}")
        return 1

    logger.info(f"OP25 Metadata Hub is running on port {config.port}")
    uvicorn.run(app, host=config.host, port=config.port, log_config=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
