"""
plugin-runtime CLI.

Usage:
    plugin-runtime --port 9443                 Connect to the app on port 9443
    PORT=9443 plugin-runtime                   Same, port from the environment
    plugin-runtime --config runtime.toml       Read settings from a TOML file
    plugin-runtime --init-config runtime.toml  Write a default config file
"""

import argparse
import asyncio
import sys
from pathlib import Path

from plugin_runtime import __version__
from plugin_runtime.config import ConfigError, RuntimeConfig, load_config, write_default_config
from plugin_runtime.logging import configure_logging, get_logger
from plugin_runtime.runtime import serve
from plugin_runtime.runtime.transport import TransportError

logger = get_logger("plugin_runtime.cli")


class StartupError(Exception):
    """Raised when the runtime cannot start."""

    pass


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="plugin-runtime",
        description="Host process that loads plugins and serves their hooks to the app",
    )
    parser.add_argument("--port", type=int, help="Port of the app's websocket (or $PORT)")
    parser.add_argument("--host", help="Host of the app's websocket (default: localhost)")
    parser.add_argument("--config", type=Path, help="TOML configuration file")
    parser.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Log level"
    )
    parser.add_argument("--log-format", choices=["console", "json"], help="Log format")
    parser.add_argument(
        "--reply-timeout",
        type=float,
        help="Seconds a plugin waits for replies from the app (0 = forever)",
    )
    parser.add_argument(
        "--init-config", type=Path, metavar="PATH", help="Write a default config file and exit"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def resolve_config(args: argparse.Namespace) -> RuntimeConfig:
    """
    Build the configuration from parsed arguments.

    Raises:
        StartupError: If the configuration is invalid or has no port
    """
    try:
        config = load_config(
            args.config,
            overrides={
                "port": args.port,
                "host": args.host,
                "log_level": args.log_level,
                "log_format": args.log_format,
                "reply_timeout": args.reply_timeout,
            },
        )
    except ConfigError as e:
        raise StartupError(str(e)) from e

    if not config.has_port:
        raise StartupError("Plugin runtime missing PORT")
    return config


def main(argv: list[str] | None = None) -> int:
    """Entry point; returns the process exit status."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.init_config is not None:
        try:
            write_default_config(args.init_config)
        except ConfigError as e:
            print(f"error: {e}", file=sys.stderr)
            return 1
        print(f"Wrote {args.init_config}")
        return 0

    try:
        config = resolve_config(args)
    except StartupError as e:
        configure_logging()
        logger.error("startup_failed", error=str(e))
        return 1

    configure_logging(config.log_level, config.log_format)
    logger.info("runtime_starting", host=config.host, port=config.port)

    try:
        asyncio.run(serve(config))
    except TransportError as e:
        logger.error("startup_failed", error=str(e))
        return 1
    except KeyboardInterrupt:
        logger.info("runtime_interrupted")
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
