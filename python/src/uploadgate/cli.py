"""CLI entry point for UploadGate."""

import argparse
import logging
import sys
from pathlib import Path

import uvicorn

from uploadgate.config import UploadGateConfig, load_config
from uploadgate.logging_config import configure_logging
from uploadgate.server import create_app

logger = logging.getLogger("uploadgate")

# CLI flag destination -> (config section, field) it overrides.
_OVERRIDES = {
    "host": ("server", "host"),
    "port": ("server", "port"),
    "log_level": ("server", "log_level"),
    "log_format": ("server", "log_format"),
    "backend": ("storage", "backend"),
    "bucket": ("storage", "bucket"),
}


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Argument list to parse. Defaults to sys.argv[1:].

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        prog="uploadgate",
        description="UploadGate - multipart upload coordinator for S3-compatible stores",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("uploadgate.yaml"),
        help="Path to YAML configuration file (default: uploadgate.yaml)",
    )

    server = parser.add_argument_group("server overrides")
    server.add_argument("--host", help="Bind address")
    server.add_argument("--port", type=int, help="Listen port")
    server.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level",
    )
    server.add_argument("--log-format", choices=["text", "json"], help="Log format")

    storage = parser.add_argument_group("storage overrides")
    storage.add_argument(
        "--backend",
        choices=["s3", "memory"],
        help="Object store backend ('memory' keeps everything in-process)",
    )
    storage.add_argument("--bucket", help="Bucket that receives uploads")
    return parser.parse_args(argv)


def apply_overrides(config: UploadGateConfig, args: argparse.Namespace) -> UploadGateConfig:
    """Copy every flag the user actually passed onto the loaded config."""
    for dest, (section, field) in _OVERRIDES.items():
        value = getattr(args, dest, None)
        if value is not None:
            setattr(getattr(config, section), field, value)
    return config


def main(argv: list[str] | None = None) -> None:
    """Load configuration, apply CLI overrides and serve with uvicorn.

    Exits with status 1 when the config file is missing or invalid.
    """
    args = parse_args(argv)

    logging.basicConfig(level=logging.INFO, stream=sys.stderr)

    try:
        config = load_config(args.config)
    except FileNotFoundError:
        logger.error("Config file not found: %s", args.config)
        sys.exit(1)
    except Exception as exc:
        logger.error("Failed to load config: %s", exc)
        sys.exit(1)

    apply_overrides(config, args)
    configure_logging(level=config.server.log_level, fmt=config.server.log_format)

    logger.info(
        "Starting UploadGate on %s:%d (backend=%s bucket=%s)",
        config.server.host,
        config.server.port,
        config.storage.backend,
        config.storage.bucket,
    )

    uvicorn.run(
        create_app(config),
        host=config.server.host,
        port=config.server.port,
        log_level=config.server.log_level.lower(),
        timeout_graceful_shutdown=config.server.shutdown_timeout,
        timeout_keep_alive=5,
    )


if __name__ == "__main__":
    main()
