"""Command-line interface for image ingestion."""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from . import __version__
from .core import (
    ConfigurationError,
    EngineConfig,
    ImageIngestError,
    IngestionKeys,
    get_logger,
    open_engine,
    placeholder_key_for,
    setup_logger,
)
from .core.error_handling import error_exit_code


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argument parser with the ``upload``, ``remove`` and ``version``
    subcommands.

    Engine options left unset fall back to IMAGE_INGEST_* environment
    variables (optionally loaded from a ``.env`` file).
    """
    parser = argparse.ArgumentParser(
        prog="image-ingest",
        description="Store an original and a placeholder rendition of an image",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Store a photo on local disk, resizing the original to 1000px
  image-ingest upload holiday.jpg --backend local --root-dir ./media \\
                      --resize-threshold 1000 --output-format jpeg

  # Store in S3
  image-ingest upload holiday.jpg --backend object-store --bucket my-media --acl public-read

  # Compensating delete of both renditions
  image-ingest remove 2024/3/holiday__1710000000_qwertyuiop.jpg --root-dir ./media
        """,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    engine_options = argparse.ArgumentParser(add_help=False)
    engine_options.add_argument(
        "--backend", choices=["local", "object-store"], default=None, help="Storage backend"
    )
    engine_options.add_argument("--root-dir", default=None, help="Root directory (local backend)")
    engine_options.add_argument("--bucket", default=None, help="Bucket name (object-store backend)")
    engine_options.add_argument("--acl", default=None, help="Object ACL, e.g. public-read")
    engine_options.add_argument("--region", default=None, help="Object store region")
    engine_options.add_argument("--endpoint-url", default=None, help="S3-compatible endpoint URL")
    engine_options.add_argument(
        "--output-format", choices=["jpeg", "jpg", "png"], default=None, help="Output format"
    )
    engine_options.add_argument("--quality", type=int, default=None, help="Encoding quality 0-100")
    engine_options.add_argument(
        "--resize-threshold", type=int, default=None, help="Largest side of the original, in px"
    )
    engine_options.add_argument(
        "--placeholder-width", type=int, default=None, help="Placeholder width in px"
    )
    engine_options.add_argument(
        "--greyscale", action="store_true", default=None, help="Store greyscale renditions"
    )
    engine_options.add_argument(
        "--max-upload-bytes", type=int, default=None, help="Reject larger uploads"
    )
    engine_options.add_argument("--debug", action="store_true", help="Enable debug logging")

    upload_parser = subparsers.add_parser(
        "upload", parents=[engine_options], help="Ingest an image file"
    )
    upload_parser.add_argument("file", type=Path, help="Image file to ingest")
    upload_parser.add_argument(
        "--filename", default=None, help="Original filename to record (defaults to the file name)"
    )

    remove_parser = subparsers.add_parser(
        "remove", parents=[engine_options], help="Delete both renditions of an upload"
    )
    remove_parser.add_argument("original_key", help="Key of the original rendition")
    remove_parser.add_argument(
        "placeholder_key",
        nargs="?",
        default=None,
        help="Key of the placeholder rendition (derived when omitted)",
    )

    subparsers.add_parser("version", help="Show version information")
    return parser


def config_from_args(args: argparse.Namespace) -> EngineConfig:
    """Merge command-line options over the environment configuration."""
    overrides: Dict[str, Any] = {
        "backend": args.backend,
        "root_dir": args.root_dir,
        "bucket": args.bucket,
        "acl": args.acl,
        "region": args.region,
        "endpoint_url": args.endpoint_url,
        "output_format": args.output_format,
        "quality": args.quality,
        "resize_threshold": args.resize_threshold,
        "placeholder_width": args.placeholder_width,
        "greyscale": args.greyscale,
        "max_upload_bytes": args.max_upload_bytes,
    }
    return EngineConfig.from_env(**overrides)


async def run_upload(config: EngineConfig, path: Path, filename: Optional[str]) -> Dict[str, Any]:
    """Ingest ``path`` and return the response payload."""
    outcome: Dict[str, Any] = {}

    def on_done(error, result) -> None:
        outcome["error"] = error
        outcome["result"] = result

    async with open_engine(config) as engine:
        with path.open("rb") as stream:
            await engine.handle_upload(stream, filename or path.name, on_done)

    if outcome["error"] is not None:
        raise outcome["error"]
    return outcome["result"].to_response()


async def run_remove(config: EngineConfig, keys: IngestionKeys) -> None:
    async with open_engine(config) as engine:
        await engine.remove_keys(keys)


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the ``image-ingest`` command. Returns the exit code."""
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "version":
        print(f"image-ingest {__version__}")
        return 0

    if args.command not in ("upload", "remove"):
        parser.print_help()
        return 1

    if args.debug:
        setup_logger(level="DEBUG")
    logger = get_logger("cli")

    try:
        config = config_from_args(args)

        if args.command == "upload":
            if not args.file.is_file():
                logger.error(f"No such file: {args.file}")
                return 2
            response = asyncio.run(run_upload(config, args.file, args.filename))
            print(json.dumps(response, indent=2))
        else:
            keys = IngestionKeys(
                args.original_key,
                args.placeholder_key or placeholder_key_for(args.original_key),
            )
            asyncio.run(run_remove(config, keys))
            print(json.dumps({"removed": list(keys)}, indent=2))

    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return error_exit_code(e)
    except ImageIngestError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return error_exit_code(e)
    except KeyboardInterrupt:
        logger.warning("Interrupted by user.")
        return 130

    return 0


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
