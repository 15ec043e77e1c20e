from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from rmbg.application.batch_processor import BatchProcessor
from rmbg.application.output_paths import default_output_path
from rmbg.application.remove_background_use_case import (
    ProcessingError,
    ProcessingOptions,
    RemoveBackgroundUseCase,
)
from rmbg.config import (
    DEFAULT_FORMAT,
    DEFAULT_QUALITY,
    OUTPUT_FORMATS,
    PROGRAM_NAME,
    VERSION,
    Settings,
)
from rmbg.infrastructure.image_validation import ImageValidationError
from rmbg.infrastructure.remove_bg_client import RemoveBgApiError, RemoveBgApiRemover

logger = logging.getLogger("rmbg.cli")

EPILOG = f"""\
examples:
  {PROGRAM_NAME} image.jpg                     # Process a single image
  {PROGRAM_NAME} -f webp image.jpg             # Process and save as WebP
  {PROGRAM_NAME} -c image.jpg                  # Process and compress with default quality
  {PROGRAM_NAME} -c 75 image.jpg               # Process and compress with quality 75
  {PROGRAM_NAME} -c=75 image.jpg               # Process and compress with quality 75 (alt syntax)
  {PROGRAM_NAME} -f webp -c 80 images/         # Process directory as WebP with quality 80
  {PROGRAM_NAME} image.jpg custom-output.png   # Process with custom output path

notes:
  - The REMOVE_BG_API_KEY environment variable must be set
  - Directory processing creates an output directory with suffix "-rm"
  - Supports JPEG, PNG, and WebP input formats
"""


@dataclass
class CliArguments:
    input_path: str
    output_path: str | None
    output_format: str
    compress: bool
    quality: int
    verbose: bool


def _parse_quality(value: str) -> int | None:
    try:
        quality = int(value)
    except ValueError:
        return None
    if 1 <= quality <= 100:
        return quality
    return None


def _quality(value: str) -> int:
    quality = _parse_quality(value)
    if quality is None:
        raise argparse.ArgumentTypeError(f"invalid quality value: {value}")
    return quality


def expand_short_flags(argv: Sequence[str]) -> list[str]:
    """Rewrite the `-c [quality]` and `-c=quality` forms into long options.

    `-f` always takes the next token as its value, even one starting with
    `-`, so it is glued on as `-f<value>` for argparse.

    After a bare `-c`, the next token is taken as the quality only if it is
    an integer from 1 to 100. Otherwise it stays where it is, since it is
    usually the input path.
    """
    expanded: list[str] = []
    index = 0
    while index < len(argv):
        arg = argv[index]
        if arg == "-f" and index + 1 < len(argv):
            expanded.append(f"-f{argv[index + 1]}")
            index += 1
        elif arg == "-c":
            expanded.append("--compress")
            following = argv[index + 1] if index + 1 < len(argv) else None
            if following is not None and not following.startswith("-") and _parse_quality(following) is not None:
                expanded.append(f"--quality={following}")
                index += 1
        elif arg.startswith("-c="):
            expanded.append("--compress")
            value = arg[len("-c=") :]
            if value:
                expanded.append(f"--quality={value}")
        else:
            expanded.append(arg)
        index += 1
    return expanded


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROGRAM_NAME,
        description=f"{PROGRAM_NAME} v{VERSION} - Background Removal Tool",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        allow_abbrev=False,
    )
    parser.add_argument("input_path", help="image file or directory of images")
    parser.add_argument("output_path", nargs="?", help="output file (single image only)")
    parser.add_argument(
        "-f",
        dest="output_format",
        metavar="<format>",
        type=str.lower,
        default=DEFAULT_FORMAT,
        help='output format (png or webp) (default "png")',
    )
    parser.add_argument(
        "--compress",
        action="store_true",
        help="compress output image; short forms: -c [quality], -c=quality",
    )
    parser.add_argument(
        "--quality",
        type=_quality,
        default=DEFAULT_QUALITY,
        help=f"compression quality 1-100 (default {DEFAULT_QUALITY})",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="log debug output")
    parser.add_argument("--version", action="version", version=f"{PROGRAM_NAME} {VERSION}")
    return parser


def parse_args(argv: Sequence[str]) -> CliArguments:
    namespace = build_parser().parse_intermixed_args(expand_short_flags(argv))
    return CliArguments(
        input_path=namespace.input_path,
        output_path=namespace.output_path,
        output_format=namespace.output_format,
        compress=namespace.compress,
        quality=namespace.quality,
        verbose=namespace.verbose,
    )


def resolve_format(requested: str) -> str:
    if requested in OUTPUT_FORMATS:
        return requested
    logger.warning("Invalid format: %s. Using default (%s).", requested, DEFAULT_FORMAT)
    return DEFAULT_FORMAT


class ConsoleFormatter(logging.Formatter):
    """Plain messages for progress; warnings and errors carry their level."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        if record.levelno >= logging.WARNING:
            return f"{record.levelname}: {message}"
        return message


def configure_logging(level_name: str, verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else getattr(logging, level_name, logging.INFO)
    handler = logging.StreamHandler()
    handler.setFormatter(ConsoleFormatter())
    logging.basicConfig(level=level, handlers=[handler])


def build_use_case(settings: Settings) -> RemoveBackgroundUseCase:
    return RemoveBackgroundUseCase(RemoveBgApiRemover(settings), settings)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    settings = Settings()
    configure_logging(settings.log_level, verbose=args.verbose)

    options = ProcessingOptions(
        output_format=resolve_format(args.output_format),
        compress=args.compress,
        quality=args.quality,
    )

    if not settings.api_key:
        logger.error("REMOVE_BG_API_KEY environment variable is not set")
        return 1

    input_path = Path(args.input_path)
    if not input_path.exists():
        logger.error("%s: no such file or directory", input_path)
        return 1

    use_case = build_use_case(settings)

    if input_path.is_dir():
        processor = BatchProcessor(use_case, delay_seconds=settings.batch_delay_seconds)
        try:
            processor.process_directory(input_path, options)
        except OSError as exc:
            logger.error("Cannot process directory %s: %s", input_path, exc)
            return 1
        return 0

    if args.output_path:
        output_path = Path(args.output_path)
    else:
        output_path = default_output_path(input_path, options.output_format)

    try:
        use_case.execute(input_path, output_path, options)
    except (ProcessingError, ImageValidationError, RemoveBgApiError) as exc:
        logger.error("Failed to process %s: %s", input_path, exc)
        return 1

    logger.info("Successfully processed: %s -> %s", input_path, output_path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
