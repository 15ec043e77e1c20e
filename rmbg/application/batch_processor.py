from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from rmbg.application.output_paths import output_directory, output_file_name
from rmbg.application.remove_background_use_case import ProcessingOptions, RemoveBackgroundUseCase
from rmbg.config import INPUT_EXTENSIONS

logger = logging.getLogger("rmbg.batch")


@dataclass
class BatchSummary:
    output_dir: Path
    total: int = 0
    succeeded: int = 0
    failed: list[str] = field(default_factory=list)


def collect_images(directory: Path) -> list[Path]:
    return sorted(
        (entry for entry in directory.iterdir() if not entry.is_dir() and entry.suffix.lower() in INPUT_EXTENSIONS),
        key=lambda entry: entry.name,
    )


class BatchProcessor:
    """Runs every image in a directory through the use case, one at a time.

    A failing image is logged and skipped. The API is rate limited, so the
    processor sleeps `delay_seconds` between requests.
    """

    def __init__(
        self,
        use_case: RemoveBackgroundUseCase,
        delay_seconds: float,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._use_case = use_case
        self._delay_seconds = delay_seconds
        self._sleep = sleep

    def process_directory(self, input_dir: str | Path, options: ProcessingOptions) -> BatchSummary:
        source = Path(input_dir)
        target = output_directory(input_dir)
        target.mkdir(parents=True, exist_ok=True)

        images = collect_images(source)
        summary = BatchSummary(output_dir=target, total=len(images))
        if not images:
            logger.info("No images found in the directory")
            return summary

        logger.info("Found %d images to process...", summary.total)

        for index, image_path in enumerate(images, start=1):
            output_path = target / output_file_name(image_path, options.output_format)
            logger.info("Processing image %d/%d: %s", index, summary.total, image_path.name)

            try:
                self._use_case.execute(image_path, output_path, options)
            except Exception as exc:  # noqa: BLE001
                logger.error("Failed to process %s: %s", image_path.name, exc)
                summary.failed.append(image_path.name)
            else:
                logger.info("Successfully processed: %s (%d/%d)", image_path.name, index, summary.total)
                summary.succeeded += 1

            if index < summary.total:
                self._sleep(self._delay_seconds)

        self._log_summary(summary)
        return summary

    @staticmethod
    def _log_summary(summary: BatchSummary) -> None:
        logger.info("Summary: %d/%d images processed successfully", summary.succeeded, summary.total)
        if summary.failed:
            logger.error("Failed to process %d images:", len(summary.failed))
            for name in summary.failed:
                logger.error("  - %s", name)
        logger.info("Output directory: %s", summary.output_dir)
