from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from rmbg.config import DEFAULT_FORMAT, DEFAULT_QUALITY, Settings
from rmbg.domain.background_remover import BackgroundRemover
from rmbg.infrastructure.image_optimizer import (
    ImageOptimizationError,
    convert_to_webp,
    optimize_image,
)
from rmbg.infrastructure.image_validation import validate_image_bytes

logger = logging.getLogger("rmbg.processing")


class ProcessingError(RuntimeError):
    pass


@dataclass
class ProcessingOptions:
    output_format: str = DEFAULT_FORMAT
    compress: bool = False
    quality: int = DEFAULT_QUALITY


class RemoveBackgroundUseCase:
    def __init__(
        self,
        remover: BackgroundRemover,
        settings: Settings,
        optimizer: Callable[[bytes, str, int], bytes] = optimize_image,
        webp_converter: Callable[[bytes], bytes] = convert_to_webp,
    ) -> None:
        self._remover = remover
        self._max_image_bytes = settings.max_image_bytes
        self._optimizer = optimizer
        self._webp_converter = webp_converter

    def execute(self, input_path: str | Path, output_path: str | Path, options: ProcessingOptions) -> Path:
        source = Path(input_path)
        target = Path(output_path)

        try:
            image_bytes = source.read_bytes()
        except OSError as exc:
            raise ProcessingError(f"failed to read image: {exc}") from exc

        width, height, fmt = validate_image_bytes(image_bytes, max_bytes=self._max_image_bytes)
        logger.debug("Uploading %s (%s, %dx%d, %d bytes)", source.name, fmt, width, height, len(image_bytes))
        output = self._remover.remove(image_bytes, source.name, options.output_format)

        if options.compress:
            output = self._compress(output, options)
        elif options.output_format == "webp" and not target.name.lower().endswith(".webp"):
            output = self._to_webp(output)

        try:
            target.write_bytes(output)
        except OSError as exc:
            raise ProcessingError(f"failed to write output file: {exc}") from exc
        return target

    def _compress(self, data: bytes, options: ProcessingOptions) -> bytes:
        logger.info("Compressing image with quality %d...", options.quality)
        original_size = len(data)

        try:
            optimized = self._optimizer(data, options.output_format, options.quality)
        except ImageOptimizationError as exc:
            logger.warning("Failed to compress image: %s. Using original output.", exc)
            return data

        optimized_size = len(optimized)
        if optimized_size >= original_size:
            logger.info("Compression did not reduce file size. Using original output.")
            return data

        reduction = (original_size - optimized_size) / original_size * 100
        logger.info(
            "Reduced file size by %.1f%% (from %d KB to %d KB) with quality %d",
            reduction,
            original_size // 1024,
            optimized_size // 1024,
            options.quality,
        )
        return optimized

    def _to_webp(self, data: bytes) -> bytes:
        try:
            return self._webp_converter(data)
        except ImageOptimizationError as exc:
            logger.warning("Failed to convert to WebP: %s", exc)
            return data
