from __future__ import annotations

from abc import ABC, abstractmethod


class BackgroundRemover(ABC):
    @abstractmethod
    def remove(self, image_bytes: bytes, filename: str, output_format: str) -> bytes:
        """Return image bytes with the background removed, encoded as `output_format` where supported."""
