from __future__ import annotations

import os

PROGRAM_NAME = "rmbg"
VERSION = "1.0.0"

DEFAULT_FORMAT = "png"
OUTPUT_FORMATS: tuple[str, ...] = ("png", "webp")
DEFAULT_QUALITY = 90
INPUT_EXTENSIONS: frozenset[str] = frozenset({".jpg", ".jpeg", ".png", ".webp"})
OUTPUT_SUFFIX = "-rm"


class Settings:
    def __init__(self) -> None:
        self.api_key: str | None = os.getenv("REMOVE_BG_API_KEY") or None
        self.api_url: str = os.getenv("REMOVE_BG_API_URL", "https://api.remove.bg/v1.0/removebg")
        self.account_url: str = os.getenv("REMOVE_BG_ACCOUNT_URL", "https://api.remove.bg/v1.0/account")

        self.request_timeout_seconds: float = float(os.getenv("RMBG_REQUEST_TIMEOUT_SECONDS", "60"))
        self.batch_delay_seconds: float = float(os.getenv("RMBG_BATCH_DELAY_SECONDS", "0.5"))
        self.max_image_bytes: int = int(os.getenv("RMBG_MAX_IMAGE_BYTES", str(22 * 1024 * 1024)))

        self.log_level: str = os.getenv("RMBG_LOG_LEVEL", "INFO").upper()
