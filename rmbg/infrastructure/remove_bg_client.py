from __future__ import annotations

import logging
from typing import Any

import requests

from rmbg.config import Settings
from rmbg.domain.background_remover import BackgroundRemover

logger = logging.getLogger("rmbg.client")


class RemoveBgApiError(RuntimeError):
    pass


class RemoveBgApiRemover(BackgroundRemover):
    def __init__(self, settings: Settings, session: requests.Session | None = None) -> None:
        if not settings.api_key:
            raise RemoveBgApiError("REMOVE_BG_API_KEY environment variable is not set")

        self._api_url = settings.api_url
        self._account_url = settings.account_url
        self._timeout = settings.request_timeout_seconds
        self._session = session or requests.Session()
        self._session.headers.update({"X-Api-Key": settings.api_key})

    def remove(self, image_bytes: bytes, filename: str, output_format: str) -> bytes:
        data = {"size": "full"}
        if output_format == "webp":
            data["format"] = "webp"

        try:
            response = self._session.post(
                self._api_url,
                files={"image_file": (filename, image_bytes)},
                data=data,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise RemoveBgApiError(f"request failed: {exc}") from exc

        self._raise_for_status(response)

        charged = response.headers.get("X-Credits-Charged")
        if charged is not None:
            logger.debug("remove.bg charged %s credit(s) for %s", charged, filename)
        return response.content

    def account(self) -> dict[str, Any]:
        try:
            response = self._session.get(self._account_url, timeout=self._timeout)
        except requests.RequestException as exc:
            raise RemoveBgApiError(f"request failed: {exc}") from exc

        self._raise_for_status(response)
        try:
            return response.json()["data"]["attributes"]
        except (ValueError, KeyError, TypeError) as exc:
            raise RemoveBgApiError("unexpected account response payload") from exc

    @staticmethod
    def _raise_for_status(response: requests.Response) -> None:
        if response.status_code == requests.codes.ok:
            return
        raise RemoveBgApiError(f"API error: {response.status_code} {response.reason} - {response.text}")
