from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import requests

from callgrader.core.models import UploadResult


logger = logging.getLogger(__name__)


class AnalysisError(Exception):
    """Any failure talking to the call analysis service."""


class AnalysisTransportError(AnalysisError):
    """The request never produced a response (connection refused, DNS, timeout)."""


class AnalysisServiceError(AnalysisError):
    """The service answered with a non-success status or an unreadable body."""

    def __init__(self, status_code: int, reason: str, body: str = "") -> None:
        self.status_code = status_code
        self.reason = reason
        self.body = body
        super().__init__(f"{status_code} {reason}".strip())


class AnalysisClient:
    def __init__(self, base_url: str, timeout: Optional[float] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def upload_call(self, file_path: Path, rep_name: str, call_type: str) -> UploadResult:
        url = f"{self.base_url}/calls"
        path = Path(file_path)
        logger.debug("POST %s file=%s rep=%s type=%s", url, path.name, rep_name, call_type)

        try:
            with path.open("rb") as audio_file:
                response = requests.post(
                    url,
                    files={"file": (path.name, audio_file)},
                    data={"rep_name": rep_name, "call_type": call_type},
                    timeout=self.timeout,
                )
        except (requests.exceptions.RequestException, OSError) as exc:
            logger.error("Upload of %s failed before a response: %s", path.name, exc)
            raise AnalysisTransportError(str(exc)) from exc

        if not response.ok:
            logger.error(
                "Upload of %s rejected: %s %s", path.name, response.status_code, response.reason
            )
            raise AnalysisServiceError(response.status_code, response.reason or "", response.text)

        try:
            payload = response.json()
        except ValueError as exc:
            raise AnalysisServiceError(
                response.status_code, "Invalid JSON response", response.text
            ) from exc
        if not isinstance(payload, dict):
            raise AnalysisServiceError(response.status_code, "Unexpected response shape", response.text)

        result = UploadResult.from_dict(payload)
        logger.info("Scored %s: call_id=%s score=%s", path.name, result.call_id, result.scores.score)
        return result

    def pdf_url(self, call_id: str) -> str:
        return f"{self.base_url}/calls/{call_id}/pdf"
