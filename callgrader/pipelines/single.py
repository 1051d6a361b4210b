from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from callgrader.core.models import UploadResult
from callgrader.services.analysis_client import (
    AnalysisClient,
    AnalysisServiceError,
    AnalysisTransportError,
)


STATUS_NO_FILE = "Pick an audio file first."
STATUS_UPLOADING = "Uploading / transcribing... (big files take a bit)"
STATUS_DONE = "Done."
STATUS_NETWORK_ERROR = "Upload failed (network error). Is the backend running?"


@dataclass(frozen=True)
class SingleOutcome:
    status: str
    result: Optional[UploadResult] = None
    raw_error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.result is not None


def upload_single(
    client: AnalysisClient, path: Optional[Path], rep_name: str, call_type: str
) -> SingleOutcome:
    if path is None or not str(path):
        return SingleOutcome(status=STATUS_NO_FILE)

    try:
        result = client.upload_call(Path(path), rep_name, call_type)
    except AnalysisServiceError as exc:
        return SingleOutcome(
            status=f"Upload failed: {exc.status_code} {exc.reason}".rstrip(),
            raw_error=exc.body,
        )
    except AnalysisTransportError as exc:
        return SingleOutcome(status=STATUS_NETWORK_ERROR, raw_error=str(exc))

    return SingleOutcome(status=STATUS_DONE, result=result.with_filename(Path(path).name))
