"""Tests for callgrader.app.main: CLI single and batch modes."""
import csv
from pathlib import Path
from unittest.mock import patch

import pytest

from callgrader.app.main import main
from callgrader.core.config import API_BASE_ENV
from callgrader.core.models import UploadResult
from callgrader.services.analysis_client import AnalysisServiceError
from callgrader.services.export import HEADERS
from tests.payloads import result_payload


class _FakeClient:
    def __init__(self, failures=()):
        self.failures = set(failures)

    def upload_call(self, file_path, rep_name, call_type):
        name = Path(file_path).name
        if name in self.failures:
            raise AnalysisServiceError(500, "Internal Server Error", "traceback...")
        return UploadResult.from_dict(result_payload(call_id=f"id-{name}", rep_name=rep_name))

    def pdf_url(self, call_id):
        return f"http://x/calls/{call_id}/pdf"


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    monkeypatch.delenv(API_BASE_ENV, raising=False)
    config = tmp_path / "config.yaml"
    config.write_text(
        f"reports_dir: {tmp_path / 'reports'}\n"
        f"input_dir: {tmp_path / 'incoming'}\n"
        "logging:\n"
        "  enabled: false\n",
        encoding="utf-8",
    )
    (tmp_path / "incoming").mkdir()
    return tmp_path


def _audio(directory, name):
    path = directory / name
    path.write_bytes(b"fake")
    return path


class TestBatchMode:

    def test_batch_exports_csv_and_reports_failures(self, workspace, capsys):
        a = _audio(workspace, "Jane Doe.mp3")
        b = _audio(workspace, "John Roe.mp3")
        with patch("callgrader.app.main.AnalysisClient", return_value=_FakeClient({"John Roe.mp3"})):
            code = main(["--mode", "batch", "--config", str(workspace / "config.yaml"), str(a), str(b)])

        out, err = capsys.readouterr()
        assert code == 2
        assert "[0/2] processing Jane Doe.mp3" in out
        assert "[2/2] done" in out
        assert "FAILED John Roe.mp3: 500 Internal Server Error" in err

        reports = list((workspace / "reports").glob("call_grades_*.csv"))
        assert len(reports) == 1
        with reports[0].open(encoding="utf-8", newline="") as f:
            rows = list(csv.reader(f))
        assert rows[0] == HEADERS
        assert [r[0] for r in rows[1:]] == ["Jane Doe.mp3"]
        assert rows[1][1] == "Jane Doe"

    def test_batch_reads_input_dir(self, workspace, capsys):
        _audio(workspace / "incoming", "b.mp3")
        _audio(workspace / "incoming", "a.mp3")
        with patch("callgrader.app.main.AnalysisClient", return_value=_FakeClient()):
            code = main(["--mode", "batch", "--no-export", "--config", str(workspace / "config.yaml")])

        out, _ = capsys.readouterr()
        assert code == 0
        assert out.index("processing a.mp3") < out.index("processing b.mp3")
        assert not (workspace / "reports").exists()

    def test_batch_without_files(self, workspace, capsys):
        with patch("callgrader.app.main.AnalysisClient", return_value=_FakeClient()):
            code = main(["--mode", "batch", "--config", str(workspace / "config.yaml")])
        assert code == 1
        assert "No audio files" in capsys.readouterr().out


class TestSingleMode:

    def test_single_prints_details_and_opens_pdf(self, workspace, capsys):
        a = _audio(workspace, "Jane Doe.mp3")
        with patch("callgrader.app.main.AnalysisClient", return_value=_FakeClient()), \
                patch("callgrader.app.main.webbrowser.open") as mock_open:
            code = main([
                "--mode", "single", "--details", "--pdf",
                "--config", str(workspace / "config.yaml"), str(a),
            ])

        out, _ = capsys.readouterr()
        assert code == 0
        assert "Done." in out
        assert "What helped:" in out
        mock_open.assert_called_once_with("http://x/calls/id-Jane Doe.mp3/pdf")

    def test_single_failure_prints_raw_error(self, workspace, capsys):
        a = _audio(workspace, "bad.mp3")
        with patch("callgrader.app.main.AnalysisClient", return_value=_FakeClient({"bad.mp3"})):
            code = main(["--mode", "single", "--config", str(workspace / "config.yaml"), str(a)])

        out, err = capsys.readouterr()
        assert code == 1
        assert "Upload failed: 500 Internal Server Error" in out
        assert "traceback..." in err

    def test_single_without_file(self, workspace, capsys):
        with patch("callgrader.app.main.AnalysisClient", return_value=_FakeClient()):
            code = main(["--mode", "single", "--config", str(workspace / "config.yaml")])
        assert code == 1
        assert "Pick an audio file first." in capsys.readouterr().out
