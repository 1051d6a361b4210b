"""Shared test fixtures."""
import pytest

from callgrader.core.models import Scores, UploadResult
from tests.payloads import result_payload, scores_payload


@pytest.fixture
def make_scores():
    """Factory fixture: Scores built from a payload with overrides."""
    def _make(**overrides):
        return Scores.from_dict(scores_payload(**overrides))
    return _make


@pytest.fixture
def make_result():
    """Factory fixture: UploadResult built from a payload with overrides."""
    def _make(scores=None, **overrides):
        return UploadResult.from_dict(result_payload(scores=scores, **overrides))
    return _make
