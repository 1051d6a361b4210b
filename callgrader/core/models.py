from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple


def _num(value: Any, default: float = 0.0) -> float:
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return value
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _opt_num(value: Any) -> Optional[float]:
    if value is None:
        return None
    return _num(value)


def _opt_bool(value: Any) -> Optional[bool]:
    if value is None:
        return None
    return bool(value)


def _strs(value: Any) -> Tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(str(v) for v in value)


def _timestamp(value: Any) -> float:
    seconds = _num(value)
    if not math.isfinite(seconds):
        return 0.0
    return max(0.0, seconds)


def _dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _items(value: Any) -> list:
    if not isinstance(value, (list, tuple)):
        return []
    return [v for v in value if isinstance(v, dict)]


@dataclass(frozen=True)
class Intro:
    status: str
    components_found: Dict[str, bool] = field(default_factory=dict)
    missing: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Intro":
        components = {str(k): bool(v) for k, v in _dict(raw.get("components_found")).items()}
        return cls(
            status=str(raw.get("status") or "none"),
            components_found=components,
            missing=_strs(raw.get("missing")),
        )


@dataclass(frozen=True)
class SpeechPace:
    score: float
    words_per_sec: float
    label: str


@dataclass(frozen=True)
class WordSignal:
    """Sub-score backed by a list of detected words (enthusiasm, confidence, hedging)."""

    score: float
    words_found: Tuple[str, ...]
    count: int


@dataclass(frozen=True)
class Engagement:
    score: float
    phrases_found: Tuple[str, ...]
    questions: int


@dataclass(frozen=True)
class Variation:
    score: float
    std_dev: float


def _word_signal(raw: Dict[str, Any]) -> WordSignal:
    return WordSignal(
        score=_num(raw.get("score")),
        words_found=_strs(raw.get("words_found")),
        count=int(_num(raw.get("count"))),
    )


@dataclass(frozen=True)
class Energy:
    overall: float
    label: str
    speech_pace: SpeechPace
    enthusiasm: WordSignal
    confidence: WordSignal
    engagement: Engagement
    hedge_penalty: WordSignal
    variation: Variation
    # Independent of UploadResult.warmth; neither is derived from the other.
    warmth_score: Optional[float] = None

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Energy":
        pace = _dict(raw.get("speech_pace"))
        engagement = _dict(raw.get("engagement"))
        variation = _dict(raw.get("variation"))
        return cls(
            overall=_num(raw.get("overall")),
            label=str(raw.get("label") or ""),
            speech_pace=SpeechPace(
                score=_num(pace.get("score")),
                words_per_sec=_num(pace.get("words_per_sec")),
                label=str(pace.get("label") or ""),
            ),
            enthusiasm=_word_signal(_dict(raw.get("enthusiasm"))),
            confidence=_word_signal(_dict(raw.get("confidence"))),
            engagement=Engagement(
                score=_num(engagement.get("score")),
                phrases_found=_strs(engagement.get("phrases_found")),
                questions=int(_num(engagement.get("questions"))),
            ),
            hedge_penalty=_word_signal(_dict(raw.get("hedge_penalty"))),
            variation=Variation(
                score=_num(variation.get("score")),
                std_dev=_num(variation.get("std_dev")),
            ),
            warmth_score=_opt_num(raw.get("warmth_score")),
        )


@dataclass(frozen=True)
class Pauses:
    total_pauses: int
    total_pause_time: float
    long_pauses: int
    avg_pause: float

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Pauses":
        return cls(
            total_pauses=int(_num(raw.get("total_pauses"))),
            total_pause_time=_num(raw.get("total_pause_time")),
            long_pauses=int(_num(raw.get("long_pauses"))),
            avg_pause=_num(raw.get("avg_pause")),
        )


@dataclass(frozen=True)
class SimpleEvidence:
    timestamp: float
    speaker: str
    text: str

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "SimpleEvidence":
        return cls(
            timestamp=_timestamp(raw.get("timestamp")),
            speaker=str(raw.get("speaker") or ""),
            text=str(raw.get("text") or ""),
        )


@dataclass(frozen=True)
class IntroEvidence:
    timestamp: float
    speaker: str
    component: str
    text: str

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "IntroEvidence":
        return cls(
            timestamp=_timestamp(raw.get("timestamp")),
            speaker=str(raw.get("speaker") or ""),
            component=str(raw.get("component") or ""),
            text=str(raw.get("text") or ""),
        )


@dataclass(frozen=True)
class PhraseEvidence:
    timestamp: float
    speaker: str
    phrase: str
    text: str

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "PhraseEvidence":
        return cls(
            timestamp=_timestamp(raw.get("timestamp")),
            speaker=str(raw.get("speaker") or ""),
            phrase=str(raw.get("phrase") or ""),
            text=str(raw.get("text") or ""),
        )


@dataclass(frozen=True)
class FillerEvidence:
    timestamp: float
    speaker: str
    filler: str
    text: str

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "FillerEvidence":
        return cls(
            timestamp=_timestamp(raw.get("timestamp")),
            speaker=str(raw.get("speaker") or ""),
            filler=str(raw.get("filler") or ""),
            text=str(raw.get("text") or ""),
        )


@dataclass(frozen=True)
class BenefitEvidence:
    timestamp: float
    speaker: str
    term: str
    text: str

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "BenefitEvidence":
        return cls(
            timestamp=_timestamp(raw.get("timestamp")),
            speaker=str(raw.get("speaker") or ""),
            term=str(raw.get("term") or ""),
            text=str(raw.get("text") or ""),
        )


@dataclass(frozen=True)
class PauseEvidence:
    timestamp: float
    duration: float
    before_speaker: str = ""
    after_speaker: str = ""
    before_text: str = ""
    after_text: str = ""

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "PauseEvidence":
        return cls(
            timestamp=_timestamp(raw.get("timestamp")),
            duration=_num(raw.get("duration")),
            before_speaker=str(raw.get("before_speaker") or ""),
            after_speaker=str(raw.get("after_speaker") or ""),
            before_text=str(raw.get("before_text") or ""),
            after_text=str(raw.get("after_text") or ""),
        )


@dataclass(frozen=True)
class ObjectionResponse:
    objection_timestamp: float
    objection_phrase: str
    objection_text: str
    response_timestamp: float
    response_phrase: str
    response_text: str

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "ObjectionResponse":
        return cls(
            objection_timestamp=_timestamp(raw.get("objection_timestamp")),
            objection_phrase=str(raw.get("objection_phrase") or ""),
            objection_text=str(raw.get("objection_text") or ""),
            response_timestamp=_timestamp(raw.get("response_timestamp")),
            response_phrase=str(raw.get("response_phrase") or ""),
            response_text=str(raw.get("response_text") or ""),
        )


@dataclass(frozen=True)
class EvidenceBag:
    soa: Tuple[SimpleEvidence, ...] = ()
    intro: Tuple[IntroEvidence, ...] = ()
    healthcare_decisions: Tuple[SimpleEvidence, ...] = ()
    referral: Tuple[SimpleEvidence, ...] = ()
    review: Tuple[SimpleEvidence, ...] = ()
    fillers: Tuple[FillerEvidence, ...] = ()
    tie_downs: Tuple[PhraseEvidence, ...] = ()
    objections: Tuple[PhraseEvidence, ...] = ()
    rebuttals: Tuple[PhraseEvidence, ...] = ()
    objection_responses: Tuple[ObjectionResponse, ...] = ()
    benefits: Tuple[BenefitEvidence, ...] = ()
    pauses: Tuple[PauseEvidence, ...] = ()

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "EvidenceBag":
        def parse(key: str, kind) -> tuple:
            return tuple(kind.from_dict(item) for item in _items(raw.get(key)))

        return cls(
            soa=parse("soa", SimpleEvidence),
            intro=parse("intro", IntroEvidence),
            healthcare_decisions=parse("healthcare_decisions", SimpleEvidence),
            referral=parse("referral", SimpleEvidence),
            review=parse("review", SimpleEvidence),
            fillers=parse("fillers", FillerEvidence),
            tie_downs=parse("tie_downs", PhraseEvidence),
            objections=parse("objections", PhraseEvidence),
            rebuttals=parse("rebuttals", PhraseEvidence),
            objection_responses=parse("objection_responses", ObjectionResponse),
            benefits=parse("benefits", BenefitEvidence),
            pauses=parse("pauses", PauseEvidence),
        )


@dataclass(frozen=True)
class Scores:
    score: float
    soa_mentioned: bool = False
    benefits_status: str = "none"
    benefits_mentioned: bool = False
    benefits_reviewed: bool = False
    benefit_terms_found: Tuple[str, ...] = ()
    benefit_terms_missing: Tuple[str, ...] = ()
    intro: Optional[Intro] = None
    healthcare_decisions_asked: Optional[bool] = None
    referral_asked: Optional[bool] = None
    review_requested: Optional[bool] = None
    word_count: int = 0
    questions: int = 0
    tie_downs: int = 0
    filler_total: int = 0
    top_fillers: Tuple[Tuple[str, int], ...] = ()
    objection_hits: int = 0
    rebuttal_hits: int = 0
    objections_handled: Optional[int] = None
    objections_missed: Optional[int] = None
    avg_sentence_words: float = 0.0
    exclaims: int = 0
    energy: Optional[Energy] = None
    pauses: Optional[Pauses] = None
    evidence: EvidenceBag = field(default_factory=EvidenceBag)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Scores":
        intro = raw.get("intro")
        energy = raw.get("energy")
        pauses = raw.get("pauses")
        handled = raw.get("objections_handled")
        missed = raw.get("objections_missed")
        top_fillers = tuple(
            (str(pair[0]), int(_num(pair[1])))
            for pair in raw.get("top_fillers") or []
            if isinstance(pair, (list, tuple)) and len(pair) == 2
        )
        return cls(
            score=_num(raw.get("score")),
            soa_mentioned=bool(raw.get("soa_mentioned")),
            benefits_status=str(raw.get("benefits_status") or "none"),
            benefits_mentioned=bool(raw.get("benefits_mentioned")),
            benefits_reviewed=bool(raw.get("benefits_reviewed")),
            benefit_terms_found=_strs(raw.get("benefit_terms_found")),
            benefit_terms_missing=_strs(raw.get("benefit_terms_missing")),
            intro=Intro.from_dict(intro) if isinstance(intro, dict) else None,
            healthcare_decisions_asked=_opt_bool(raw.get("healthcare_decisions_asked")),
            referral_asked=_opt_bool(raw.get("referral_asked")),
            review_requested=_opt_bool(raw.get("review_requested")),
            word_count=int(_num(raw.get("word_count"))),
            questions=int(_num(raw.get("questions"))),
            tie_downs=int(_num(raw.get("tie_downs"))),
            filler_total=int(_num(raw.get("filler_total"))),
            top_fillers=top_fillers,
            objection_hits=int(_num(raw.get("objection_hits"))),
            rebuttal_hits=int(_num(raw.get("rebuttal_hits"))),
            objections_handled=None if handled is None else int(_num(handled)),
            objections_missed=None if missed is None else int(_num(missed)),
            avg_sentence_words=_num(raw.get("avg_sentence_words")),
            exclaims=int(_num(raw.get("exclaims"))),
            energy=Energy.from_dict(energy) if isinstance(energy, dict) else None,
            pauses=Pauses.from_dict(pauses) if isinstance(pauses, dict) else None,
            evidence=EvidenceBag.from_dict(_dict(raw.get("evidence"))),
        )


@dataclass(frozen=True)
class TalkRatio:
    total_seconds: float
    speaker_seconds: Dict[str, float]
    agent_speaker: str
    agent_seconds: float
    customer_seconds: float
    agent_pct: float
    customer_pct: float

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "TalkRatio":
        return cls(
            total_seconds=_num(raw.get("total_seconds")),
            speaker_seconds={str(k): _num(v) for k, v in _dict(raw.get("speaker_seconds")).items()},
            agent_speaker=str(raw.get("agent_speaker") or ""),
            agent_seconds=_num(raw.get("agent_seconds")),
            customer_seconds=_num(raw.get("customer_seconds")),
            agent_pct=_num(raw.get("agent_pct")),
            customer_pct=_num(raw.get("customer_pct")),
        )


@dataclass(frozen=True)
class VoiceTone:
    pitch_variation: float
    label: str


@dataclass(frozen=True)
class Warmth:
    score: float
    mirroring: float
    name_usage: int
    empathy_phrases: int
    interruptions: int
    label: str

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Warmth":
        return cls(
            score=_num(raw.get("score")),
            mirroring=_num(raw.get("mirroring")),
            name_usage=int(_num(raw.get("name_usage"))),
            empathy_phrases=int(_num(raw.get("empathy_phrases"))),
            interruptions=int(_num(raw.get("interruptions"))),
            label=str(raw.get("label") or ""),
        )


@dataclass(frozen=True)
class UploadResult:
    call_id: str
    rep_name: str
    call_type: str
    status: str
    transcript: str
    scores: Scores
    diarization_enabled: bool = False
    diarization_error: Optional[str] = None
    talk_ratio: Optional[TalkRatio] = None
    talk_coaching: Tuple[str, ...] = ()
    filename: Optional[str] = None
    voice_tone: Optional[VoiceTone] = None
    warmth: Optional[Warmth] = None

    @property
    def display_name(self) -> str:
        return self.filename or self.call_id

    def with_filename(self, filename: str) -> "UploadResult":
        return replace(self, filename=filename)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "UploadResult":
        talk_ratio = raw.get("talk_ratio")
        voice_tone = raw.get("voice_tone")
        warmth = raw.get("warmth")
        diarization_error = raw.get("diarization_error")
        return cls(
            call_id=str(raw.get("call_id") or ""),
            rep_name=str(raw.get("rep_name") or ""),
            call_type=str(raw.get("call_type") or ""),
            status=str(raw.get("status") or ""),
            transcript=str(raw.get("transcript") or ""),
            scores=Scores.from_dict(_dict(raw.get("scores"))),
            diarization_enabled=bool(raw.get("diarization_enabled")),
            diarization_error=None if diarization_error is None else str(diarization_error),
            talk_ratio=TalkRatio.from_dict(talk_ratio) if isinstance(talk_ratio, dict) else None,
            talk_coaching=_strs(raw.get("talk_coaching")),
            filename=raw.get("filename") or None,
            voice_tone=(
                VoiceTone(
                    pitch_variation=_num(voice_tone.get("pitch_variation")),
                    label=str(voice_tone.get("label") or ""),
                )
                if isinstance(voice_tone, dict)
                else None
            ),
            warmth=Warmth.from_dict(warmth) if isinstance(warmth, dict) else None,
        )


class FactorSign(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"


@dataclass(frozen=True)
class Factor:
    label: str
    impact: int
    sign: FactorSign


@dataclass(frozen=True)
class Attribution:
    top: Tuple[Factor, ...]
    bottom: Tuple[Factor, ...]


@dataclass(frozen=True)
class TimelineEvent:
    time: float
    type: str
    detail: str


@dataclass(frozen=True)
class BatchJob:
    file: Path
    rep_name: str
    call_type: str

    @property
    def filename(self) -> str:
        return Path(self.file).name


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class JobState(str, Enum):
    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class BatchError:
    filename: str
    error: str


@dataclass(frozen=True)
class BatchSnapshot:
    state: RunState
    total: int
    completed: int
    current: str
    results: Tuple[UploadResult, ...]
    errors: Tuple[BatchError, ...]
    job_states: Tuple[JobState, ...]
