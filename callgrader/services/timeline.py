from __future__ import annotations

from typing import List

from callgrader.core.models import EvidenceBag, TimelineEvent


EMPTY_TIMELINE_LABEL = "No timestamped events found."


def _number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


def format_time(seconds: float) -> str:
    total = int(max(0.0, seconds))
    return f"{total // 60}:{total % 60:02d}"


def build_timeline(evidence: EvidenceBag | None) -> List[TimelineEvent]:
    """Merge every evidence category into one list ordered by call time.

    Events sharing a timestamp keep the category order below, then their
    order within the category.
    """
    if evidence is None:
        return []

    events: List[TimelineEvent] = []
    events += [TimelineEvent(e.timestamp, "SOA", e.text) for e in evidence.soa]
    events += [TimelineEvent(e.timestamp, f"Intro: {e.component}", e.text) for e in evidence.intro]
    events += [
        TimelineEvent(e.timestamp, "Healthcare Decisions", e.text)
        for e in evidence.healthcare_decisions
    ]
    events += [TimelineEvent(e.timestamp, "Referral Ask", e.text) for e in evidence.referral]
    events += [TimelineEvent(e.timestamp, "Review Request", e.text) for e in evidence.review]
    events += [
        TimelineEvent(e.timestamp, "Objection", f'"{e.phrase}" - {e.text}')
        for e in evidence.objections
    ]
    events += [
        TimelineEvent(e.timestamp, "Rebuttal", f'"{e.phrase}" - {e.text}')
        for e in evidence.rebuttals
    ]
    events += [TimelineEvent(e.timestamp, "Tie-down", f'"{e.phrase}"') for e in evidence.tie_downs]
    events += [TimelineEvent(e.timestamp, "Benefit", e.term) for e in evidence.benefits]
    events += [
        TimelineEvent(e.timestamp, "Pause", f"{_number(e.duration)}s pause")
        for e in evidence.pauses
    ]

    return sorted(events, key=lambda e: e.time)


def render_timeline(events: List[TimelineEvent]) -> List[str]:
    if not events:
        return [EMPTY_TIMELINE_LABEL]
    return [f"{format_time(e.time):>6}  [{e.type}] {e.detail}" for e in events]
