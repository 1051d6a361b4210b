from __future__ import annotations

from typing import List, Optional

from callgrader.core.models import Attribution, Factor, FactorSign, Scores


TOP_N = 3

QUESTION_POINTS, QUESTION_CAP = 3, 20
REBUTTAL_POINTS, REBUTTAL_CAP = 8, 16
TIE_DOWN_POINTS, TIE_DOWN_CAP = 2, 10
FILLER_POINTS, FILLER_CAP = 2, 20
MISSED_OBJECTION_POINTS, MISSED_OBJECTION_CAP = 5, 10

SOA_MENTIONED, SOA_MISSING = 8, -20
BENEFITS = {
    "full": ("Full Benefits Review", 8),
    "partial": ("Partial Benefits Review", -10),
}
NO_BENEFITS = ("No Benefits Review", -20)
INTRO = {
    "full": ("Complete Intro", 5),
    "partial": ("Incomplete Intro", -5),
}
MISSING_INTRO = ("Missing Intro", -10)

HEALTHCARE_DECISIONS_BONUS = 3
REFERRAL_BONUS = 3
REVIEW_BONUS = 2

RAMBLING_WORDS = 22
RAMBLING_PENALTY = -5
LONG_PAUSE_LIMIT = 2
LONG_PAUSE_PENALTY = -5


def _factor(label: str, impact: int) -> Factor:
    sign = FactorSign.POSITIVE if impact >= 0 else FactorSign.NEGATIVE
    return Factor(label=label, impact=impact, sign=sign)


def _capped(count: int, points: int, cap: int) -> int:
    return min(cap, max(0, count) * points)


def _counter_bonus(label: str, count: int, points: int, cap: int) -> Optional[Factor]:
    bonus = _capped(count, points, cap)
    if bonus <= 0:
        return None
    return _factor(f"{label} ({count})", bonus)


def _counter_penalty(label: str, count: int, points: int, cap: int) -> Optional[Factor]:
    penalty = _capped(count, points, cap)
    if penalty <= 0:
        return None
    return _factor(f"{label} ({count})", -penalty)


def rubric_factors(scores: Scores) -> List[Factor]:
    """Every factor the rubric emits for a scorecard, in rule-evaluation order."""
    candidates: List[Optional[Factor]] = [
        _counter_bonus("Discovery Questions", scores.questions, QUESTION_POINTS, QUESTION_CAP),
        _counter_bonus("Rebuttals", scores.rebuttal_hits, REBUTTAL_POINTS, REBUTTAL_CAP),
        _counter_bonus("Tie-downs", scores.tie_downs, TIE_DOWN_POINTS, TIE_DOWN_CAP),
    ]

    if scores.soa_mentioned:
        candidates.append(_factor("SOA Mentioned", SOA_MENTIONED))
    else:
        candidates.append(_factor("SOA Missing", SOA_MISSING))

    candidates.append(_factor(*BENEFITS.get(scores.benefits_status, NO_BENEFITS)))

    if scores.intro is not None:
        candidates.append(_factor(*INTRO.get(scores.intro.status, MISSING_INTRO)))

    if scores.healthcare_decisions_asked:
        candidates.append(_factor("Healthcare Decisions Asked", HEALTHCARE_DECISIONS_BONUS))
    if scores.referral_asked:
        candidates.append(_factor("Referral Ask", REFERRAL_BONUS))
    if scores.review_requested:
        candidates.append(_factor("Review Request", REVIEW_BONUS))

    candidates.append(
        _counter_penalty("Filler Words", scores.filler_total, FILLER_POINTS, FILLER_CAP)
    )

    if scores.avg_sentence_words > RAMBLING_WORDS:
        candidates.append(_factor("Rambling Sentences", RAMBLING_PENALTY))

    if scores.pauses is not None and scores.pauses.long_pauses > LONG_PAUSE_LIMIT:
        candidates.append(
            _factor(f"Long Pauses ({scores.pauses.long_pauses})", LONG_PAUSE_PENALTY)
        )

    if scores.objections_missed:
        candidates.append(
            _counter_penalty(
                "Missed Objections",
                scores.objections_missed,
                MISSED_OBJECTION_POINTS,
                MISSED_OBJECTION_CAP,
            )
        )

    return [f for f in candidates if f is not None]


def attribute(scores: Scores) -> Attribution:
    factors = rubric_factors(scores)
    # sorted() is stable, so equal impacts keep rule order.
    positive = sorted(
        (f for f in factors if f.sign is FactorSign.POSITIVE), key=lambda f: -f.impact
    )
    negative = sorted(
        (f for f in factors if f.sign is FactorSign.NEGATIVE), key=lambda f: f.impact
    )
    return Attribution(top=tuple(positive[:TOP_N]), bottom=tuple(negative[:TOP_N]))
