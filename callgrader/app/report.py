from __future__ import annotations

from typing import List

from callgrader.core.models import Factor, UploadResult
from callgrader.services.attribution import attribute
from callgrader.services.timeline import build_timeline, render_timeline


def score_band(score: float | None) -> str:
    if score is None:
        return "neutral"
    if score >= 80:
        return "good"
    if score >= 60:
        return "warn"
    return "bad"


def _factor_line(f: Factor) -> str:
    return f"  {f.impact:+d}  {f.label}"


def _yes_no(flag: bool | None, yes: str = "ASKED", no: str = "NOT ASKED") -> str:
    return yes if flag else no


def render_detail(r: UploadResult) -> str:
    s = r.scores
    lines: List[str] = []

    lines.append(f"Call: {r.display_name}")
    lines.append(f"Call ID: {r.call_id}  Rep: {r.rep_name or '-'}  Type: {r.call_type or '-'}  Status: {r.status}")
    lines.append(f"Score: {s.score} ({score_band(s.score)})")

    factors = attribute(s)
    lines.append("")
    lines.append("What helped:")
    lines.extend(_factor_line(f) for f in factors.top)
    if not factors.top:
        lines.append("  (nothing)")
    lines.append("What hurt:")
    lines.extend(_factor_line(f) for f in factors.bottom)
    if not factors.bottom:
        lines.append("  (nothing)")

    lines.append("")
    if r.diarization_enabled and r.talk_ratio is not None:
        tr = r.talk_ratio
        lines.append(
            f"Talk ratio: agent ({tr.agent_speaker}) {tr.agent_pct}% / customer {tr.customer_pct}%"
            f" over {tr.total_seconds}s"
        )
        for tip in r.talk_coaching:
            lines.append(f"  - {tip}")
    else:
        lines.append("Talk ratio: not available")
    if r.diarization_error:
        lines.append(f"Diarization error: {r.diarization_error}")

    if s.energy is not None:
        e = s.energy
        lines.append("")
        lines.append(f"Energy: {e.overall} ({e.label})")
        lines.append(f"  Speech pace: {e.speech_pace.score} ({e.speech_pace.words_per_sec} words/sec, {e.speech_pace.label})")
        lines.append(f"  Enthusiasm: {e.enthusiasm.score} {', '.join(e.enthusiasm.words_found[:5])}".rstrip())
        lines.append(f"  Confidence: {e.confidence.score} {', '.join(e.confidence.words_found[:5])}".rstrip())
        lines.append(f"  Engagement: {e.engagement.score} ({e.engagement.questions} questions asked)")
        lines.append(f"  Variation: {e.variation.score} (sentence length std dev {e.variation.std_dev})")
        if e.warmth_score is not None:
            lines.append(f"  Warmth: {e.warmth_score}")
        if e.hedge_penalty.count > 0:
            lines.append(
                f"  Hedge word penalty: -{e.hedge_penalty.score}"
                f" ({e.hedge_penalty.count}x: {', '.join(e.hedge_penalty.words_found[:8])})"
            )
    if s.pauses is not None and s.pauses.total_pauses > 0:
        p = s.pauses
        line = f"Pauses (5s+): {p.total_pauses} pauses, {p.total_pause_time}s total"
        if p.long_pauses > 0:
            line += f" ({p.long_pauses} long pauses 8s+)"
        lines.append(line)

    if r.voice_tone is not None:
        lines.append(f"Voice tone: {r.voice_tone.pitch_variation} ({r.voice_tone.label})")
    if r.warmth is not None:
        w = r.warmth
        lines.append(
            f"Warmth: {w.score} ({w.label}) mirroring {w.mirroring}, name usage {w.name_usage}x,"
            f" empathy phrases {w.empathy_phrases}x, interruptions {w.interruptions}x"
        )

    lines.append("")
    lines.append("Timeline:")
    lines.extend(render_timeline(build_timeline(s.evidence)))

    lines.append("")
    lines.append("Compliance:")
    lines.append(f"  Intro: {s.intro.status.upper() if s.intro else 'N/A'}")
    if s.intro and s.intro.missing:
        lines.append(f"    Missing: {', '.join(s.intro.missing)}")
    lines.append(f"  Healthcare decisions: {_yes_no(s.healthcare_decisions_asked)}")
    lines.append(f"  SOA: {_yes_no(s.soa_mentioned, 'MENTIONED', 'MISSING')}")
    lines.append(f"  Benefits review: {(s.benefits_status or 'none').upper()}")
    if s.benefit_terms_missing:
        lines.append(f"    Missing: {', '.join(s.benefit_terms_missing)}")
    lines.append(f"  Referral ask: {_yes_no(s.referral_asked)}")
    lines.append(f"  Review request: {_yes_no(s.review_requested)}")

    lines.append("")
    lines.append("Filler words:")
    if s.top_fillers:
        lines.extend(f"  {word}: {count}" for word, count in s.top_fillers)
    else:
        lines.append("  No fillers detected.")

    return "\n".join(lines)
