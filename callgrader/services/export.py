from __future__ import annotations

import csv
from datetime import date
from pathlib import Path
from typing import Any, Iterable, List, Optional

from callgrader.core.models import UploadResult


HEADERS = [
    "Filename",
    "Rep Name",
    "Call Type",
    "Score",
    "SOA",
    "Benefits",
    "Intro",
    "Healthcare Decisions",
    "Referral Ask",
    "Review Request",
    "Questions",
    "Tie-downs",
    "Fillers",
    "Objections",
    "Rebuttals",
    "Energy",
    "Talk Ratio Agent %",
]

NOT_AVAILABLE = "N/A"


def _cell(value: Any) -> str:
    if value is None:
        return NOT_AVAILABLE
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def result_row(r: UploadResult) -> List[str]:
    s = r.scores
    energy: Optional[float] = s.energy.overall if s.energy is not None else None
    agent_pct: Optional[float] = r.talk_ratio.agent_pct if r.talk_ratio is not None else None
    return [
        _cell(r.display_name),
        _cell(r.rep_name),
        _cell(r.call_type),
        _cell(s.score),
        _cell(s.soa_mentioned),
        _cell(s.benefits_status),
        _cell(s.intro.status if s.intro is not None else None),
        _cell(bool(s.healthcare_decisions_asked)),
        _cell(bool(s.referral_asked)),
        _cell(bool(s.review_requested)),
        _cell(s.questions),
        _cell(s.tie_downs),
        _cell(s.filler_total),
        _cell(s.objection_hits),
        _cell(s.rebuttal_hits),
        _cell(energy),
        _cell(agent_pct),
    ]


def result_rows(results: Iterable[UploadResult]) -> List[List[str]]:
    return [result_row(r) for r in results]


def export_to_csv(results: Iterable[UploadResult], out_path: Path) -> None:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with out_path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f, delimiter=",")
        writer.writerow(HEADERS)
        writer.writerows(result_rows(results))


def export_to_excel(results: Iterable[UploadResult], out_path: Path) -> None:
    import openpyxl
    from openpyxl.styles import Font, PatternFill

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "call_grades"
    ws.append(HEADERS)
    for cell in ws[1]:
        cell.font = Font(bold=True)

    red = PatternFill(start_color="FFC7CE", end_color="FFC7CE", fill_type="solid")
    amber = PatternFill(start_color="FFEB9C", end_color="FFEB9C", fill_type="solid")
    green = PatternFill(start_color="C6EFCE", end_color="C6EFCE", fill_type="solid")

    score_col = HEADERS.index("Score") + 1
    for r in results:
        ws.append(result_row(r))
        score = r.scores.score
        cell = ws.cell(row=ws.max_row, column=score_col)
        cell.fill = green if score >= 80 else amber if score >= 60 else red

    out_path.parent.mkdir(parents=True, exist_ok=True)
    wb.save(out_path)


def default_report_path(reports_dir: Path, suffix: str = ".csv", today: date | None = None) -> Path:
    day = (today or date.today()).isoformat()
    return reports_dir / f"call_grades_{day}{suffix}"
