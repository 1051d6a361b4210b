from __future__ import annotations

import argparse
import sys
import webbrowser
from pathlib import Path
from typing import List, Optional, Sequence

from callgrader.core.config import AppConfig, load_config
from callgrader.core.logging_setup import setup_logging
from callgrader.core.models import BatchSnapshot, UploadResult
from callgrader.pipelines.batch import BatchOrchestrator, collect_audio_files, jobs_from_paths
from callgrader.pipelines.single import STATUS_UPLOADING, upload_single
from callgrader.services.analysis_client import AnalysisClient
from callgrader.services.export import default_report_path, export_to_csv, export_to_excel
from callgrader.app.report import render_detail


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="callgrader", description="Sales call grader")
    parser.add_argument("--mode", choices=["single", "batch", "gui"], default="gui")
    parser.add_argument("--config", type=Path, default=Path("config.yaml"))
    parser.add_argument("files", nargs="*", type=Path, help="Audio files to grade")
    parser.add_argument("--rep-name", default="")
    parser.add_argument("--call-type", default="")
    parser.add_argument("--details", action="store_true", help="Print the full scorecard per call")
    parser.add_argument("--pdf", action="store_true", help="Open the PDF report after a single upload")
    parser.add_argument("--no-export", action="store_true", help="Skip the CSV export after a batch")
    return parser


def print_progress(snap: BatchSnapshot) -> None:
    if snap.current:
        print(f"[{snap.completed}/{snap.total}] processing {snap.current}")
    elif snap.completed:
        print(f"[{snap.completed}/{snap.total}] done")


def export_results(cfg: AppConfig, results: Sequence[UploadResult]) -> List[Path]:
    written = []
    csv_path = default_report_path(cfg.reports_dir)
    export_to_csv(results, csv_path)
    written.append(csv_path)
    if cfg.use_excel_export:
        xlsx_path = default_report_path(cfg.reports_dir, suffix=".xlsx")
        export_to_excel(results, xlsx_path)
        written.append(xlsx_path)
    return written


def run_single(cfg: AppConfig, client: AnalysisClient, args: argparse.Namespace) -> int:
    path = args.files[0] if args.files else None
    if path is not None:
        print(STATUS_UPLOADING)
    outcome = upload_single(client, path, args.rep_name, args.call_type)
    print(outcome.status)
    if not outcome.ok:
        if outcome.raw_error:
            print(outcome.raw_error, file=sys.stderr)
        return 1

    result = outcome.result
    print(render_detail(result) if args.details else f"{result.display_name}: {result.scores.score}")
    if args.pdf:
        webbrowser.open(client.pdf_url(result.call_id))
    return 0


def run_batch(cfg: AppConfig, client: AnalysisClient, args: argparse.Namespace) -> int:
    paths = list(args.files) or collect_audio_files(cfg.input_dir)
    jobs = jobs_from_paths(paths, args.rep_name, args.call_type)
    if not jobs:
        print(f"No audio files to process (looked in {cfg.input_dir}).")
        return 1

    orchestrator = BatchOrchestrator(client)
    orchestrator.subscribe(print_progress)
    final = orchestrator.run(jobs)

    for r in final.results:
        print(render_detail(r) + "\n" if args.details else f"{r.display_name}: {r.scores.score}")
    for err in final.errors:
        print(f"FAILED {err.filename}: {err.error}", file=sys.stderr)

    if final.results and not args.no_export:
        for report in export_results(cfg, final.results):
            print(f"Report: {report}")
    return 0 if not final.errors else 2


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    cfg = load_config(args.config)
    setup_logging(cfg.logging)
    client = AnalysisClient(cfg.api_base, timeout=cfg.request_timeout_sec)

    if args.mode == "single":
        return run_single(cfg, client, args)
    if args.mode == "batch":
        return run_batch(cfg, client, args)

    from callgrader.app.gui import run_gui

    run_gui(cfg, client)
    return 0


if __name__ == "__main__":
    sys.exit(main())
