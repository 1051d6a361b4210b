from __future__ import annotations

import os
import threading
import webbrowser
from pathlib import Path
from queue import Queue
from typing import Dict, List

import tkinter as tk
from tkinter import filedialog, ttk, messagebox

from callgrader.core.config import AppConfig
from callgrader.core.models import BatchSnapshot, JobState, RunState, UploadResult
from callgrader.pipelines.batch import AUDIO_SUFFIXES, BatchOrchestrator, jobs_from_paths
from callgrader.pipelines.single import STATUS_UPLOADING, SingleOutcome, upload_single
from callgrader.services.analysis_client import AnalysisClient
from callgrader.services.export import default_report_path, export_to_csv, export_to_excel
from callgrader.app.report import render_detail, score_band


JOB_STATUS_TEXT = {
    JobState.PENDING: "Pending",
    JobState.IN_FLIGHT: "Processing",
    JobState.SUCCEEDED: "Done",
    JobState.FAILED: "Failed",
}


class GuiApp(tk.Tk):
    def __init__(self, cfg: AppConfig, client: AnalysisClient) -> None:
        super().__init__()
        self.cfg = cfg
        self.client = client
        self.orchestrator = BatchOrchestrator(client)
        self.orchestrator.subscribe(lambda snap: self._queue.put(("batch", snap)))
        self.title("Sales Call Grader")
        self.geometry("1100x700")

        self._results: Dict[str, UploadResult] = {}
        self._pending_files: List[str] = []
        self._batch_files: List[str] = []
        self._queue: Queue = Queue()

        self._build_ui()
        self._poll_queue()

    def _build_ui(self) -> None:
        top = ttk.Frame(self)
        top.pack(fill=tk.X, padx=10, pady=8)

        self.btn_select = ttk.Button(top, text="Choose audio files", command=self._choose_files)
        self.btn_select.pack(side=tk.LEFT)

        ttk.Label(top, text="Rep:").pack(side=tk.LEFT, padx=(12, 2))
        self.rep_var = tk.StringVar()
        ttk.Entry(top, textvariable=self.rep_var, width=18).pack(side=tk.LEFT)

        ttk.Label(top, text="Call type:").pack(side=tk.LEFT, padx=(8, 2))
        self.call_type_var = tk.StringVar()
        ttk.Entry(top, textvariable=self.call_type_var, width=14).pack(side=tk.LEFT)

        self.btn_single = ttk.Button(top, text="Grade first file", command=self._start_single)
        self.btn_single.pack(side=tk.LEFT, padx=8)

        self.btn_start = ttk.Button(top, text="Process batch", command=self._start_processing)
        self.btn_start.pack(side=tk.LEFT)

        self.btn_export = ttk.Button(top, text="Export CSV", command=self._export)
        self.btn_export.pack(side=tk.LEFT, padx=8)

        self.btn_pdf = ttk.Button(top, text="Open PDF", command=self._open_pdf)
        self.btn_pdf.pack(side=tk.LEFT)

        self.status = ttk.Label(self, text="Ready")
        self.status.pack(fill=tk.X, padx=10)

        mid = ttk.Frame(self)
        mid.pack(fill=tk.BOTH, expand=True, padx=10, pady=8)

        columns = ("file", "status", "score", "rep", "note")
        self.tree = ttk.Treeview(mid, columns=columns, show="headings", height=12)
        self.tree.heading("file", text="File")
        self.tree.heading("status", text="Status")
        self.tree.heading("score", text="Score")
        self.tree.heading("rep", text="Rep")
        self.tree.heading("note", text="Note")
        self.tree.column("file", width=320)
        self.tree.column("status", width=110)
        self.tree.column("score", width=80, anchor=tk.CENTER)
        self.tree.column("rep", width=160)
        self.tree.column("note", width=320)
        self.tree.pack(side=tk.LEFT, fill=tk.BOTH, expand=True)
        self.tree.bind("<<TreeviewSelect>>", self._on_select)

        self.tree.tag_configure("good", background="#C6EFCE")
        self.tree.tag_configure("warn", background="#FFEB9C")
        self.tree.tag_configure("bad", background="#FFC7CE")

        scrollbar = ttk.Scrollbar(mid, orient=tk.VERTICAL, command=self.tree.yview)
        self.tree.configure(yscroll=scrollbar.set)
        scrollbar.pack(side=tk.RIGHT, fill=tk.Y)

        bottom = ttk.Frame(self)
        bottom.pack(fill=tk.BOTH, expand=True, padx=10, pady=8)

        left = ttk.Frame(bottom)
        left.pack(side=tk.LEFT, fill=tk.BOTH)
        ttk.Label(left, text="Summary").pack(anchor=tk.W)
        self.summary = tk.Text(left, height=10, width=36, wrap=tk.WORD)
        self.summary.pack(fill=tk.BOTH, expand=True)

        right = ttk.Frame(bottom)
        right.pack(side=tk.LEFT, fill=tk.BOTH, expand=True, padx=10)
        ttk.Label(right, text="Scorecard").pack(anchor=tk.W)
        self.details = tk.Text(right, height=10, wrap=tk.WORD)
        self.details.pack(fill=tk.BOTH, expand=True)

    def _choose_files(self) -> None:
        patterns = " ".join(f"*{s}" for s in sorted(AUDIO_SUFFIXES))
        paths = filedialog.askopenfilenames(
            title="Choose audio files",
            filetypes=[("Audio", patterns), ("All files", "*.*")],
        )
        if not paths:
            return

        self._pending_files = list(paths)
        for p in self._pending_files:
            self._upsert_row(Path(p).name, status="Pending")
        self.status.config(text=f"{len(paths)} files chosen. Grade one or process the batch.")

    def _set_busy(self, busy: bool) -> None:
        state = tk.DISABLED if busy else tk.NORMAL
        self.btn_select.config(state=state)
        self.btn_single.config(state=state)
        self.btn_start.config(state=state)

    def _start_single(self) -> None:
        path = Path(self._pending_files[0]) if self._pending_files else None
        self.status.config(text=STATUS_UPLOADING if path else "")
        self._set_busy(True)
        rep, call_type = self.rep_var.get().strip(), self.call_type_var.get().strip()

        def work() -> None:
            self._queue.put(("single", upload_single(self.client, path, rep, call_type)))

        threading.Thread(target=work, daemon=True).start()

    def _start_processing(self) -> None:
        if not self._pending_files:
            messagebox.showinfo("Batch", "No files chosen.")
            return
        jobs = jobs_from_paths(
            [Path(p) for p in self._pending_files],
            self.rep_var.get().strip(),
            self.call_type_var.get().strip(),
        )
        self._batch_files = [job.filename for job in jobs]
        self._set_busy(True)
        threading.Thread(target=self.orchestrator.run, args=(jobs,), daemon=True).start()

    def _apply_single(self, outcome: SingleOutcome) -> None:
        self._set_busy(False)
        self.status.config(text=outcome.status)
        if outcome.ok:
            self._show_result(outcome.result)
            self._pending_files = self._pending_files[1:]
        elif outcome.raw_error:
            self.details.delete("1.0", tk.END)
            self.details.insert(tk.END, outcome.raw_error)

    def _apply_batch(self, snap: BatchSnapshot) -> None:
        for name, job_state in zip(self._batch_files, snap.job_states):
            self._upsert_row(name, status=JOB_STATUS_TEXT[job_state])
        for err in snap.errors:
            self._upsert_row(err.filename, note=err.error)
        for r in snap.results:
            if self._results.get(r.display_name) is not r:
                self._show_result(r, select=False)

        if snap.current:
            self.status.config(text=f"Progress: {snap.completed}/{snap.total} - {snap.current}")
        else:
            self.status.config(text=f"Progress: {snap.completed}/{snap.total}")
        if snap.state is RunState.IDLE:
            self.status.config(
                text=f"Batch done: {len(snap.results)} graded, {len(snap.errors)} failed"
            )
            self._set_busy(False)
            self._pending_files = []

    def _poll_queue(self) -> None:
        while not self._queue.empty():
            kind, payload = self._queue.get()
            if kind == "single":
                self._apply_single(payload)
            elif kind == "batch":
                self._apply_batch(payload)

        self.after(200, self._poll_queue)

    def _show_result(self, r: UploadResult, select: bool = True) -> None:
        self._results[r.display_name] = r
        self._upsert_row(
            r.display_name,
            status="Done",
            score=str(r.scores.score),
            rep=r.rep_name,
            note=r.diarization_error or "",
            tag=score_band(r.scores.score),
        )
        self._update_summary()
        if select:
            self._render_details(r)

    def _render_details(self, r: UploadResult) -> None:
        self.details.delete("1.0", tk.END)
        self.details.insert(tk.END, render_detail(r))
        self.details.insert(tk.END, "\n\nTranscript:\n")
        self.details.insert(tk.END, r.transcript or "(empty transcript)")

    def _selected_result(self) -> UploadResult | None:
        selected = self.tree.selection()
        if not selected:
            return None
        key = self.tree.item(selected[0], "values")[0]
        return self._results.get(key)

    def _on_select(self, _event) -> None:
        r = self._selected_result()
        if r:
            self._render_details(r)

    def _open_pdf(self) -> None:
        r = self._selected_result()
        if not r:
            messagebox.showinfo("PDF", "Select a graded call first.")
            return
        webbrowser.open(self.client.pdf_url(r.call_id))

    def _export(self) -> None:
        if not self._results:
            messagebox.showinfo("Export", "No results to export.")
            return
        rows = list(self._results.values())
        report_path = default_report_path(self.cfg.reports_dir)
        export_to_csv(rows, report_path)
        if self.cfg.use_excel_export:
            export_to_excel(rows, default_report_path(self.cfg.reports_dir, suffix=".xlsx"))
        messagebox.showinfo("Export", f"Saved: {report_path}")
        if hasattr(os, "startfile"):
            os.startfile(str(self.cfg.reports_dir.resolve()))

    def _upsert_row(
        self,
        filename: str,
        status: str | None = None,
        score: str | None = None,
        rep: str | None = None,
        note: str | None = None,
        tag: str | None = None,
    ) -> None:
        for item in self.tree.get_children():
            values = self.tree.item(item, "values")
            if values and values[0] == filename:
                new_values = (
                    filename,
                    status or values[1],
                    score or values[2],
                    rep or values[3],
                    note if note is not None else values[4],
                )
                if tag:
                    self.tree.item(item, values=new_values, tags=(tag,))
                else:
                    self.tree.item(item, values=new_values)
                return

        values = (filename, status or "", score or "", rep or "", note or "")
        if tag:
            self.tree.insert("", tk.END, values=values, tags=(tag,))
        else:
            self.tree.insert("", tk.END, values=values)

    def _update_summary(self) -> None:
        if not self._results:
            return
        scores = [r.scores.score for r in self._results.values()]
        avg = sum(scores) / len(scores)
        failing = sum(1 for s in scores if score_band(s) == "bad")
        self.summary.delete("1.0", tk.END)
        self.summary.insert(tk.END, f"Calls graded: {len(scores)}\n")
        self.summary.insert(tk.END, f"Average score: {avg:.1f}\n")
        self.summary.insert(tk.END, f"Below 60: {failing}\n")


def run_gui(cfg: AppConfig, client: AnalysisClient) -> None:
    app = GuiApp(cfg, client)
    app.mainloop()
