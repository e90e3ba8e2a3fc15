"""
Progress Reporting and Statistics Module

This module handles real-time progress reporting during discovery and
retrieval, and generation of the final run report.
"""

import time
import json
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional
from tqdm import tqdm

from models import RunSummary


class NullReporter:
    """Accepts every progress event and does nothing with it"""

    def discovery_started(self, document_id: str):
        pass

    def manifest_found(self, count: int):
        pass

    def batch_query(self, position: int, total: int, page_id: str):
        pass

    def urls_resolved(self, resolved: int, total: int, queries: int):
        pass

    def retrieval_started(self, total: int):
        pass

    def job_started(self, index: int, total: int, filename: str):
        pass

    def job_finished(self, filename: str, success: bool, error: Optional[str] = None):
        pass

    def run_aborted(self, stage: str, error: Exception):
        pass

    def summary(self, summary: RunSummary):
        pass


class ProgressReporter(NullReporter):
    """Prints progress to the console with a tqdm bar for retrieval"""

    def __init__(self, show_progress_bar: bool = True):
        self.show_progress_bar = show_progress_bar
        self.start_time = time.time()
        self.document_id: Optional[str] = None
        self.progress_bar: Optional[tqdm] = None

    def _emit(self, action: str, details: str = ""):
        """Display a timestamped status line"""
        timestamp = datetime.now().strftime("%H:%M:%S")

        status_msg = f"[{timestamp}] {action}"
        if details:
            status_msg += f" - {details}"
        tqdm.write(status_msg)

    def discovery_started(self, document_id: str):
        self.document_id = document_id
        self._emit("discovery", f"Fetching page links for {document_id}")

    def manifest_found(self, count: int):
        self._emit("manifest", f"Found a manifest for {count} pages")

    def batch_query(self, position: int, total: int, page_id: str):
        self._emit("batch", f"Fetching data for page {position}/{total} ({page_id})")

    def urls_resolved(self, resolved: int, total: int, queries: int):
        self._emit("resolved", f"Resolved URLs for {resolved} of {total} pages using {queries} requests")

    def retrieval_started(self, total: int):
        self._emit("retrieval", f"Downloading {total} files")
        if self.show_progress_bar and total:
            self.progress_bar = tqdm(total=total, desc="Downloading pages", unit="files", leave=True)

    def job_finished(self, filename: str, success: bool, error: Optional[str] = None):
        if not success:
            self._emit("failed", f"{filename}: {error}")
        if self.progress_bar is not None:
            self.progress_bar.update(1)

    def run_aborted(self, stage: str, error: Exception):
        self.close_progress_bar()
        self._emit("aborted", f"Stopped during {stage}: {error}")

    def summary(self, summary: RunSummary):
        self.close_progress_bar()
        tqdm.write(self.generate_report(summary))

    def close_progress_bar(self):
        if self.progress_bar is not None:
            self.progress_bar.close()
            self.progress_bar = None

    def generate_report(self, summary: RunSummary) -> str:
        """Generate the final run report"""
        report_lines = []
        report_lines.append("=" * 60)
        report_lines.append("BOOK PAGE DOWNLOADER - FINAL REPORT")
        report_lines.append("=" * 60)
        if self.document_id:
            report_lines.append(f"Document: {self.document_id}")
        report_lines.append(f"Completed at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        report_lines.append(f"Total duration: {(time.time() - self.start_time) / 60:.2f} minutes")
        report_lines.append("")
        report_lines.append(f"Pages in manifest: {summary.manifest_length}")
        report_lines.append(f"Files attempted: {summary.attempted}")
        report_lines.append(f"Files downloaded: {summary.succeeded}")
        report_lines.append(f"Files failed: {summary.failed_count}")

        if summary.unresolved:
            resolved = summary.manifest_length - summary.unresolved
            report_lines.append(
                f"WARNING: Could only resolve URLs for {resolved} of {summary.manifest_length} pages."
            )

        if summary.failed:
            report_lines.append("")
            report_lines.append(f"The following {summary.failed_count} files failed:")
            for filename in summary.failed:
                report_lines.append(f"  - {filename}")

        report_lines.append("=" * 60)
        return "\n".join(report_lines)

    def save_report(self, summary: RunSummary, path: str) -> Path:
        """Save the run summary as a JSON file"""
        report_data: Dict[str, Any] = {
            "timestamp": datetime.now().isoformat(),
            "document_id": self.document_id,
            "total_duration": time.time() - self.start_time,
            "manifest_length": summary.manifest_length,
            "unresolved": summary.unresolved,
            "attempted": summary.attempted,
            "succeeded": summary.succeeded,
            "failed": list(summary.failed),
        }

        report_path = Path(path)
        report_path.parent.mkdir(parents=True, exist_ok=True)
        with open(report_path, 'w', encoding='utf-8') as f:
            json.dump(report_data, f, indent=2, ensure_ascii=False)
        return report_path
