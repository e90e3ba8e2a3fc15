"""
Sequential Retrieval Module

Executes retrieval jobs strictly in order, one at a time, with a fixed delay
after each. A failed page is recorded and the run moves on to the next one.
"""

from typing import Sequence
import logging
import time
import requests

from exceptions import RetrievalError
from models import RetrievalJob, RunSummary
from sequencer import TaskSequencer


class SequentialRetriever:
    """Runs retrieval jobs in manifest order and tallies the outcome"""

    def __init__(self, downloader, sequencer: TaskSequencer, reporter=None):
        """
        Args:
            downloader: Object with download(job) raising RetrievalError on failure
            sequencer: Sequencer applying the delay after every job
            reporter: Optional progress reporter
        """
        self.downloader = downloader
        self.sequencer = sequencer
        self.reporter = reporter
        self.logger = logging.getLogger(__name__)

    def run(self, jobs: Sequence[RetrievalJob]) -> RunSummary:
        """
        Retrieve every job, never stopping on a failed page.

        Returns:
            RunSummary whose succeeded plus failed count equals len(jobs)
        """
        summary = RunSummary()
        start_time = time.time()
        total = len(jobs)

        if self.reporter:
            self.reporter.retrieval_started(total)

        for index, job in enumerate(jobs, start=1):
            self.logger.info(f"Downloading {index}/{total}: {job.filename}")
            if self.reporter:
                self.reporter.job_started(index, total, job.filename)

            error = None
            try:
                self.sequencer.run(self.downloader.download, job)
            except RetrievalError as e:
                error = str(e)
            except requests.exceptions.RequestException as e:
                error = f"Network error: {e}"
            except OSError as e:
                error = f"Failed to save file: {e}"

            if error is None:
                summary.record_success()
            else:
                self.logger.error(f"Failed to download {job.filename}: {error}")
                summary.record_failure(job.filename)

            if self.reporter:
                self.reporter.job_finished(job.filename, error is None, error)

        summary.duration = time.time() - start_time
        self.logger.info(f"Retrieved {summary.succeeded} of {total} files")
        return summary
