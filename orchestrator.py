"""
Download Orchestration Module

This module contains the Orchestrator class that runs one download: it
discovers the page manifest, resolves signed URLs, builds the retrieval jobs
and retrieves them, tracking the run state as it goes.
"""

from typing import Callable, List, Optional
import logging
import time
import requests

from config import DownloaderConfig
from discovery import ManifestResolver, UrlResolver, resolve_urls
from downloader import FileDownloader
from exceptions import DiscoveryError
from jobs import build_jobs
from models import RetrievalJob, RunState, RunSummary, UrlMapping
from reporter import NullReporter
from retriever import SequentialRetriever
from sequencer import TaskSequencer
from title import fetch_filename_prefix
from utils import create_session


class Orchestrator:
    """Sequences discovery, job building and retrieval for a single book"""

    def __init__(self, config: DownloaderConfig, session: Optional[requests.Session] = None,
                 reporter=None, downloader=None, sleep: Callable[[float], object] = time.sleep):
        """
        Args:
            config: Run configuration; validated here, before any request
            session: HTTP session shared by all requests (created when omitted)
            reporter: Progress reporter; events are dropped when omitted
            downloader: Retrieval collaborator (a FileDownloader when omitted)
            sleep: Function used for the inter-request delays

        Raises:
            PreconditionError: If the document id is missing
        """
        config.validate()

        self.config = config
        self.logger = logging.getLogger(__name__)
        self.session = session or create_session(config.provider.user_agent)
        self.reporter = reporter or NullReporter()
        self.downloader = downloader or FileDownloader(
            config.storage, self.session, config.provider.request_timeout
        )
        self._sleep = sleep
        self._reset()

    def _reset(self):
        """Clear the state of any previous run"""
        self.state = RunState.INIT
        self.history: List[RunState] = [RunState.INIT]
        self.manifest: List[Optional[str]] = []
        self.url_mapping = UrlMapping()
        self.jobs: List[RetrievalJob] = []
        self.unresolved = 0
        self.batch_queries = 0

    def _enter(self, state: RunState):
        self.logger.debug(f"State {self.state.name} -> {state.name}")
        self.state = state
        self.history.append(state)

    def _resolver_args(self):
        provider = self.config.provider
        return (self.session, provider.base_url, self.config.document_id, provider.request_timeout)

    def resolve_prefix(self) -> str:
        """Return the configured filename prefix, or derive one from the book title"""
        if self.config.filename_prefix:
            return self.config.filename_prefix
        provider = self.config.provider
        return fetch_filename_prefix(
            self.session, provider.base_url, self.config.document_id, provider.request_timeout
        )

    def run(self) -> RunSummary:
        """
        Run the whole pipeline.

        Discovery failures abort the run and are re-raised; retrieval failures
        are recorded in the returned summary.

        Returns:
            RunSummary of the retrieval stage

        Raises:
            DiscoveryError: If the manifest or any URL batch cannot be fetched
        """
        self._reset()
        document_id = self.config.document_id
        self.logger.info(f"Book ID: {document_id}")
        prefix = self.resolve_prefix()
        self.logger.info(f"Filename Prefix: \"{prefix}\"")

        try:
            self._enter(RunState.DISCOVER_MANIFEST)
            self.reporter.discovery_started(document_id)
            self.manifest = ManifestResolver(*self._resolver_args()).fetch_manifest()
            self.reporter.manifest_found(len(self.manifest))

            self._enter(RunState.RESOLVE_URLS)
            sequencer = TaskSequencer(self.config.discovery_delay_ms, sleep=self._sleep)
            resolve_urls(
                self.manifest, UrlResolver(*self._resolver_args()), sequencer,
                self.url_mapping, self.reporter
            )
            self.batch_queries = sequencer.calls
        except DiscoveryError as e:
            failed_state = self.state
            self._enter(RunState.ABORTED)
            self.logger.error(f"A critical error occurred during {failed_state.name} ({e.stage}): {e}")
            self.reporter.run_aborted(e.stage, e)
            raise

        self._enter(RunState.BUILD_JOBS)
        self.jobs, self.unresolved = build_jobs(
            self.manifest, self.url_mapping, prefix, self.config.storage.extension
        )
        if self.unresolved:
            self.logger.warning(
                f"Could only resolve URLs for {len(self.jobs)} of {len(self.manifest)} pages."
            )

        self._enter(RunState.RETRIEVE)
        retriever = SequentialRetriever(
            self.downloader, TaskSequencer(self.config.retrieval_delay_ms, sleep=self._sleep), self.reporter
        )
        summary = retriever.run(self.jobs)
        summary.manifest_length = len(self.manifest)
        summary.unresolved = self.unresolved

        self._enter(RunState.SUMMARY)
        self.logger.info(
            f"Process complete. Successfully downloaded {summary.succeeded} of {summary.attempted} files."
        )
        if summary.failed:
            self.logger.warning(f"The following {summary.failed_count} files failed:")
            for filename in summary.failed:
                self.logger.warning(f"  - {filename}")
        self.reporter.summary(summary)
        return summary
