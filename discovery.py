"""
Page Discovery Module

This module talks to the provider's JSON endpoint to discover the ordered list
of page identifiers of a book and to resolve those identifiers to signed image
URLs. The provider answers every batch query with a neighbourhood of pages, so
the resolution loop skips identifiers an earlier batch already resolved.
"""

from typing import Any, Dict, List, Optional, Sequence
import logging
import requests

from exceptions import DiscoveryError
from models import UrlMapping
from sequencer import TaskSequencer

MANIFEST_PAGE_MARKER = "PP1"


class ProviderClient:
    """Shared request and JSON parsing logic for the provider endpoint"""

    stage = "discovery"

    def __init__(self, session: requests.Session, base_url: str, document_id: str,
                 timeout: Optional[float] = 30):
        self.session = session
        self.base_url = base_url.rstrip('/')
        self.document_id = document_id
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/books"

    def _fetch_pages(self, page_marker: str, document_id: Optional[str] = None) -> Any:
        """
        Query the endpoint for one page marker and return the 'page' list.

        Returns:
            The 'page' value of the JSON response, or None if absent

        Raises:
            DiscoveryError: On transport failure, non-OK status or invalid JSON
        """
        params = {'id': document_id or self.document_id, 'jscmd': 'click3', 'pg': page_marker}

        try:
            response = self.session.get(self.endpoint, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise DiscoveryError(self.stage, f"Request for page {page_marker} failed: {e}") from e

        if not response.ok:
            raise DiscoveryError(
                self.stage,
                f"Failed to fetch page data for {page_marker} (HTTP {response.status_code})"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise DiscoveryError(self.stage, f"Invalid JSON response for page {page_marker}: {e}") from e

        if not isinstance(data, dict):
            return None
        return data.get('page')


class ManifestResolver(ProviderClient):
    """Fetches the ordered list of page identifiers of a book"""

    stage = "manifest"

    def fetch_manifest(self, document_id: Optional[str] = None) -> List[Optional[str]]:
        """
        Fetch the page manifest with a single request.

        Args:
            document_id: Book to query; defaults to the resolver's document

        Returns:
            Page identifiers in reading order, duplicates preserved, None
            at positions whose entry carries no identifier

        Raises:
            DiscoveryError: If the request fails or no identifiers are returned
        """
        document_id = document_id or self.document_id
        self.logger.info(f"Fetching page manifest for document {document_id}")
        pages = self._fetch_pages(MANIFEST_PAGE_MARKER, document_id)

        if not isinstance(pages, list):
            raise DiscoveryError(self.stage, "Could not parse the list of page IDs from the API response")

        # an entry without a pid still occupies its position and stays unresolved
        manifest = [page.get('pid') or None if isinstance(page, dict) else None for page in pages]
        if not any(manifest):
            raise DiscoveryError(self.stage, "The API response did not list any page IDs")

        missing = manifest.count(None)
        if missing:
            self.logger.warning(f"{missing} manifest entries have no page ID and cannot be resolved")

        self.logger.info(f"Found a manifest for {len(manifest)} pages")
        return manifest


class UrlResolver(ProviderClient):
    """Resolves page identifiers to signed image URLs, one batch per request"""

    stage = "batch"

    def fetch_url_batch(self, page_id: str) -> Dict[str, str]:
        """
        Fetch the signed URLs the provider returns around one page.

        Entries missing an identifier or a source URL are ignored. An empty
        page list is a valid batch that resolves nothing.

        Args:
            page_id: Page identifier to query

        Returns:
            Mapping of page identifier to signed URL

        Raises:
            DiscoveryError: If the request fails or the page list is absent
        """
        pages = self._fetch_pages(page_id)

        if not isinstance(pages, list):
            raise DiscoveryError(self.stage, f"Invalid API response for PID {page_id}")

        batch = {}
        for page in pages:
            if not isinstance(page, dict):
                continue
            pid, src = page.get('pid'), page.get('src')
            if pid and src and pid not in batch:
                batch[pid] = src

        self.logger.debug(f"Batch for {page_id} resolved {len(batch)} pages")
        return batch


def resolve_urls(manifest: Sequence[Optional[str]], resolver: UrlResolver, sequencer: TaskSequencer,
                 url_mapping: Optional[UrlMapping] = None, reporter=None) -> UrlMapping:
    """
    Resolve signed URLs for every page in the manifest.

    Identifiers are visited in manifest order. An identifier already present in
    the mapping is skipped without a request; each issued request is followed
    by the sequencer's delay.

    Args:
        manifest: Ordered page identifiers
        resolver: UrlResolver issuing the batch requests
        sequencer: Sequencer applying the inter-request delay
        url_mapping: Mapping to fill (a new one is created when omitted)
        reporter: Optional progress reporter

    Returns:
        The filled UrlMapping

    Raises:
        DiscoveryError: As soon as any batch request fails
    """
    logger = logging.getLogger(__name__)
    url_mapping = url_mapping if url_mapping is not None else UrlMapping()
    total = len(manifest)
    queries = 0

    for position, page_id in enumerate(manifest, start=1):
        if page_id is None or page_id in url_mapping:
            continue

        if reporter:
            reporter.batch_query(position, total, page_id)
        # the delay also follows a failed query, before the error aborts the run
        batch = sequencer.run(resolver.fetch_url_batch, page_id)
        queries += 1

        added = url_mapping.merge(batch)
        logger.debug(f"Page {position}/{total} ({page_id}): {added} new URLs, {len(url_mapping)} resolved")

    logger.info(f"Resolved {len(url_mapping)} URLs for {total} pages with {queries} requests")
    if reporter:
        reporter.urls_resolved(sum(1 for page_id in manifest if page_id in url_mapping), total, queries)
    return url_mapping
