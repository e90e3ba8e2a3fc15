"""
Data Models Module

This module contains the data structures shared by the discovery, job building
and retrieval stages: the append-only URL mapping, retrieval jobs, run states
and the final run summary.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Mapping, Optional


class RunState(Enum):
    """States of a single download run"""
    INIT = "init"
    DISCOVER_MANIFEST = "discover_manifest"
    RESOLVE_URLS = "resolve_urls"
    BUILD_JOBS = "build_jobs"
    RETRIEVE = "retrieve"
    SUMMARY = "summary"
    ABORTED = "aborted"


@dataclass(frozen=True)
class RetrievalJob:
    """A signed page URL paired with its destination filename"""
    url: str
    filename: str


class UrlMapping:
    """
    Append-only mapping from page identifier to signed URL.

    The first URL stored for an identifier is kept; later batches never
    overwrite it.
    """

    def __init__(self):
        self._urls: Dict[str, str] = {}

    def try_insert(self, page_id: str, url: str) -> bool:
        """Store url for page_id unless one is already present. Returns True if stored."""
        if page_id in self._urls:
            return False
        self._urls[page_id] = url
        return True

    def merge(self, batch: Mapping[str, str]) -> int:
        """Insert every pair of a batch, returning how many identifiers were new"""
        return sum(1 for page_id, url in batch.items() if self.try_insert(page_id, url))

    def get(self, page_id: str) -> Optional[str]:
        return self._urls.get(page_id)

    def __contains__(self, page_id: object) -> bool:
        return page_id in self._urls

    def __len__(self) -> int:
        return len(self._urls)

    def __iter__(self) -> Iterator[str]:
        return iter(self._urls)


@dataclass
class RunSummary:
    """Outcome of the retrieval stage of one run"""
    attempted: int = 0
    succeeded: int = 0
    failed: List[str] = field(default_factory=list)
    manifest_length: int = 0
    unresolved: int = 0
    duration: float = 0.0

    @property
    def failed_count(self) -> int:
        return len(self.failed)

    @property
    def complete(self) -> bool:
        """True when every manifest page was resolved and saved"""
        return not self.failed and self.unresolved == 0

    def record_success(self):
        self.attempted += 1
        self.succeeded += 1

    def record_failure(self, filename: str):
        self.attempted += 1
        self.failed.append(filename)
