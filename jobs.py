"""
Job Building Module

Turns the ordered page manifest and the resolved URL mapping into the ordered
list of retrieval jobs with zero-padded, lexically sortable filenames.
"""

from typing import List, Optional, Sequence, Tuple

from models import RetrievalJob, UrlMapping


def padding_width(page_count: int) -> int:
    """Number of digits needed to write the highest page number"""
    return len(str(max(page_count, 1)))


def build_jobs(manifest: Sequence[Optional[str]], url_mapping: UrlMapping, filename_prefix: str,
               extension: str = "png") -> Tuple[List[RetrievalJob], int]:
    """
    Build retrieval jobs in manifest order.

    Positions are numbered from 1 and padded to the digit count of the manifest
    length, so "002" sorts before "010" in a 150-page document. Positions whose
    identifier never resolved are skipped and counted.

    Args:
        manifest: Ordered page identifiers
        url_mapping: Resolved identifier to URL mapping
        filename_prefix: Prefix for every filename
        extension: File extension without the dot

    Returns:
        Tuple of (jobs, number of unresolved positions)
    """
    width = padding_width(len(manifest))
    jobs = []
    unresolved = 0

    for position, page_id in enumerate(manifest, start=1):
        url = url_mapping.get(page_id)
        if not url:
            unresolved += 1
            continue
        jobs.append(RetrievalJob(url=url, filename=f"{filename_prefix}-{position:0{width}d}.{extension}"))

    return jobs, unresolved
