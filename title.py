"""
Title Extraction Module

Derives the filename prefix from the book's title as shown on its HTML page.
This is best effort: any failure falls back to a fixed default prefix.
"""

from typing import Optional
import logging
import re
import requests
from bs4 import BeautifulSoup

DEFAULT_PREFIX = "Book"
TITLE_SELECTOR = "h1.gb-volume-title"

logger = logging.getLogger(__name__)


def sanitize_title(title: str) -> str:
    """
    Turn a book title into a filename-safe prefix.

    Whitespace runs become a single hyphen and characters invalid in
    filenames are removed.
    """
    title = re.sub(r'\s+', '-', title.strip())
    return re.sub(r'[\\/:*?"<>|]', '', title)


def prefix_from_html(html: str, default: str = DEFAULT_PREFIX) -> str:
    """
    Extract the filename prefix from a book page's HTML.

    Args:
        html: Page markup
        default: Prefix used when no title can be found

    Returns:
        Sanitized title or the default prefix
    """
    soup = BeautifulSoup(html or "", 'html.parser')
    title_element = soup.select_one(TITLE_SELECTOR)

    if not title_element:
        logger.warning(f"Could not find book title element. Using default '{default}' prefix.")
        return default

    prefix = sanitize_title(title_element.get_text(" ", strip=True))
    if not prefix:
        logger.warning(f"Book title is empty after sanitizing. Using default '{default}' prefix.")
        return default
    return prefix


def fetch_filename_prefix(session: requests.Session, base_url: str, document_id: str,
                          timeout: Optional[float] = 30, default: str = DEFAULT_PREFIX) -> str:
    """
    Fetch the book's page and derive the filename prefix from its title.

    Network errors are logged and yield the default prefix; they never stop a run.
    """
    url = f"{base_url.rstrip('/')}/books"
    try:
        response = session.get(url, params={'id': document_id}, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        logger.warning(f"Could not fetch book page for title ({e}). Using default '{default}' prefix.")
        return default

    return prefix_from_html(response.text, default)
