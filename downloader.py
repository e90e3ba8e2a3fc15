"""
File Download and Storage Module

This module fetches a page image from its signed URL and saves it under the
job's filename in the output directory. Every failure surfaces as a
RetrievalError so the caller can record it and move on.
"""

from typing import Optional
import os
import logging
from pathlib import Path
import requests

from config import StorageConfig
from exceptions import RetrievalError
from models import RetrievalJob


class FileDownloader:
    """Handles page image downloading and local storage"""

    def __init__(self, config: StorageConfig, session: Optional[requests.Session] = None,
                 timeout: Optional[float] = 30):
        self.config = config
        self.session = session or requests.Session()
        self.timeout = timeout
        self.output_dir = Path(config.output_dir)
        self.logger = logging.getLogger(__name__)

    def download(self, job: RetrievalJob) -> Path:
        """
        Download a single page image and save it.

        Args:
            job: URL and destination filename

        Returns:
            Path of the saved file

        Raises:
            RetrievalError: On network failure, non-OK status, empty payload or save failure
        """
        try:
            response = self.session.get(job.url, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise RetrievalError(job.filename, f"Network error: {e}") from e

        if not response.ok:
            raise RetrievalError(job.filename, f"Failed to fetch image data (HTTP {response.status_code})")

        content = response.content
        if not content:
            raise RetrievalError(job.filename, "Received an empty image payload")

        path = self.save_locally(content, job.filename)
        self.logger.debug(f"Saved {job.filename} ({len(content)} bytes)")
        return path

    def save_locally(self, content: bytes, filename: str) -> Path:
        """
        Save content under the output directory.

        The bytes are written to a '.part' file first and renamed once
        complete, so an interrupted write never leaves a truncated page.

        Raises:
            RetrievalError: If the directory or file cannot be written
        """
        path = self.output_dir / filename
        part_path = path.with_name(path.name + ".part")

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(part_path, 'wb') as f:
                f.write(content)
            os.replace(part_path, path)
        except OSError as e:
            self.logger.error(f"Failed to save file locally {path}: {e}")
            raise RetrievalError(filename, f"Failed to save file: {e}") from e

        return path
