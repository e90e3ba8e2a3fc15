"""
Exception Types Module

This module defines the error taxonomy of the page downloader. Precondition and
discovery errors are fatal to a run; retrieval errors are recorded per page.
"""


class DownloaderError(Exception):
    """Base class for all page downloader errors"""


class PreconditionError(DownloaderError):
    """Raised before any network activity when the run cannot start"""


class DiscoveryError(DownloaderError):
    """Raised when the page manifest or a URL batch cannot be fetched"""

    def __init__(self, stage: str, message: str):
        super().__init__(message)
        self.stage = stage


class RetrievalError(DownloaderError):
    """Raised when a single page image cannot be fetched or saved"""

    def __init__(self, filename: str, message: str):
        super().__init__(message)
        self.filename = filename
