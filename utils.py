"""
Common Utilities Module

This module contains helper functions used across the page downloader,
including logging setup, HTTP session creation and formatting helpers.
"""

import logging
from typing import List, Optional
import requests

from config import DEFAULT_USER_AGENT


def create_session(user_agent: str = DEFAULT_USER_AGENT) -> requests.Session:
    """
    Create the HTTP session shared by every request of a run.

    The session does not retry on its own; a failed discovery request is
    fatal and a failed page is reported rather than re-fetched.

    Args:
        user_agent: User-Agent header sent with every request

    Returns:
        Configured requests.Session
    """
    session = requests.Session()
    session.headers.update({
        'User-Agent': user_agent,
        'Accept': 'application/json, text/html;q=0.9, image/*;q=0.8, */*;q=0.5',
        'Accept-Language': 'en-US,en;q=0.5',
        'Connection': 'keep-alive',
    })
    return session


CONSOLE_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'
FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    Route log records to the console and, optionally, to a log file.

    The console shows records at log_level and above; the file always
    receives DEBUG records so a failed run can be diagnosed afterwards.
    """
    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level.upper())
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt='%H:%M:%S'))
    handlers: List[logging.Handler] = [console_handler]

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(level=logging.DEBUG, handlers=handlers, force=True)
    # urllib3 logs every connection at DEBUG
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger(__name__).debug(f"Logging to console at {log_level.upper()}"
                                      + (f" and to {log_file}" if log_file else ""))


def format_duration(seconds: float) -> str:
    """Format a duration as e.g. "45.0s", "3m 5s" or "1h 2m 3s"."""
    if seconds < 60:
        return f"{seconds:.1f}s"

    minutes, secs = divmod(int(seconds), 60)
    if minutes < 60:
        return f"{minutes}m {secs}s"

    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes}m {secs}s"
