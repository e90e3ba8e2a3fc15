"""
Configuration management for the Book Page Downloader.

This module handles loading configuration from YAML files, extracting the
document id from a book URL and validating the settings a run needs before
any request is made.
"""

import yaml
from dataclasses import dataclass, field
from typing import Optional
from pathlib import Path
from urllib.parse import urlparse, parse_qs

from exceptions import PreconditionError


DEFAULT_BASE_URL = "https://books.google.com"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


@dataclass
class ProviderSettings:
    """Settings for talking to the content provider."""
    base_url: str = DEFAULT_BASE_URL
    discovery_delay_ms: int = 50
    retrieval_delay_ms: int = 200
    request_timeout: Optional[float] = 30
    user_agent: str = DEFAULT_USER_AGENT


@dataclass
class StorageConfig:
    """Where and how downloaded pages are written."""
    output_dir: str = "./downloads"
    extension: str = "png"


@dataclass
class DownloaderConfig:
    """Main configuration object passed to the orchestrator."""
    document_id: Optional[str] = None
    filename_prefix: Optional[str] = None
    provider: ProviderSettings = field(default_factory=ProviderSettings)
    storage: StorageConfig = field(default_factory=StorageConfig)

    @property
    def discovery_delay_ms(self) -> int:
        return self.provider.discovery_delay_ms

    @property
    def retrieval_delay_ms(self) -> int:
        return self.provider.retrieval_delay_ms

    def validate(self) -> None:
        """
        Check the preconditions of a run.

        Raises:
            PreconditionError: If the document id is missing or blank
            ValueError: If a delay is negative
        """
        if not self.document_id or not str(self.document_id).strip():
            raise PreconditionError("A document id is required (pass a book URL or an id)")
        if self.provider.discovery_delay_ms < 0 or self.provider.retrieval_delay_ms < 0:
            raise ValueError("Delays must not be negative")


def extract_document_id(source: str) -> Optional[str]:
    """
    Extract the document id from a book URL or return a bare id unchanged.

    Args:
        source: Book URL (e.g. https://books.google.com/books?id=abc123) or id

    Returns:
        The document id, or None if a URL carries no 'id' parameter
    """
    if not source:
        return None

    source = source.strip()
    if not source.startswith(('http://', 'https://')):
        return source or None

    values = parse_qs(urlparse(source).query).get('id')
    return values[0] if values else None


def _section(data: dict, name: str) -> dict:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"Configuration section '{name}' must be a dictionary")
    return section


def load_config(config_path: str) -> DownloaderConfig:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to the YAML configuration file

    Returns:
        DownloaderConfig object with loaded configuration

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML parsing fails
        ValueError: If configuration is invalid
    """
    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Failed to parse YAML configuration: {e}")

    if not data:
        raise ValueError("Configuration file is empty")

    if not isinstance(data, dict):
        raise ValueError("Configuration must be a dictionary")

    provider_data = _section(data, 'provider')
    provider = ProviderSettings(
        base_url=provider_data.get('base_url', DEFAULT_BASE_URL),
        discovery_delay_ms=provider_data.get('discovery_delay_ms', 50),
        retrieval_delay_ms=provider_data.get('retrieval_delay_ms', 200),
        request_timeout=provider_data.get('request_timeout', 30),
        user_agent=provider_data.get('user_agent', DEFAULT_USER_AGENT)
    )
    if provider.discovery_delay_ms < 0 or provider.retrieval_delay_ms < 0:
        raise ValueError("Delays must not be negative")

    storage_data = _section(data, 'storage')
    storage = StorageConfig(
        output_dir=storage_data.get('output_dir', "./downloads"),
        extension=storage_data.get('extension', "png")
    )

    document_id = data.get('document_id')
    if document_id is not None:
        document_id = extract_document_id(str(document_id))

    return DownloaderConfig(
        document_id=document_id,
        filename_prefix=data.get('filename_prefix'),
        provider=provider,
        storage=storage
    )


def save_config_to_yaml(config: DownloaderConfig, output_path: str) -> None:
    """
    Save configuration to YAML file.

    Args:
        config: DownloaderConfig object to save
        output_path: Path where to save the YAML file
    """
    config_dict = {
        'document_id': config.document_id,
        'filename_prefix': config.filename_prefix,
        'provider': {
            'base_url': config.provider.base_url,
            'discovery_delay_ms': config.provider.discovery_delay_ms,
            'retrieval_delay_ms': config.provider.retrieval_delay_ms,
            'request_timeout': config.provider.request_timeout,
            'user_agent': config.provider.user_agent
        },
        'storage': {
            'output_dir': config.storage.output_dir,
            'extension': config.storage.extension
        }
    }

    with open(output_path, 'w', encoding='utf-8') as f:
        yaml.dump(config_dict, f, default_flow_style=False, sort_keys=False, indent=2)
