#!/usr/bin/env python3
"""
Book Page Downloader - Main Entry Point

This module provides the command-line interface. It builds the run
configuration from a YAML file and/or command-line options, then hands it to
the Orchestrator, which discovers every page of the book preview and saves
each page image as a numbered file.

Usage Examples:
    python main.py "https://books.google.com/books?id=abc123"
    python main.py abc123 --prefix My-Book --output-dir ./pages
    python main.py --config config.yaml --log-level DEBUG --report report.json
"""

import argparse
import logging
import sys

from config import DownloaderConfig, extract_document_id, load_config
from exceptions import DiscoveryError, PreconditionError
from orchestrator import Orchestrator
from reporter import ProgressReporter
from utils import setup_logging, format_duration

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_PARTIAL = 2
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Book Page Downloader - Save every page image of an online book preview',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s "https://books.google.com/books?id=abc123"
  %(prog)s abc123 --prefix My-Book --output-dir ./pages
  %(prog)s --config config.yaml --report report.json
        """
    )

    parser.add_argument('source', nargs='?',
                        help='Book URL or document id (optional when set in --config)')
    parser.add_argument('--config',
                        help='Configuration file path (YAML)')
    parser.add_argument('--prefix',
                        help='Filename prefix (default: derived from the book title)')
    parser.add_argument('--output-dir',
                        help='Directory the page images are saved to')
    parser.add_argument('--discovery-delay-ms', type=int,
                        help='Delay after each page-data request in milliseconds')
    parser.add_argument('--retrieval-delay-ms', type=int,
                        help='Delay after each image download in milliseconds')
    parser.add_argument('--base-url',
                        help='Provider base URL')
    parser.add_argument('--report',
                        help='Write a JSON report of the run to this path')
    parser.add_argument('--log-level',
                        default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Set logging level (default: INFO)')
    parser.add_argument('--log-file',
                        help='Log file path')
    parser.add_argument('--no-progress',
                        action='store_true',
                        help='Disable the download progress bar')
    return parser


def build_config(args: argparse.Namespace) -> DownloaderConfig:
    """Load the configuration file (if any) and apply command-line overrides"""
    config = load_config(args.config) if args.config else DownloaderConfig()

    if args.source:
        config.document_id = extract_document_id(args.source)
    if args.prefix:
        config.filename_prefix = args.prefix
    if args.output_dir:
        config.storage.output_dir = args.output_dir
    if args.discovery_delay_ms is not None:
        config.provider.discovery_delay_ms = args.discovery_delay_ms
    if args.retrieval_delay_ms is not None:
        config.provider.retrieval_delay_ms = args.retrieval_delay_ms
    if args.base_url:
        config.provider.base_url = args.base_url
    return config


def main(argv=None) -> int:
    """Main entry point; returns the process exit code"""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(log_level=args.log_level, log_file=args.log_file)
    logger = logging.getLogger(__name__)

    try:
        config = build_config(args)
    except FileNotFoundError as e:
        print(f"❌ {e}")
        return EXIT_FATAL
    except Exception as e:
        logger.error(f"Failed to load configuration: {e}")
        print(f"❌ Failed to load configuration: {e}")
        return EXIT_FATAL

    reporter = ProgressReporter(show_progress_bar=not args.no_progress)

    try:
        orchestrator = Orchestrator(config, reporter=reporter)
        summary = orchestrator.run()
    except PreconditionError as e:
        logger.error(str(e))
        print(f"❌ {e}")
        print("Pass a book URL such as https://books.google.com/books?id=<id> or a document id.")
        return EXIT_FATAL
    except ValueError as e:
        print(f"❌ Invalid configuration: {e}")
        return EXIT_FATAL
    except DiscoveryError as e:
        print(f"\n❌ Page discovery failed during the {e.stage} stage: {e}")
        print("No files were downloaded.")
        return EXIT_FATAL
    except KeyboardInterrupt:
        logger.info("Download interrupted by user (Ctrl+C)")
        print("\n⚠️  Download interrupted by user")
        print("Pages saved so far remain in the output directory.")
        return EXIT_INTERRUPTED

    if args.report:
        report_path = reporter.save_report(summary, args.report)
        print(f"Report saved to: {report_path}")

    print(f"✅ Finished in {format_duration(summary.duration)}")
    return EXIT_OK if not summary.failed else EXIT_PARTIAL


if __name__ == "__main__":
    sys.exit(main())
