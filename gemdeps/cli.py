"""Generate system dependency data for RubyGems.

Fetches each gem, parses its README and extconf.rb, and writes
data/rubygems/<gem>/<version>.json. Existing files are left alone unless
--force is given.

Usage:
    gem-sysdeps nokogiri
    gem-sysdeps nokogiri 1.13.0
    gem-sysdeps --all-versions pg
    gem-sysdeps --list popular_gems.txt
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

from loguru import logger
from rich.console import Console
from rich.table import Table

from gemdeps.pipeline import BatchResult, DependencyPipeline
from gemdeps.utils.config import Config, load_config
from gemdeps.utils.logging import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gem-sysdeps",
        description="Detect native system dependencies of RubyGems",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("gem_name", nargs="?", help="Gem to process")
    parser.add_argument("version", nargs="?", help="Specific version (default: latest stable)")
    parser.add_argument("--config", "-c", type=Path, default=None, help="Path to configuration YAML")
    parser.add_argument("--list", "-l", dest="list_file", type=Path, help="Process gems from list file")
    parser.add_argument("--force", "-f", action="store_true", help="Overwrite existing data")
    parser.add_argument(
        "--dry-run", "-n", action="store_true", help="Show what would be done without writing files"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    versions = parser.add_mutually_exclusive_group()
    versions.add_argument(
        "--latest-only",
        dest="latest_only",
        action="store_true",
        default=None,
        help="Process only the latest stable version (default)",
    )
    versions.add_argument(
        "--all-versions",
        dest="latest_only",
        action="store_false",
        default=None,
        help="Process all versions (can be slow)",
    )

    parser.add_argument("--output", "-o", dest="output_dir", type=Path, help="Output directory")
    parser.add_argument("--rules", type=Path, help="Dependency rules YAML file")
    parser.add_argument("--cache-dir", type=Path, help="Directory for cached .gem downloads")
    return parser


def apply_overrides(config: Config, args: argparse.Namespace) -> Config:
    """Fold command-line flags into the loaded configuration."""
    if args.force:
        config.pipeline.force = True
    if args.dry_run:
        config.pipeline.dry_run = True
    if args.latest_only is not None:
        config.pipeline.latest_only = args.latest_only
    if args.output_dir:
        config.output.output_dir = args.output_dir
    if args.rules:
        config.matcher.rules_file = str(args.rules)
    if args.cache_dir:
        config.fetcher.cache_dir = args.cache_dir
    if args.verbose:
        config.logging.level = "DEBUG"
    return config


def print_summary(results: BatchResult, console: Optional[Console] = None) -> None:
    console = console or Console()
    table = Table(title="Results")
    table.add_column("Succeeded", justify="right", style="green")
    table.add_column("Failed", justify="right", style="red")
    table.add_column("Total", justify="right")
    table.add_row(str(results.success), str(results.failed), str(results.total))
    console.print(table)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = apply_overrides(load_config(args.config), args)
    setup_logging(
        config.logging.level,
        log_file=config.logging.file,
        rotation=config.logging.rotation,
        retention=config.logging.retention,
    )

    if not args.list_file and not args.gem_name:
        logger.error("No gem name specified. Use --help for usage information")
        return 1

    pipeline = DependencyPipeline(config)

    if args.list_file:
        results = pipeline.process_list(args.list_file)
        print_summary(results)
        return 0 if results.failed == 0 else 1

    return 0 if pipeline.process_gem(args.gem_name, args.version) else 1


if __name__ == "__main__":
    sys.exit(main())
