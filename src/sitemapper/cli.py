"""
Command-line interface for the sitemapper.
"""
from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

from sitemapper.core import CrawlConfig, CrawlStats, crawl
from sitemapper.fetch import DEFAULT_USER_AGENT
from sitemapper.tree import SiteMap
from sitemapper.urls import hostname


def positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return number


def print_summary(sitemap: SiteMap, stats: CrawlStats) -> None:
    """Print crawl summary to stderr."""
    sys.stderr.write("=" * 50 + "\n")
    sys.stderr.write("CRAWL SUMMARY\n")
    sys.stderr.write("=" * 50 + "\n\n")

    sys.stderr.write(f"Registrable domain:     {sitemap.registrable_domain}\n")
    sys.stderr.write(f"Depth reached:          {sitemap.achieved_depth}/{sitemap.max_depth}\n")
    sys.stderr.write(f"Pages in sitemap:       {len(sitemap)}\n")
    sys.stderr.write(f"Pages fetched:          {stats.pages_fetched}\n")
    sys.stderr.write(f"Links found:            {stats.links_found}\n")
    sys.stderr.write(f"Off-site links:         {stats.links_offsite}\n")
    sys.stderr.write(f"Already-seen links:     {stats.duplicates}\n\n")

    if stats.fetch_failures:
        sys.stderr.write("Errors by type:\n")
        for error_type, count in sorted(stats.fetch_failures.items()):
            label = f"HTTP {error_type}" if error_type.isdigit() else error_type
            sys.stderr.write(f"  {label}: {count}\n")
    else:
        sys.stderr.write("No errors encountered.\n")

    sys.stderr.write("\n")


def generate_output_path(seed: str) -> Path:
    """Generate output path: crawls/{hostname}_{datetime}.json"""
    host = hostname(seed) or "unknown"
    # Sanitize hostname for filename (replace dots with underscores)
    host_safe = host.replace(".", "_")
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return Path("crawls") / f"{host_safe}_{timestamp}.json"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Crawl a website from a seed URL and print its sitemap."
    )
    parser.add_argument("seed", help="Seed URL (e.g. https://example.com/)")
    parser.add_argument("--depth", type=positive_int, default=5, help="Maximum link hops from the seed (default: 5)")
    parser.add_argument("--timeout", type=float, default=10.0, help="Request timeout in seconds (default: 10)")
    parser.add_argument("--user-agent", default=DEFAULT_USER_AGENT, help="User-Agent header")
    parser.add_argument("--max-workers", type=positive_int, help="Cap on concurrent fetches per level (default: no cap)")
    parser.add_argument("--format", choices=("text", "json"), default="text", help="Output format (default: text)")
    parser.add_argument(
        "--out",
        help="Output file path, or '-' for stdout (default: stdout for text, auto-generated in crawls/ for json)",
    )
    parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON")
    parser.add_argument("--verbose", action="store_true", help="Show progress and summary")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the sitemapper CLI."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = CrawlConfig(
        max_depth=args.depth,
        timeout_s=args.timeout,
        user_agent=args.user_agent,
        max_workers=args.max_workers,
    )
    stats = CrawlStats()
    sitemap = crawl(args.seed, config=config, stats=stats)

    if args.verbose:
        print_summary(sitemap, stats)

    if sitemap.root is None:
        sys.stderr.write(f"Could not crawl {args.seed}: not an absolute http(s) URL\n")
        return 1

    if args.format == "json":
        output = sitemap.to_json(pretty=args.pretty)
        out = args.out if args.out else str(generate_output_path(args.seed))
    else:
        output = sitemap.to_text()
        out = args.out or "-"

    if out == "-":
        sys.stdout.write(output if output.endswith("\n") else output + "\n")
    else:
        output_path = Path(out)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(output, encoding="utf-8")
        if args.verbose:
            sys.stderr.write(f"Results written to: {output_path}\n")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
