"""
LinkPulse - friend link activity checker
"""

import argparse
import sys
from datetime import timedelta
from pathlib import Path

import yaml

# Add src to path
sys.path.insert(0, str(Path(__file__).parent))

from config_validator import validate_config
from date_extractor import PageDateExtractor, DEFAULT_MIN_PAGE_YEAR
from fetcher import BoundedFetcher, DEFAULT_MAX_CONTENT_BYTES, DEFAULT_REQUEST_TIMEOUT, DEFAULT_USER_AGENT
from link_store import LinkStore, MissingGroupError, require_groups
from logging_config import setup_logging, get_logger
from prober import SiteActivityProber, DEFAULT_FEED_PATHS
from reconciler import Reconciler, ReconcileSummary

DEFAULT_CONFIG_PATH = "config/settings.yaml"


class LinkPulse:
    """Wires configuration, prober, reconciler and link store together"""

    def __init__(self, config_path: str = DEFAULT_CONFIG_PATH):
        self.config_path = Path(config_path)
        self.config = self._load_config()
        # Relative paths in the config are relative to the project root, i.e. the parent of config/
        self.root = self.config_path.resolve().parent.parent

        links_config = self.config.get("links", {})
        self.active_group_name = links_config.get("active_group", "cf-links")
        self.inactive_group_name = links_config.get("inactive_group", "inactive-links")
        self.store = LinkStore(self._resolve(links_config["path"]))

        fetching = self.config.get("fetching", {})
        timeout = fetching.get("timeout", DEFAULT_REQUEST_TIMEOUT)
        self.fetcher = BoundedFetcher(
            timeout=timeout,
            user_agent=fetching.get("user_agent", DEFAULT_USER_AGENT),
            max_content_bytes=fetching.get("max_content_bytes", DEFAULT_MAX_CONTENT_BYTES),
        )

        activity = self.config.get("activity", {})
        page_extractor = PageDateExtractor(
            min_year=activity.get("min_page_year", DEFAULT_MIN_PAGE_YEAR),
            include_month_names=activity.get("include_month_names", False),
        )
        self.prober = SiteActivityProber(
            self.fetcher,
            feed_paths=fetching.get("feed_paths", DEFAULT_FEED_PATHS),
            page_extractor=page_extractor,
            timeout=timeout,
        )
        self.reconciler = Reconciler(
            self.prober, stale_after=timedelta(days=activity.get("stale_after_days", 180))
        )

        self.logger = get_logger(__name__)

    def _load_config(self) -> dict:
        """Load configuration from YAML"""
        with open(self.config_path, encoding="utf-8") as f:
            return yaml.safe_load(f) or {}

    def _resolve(self, path: str) -> Path:
        candidate = Path(path)
        return candidate if candidate.is_absolute() else self.root / candidate

    @property
    def log_dir(self) -> Path | None:
        log_dir = self.config.get("logging", {}).get("log_dir")
        return self._resolve(log_dir) if log_dir else None

    def run(self, dry_run: bool = False) -> ReconcileSummary:
        """Run one reconciliation pass over the links dataset"""
        self.logger.info("Starting link activity check", extra={"dry_run": dry_run})

        document = self.store.load()
        active_group, inactive_group = require_groups(
            document, self.active_group_name, self.inactive_group_name
        )

        summary = self.reconciler.run(active_group, inactive_group)

        if dry_run:
            changed = self.store.has_changes(document)
            self.logger.info("Dry run, links dataset not written", extra={"would_change": changed})
        else:
            changed = self.store.save(document)

        print(f"\nChecked {summary.checked} links")
        if changed:
            print(f"Links file {'would be ' if dry_run else ''}updated: {self.store.path}")
        else:
            print("No changes")
        print(f"  Moved to {self.inactive_group_name}: {len(summary.moved_to_inactive)}")
        for name in summary.moved_to_inactive:
            print(f"    - {name}")
        print(f"  Restored to {self.active_group_name}: {len(summary.moved_to_active)}")
        for name in summary.moved_to_active:
            print(f"    + {name}")

        return summary

    def probe(self, url: str) -> int:
        """Probe a single site and print what was found"""
        result = self.prober.probe(url)
        print(f"URL:         {url}")
        print(f"Reachable:   {'yes' if result.reachable else 'no'}")
        if result.last_active is not None:
            source = result.source if not result.detail else f"{result.source} ({result.detail})"
            print(f"Last active: {result.last_active.date().isoformat()}")
            print(f"Source:      {source}")
        elif result.reachable:
            print("Last active: unknown")
        return 0 if result.reachable else 1

    def show_status(self):
        """Show the groups and the last recorded state of every link"""
        document = self.store.load()
        active_group, inactive_group = require_groups(
            document, self.active_group_name, self.inactive_group_name
        )

        print("\n" + "=" * 60)
        print("LINKPULSE STATUS")
        print("=" * 60)
        for group in (active_group, inactive_group):
            print(f"\n[{group.id_name}] {group.desc} ({len(group.link_list)} links)")
            for entry in group.link_list:
                status = entry.status.value if entry.status else "-"
                last_active = entry.last_active.isoformat() if entry.last_active else "-"
                last_checked = entry.last_checked.isoformat() if entry.last_checked else "-"
                print(
                    f"  {entry.name:<24s} {status:<12s} active={last_active:<10s} "
                    f"checked={last_checked:<10s} {entry.link}"
                )
        print("=" * 60 + "\n")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="LinkPulse - friend link activity checker")
    parser.add_argument("-c", "--config", default=DEFAULT_CONFIG_PATH, help="Path to config file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument("--log-format", choices=["text", "json"], help="Log output format")
    parser.add_argument(
        "--skip-validation", action="store_true", help="Skip configuration validation"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    run_parser = subparsers.add_parser("run", help="Check all links and update the links file")
    run_parser.add_argument("--dry-run", action="store_true", help="Check links without writing the file")

    probe_parser = subparsers.add_parser("probe", help="Check a single site")
    probe_parser.add_argument("url", help="Site URL")

    subparsers.add_parser("status", help="Show link groups and last recorded status")

    subparsers.add_parser("validate", help="Validate configuration file")

    args = parser.parse_args(argv)

    setup_logging(verbose=args.verbose, log_format=args.log_format)
    logger = get_logger(__name__)

    if args.command is None:
        parser.print_help()
        return 0

    # Handle validate command separately (before creating the checker)
    if args.command == "validate":
        result = validate_config(args.config)
        if result.is_valid:
            print(f"Configuration file '{args.config}' is valid.")
            return 0
        print(result, file=sys.stderr)
        return 1

    if not args.skip_validation:
        result = validate_config(args.config)
        if not result.is_valid:
            print(result, file=sys.stderr)
            return 1
        logger.info("Configuration validation passed", extra={"config_path": args.config})

    app = LinkPulse(args.config)
    if app.log_dir is not None:
        setup_logging(log_dir=str(app.log_dir), verbose=args.verbose, log_format=args.log_format)

    try:
        if args.command == "run":
            app.run(dry_run=args.dry_run)
        elif args.command == "probe":
            return app.probe(args.url)
        elif args.command == "status":
            app.show_status()
    except MissingGroupError as e:
        logger.error("Links dataset is missing required groups", extra={"missing": e.missing})
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
