#!/usr/bin/env python3
"""
Copy container images from public registries into a private registry.

For every (source, target) pair in the catalog the image is pulled (with
retries), retagged, pushed to the destination registry, and removed locally.
A failed image is reported at the end and never stops the run.

Workflow:
1. Check credentials, configuration, container runtime and catalog
2. Log in to the destination registry (token passed on stdin)
3. Migrate each catalog entry in order, pausing between images
4. Optionally accept extra image pairs interactively
5. Print a summary, log out and prune local images

Usage examples:
  # Migrate the built-in Home Assistant images to ghcr.io/<username>/
  REGISTRY_USERNAME=myuser REGISTRY_TOKEN=ghp_xxx python migrate_images.py

  # Migrate images listed in a catalog file
  python migrate_images.py --catalog images.csv

  # Add custom images after the catalog has been processed
  python migrate_images.py --interactive
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

# Add parent directory to path for imports
_parent_dir = Path(__file__).parent.parent.absolute()
if str(_parent_dir) not in sys.path:
    sys.path.insert(0, str(_parent_dir))

from image_migration.auth import RegistrySession, require_credentials
from image_migration.catalog import default_catalog, destination_prefix, load_catalog, read_interactive_entries
from image_migration.config_manager import ConfigManager, ConfigValidationError
from image_migration.container_runtime import ContainerRuntimeClient
from image_migration.error_utils import SetupError, create_config_error
from image_migration.health_checks import HealthChecker
from image_migration.logging_utils import get_logger, log_exception, parse_log_level, setup_logging
from image_migration.migrator import BatchRunner, ImageMigrator
from image_migration.report_utils import build_run_report, format_summary_table, save_json

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_SETUP_FAILED = 1
EXIT_INTERRUPTED = 130


def parse_arguments(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(
        description="Pull container images and push them to a private registry",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Required environment variables:
  REGISTRY_USERNAME   Destination registry username (GITHUB_USERNAME also accepted)
  REGISTRY_TOKEN      Token with permission to push packages (GITHUB_TOKEN also accepted)

Examples:
  # Basic migration of the built-in catalog
  export REGISTRY_USERNAME="myuser"
  export REGISTRY_TOKEN="ghp_xxxxxxxxxxxx"
  python migrate_images.py

  # Use a catalog file (one 'source,target' pair per line, '#' comments allowed)
  python migrate_images.py --catalog images.csv

  # Interactive mode
  python migrate_images.py --interactive

  # Save a timestamped JSON report under reports.output_dir
  python migrate_images.py --save-report

Security notes:
  - The token is passed to the runtime on stdin, never as an argument
  - The session is logged out on every exit, including failures
  - Local images are removed after each successful migration
        """,
    )

    parser.add_argument(
        "-i",
        "--interactive",
        action="store_true",
        help="After the catalog, prompt for additional 'source target' pairs until 'done'",
    )

    parser.add_argument(
        "-c",
        "--catalog",
        help="Catalog file with 'source,target' lines (default: from config, else the built-in list)",
    )

    parser.add_argument(
        "--config",
        help="Path to config.yaml (default: CONFIG_FILE env var or ./config.yaml)",
    )

    parser.add_argument(
        "--dest-registry",
        help="Destination registry host (default: from config, ghcr.io)",
    )

    parser.add_argument(
        "--runtime",
        help="Container runtime executable (default: from config, docker)",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log the runtime commands that would run without pulling or pushing anything",
    )

    parser.add_argument(
        "--save-report",
        action="store_true",
        help="Write a timestamped JSON run report to reports.output_dir",
    )

    parser.add_argument(
        "--output",
        help="Write the JSON run report to this exact file (implies --save-report)",
    )

    parser.add_argument(
        "--show-config",
        action="store_true",
        help="Print the resolved configuration and exit",
    )

    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (default: INFO)",
    )

    return parser.parse_args(argv)


def build_catalog(config, catalog_path: Optional[str], registry: str):
    """Load the catalog file if one is configured, else render the built-in catalog."""
    path = catalog_path or config.get_catalog_path()
    if path:
        return load_catalog(path)
    return default_catalog(registry, config.get_destination_namespace())


def load_config(config_path: Optional[str]) -> ConfigManager:
    """Build the ConfigManager for this run.

    An explicit --config path must exist; the implicit default
    (CONFIG_FILE or ./config.yaml) falls back to built-in defaults.

    Raises:
        SetupError: if config_path is given but not a file
    """
    if config_path and not os.path.isfile(config_path):
        raise create_config_error("--config", config_path, "file not found")
    return ConfigManager(config_file=config_path, validate=False)


def report_path(config, output: Optional[str]) -> str:
    """Where to write the run report: --output as given, else under reports.output_dir."""
    if output:
        return output
    return str(Path(config.get_output_dir()) / "migration-report.json")


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_arguments(argv)
    try:
        level = parse_log_level(args.log_level)
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_SETUP_FAILED
    setup_logging(level)
    logging.getLogger().setLevel(level)

    try:
        config = load_config(args.config)
        config.apply_overrides(destination_registry=args.dest_registry, runtime_binary=args.runtime)

        if args.show_config:
            config.print_config()
            return EXIT_OK

        # Security: validate credentials before anything touches the registry
        username, token = require_credentials(config)

        registry = config.get_destination_registry()
        catalog = build_catalog(config, args.catalog, registry)

        runtime_client = ContainerRuntimeClient.from_config(config, dry_run=args.dry_run)

        checker = HealthChecker(config, runtime_client)
        results = checker.run_all_checks(catalog=catalog)
        if not all(r.status for r in results):
            checker.print_health_report(results)
            logger.error("Setup checks failed, aborting migration")
            return EXIT_SETUP_FAILED

        logger.info("Starting container image migration to private registry")
        logger.info(f"Target registry: {destination_prefix(registry, config.get_destination_namespace())}/*")
        if args.dry_run:
            logger.info("DRY RUN: no images will be pulled or pushed")

        migrator = ImageMigrator(runtime_client, retry_policy=config.get_retry_policy())
        runner = BatchRunner(migrator, delay_between_images=config.get_delay_between_images())

        session = RegistrySession(
            runtime_client,
            registry=registry,
            username=username,
            token=token,
            prune_on_exit=config.get_prune_on_exit(),
        )
        with session:
            summary = runner.run(catalog)
            runner.log_summary(summary)

            if args.interactive:
                extra = runner.run(read_interactive_entries())
                if extra.total_count:
                    runner.log_summary(extra, title="Interactive Summary")
                summary = summary.merge(extra)

        table = format_summary_table(summary)
        if table:
            print(table)

        if args.save_report or args.output:
            report = build_run_report(
                summary,
                metadata={
                    "destination_registry": registry,
                    "runtime": runtime_client.binary,
                    "dry_run": args.dry_run,
                },
            )
            saved_path = save_json(report_path(config, args.output), report, timestamp=not args.output)
            logger.info(f"Report saved to: {saved_path}")

        logger.info("Migration completed!")
        return EXIT_OK

    except SetupError as e:
        logger.error(str(e))
        return EXIT_SETUP_FAILED
    except ConfigValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        return EXIT_SETUP_FAILED
    except KeyboardInterrupt:
        logger.warning("\nMigration interrupted by user")
        return EXIT_INTERRUPTED
    except Exception as e:
        log_exception(logger, "Error in migration", exc_info=e)
        return EXIT_SETUP_FAILED


if __name__ == "__main__":
    sys.exit(main())
