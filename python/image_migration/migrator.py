"""
Image migration: pull, retag, push and clean up one image at a time.

ImageMigrator handles a single (source, target) pair and turns every
per-image problem into a MigrationOutcome. BatchRunner walks a catalog in
order, paces the requests, and accumulates a RunSummary.
"""

import time
from typing import Iterable, Optional

from image_migration.error_utils import (
    CleanupError,
    MigrationError,
    PullError,
    PushError,
    RuntimeCommandError,
    TagError,
)
from image_migration.logging_utils import get_logger
from image_migration.models import ImageRef, MigrationEntry, MigrationOutcome, RunSummary
from image_migration.retry_utils import RetryPolicy, retry_operation


def _short_name(reference: str) -> str:
    try:
        return ImageRef.parse(reference).name
    except Exception:
        return reference.rsplit("/", 1)[-1]


class ImageMigrator:
    """Migrates a single image from a source registry to a destination registry."""

    def __init__(self, runtime_client, retry_policy: Optional[RetryPolicy] = None):
        """
        Args:
            runtime_client: ContainerRuntimeClient (or compatible) used for pull/tag/push/rmi
            retry_policy: Policy applied to pulls (default: 3 attempts, 2s apart)
        """
        self.runtime_client = runtime_client
        self.retry_policy = retry_policy or RetryPolicy()
        self.logger = get_logger(self.__class__.__name__)

    def migrate(self, source: str, target: str) -> MigrationOutcome:
        """Pull source, tag it as target, push target, then remove both locally.

        Each step only runs if the previous one succeeded. Failures are
        returned as outcomes, never raised.
        """
        self.logger.info(f"Migrating: {source} → {target}")

        try:
            self._pull(source)
            self._tag(source, target)
            self._push(target)
        except MigrationError as e:
            self.logger.error(f"{e.reason}: {source}")
            return MigrationOutcome.failure(e.reason, stage=e.stage)

        try:
            self._cleanup(source, target)
        except CleanupError as e:
            self.logger.warning(f"{e.reason} (ignored): {e.cause}")

        self.logger.info(f"✓ Successfully migrated {_short_name(source)}")
        return MigrationOutcome.success()

    def _pull(self, source: str) -> None:
        attempts = self.retry_policy.attempts
        try:
            retry_operation(
                lambda: self.runtime_client.pull(source),
                policy=self.retry_policy,
                operation_name=f"Pull of {source}",
            )
        except RuntimeCommandError as e:
            raise PullError(f"pull failed after {attempts} attempts", cause=e)

    def _tag(self, source: str, target: str) -> None:
        try:
            self.runtime_client.tag(source, target)
        except RuntimeCommandError as e:
            raise TagError("tag failed", cause=e)

    def _push(self, target: str) -> None:
        try:
            self.runtime_client.push(target)
        except RuntimeCommandError as e:
            raise PushError("push failed", cause=e)

    def _cleanup(self, source: str, target: str) -> None:
        try:
            self.runtime_client.remove_images(source, target)
        except RuntimeCommandError as e:
            raise CleanupError("local image cleanup failed", cause=e)


class BatchRunner:
    """Runs an ImageMigrator over a catalog, one entry at a time."""

    def __init__(self, migrator: ImageMigrator, delay_between_images: float = 1.0):
        self.migrator = migrator
        self.delay_between_images = delay_between_images
        self.logger = get_logger(self.__class__.__name__)

    def run(self, catalog: Iterable[MigrationEntry]) -> RunSummary:
        """Migrate every non-placeholder entry in order.

        A failing entry is recorded and the run continues; the caller always
        gets a summary back.
        """
        summary = RunSummary()

        for entry in catalog:
            if entry.is_placeholder:
                continue

            try:
                outcome = self.migrator.migrate(entry.source, entry.target)
            except Exception as e:
                self.logger.error(f"Unexpected error migrating {entry.source}: {e}")
                outcome = MigrationOutcome.failure(f"unexpected error: {e}")

            summary.record(entry, outcome)

            # Brief pause to avoid overwhelming registries
            if self.delay_between_images > 0:
                time.sleep(self.delay_between_images)

        return summary

    def log_summary(self, summary: RunSummary, title: str = "Migration Summary") -> None:
        """Log a run summary in the standard format"""
        self.logger.info("")
        self.logger.info(f"{title}:")
        self.logger.info(f"  ✓ Successful: {summary.success_count}/{summary.total_count}")

        if summary.failed_images:
            self.logger.warning("  ✗ Failed images:")
            for source, reason in summary.failures:
                self.logger.warning(f"    - {source} ({reason})")
