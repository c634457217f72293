"""
Health check utilities for verifying setup before a migration run.

This module provides health checks for:
- Configuration validity
- Container runtime availability
- Catalog image references
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from image_migration.error_utils import InvalidReferenceError, create_runtime_unavailable_error
from image_migration.logging_utils import get_logger
from image_migration.models import MigrationEntry

logger = get_logger(__name__)


@dataclass
class HealthCheckResult:
    """Result of a health check"""

    name: str
    status: bool  # True if healthy, False if unhealthy
    message: str
    details: Optional[Dict] = None


class HealthChecker:
    """Performs pre-flight checks on configuration, runtime and catalog"""

    def __init__(self, config_manager, runtime_client):
        self.config_manager = config_manager
        self.runtime_client = runtime_client
        self.logger = get_logger(self.__class__.__name__)

    def check_configuration(self) -> HealthCheckResult:
        """Check if configuration is valid"""
        try:
            # This will raise ConfigValidationError if invalid
            self.config_manager.validate_config()

            return HealthCheckResult(
                name="configuration",
                status=True,
                message="Configuration is valid",
                details={
                    "destination_registry": self.config_manager.get_destination_registry(),
                    "runtime": self.config_manager.get_runtime_binary(),
                },
            )
        except Exception as e:
            return HealthCheckResult(
                name="configuration",
                status=False,
                message=f"Configuration validation failed: {str(e)}",
                details={"error": str(e)},
            )

    def check_runtime(self) -> HealthCheckResult:
        """Check the container runtime is installed and its daemon is running"""
        binary = self.runtime_client.binary

        if not self.runtime_client.is_installed():
            error = create_runtime_unavailable_error(binary)
            return HealthCheckResult(
                name="container_runtime",
                status=False,
                message=f"{binary} not found. Please install {binary} first.",
                details={"runtime": binary, "suggestions": error.suggestions},
            )

        try:
            self.runtime_client.check_daemon()
        except Exception as e:
            error = create_runtime_unavailable_error(binary, e)
            return HealthCheckResult(
                name="container_runtime",
                status=False,
                message=f"{binary} daemon not running. Please start {binary}.",
                details={"runtime": binary, "error": str(e), "suggestions": error.suggestions},
            )

        return HealthCheckResult(
            name="container_runtime",
            status=True,
            message=f"{binary} validation passed",
            details={"runtime": binary},
        )

    def check_catalog(self, catalog: Iterable[MigrationEntry]) -> HealthCheckResult:
        """Check every active catalog entry has well-formed source and target references"""
        problems = []
        active = 0
        for entry in catalog:
            if entry.is_placeholder:
                continue
            active += 1
            try:
                entry.validate()
            except InvalidReferenceError as e:
                problems.append(f"{e.details.get('reference')}: {e.details.get('reason')}")

        if problems:
            return HealthCheckResult(
                name="catalog",
                status=False,
                message=f"{len(problems)} invalid image reference(s) in catalog",
                details={"invalid": problems},
            )
        return HealthCheckResult(
            name="catalog",
            status=True,
            message=f"{active} image(s) ready to migrate",
            details={"images": active},
        )

    def run_all_checks(self, catalog: Optional[List[MigrationEntry]] = None) -> List[HealthCheckResult]:
        """Run all health checks

        Args:
            catalog: Catalog to validate (skipped if None)

        Returns:
            List of HealthCheckResult objects
        """
        results = []

        # Always check configuration first
        results.append(self.check_configuration())
        results.append(self.check_runtime())

        if catalog is not None:
            results.append(self.check_catalog(catalog))

        return results

    def print_health_report(self, results: List[HealthCheckResult]) -> bool:
        """Print a formatted health check report

        Args:
            results: List of HealthCheckResult objects

        Returns:
            True if all checks passed, False otherwise
        """
        print("\n" + "=" * 60)
        print("Health Check Report")
        print("=" * 60)

        all_healthy = True

        for result in results:
            status_icon = "✓" if result.status else "✗"
            status_text = "HEALTHY" if result.status else "UNHEALTHY"

            print(f"\n{status_icon} {result.name.upper().replace('_', ' ')}: {status_text}")
            print(f"   {result.message}")

            if result.details:
                for key, value in result.details.items():
                    if key != "error":  # Don't print error in details if it's already in message
                        print(f"   {key}: {value}")

            if not result.status:
                all_healthy = False

        print("\n" + "=" * 60)

        if all_healthy:
            print("✓ All health checks passed")
        else:
            print("✗ Some health checks failed - please review the issues above")

        print("=" * 60 + "\n")

        return all_healthy
