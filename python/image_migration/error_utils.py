"""
Error types and actionable error messages for the image migration tool.

Setup errors (missing credentials, unavailable runtime, failed login, bad
configuration) are fatal and abort the run before any image is touched.
Migration errors are raised per image and are absorbed into the run summary
by the batch runner.
"""

from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCategory(Enum):
    """Categories of errors for better error handling"""
    AUTHENTICATION = "authentication"
    CONFIGURATION = "configuration"
    CATALOG = "catalog"
    RUNTIME = "runtime"
    REFERENCE = "reference"
    UNKNOWN = "unknown"


class ActionableError(Exception):
    """Exception with actionable guidance for users"""

    def __init__(self, message: str, category: ErrorCategory = ErrorCategory.UNKNOWN,
                 suggestions: Optional[List[str]] = None, details: Optional[Dict[str, Any]] = None):
        """Initialize actionable error

        Args:
            message: Primary error message
            category: Error category for classification
            suggestions: List of suggested fixes
            details: Additional context information
        """
        self.message = message
        self.category = category
        self.suggestions = suggestions or []
        self.details = details or {}
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format the complete error message with suggestions"""
        lines = [f"❌ {self.message}"]

        if self.suggestions:
            lines.append("\n💡 Suggested fixes:")
            for i, suggestion in enumerate(self.suggestions, 1):
                lines.append(f"   {i}. {suggestion}")

        if self.details:
            lines.append("\n📋 Additional details:")
            for key, value in self.details.items():
                lines.append(f"   {key}: {value}")

        return "\n".join(lines)


class SetupError(ActionableError):
    """Fatal error raised before any migration is attempted."""


class InvalidReferenceError(SetupError):
    """Raised when an image reference cannot be parsed."""


class CatalogError(SetupError):
    """Raised when the image catalog cannot be read or parsed."""


class RuntimeCommandError(Exception):
    """Raised when a container runtime command exits non-zero or times out."""

    def __init__(self, command: List[str], returncode: Optional[int], stderr: str = ""):
        self.command = command
        self.returncode = returncode
        self.stderr = (stderr or "").strip()
        if returncode is None:
            summary = f"'{' '.join(command)}' timed out"
        else:
            summary = f"'{' '.join(command)}' exited with status {returncode}"
        if self.stderr:
            summary = f"{summary}: {self.stderr}"
        super().__init__(summary)


class MigrationError(Exception):
    """Per-image failure. Never fatal to the batch."""

    stage = "unknown"

    def __init__(self, reason: str, cause: Optional[Exception] = None):
        self.reason = reason
        self.cause = cause
        super().__init__(reason)


class PullError(MigrationError):
    stage = "pull"


class TagError(MigrationError):
    stage = "tag"


class PushError(MigrationError):
    stage = "push"


class CleanupError(MigrationError):
    stage = "cleanup"


def create_missing_credentials_error(missing: List[str]) -> SetupError:
    """Create actionable error for unset credential environment variables"""
    return SetupError(
        message="Required environment variables not set: " + ", ".join(missing),
        category=ErrorCategory.AUTHENTICATION,
        suggestions=[
            "Export REGISTRY_USERNAME with the destination registry user",
            "Export REGISTRY_TOKEN with a token that can push packages (e.g. packages:write)",
            "GITHUB_USERNAME and GITHUB_TOKEN are accepted as alternatives",
        ],
        details={"missing": ", ".join(missing)},
    )


def create_runtime_unavailable_error(binary: str, error: Optional[Exception] = None) -> SetupError:
    """Create actionable error when the container runtime cannot be used"""
    error_str = str(error).lower() if error else ""

    suggestions = [
        f"Install {binary} and make sure it is on PATH",
        f"Start the {binary} daemon and verify '{binary} info' succeeds",
        "Use --runtime to select another runtime (e.g. podman)",
    ]

    if "permission denied" in error_str:
        suggestions.insert(0, f"Add the current user to the '{binary}' group or run with sufficient privileges")

    details = {"runtime": binary}
    if error is not None:
        details["error_type"] = type(error).__name__
        details["error_message"] = str(error)

    return SetupError(
        message=f"Container runtime '{binary}' is not available",
        category=ErrorCategory.RUNTIME,
        suggestions=suggestions,
        details=details,
    )


def create_registry_auth_error(registry_url: str, error: Exception) -> SetupError:
    """Create actionable error for registry authentication failures"""
    error_str = str(error).lower()

    suggestions = [
        "Verify REGISTRY_USERNAME matches the account that owns the token",
        "Verify the token hasn't expired or been revoked",
        "Check that the token has permission to write packages",
    ]

    if "ghcr.io" in registry_url:
        suggestions.insert(0, "Create a personal access token with packages:read and packages:write scopes")

    if "timeout" in error_str or "timed out" in error_str:
        suggestions.insert(0, f"Check network connectivity to {registry_url}")

    return SetupError(
        message=f"Failed to authenticate with container registry at {registry_url}",
        category=ErrorCategory.AUTHENTICATION,
        suggestions=suggestions,
        details={
            "registry_url": registry_url,
            "error_type": type(error).__name__,
        },
    )


def create_config_error(field: str, value: Any, reason: str) -> SetupError:
    """Create actionable error for configuration validation failures"""
    suggestions = [
        f"Check the '{field}' value in config.yaml",
        "Verify the value matches the expected format",
        "Check config-example.yaml for the correct format",
    ]

    if field == "--config":
        suggestions = [
            f"Check that {value} exists and is readable",
            "Omit --config to use CONFIG_FILE or ./config.yaml",
            "Copy config-example.yaml as a starting point",
        ]
    elif "delay" in field.lower() or "timeout" in field.lower():
        suggestions.insert(1, "Time values must be non-negative numbers")
    elif "attempts" in field.lower():
        suggestions.insert(1, "Attempt counts must be positive integers")

    return SetupError(
        message=f"Configuration error: Invalid value for '{field}'",
        category=ErrorCategory.CONFIGURATION,
        suggestions=suggestions,
        details={
            "field": field,
            "value": value,
            "reason": reason,
        },
    )


def create_catalog_error(source: str, reason: str, line_number: Optional[int] = None) -> CatalogError:
    """Create actionable error for an unreadable or malformed catalog"""
    details = {"catalog": source, "reason": reason}
    if line_number is not None:
        details["line"] = line_number

    return CatalogError(
        message=f"Could not read image catalog from {source}",
        category=ErrorCategory.CATALOG,
        suggestions=[
            "Each line must be 'source_image,target_image'",
            "Prefix a line with '#' to disable it",
            "Check the file exists and is readable",
        ],
        details=details,
    )
