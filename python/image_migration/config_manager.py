#!/usr/bin/env python3
"""
Configuration Manager for the container image migration tool

This module handles loading and managing configuration from config.yaml
and environment variables.
"""

import logging
import os
import re
from typing import Any, Dict, List, Optional, Tuple

import yaml

from image_migration.retry_utils import RetryPolicy

# Environment variables checked for registry credentials, in priority order
USERNAME_ENV_VARS = ("REGISTRY_USERNAME", "GITHUB_USERNAME")
TOKEN_ENV_VARS = ("REGISTRY_TOKEN", "GITHUB_TOKEN")


class ConfigValidationError(Exception):
    """Raised when configuration validation fails"""


class ConfigManager:
    """Manages configuration for the image migration tool"""

    def __init__(self, config_file: str = None, validate: bool = True):
        """Initialize ConfigManager

        Args:
            config_file: Path to configuration YAML file (defaults to config.yaml or CONFIG_FILE env var)
            validate: If True, validate configuration on initialization
        """
        # Allow override via environment variable for containerized deployments
        if config_file is None:
            config_file = os.environ.get("CONFIG_FILE", "config.yaml")
        self.config_file = config_file
        self.config = self._load_config()
        # Values set from the command line; these beat both environment and file
        self._overrides: Dict[str, Any] = {}

        if validate:
            self.validate_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file with defaults"""
        default_config = {
            "destination": {"registry": "ghcr.io", "namespace": ""},
            "credentials": {"username_env": "REGISTRY_USERNAME", "token_env": "REGISTRY_TOKEN"},
            "runtime": {
                "binary": "docker",
                "timeout": 1800,  # Timeout for runtime calls in seconds (pushes can be slow)
                "prune_on_exit": True,
            },
            "retry": {
                "pull_attempts": 3,
                "pull_retry_delay": 2.0,
                "backoff_factor": 1.0,
                "max_delay": 60.0,
            },
            "pacing": {"delay_between_images": 1.0},
            "catalog": {"path": ""},
            "reports": {"output_dir": "reports"},
        }

        try:
            if os.path.exists(self.config_file):
                with open(self.config_file, "r") as f:
                    user_config = yaml.safe_load(f) or {}
                return self._merge_config(default_config, user_config)
            else:
                logging.debug(f"Config file {self.config_file} not found, using defaults")
                return default_config
        except (OSError, yaml.YAMLError) as e:
            raise ConfigValidationError(f"Error loading config file {self.config_file}: {e}")

    def _merge_config(self, default: Dict[str, Any], user: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge user config with defaults"""
        result = default.copy()
        for key, value in user.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_config(result[key], value)
            else:
                result[key] = value
        return result

    def apply_overrides(self, destination_registry: Optional[str] = None, runtime_binary: Optional[str] = None) -> None:
        """Record command-line overrides so that getters and validate_config see them"""
        if destination_registry:
            self._overrides["destination_registry"] = destination_registry
        if runtime_binary:
            self._overrides["runtime_binary"] = runtime_binary

    # Destination configuration
    def get_destination_registry(self) -> str:
        """Get destination registry host from command line, environment or config"""
        return (
            self._overrides.get("destination_registry")
            or os.environ.get("DEST_REGISTRY")
            or self.config["destination"]["registry"]
        )

    def get_destination_namespace(self) -> str:
        """Get the namespace images are pushed under.

        Priority: env DEST_NAMESPACE -> config destination.namespace -> registry username
        """
        return (
            os.environ.get("DEST_NAMESPACE")
            or self.config["destination"].get("namespace")
            or self.get_registry_username()
            or ""
        )

    # Credentials
    @staticmethod
    def _first_env(names: Tuple[str, ...]) -> Optional[str]:
        for name in names:
            value = os.environ.get(name)
            if value:
                return value
        return None

    def get_username_env_vars(self) -> Tuple[str, ...]:
        """Variables checked for the username: the configured name first, then the built-in ones"""
        configured = self.config.get("credentials", {}).get("username_env") or USERNAME_ENV_VARS[0]
        return tuple(dict.fromkeys((configured,) + USERNAME_ENV_VARS))

    def get_token_env_vars(self) -> Tuple[str, ...]:
        """Variables checked for the token: the configured name first, then the built-in ones"""
        configured = self.config.get("credentials", {}).get("token_env") or TOKEN_ENV_VARS[0]
        return tuple(dict.fromkeys((configured,) + TOKEN_ENV_VARS))

    def get_registry_username(self) -> Optional[str]:
        """Get destination registry username from the environment"""
        return self._first_env(self.get_username_env_vars())

    def get_registry_token(self) -> Optional[str]:
        """Get destination registry token from the environment"""
        return self._first_env(self.get_token_env_vars())

    def get_missing_credentials(self) -> List[str]:
        """Return the credential variables that are unset (empty list if both are present)"""
        missing = []
        if not self.get_registry_username():
            missing.append(self.get_username_env_vars()[0])
        if not self.get_registry_token():
            missing.append(self.get_token_env_vars()[0])
        return missing

    # Runtime configuration
    def get_runtime_binary(self) -> str:
        """Get container runtime executable from command line, environment or config"""
        return (
            self._overrides.get("runtime_binary")
            or os.environ.get("CONTAINER_RUNTIME")
            or self.config["runtime"]["binary"]
        )

    def get_runtime_timeout(self) -> int:
        """Get timeout for runtime subprocess calls, with type coercion"""
        timeout = self.config.get("runtime", {}).get("timeout", 1800)
        try:
            return int(timeout)
        except (ValueError, TypeError):
            raise ConfigValidationError(
                f"runtime.timeout must be an integer, got: {timeout} (type: {type(timeout).__name__})"
            )

    def get_prune_on_exit(self) -> bool:
        """Get whether dangling images are pruned when the run ends"""
        return bool(self.config.get("runtime", {}).get("prune_on_exit", True))

    # Retry configuration
    def get_pull_attempts(self) -> int:
        """Get total pull attempts per image, with type coercion"""
        attempts = self.config.get("retry", {}).get("pull_attempts", 3)
        try:
            return int(attempts)
        except (ValueError, TypeError):
            raise ConfigValidationError(
                f"retry.pull_attempts must be an integer, got: {attempts} (type: {type(attempts).__name__})"
            )

    def get_pull_retry_delay(self) -> float:
        """Get delay between pull attempts, with type coercion"""
        delay = self.config.get("retry", {}).get("pull_retry_delay", 2.0)
        try:
            return float(delay)
        except (ValueError, TypeError):
            raise ConfigValidationError(
                f"retry.pull_retry_delay must be a number, got: {delay} (type: {type(delay).__name__})"
            )

    def get_backoff_factor(self) -> float:
        """Get multiplier applied to the retry delay after each failed attempt"""
        factor = self.config.get("retry", {}).get("backoff_factor", 1.0)
        try:
            return float(factor)
        except (ValueError, TypeError):
            raise ConfigValidationError(
                f"retry.backoff_factor must be a number, got: {factor} (type: {type(factor).__name__})"
            )

    def get_retry_max_delay(self) -> float:
        """Get max retry delay from config, with type coercion"""
        delay = self.config.get("retry", {}).get("max_delay", 60.0)
        try:
            return float(delay)
        except (ValueError, TypeError):
            raise ConfigValidationError(
                f"retry.max_delay must be a number, got: {delay} (type: {type(delay).__name__})"
            )

    def get_retry_policy(self) -> RetryPolicy:
        """Build the pull retry policy from config"""
        return RetryPolicy(
            attempts=self.get_pull_attempts(),
            delay=self.get_pull_retry_delay(),
            backoff_factor=self.get_backoff_factor(),
            max_delay=self.get_retry_max_delay(),
        )

    # Pacing
    def get_delay_between_images(self) -> float:
        """Get the pause between catalog entries, with type coercion"""
        delay = self.config.get("pacing", {}).get("delay_between_images", 1.0)
        try:
            return float(delay)
        except (ValueError, TypeError):
            raise ConfigValidationError(
                f"pacing.delay_between_images must be a number, got: {delay} (type: {type(delay).__name__})"
            )

    # Catalog and reports
    def get_catalog_path(self) -> Optional[str]:
        """Get catalog file path (None means use the built-in catalog)"""
        return os.environ.get("CATALOG_FILE") or self.config.get("catalog", {}).get("path") or None

    def get_output_dir(self) -> str:
        """Get output directory from config"""
        return self.config["reports"]["output_dir"]

    def validate_config(self) -> None:
        """Validate configuration values

        Raises:
            ConfigValidationError: If configuration is invalid
        """
        errors = []
        warnings = []

        registry = self.get_destination_registry()
        if not registry or not str(registry).strip():
            errors.append("Destination registry is required and cannot be empty")
        elif not self._is_valid_registry_host(registry):
            warnings.append(
                f"Destination registry '{registry}' may be invalid (expected format: hostname[:port])"
            )

        namespace = self.config["destination"].get("namespace")
        if namespace and not self._is_valid_namespace(namespace):
            errors.append(
                f"Destination namespace '{namespace}' contains invalid characters "
                "(lowercase alphanumeric, '.', '_', '-' and '/' only)"
            )

        binary = self.get_runtime_binary()
        if not binary or not str(binary).strip():
            errors.append("runtime.binary is required and cannot be empty")

        try:
            timeout = self.get_runtime_timeout()
            if timeout < 1:
                errors.append(f"runtime.timeout must be a positive integer (seconds), got: {timeout}")
        except ConfigValidationError as e:
            errors.append(str(e))

        try:
            attempts = self.get_pull_attempts()
            if attempts < 1:
                errors.append(f"retry.pull_attempts must be at least 1, got: {attempts}")
            elif attempts > 10:
                warnings.append(f"pull_attempts is very high ({attempts}), failing images may take a long time")
        except ConfigValidationError as e:
            errors.append(str(e))

        try:
            delay = self.get_pull_retry_delay()
            max_delay = self.get_retry_max_delay()
            if delay < 0:
                errors.append(f"retry.pull_retry_delay must be a non-negative number, got: {delay}")
            if max_delay < 0:
                errors.append(f"retry.max_delay must be a non-negative number, got: {max_delay}")
            elif max_delay < delay:
                errors.append(f"retry.max_delay ({max_delay}) must be >= retry.pull_retry_delay ({delay})")
        except ConfigValidationError as e:
            errors.append(str(e))

        try:
            factor = self.get_backoff_factor()
            if factor < 1.0:
                errors.append(f"retry.backoff_factor must be >= 1.0, got: {factor}")
        except ConfigValidationError as e:
            errors.append(str(e))

        try:
            pacing = self.get_delay_between_images()
            if pacing < 0:
                errors.append(f"pacing.delay_between_images must be a non-negative number, got: {pacing}")
        except ConfigValidationError as e:
            errors.append(str(e))

        output_dir = self.get_output_dir()
        if not output_dir or not str(output_dir).strip():
            errors.append("reports.output_dir is required and cannot be empty")

        # Log warnings
        for warning in warnings:
            logging.warning(f"Configuration warning: {warning}")

        # Raise error if there are validation errors
        if errors:
            error_msg = "Configuration validation failed:\n  " + "\n  ".join(errors)
            logging.error(error_msg)
            raise ConfigValidationError(error_msg)

    def _is_valid_registry_host(self, host: str) -> bool:
        """Validate registry host format"""
        if not host:
            return False
        pattern = r"^[a-zA-Z0-9]([a-zA-Z0-9\-\.]*[a-zA-Z0-9])?(:[0-9]{1,5})?$"
        return bool(re.match(pattern, host))

    def _is_valid_namespace(self, name: str) -> bool:
        """Validate repository namespace format"""
        pattern = r"^[a-z0-9]+([._\-/][a-z0-9]+)*$"
        return bool(re.match(pattern, str(name)))

    def print_config(self):
        """Print current configuration"""
        print("Current Configuration:")
        print(f"  Destination Registry: {self.get_destination_registry()}")
        print(f"  Destination Namespace: {self.get_destination_namespace() or 'Not set'}")
        print(f"  Runtime: {self.get_runtime_binary()}")
        print(f"  Runtime Timeout: {self.get_runtime_timeout()}s")
        print(f"  Pull Attempts: {self.get_pull_attempts()}")
        print(f"  Pull Retry Delay: {self.get_pull_retry_delay()}s")
        print(f"  Delay Between Images: {self.get_delay_between_images()}s")
        print(f"  Catalog: {self.get_catalog_path() or 'built-in'}")
        print(f"  Output Directory: {self.get_output_dir()}")

        username = self.get_registry_username()
        print(f"  Registry Username: {username or 'Not set'}")
        token = self.get_registry_token()
        if token:
            print(f"  Registry Token: {'*' * 8}")
        else:
            print("  Registry Token: Not set")
