"""
Authentication provider implementations for the destination registry.

This module contains the login/logout logic. The token is handed to the
container runtime on stdin so it never shows up in a process listing or
in a log line.
"""

import logging
from typing import Optional, Tuple

from image_migration.error_utils import (
    RuntimeCommandError,
    create_missing_credentials_error,
    create_registry_auth_error,
)


def require_credentials(config_manager) -> Tuple[str, str]:
    """Return (username, token) from the environment.

    Raises:
        SetupError: if either value is unset or empty
    """
    missing = config_manager.get_missing_credentials()
    if missing:
        raise create_missing_credentials_error(missing)
    return config_manager.get_registry_username(), config_manager.get_registry_token()


class RegistrySession:
    """Authenticated session against a registry, usable as a context manager.

    Logging out happens in __exit__, so the session is torn down whether the
    body returns normally, raises, or is interrupted.
    """

    def __init__(self, runtime_client, registry: str, username: str, token: str, prune_on_exit: bool = True):
        self.runtime_client = runtime_client
        self.registry = registry
        self.username = username
        self._token = token
        self.prune_on_exit = prune_on_exit
        self.logged_in = False

    def __repr__(self) -> str:
        return f"RegistrySession(registry={self.registry!r}, username={self.username!r})"

    def login(self) -> None:
        """Log in to the registry.

        Raises:
            SetupError: if the runtime rejects the credentials
        """
        logging.info(f"Authenticating with {self.registry}...")
        try:
            self.runtime_client.login(self.registry, self.username, self._token)
        except RuntimeCommandError as e:
            logging.error(f"Authentication with {self.registry} failed")
            raise create_registry_auth_error(self.registry, e)
        self.logged_in = True
        logging.info(f"Authenticated with {self.registry} as {self.username}")

    def close(self) -> None:
        """Log out and prune dangling images. Errors are logged, never raised."""
        logging.info("Cleaning up...")
        if self.logged_in:
            try:
                self.runtime_client.logout(self.registry)
                logging.info(f"Logged out of {self.registry}")
            except RuntimeCommandError as e:
                logging.warning(f"Logout from {self.registry} failed: {e}")
            self.logged_in = False

        if self.prune_on_exit:
            try:
                self.runtime_client.prune_images()
            except RuntimeCommandError as e:
                logging.debug(f"Image prune failed: {e}")

    def __enter__(self) -> "RegistrySession":
        try:
            self.login()
        except Exception:
            self.close()
            raise
        return self

    def __exit__(self, exc_type, exc_value, tb) -> Optional[bool]:
        self.close()
        return None
