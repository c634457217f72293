"""
Authentication helpers for the destination registry.

This module provides the registry session used by the migration run:
- Reading credentials from the environment
- Logging in with the token on stdin
- Logging out (and pruning local images) on every exit path
"""

from image_migration.auth.providers import RegistrySession, require_credentials

__all__ = [
    "RegistrySession",
    "require_credentials",
]
