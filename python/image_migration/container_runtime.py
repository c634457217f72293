"""
Container runtime client for local image operations.

This module wraps the container runtime CLI (docker, or a compatible tool
such as podman) behind a small client. Every command runs through
subprocess with captured output and a timeout; secrets are only ever
passed on stdin and commands are redacted before they are logged.
"""

import logging
import shutil
import subprocess
from typing import List, Optional

from image_migration.error_utils import RuntimeCommandError


class ContainerRuntimeClient:
    """Standardized client for container runtime operations."""

    def __init__(self, binary: str = "docker", timeout: int = 1800, dry_run: bool = False):
        """Initialize ContainerRuntimeClient.

        Args:
            binary: Runtime executable name or path
            timeout: Timeout in seconds for each runtime call
            dry_run: If True, log mutating commands instead of running them
        """
        self.binary = binary
        self.timeout = timeout
        self.dry_run = dry_run

    @classmethod
    def from_config(cls, config_manager, dry_run: bool = False) -> "ContainerRuntimeClient":
        return cls(
            binary=config_manager.get_runtime_binary(),
            timeout=config_manager.get_runtime_timeout(),
            dry_run=dry_run,
        )

    @staticmethod
    def _redact_command_for_logging(cmd: List[str]) -> List[str]:
        """Return a copy of the command with any credentials redacted."""
        redacted = list(cmd)
        secret_flags = ("--password", "-p")

        for i, token in enumerate(redacted):
            if token in secret_flags and i + 1 < len(redacted):
                redacted[i + 1] = "****"
            elif token.startswith("--password="):
                redacted[i] = "--password=****"

        return redacted

    def run_command(self, args: List[str], input_text: Optional[str] = None, mutating: bool = True) -> str:
        """Run a runtime command and return its stdout.

        Args:
            args: Arguments after the runtime binary (e.g. ["pull", "alpine:3"])
            input_text: Text written to the command's stdin
            mutating: Whether the command changes state (skipped in dry-run mode)

        Raises:
            RuntimeCommandError: on non-zero exit, timeout, or missing binary
        """
        cmd = [self.binary] + args
        log_cmd = self._redact_command_for_logging(cmd)

        if self.dry_run and mutating:
            logging.info(f"[dry-run] {' '.join(log_cmd)}")
            return ""

        logging.debug(f"Running: {' '.join(log_cmd)}")
        try:
            result = subprocess.run(
                cmd,
                input=input_text,
                capture_output=True,
                text=True,
                check=True,
                timeout=self.timeout,
            )
            return result.stdout
        except subprocess.TimeoutExpired:
            logging.error(f"Runtime command timed out after {self.timeout}s: {' '.join(log_cmd)}")
            raise RuntimeCommandError(log_cmd, None)
        except subprocess.CalledProcessError as e:
            logging.debug(f"Runtime command failed: {' '.join(log_cmd)}")
            raise RuntimeCommandError(log_cmd, e.returncode, e.stderr)
        except FileNotFoundError as e:
            raise RuntimeCommandError(log_cmd, 127, str(e))

    def is_installed(self) -> bool:
        """Check whether the runtime binary can be found."""
        return shutil.which(self.binary) is not None

    def check_daemon(self) -> None:
        """Verify the runtime can talk to its daemon.

        Raises:
            RuntimeCommandError: if '<runtime> info' fails
        """
        self.run_command(["info"], mutating=False)

    def is_available(self) -> bool:
        """Check the runtime is installed and its daemon responds."""
        if not self.is_installed():
            return False
        try:
            self.check_daemon()
            return True
        except RuntimeCommandError as e:
            logging.debug(f"{self.binary} info failed: {e}")
            return False

    def login(self, registry: str, username: str, password: str) -> None:
        """Log in to a registry, passing the secret on stdin."""
        output = self.run_command(
            ["login", registry, "--username", username, "--password-stdin"],
            input_text=password,
        )
        if output and "Login Succeeded" not in output:
            logging.debug(f"Unexpected login output: {output.strip()}")

    def logout(self, registry: str) -> None:
        self.run_command(["logout", registry])

    def pull(self, reference: str) -> None:
        self.run_command(["pull", "--quiet", reference])

    def tag(self, source: str, target: str) -> None:
        self.run_command(["tag", source, target])

    def push(self, reference: str) -> None:
        self.run_command(["push", "--quiet", reference])

    def remove_images(self, *references: str) -> None:
        """Remove local image references."""
        self.run_command(["rmi"] + list(references))

    def prune_images(self) -> None:
        """Remove dangling local images."""
        self.run_command(["image", "prune", "-f"])
