"""
Data model for image migration runs.

- ImageRef: validated view of an image reference string
- MigrationEntry: one (source, target) pair from the catalog
- MigrationOutcome: success or failure (with reason) of a single migration
- RunSummary: counts and failures accumulated over a batch
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from image_migration.error_utils import ErrorCategory, InvalidReferenceError

COMMENT_MARKER = "#"

_PATH_COMPONENT = re.compile(r"^[a-z0-9]+(?:(?:[._]|__|-+)[a-z0-9]+)*$")
_TAG = re.compile(r"^[\w][\w.-]{0,127}$")
_DIGEST = re.compile(r"^[a-z0-9]+(?:[.+_-][a-z0-9]+)*:[a-fA-F0-9]{32,}$")


@dataclass(frozen=True)
class ImageRef:
    """A parsed image reference: [registry/]repository[:tag][@digest]"""

    repository: str
    registry: Optional[str] = None
    tag: Optional[str] = None
    digest: Optional[str] = None

    @classmethod
    def parse(cls, reference: str) -> "ImageRef":
        """Parse and validate a reference string.

        Raises:
            InvalidReferenceError: if the reference is empty or malformed
        """
        if not reference or not reference.strip():
            raise _invalid(reference, "reference is empty")
        if reference != reference.strip() or any(c.isspace() for c in reference):
            raise _invalid(reference, "reference contains whitespace")

        remainder = reference
        digest = None
        if "@" in remainder:
            remainder, digest = remainder.split("@", 1)
            if not _DIGEST.match(digest):
                raise _invalid(reference, f"invalid digest '{digest}'")

        tag = None
        last_slash = remainder.rfind("/")
        last_colon = remainder.rfind(":")
        if last_colon > last_slash:
            remainder, tag = remainder[:last_colon], remainder[last_colon + 1:]
            if not _TAG.match(tag):
                raise _invalid(reference, f"invalid tag '{tag}'")

        registry = None
        parts = remainder.split("/")
        if len(parts) > 1 and ("." in parts[0] or ":" in parts[0] or parts[0] == "localhost"):
            registry = parts[0]
            parts = parts[1:]

        for part in parts:
            if not _PATH_COMPONENT.match(part):
                raise _invalid(
                    reference,
                    f"invalid repository component '{part}' (lowercase letters, digits and separators only)",
                )

        return cls(repository="/".join(parts), registry=registry, tag=tag, digest=digest)

    @property
    def name(self) -> str:
        """Last path component, e.g. 'home-assistant' for ghcr.io/home-assistant/home-assistant:stable"""
        return self.repository.rsplit("/", 1)[-1]

    def __str__(self) -> str:
        ref = f"{self.registry}/{self.repository}" if self.registry else self.repository
        if self.tag:
            ref = f"{ref}:{self.tag}"
        if self.digest:
            ref = f"{ref}@{self.digest}"
        return ref


def _invalid(reference: str, reason: str) -> InvalidReferenceError:
    return InvalidReferenceError(
        message=f"Invalid image reference: '{reference}'",
        category=ErrorCategory.REFERENCE,
        suggestions=[
            "Use the form [registry/]repository[:tag][@digest]",
            "Repository names must be lowercase",
        ],
        details={"reference": reference, "reason": reason},
    )


@dataclass(frozen=True)
class MigrationEntry:
    """One catalog line: copy source to target."""

    source: str
    target: str = ""

    @property
    def is_placeholder(self) -> bool:
        """True for comment or blank catalog lines, which are never migrated."""
        stripped = self.source.strip()
        return not stripped or stripped.startswith(COMMENT_MARKER)

    def validate(self) -> Tuple[ImageRef, ImageRef]:
        return ImageRef.parse(self.source), ImageRef.parse(self.target)


@dataclass(frozen=True)
class MigrationOutcome:
    """Result of migrating a single image."""

    succeeded: bool
    reason: Optional[str] = None
    stage: Optional[str] = None

    @classmethod
    def success(cls) -> "MigrationOutcome":
        return cls(succeeded=True)

    @classmethod
    def failure(cls, reason: str, stage: Optional[str] = None) -> "MigrationOutcome":
        return cls(succeeded=False, reason=reason, stage=stage)


@dataclass
class RunSummary:
    """Aggregate of all outcomes in a batch run."""

    total_count: int = 0
    success_count: int = 0
    failures: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def failed_images(self) -> List[str]:
        """Failed source references in catalog order."""
        return [source for source, _ in self.failures]

    @property
    def failed_count(self) -> int:
        return len(self.failures)

    def record(self, entry: MigrationEntry, outcome: MigrationOutcome) -> None:
        self.total_count += 1
        if outcome.succeeded:
            self.success_count += 1
        else:
            self.failures.append((entry.source, outcome.reason or "unknown error"))

    def merge(self, other: "RunSummary") -> "RunSummary":
        """Return a new summary covering both runs (used for interactive additions)."""
        return RunSummary(
            total_count=self.total_count + other.total_count,
            success_count=self.success_count + other.success_count,
            failures=self.failures + other.failures,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total_count,
            "succeeded": self.success_count,
            "failed": self.failed_count,
            "failures": [{"source": source, "reason": reason} for source, reason in self.failures],
        }
