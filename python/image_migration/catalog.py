"""
Image catalogs: the built-in list, catalog files, and interactive entry.

A catalog is an ordered sequence of MigrationEntry values. Comment and blank
lines are kept as placeholder entries so that the runner, not the loader,
decides what gets counted.
"""

from pathlib import Path
from typing import Callable, Iterator, List, Optional

from image_migration.error_utils import InvalidReferenceError, create_catalog_error
from image_migration.logging_utils import get_logger
from image_migration.models import COMMENT_MARKER, MigrationEntry

logger = get_logger(__name__)

HA_REGISTRY = "ghcr.io/home-assistant"
DOCKERHUB_HA = "homeassistant"

INTERACTIVE_DONE = "done"

# (source, target image name, enabled)
_DEFAULT_IMAGES = [
    ("{ha}/home-assistant:stable", "home-assistant:stable", True),
    ("{ha}/home-assistant:latest", "home-assistant:latest", True),
    ("{ha}/home-assistant:beta", "home-assistant:beta", True),
    ("{ha}/supervisor:latest", "supervisor:latest", True),
    (None, None, None),
    ("Popular Add-ons (uncomment as needed)", None, None),
    ("{ha}/addon-mosquitto:latest", "addon-mosquitto:latest", False),
    ("{ha}/addon-node-red:latest", "addon-node-red:latest", False),
    ("{ha}/addon-vscode:latest", "addon-vscode:latest", False),
    ("{ha}/addon-mariadb:latest", "addon-mariadb:latest", False),
    ("{ha}/addon-nginx-proxy-manager:latest", "addon-nginx-proxy-manager:latest", False),
    ("{ha}/addon-ssh:latest", "addon-ssh:latest", False),
    ("{ha}/addon-file-editor:latest", "addon-file-editor:latest", False),
    (None, None, None),
    ("Legacy Docker Hub (if needed)", None, None),
    ("{hub}/home-assistant:stable", "home-assistant-legacy:stable", False),
]


def destination_prefix(registry: str, namespace: str) -> str:
    """Join registry and namespace, e.g. ghcr.io/myuser"""
    namespace = (namespace or "").strip("/").lower()
    return f"{registry}/{namespace}" if namespace else registry


def default_catalog(registry: str, namespace: str) -> List[MigrationEntry]:
    """Return the built-in Home Assistant catalog targeting registry/namespace.

    Disabled images are returned as commented-out placeholder entries.
    """
    prefix = destination_prefix(registry, namespace)
    entries = []
    for source, target, enabled in _DEFAULT_IMAGES:
        if source is None:
            entries.append(MigrationEntry(""))
        elif target is None:
            entries.append(MigrationEntry(f"{COMMENT_MARKER} {source}"))
        else:
            source_ref = source.format(ha=HA_REGISTRY, hub=DOCKERHUB_HA)
            entry = MigrationEntry(source_ref, f"{prefix}/{target}")
            if not enabled:
                entry = MigrationEntry(f"{COMMENT_MARKER} {entry.source}", entry.target)
            entries.append(entry)
    return entries


def parse_catalog_line(line: str) -> MigrationEntry:
    """Split a 'source,target' line into an entry (fields are stripped)."""
    if "," not in line:
        return MigrationEntry(line.strip())
    source, target = line.split(",", 1)
    return MigrationEntry(source.strip(), target.strip())


def load_catalog(path: str) -> List[MigrationEntry]:
    """Read a catalog file with one 'source,target' pair per line.

    Raises:
        CatalogError: if the file cannot be read or a line has no target
    """
    catalog_path = Path(path)
    try:
        with open(catalog_path, "r") as f:
            lines = f.read().splitlines()
    except OSError as e:
        raise create_catalog_error(str(catalog_path), str(e))

    entries = []
    for line_num, line in enumerate(lines, 1):
        entry = parse_catalog_line(line)
        if not entry.is_placeholder and not entry.target:
            raise create_catalog_error(
                str(catalog_path), f"missing target image for '{entry.source}'", line_number=line_num
            )
        entries.append(entry)

    logger.info(f"Loaded {len(entries)} catalog lines from {catalog_path}")
    return entries


def parse_interactive_line(line: str) -> Optional[MigrationEntry]:
    """Parse 'source target' typed by an operator; None if the format is wrong."""
    parts = line.split()
    if len(parts) != 2:
        return None
    return MigrationEntry(parts[0], parts[1])


def read_interactive_entries(prompt: Callable[[str], str] = input) -> Iterator[MigrationEntry]:
    """Yield entries typed by the operator until 'done' or end of input.

    Entries are yielded one at a time, so each pair is migrated before the
    next one is requested.
    """
    print()
    logger.info("Interactive mode: add custom images to migrate")
    print(f"Format: source_image target_image (or '{INTERACTIVE_DONE}' to finish)")

    while True:
        try:
            line = prompt("Enter image pair: ")
        except EOFError:
            break
        if line.strip() == INTERACTIVE_DONE:
            break

        entry = parse_interactive_line(line)
        if entry is None:
            logger.warning("Invalid format. Use: source_image target_image")
            continue
        try:
            entry.validate()
        except InvalidReferenceError as e:
            logger.warning(f"{e.message}: {e.details.get('reason')}")
            continue
        yield entry
