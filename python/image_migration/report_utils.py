"""
Utility functions for migration run reports.

This module provides functions to:
- Render the failure table printed at the end of a run
- Build and save the optional JSON run report
- Generate timestamped report filenames
"""
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from tabulate import tabulate

from image_migration.logging_utils import get_logger
from image_migration.models import RunSummary

logger = get_logger(__name__)


# ============================================================================
# Timestamp Utilities
# ============================================================================

def get_timestamp_suffix() -> str:
    """
    Generate a timestamp suffix for report filenames.

    Returns:
        String in format: YYYY-MM-DD-HH-MM-SS
    """
    return datetime.now().strftime("%Y-%m-%d-%H-%M-%S")


def add_timestamp_to_path(path: str, timestamp: Optional[str] = None) -> str:
    """
    Add a timestamp to a file path before the extension.

    Args:
        path: Original file path (e.g., 'reports/migration-report.json')
        timestamp: Optional timestamp string (defaults to current time)

    Returns:
        Path with timestamp inserted (e.g., 'reports/migration-report-2026-01-15-14-30-00.json')
    """
    if timestamp is None:
        timestamp = get_timestamp_suffix()

    p = Path(path)
    return str(p.parent / f"{p.stem}-{timestamp}{p.suffix}")


# ============================================================================
# Summary Rendering
# ============================================================================

def format_summary_table(summary: RunSummary) -> str:
    """Render failed images and their reasons as a grid table (empty string if none failed)."""
    if not summary.failures:
        return ""
    rows = [[i, source, reason] for i, (source, reason) in enumerate(summary.failures, 1)]
    return tabulate(rows, headers=["#", "Source image", "Reason"], tablefmt="grid")


def build_run_report(summary: RunSummary, metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Assemble the JSON-serializable report for a run."""
    return {
        "summary": summary.to_dict(),
        "metadata": {
            **(metadata or {}),
            "timestamp": datetime.now().isoformat(),
        },
    }


# ============================================================================
# Report Saving Functions
# ============================================================================

def save_json(path: str, data: Any, timestamp: bool = False) -> str:
    """
    Write JSON data to a file with indentation.

    Args:
        path: Path to save the JSON file
        data: Data to save
        timestamp: If True, add timestamp to filename (default: False)

    Returns:
        Path to the saved file
    """
    p = Path(path)

    if timestamp:
        p = Path(add_timestamp_to_path(str(p)))

    p.parent.mkdir(parents=True, exist_ok=True)

    with open(p, "w") as f:
        json.dump(data, f, indent=2, default=str)
    logger.info(f"Saved JSON to {p}")
    return str(p)
