"""Filesystem helpers for the voice assistant."""

from __future__ import annotations

from pathlib import Path


def project_root() -> Path:
    """Return the repository root."""
    return Path(__file__).resolve().parents[2]


def resources_dir() -> Path:
    """Directory storing downloaded models."""
    return project_root() / "resources"


def voices_dir() -> Path:
    """Default directory scanned for Piper voices."""
    return resources_dir() / "voices"


def logs_dir() -> Path:
    """Directory storing JSON-lines log files."""
    root = project_root() / "logs"
    root.mkdir(parents=True, exist_ok=True)
    return root
