"""Assistant Biologie voice front-end package."""

from __future__ import annotations

from typing import Any

__all__ = ["run"]


def run(*args: Any, **kwargs: Any) -> Any:
    """Entrypoint pour lancer la session vocale (import paresseux)."""
    from .cli import cli

    return cli(*args, **kwargs)
