"""Public package surface for lazyrepos.

Exports ``main`` for programmatic CLI invocation.
Discovery, classification, caching and filtering live in submodules.
"""

from __future__ import annotations

from loguru import logger

logger.disable("lazyrepos")


def main(*args, **kwargs):
    """Lazily import CLI entrypoint to keep package imports lightweight."""
    from .cli import main as _main

    return _main(*args, **kwargs)

__all__ = ["main"]
