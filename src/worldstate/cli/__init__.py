"""
CLI layer for worldstate.

Provides a Typer application whose commands delegate to ``worldstate.ops``.
This package handles only terminal transport: argument parsing, coloured
output and table formatting.

Entry point::

    worldstate --help
"""

from worldstate.cli.app import app

__all__ = ["app"]
