"""Command-line interface."""

from llmsync.cli.main import main

__all__ = ["main"]
