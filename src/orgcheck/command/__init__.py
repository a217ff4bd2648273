"""CLI command modules for orgcheck."""

from orgcheck.command.check import CheckCommand

__all__ = ["CheckCommand"]
