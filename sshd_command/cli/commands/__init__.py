"""CLI command handlers."""

from .render import run_command

__all__ = ['run_command']
