"""CLI module for oss-resolver.

This module provides the command-line interface. It supports both CLI
arguments and environment variables for configuration.
"""

from .main import CliState, cli, main

__all__ = [
    "cli",
    "main",
    "CliState",
]
