"""
Command-line interface module for stagemap.

This module provides the CLI entry point and command implementations
for inspecting and playing maps.
"""

from stagemap.cli.main import main

__all__ = ["main"]
