"""
ASTKG command line interface.
"""

from astkg.cli.commands import cli

__all__ = ["cli"]
