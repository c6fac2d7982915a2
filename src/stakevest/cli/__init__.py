"""
stakevest command-line interface.
"""

from stakevest.cli.main import cli, main

__all__ = ["cli", "main"]
