"""
Command-line interface for the zatserver package.
"""

from .main import main_cli

__all__ = [
    "main_cli",
]
