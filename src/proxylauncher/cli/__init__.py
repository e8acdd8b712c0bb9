"""
Command-line interface for proxylauncher.
"""

from .main import main_cli

__all__ = ["main_cli"]
