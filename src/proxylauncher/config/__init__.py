"""
Configuration loading for the proxylauncher package.
"""

from .loader import load_supervisor_config, load_toml_file, parse_supervisor_config

__all__ = [
    "load_supervisor_config",
    "load_toml_file",
    "parse_supervisor_config",
]
