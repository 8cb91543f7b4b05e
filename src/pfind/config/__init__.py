"""
Configuration management package for pfind.

This package provides settings file parsing, exclusion file loading and
search root handling.
"""

from .parser import (
    ConfigParser,
    ConfigParseResult,
    ConfigurationError,
    ExclusionFileError,
    HomeDirectoryError,
    RootPathError,
    load_config,
    load_exclude_file,
)
from .paths import expand_root, validate_root

__all__ = [
    'ConfigParser',
    'ConfigParseResult',
    'ConfigurationError',
    'ExclusionFileError',
    'HomeDirectoryError',
    'RootPathError',
    'load_config',
    'load_exclude_file',
    'expand_root',
    'validate_root',
]
