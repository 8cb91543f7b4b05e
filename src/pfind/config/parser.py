"""
YAML configuration parser for pfind.

This module loads optional YAML settings files, merges command-line overrides
on top of them and validates the result into a FinderConfig. It also reads
exclusion files (one directory name per line).
"""

import yaml
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional, Tuple, Union
import logging
from dataclasses import dataclass

from pydantic import ValidationError

from ..models.config import FinderConfig, OutputMode


logger = logging.getLogger(__name__)


@dataclass
class ConfigParseResult:
    """
    Result of configuration parsing operation.

    Attributes:
        config: The parsed and validated configuration
        warnings: List of non-fatal warnings
        config_path: Path to the configuration file used
        is_default: Whether no configuration file was used
    """
    config: FinderConfig
    warnings: List[str]
    config_path: Optional[Path]
    is_default: bool


class ConfigurationError(Exception):
    """Raised when configuration parsing or validation fails."""
    pass


class ExclusionFileError(ConfigurationError):
    """Raised when an exclusion file cannot be read."""
    pass


class HomeDirectoryError(ConfigurationError):
    """Raised when the user's home directory cannot be determined."""
    pass


class RootPathError(ConfigurationError):
    """Raised when the search root is missing or not a directory."""
    pass


def load_exclude_file(path: Union[str, Path]) -> FrozenSet[str]:
    """
    Load directory names to exclude from a text file.

    Args:
        path: File with one directory name per line; blank lines are ignored

    Returns:
        Set of directory names

    Raises:
        ExclusionFileError: If the file cannot be read
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            lines = f.read().splitlines()
    except (OSError, UnicodeDecodeError) as e:
        raise ExclusionFileError(f"Cannot read exclusion file {path}: {e}") from e

    names = frozenset(line.strip() for line in lines if line.strip())
    logger.debug(f"Loaded {len(names)} exclusions from {path}")
    return names


class ConfigParser:
    """
    YAML configuration parser with validation and error handling.

    Settings come from an explicit file, or the first default file found in
    the current directory, the home directory or ``~/.config/pfind``.
    Command-line overrides are applied on top before validation.
    """

    DEFAULT_CONFIG_NAMES = [
        '.pfind.yaml',
        '.pfind.yml',
        'pfind.yaml',
        'pfind.yml',
    ]

    # Keys accepted in a settings file besides the FinderConfig fields.
    EXTRA_KEYS = {'size', 'xxhash', 'exclude_file'}

    def __init__(self, strict_mode: bool = False, discover: bool = True):
        """
        Initialize the configuration parser.

        Args:
            strict_mode: If True, treat warnings as errors
            discover: Search default locations when no file is given
        """
        self.strict_mode = strict_mode
        self.discover = discover
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def load_config(
        self,
        config_path: Optional[Union[str, Path]] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> ConfigParseResult:
        """
        Load settings, apply overrides and validate.

        Args:
            config_path: Path to a settings file. If None, default locations
                are searched (unless discovery is disabled).
            overrides: Values taken from the command line. ``None`` values are
                ignored, ``exclude`` entries are added to the file's, and
                ``query`` entries are merged key by key.

        Returns:
            ConfigParseResult containing parsed configuration and metadata

        Raises:
            ConfigurationError: If a file cannot be read or settings are invalid
        """
        if config_path:
            config_path = Path(config_path)
            if not config_path.exists():
                raise ConfigurationError(f"Configuration file not found: {config_path}")
            file_data = self._load_yaml_file(config_path)
        elif self.discover:
            config_path, file_data = self._find_and_load_config()
        else:
            config_path, file_data = None, None

        is_default = file_data is None
        file_data = file_data or {}
        self._check_keys(file_data, config_path)

        warnings = self._get_file_warnings(file_data, config_path)

        base_dir = config_path.parent if config_path else Path.cwd()
        file_data = self._resolve_exclude_file(file_data, base_dir)
        merged = self._merge_overrides(file_data, overrides or {})
        merged = self._resolve_exclude_file(merged, Path.cwd())
        merged = self._resolve_output_mode(merged)

        try:
            finder_config = FinderConfig.from_dict(merged)
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed: {e}") from e

        warnings.extend(finder_config.validate_configuration())

        if self.strict_mode and warnings:
            raise ConfigurationError(f"Configuration warnings in strict mode: {'; '.join(warnings)}")

        self.logger.info(f"Configuration loaded from {config_path or 'defaults'}")

        return ConfigParseResult(
            config=finder_config,
            warnings=warnings,
            config_path=config_path,
            is_default=is_default
        )

    def _search_paths(self) -> List[Path]:
        search_paths = [Path.cwd()]
        try:
            home = Path.home()
        except (RuntimeError, KeyError):
            self.logger.debug("Home directory unavailable, skipping home configuration files")
            return search_paths
        search_paths.append(home)
        search_paths.append(home / '.config' / 'pfind')
        return search_paths

    def _find_and_load_config(self) -> Tuple[Optional[Path], Optional[Dict[str, Any]]]:
        """
        Find and load configuration file from default locations.

        Returns:
            Tuple of (config_path, config_data) or (None, None) if not found
        """
        for search_path in self._search_paths():
            for config_name in self.DEFAULT_CONFIG_NAMES:
                config_file = search_path / config_name
                if config_file.is_file():
                    self.logger.info(f"Found configuration file: {config_file}")
                    return config_file, self._load_yaml_file(config_file)

        self.logger.debug("No configuration file found, using defaults")
        return None, None

    def _load_yaml_file(self, file_path: Path) -> Dict[str, Any]:
        """
        Load and parse YAML file.

        Args:
            file_path: Path to YAML file

        Returns:
            Parsed YAML data as dictionary

        Raises:
            ConfigurationError: If file cannot be read or parsed
        """
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                content = f.read()

            if not content.strip():
                self.logger.warning(f"Configuration file is empty: {file_path}")
                return {}

            data = yaml.safe_load(content)

            if data is None:
                return {}

            if not isinstance(data, dict):
                raise ConfigurationError(f"Configuration file must contain a YAML object, got {type(data).__name__}")

            return data

        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML syntax in {file_path}: {e}") from e
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigurationError(f"Cannot read configuration file {file_path}: {e}") from e

    def _check_keys(self, data: Dict[str, Any], config_path: Optional[Path]) -> None:
        known = set(FinderConfig.model_fields) | self.EXTRA_KEYS
        unknown = sorted(str(key) for key in data if key not in known)
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys in {config_path}: {', '.join(unknown)}")

    def _get_file_warnings(self, data: Dict[str, Any], config_path: Optional[Path]) -> List[str]:
        warnings = []
        if data.get('size') and data.get('xxhash'):
            warnings.append(f"Both size and xxhash are enabled in {config_path}; xxhash takes precedence")
        if 'output_mode' in data and ('size' in data or 'xxhash' in data):
            warnings.append(f"output_mode in {config_path} is overridden by the size/xxhash keys")
        return warnings

    def _resolve_exclude_file(self, data: Dict[str, Any], base_dir: Path) -> Dict[str, Any]:
        """Replace an ``exclude_file`` key with the names it lists."""
        exclude_file = data.get('exclude_file')
        if not exclude_file:
            data = dict(data)
            data.pop('exclude_file', None)
            return data

        path = Path(exclude_file).expanduser()
        if not path.is_absolute():
            path = base_dir / path

        data = dict(data)
        del data['exclude_file']
        data['exclude'] = list(self._as_list(data.get('exclude'))) + sorted(load_exclude_file(path))
        return data

    def _merge_overrides(self, data: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
        merged = dict(data)
        for key, value in overrides.items():
            if value is None:
                continue
            if key == 'exclude':
                merged['exclude'] = list(self._as_list(merged.get('exclude'))) + list(value)
            elif key == 'query':
                query = dict(merged.get('query') or {})
                query.update({k: v for k, v in value.items() if v is not None})
                merged['query'] = query
            else:
                merged[key] = value
        return merged

    def _resolve_output_mode(self, data: Dict[str, Any]) -> Dict[str, Any]:
        data = dict(data)
        size = bool(data.pop('size', False))
        xxhash = bool(data.pop('xxhash', False))
        if size or xxhash:
            data['output_mode'] = OutputMode.from_flags(size=size, xxhash=xxhash)
        return data

    @staticmethod
    def _as_list(value: Any) -> List[Any]:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return list(value)


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict[str, Any]] = None,
    strict_mode: bool = False,
    discover: bool = True,
) -> ConfigParseResult:
    """
    Convenience function to load configuration.

    Args:
        config_path: Path to configuration file (optional)
        overrides: Command-line values applied on top of the file
        strict_mode: Whether to treat warnings as errors
        discover: Whether to search default locations for a file

    Returns:
        ConfigParseResult containing parsed configuration

    Raises:
        ConfigurationError: If configuration is invalid
    """
    parser = ConfigParser(strict_mode=strict_mode, discover=discover)
    return parser.load_config(config_path, overrides)
