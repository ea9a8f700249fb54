"""
Configuration loader for the Deno plugin.

Loads settings from .deno-plugin.json / .deno-plugin.yaml or from the editor's
.vscode/settings.json ("deno.enable", "deno.import_map"), and distributes them as
versioned, immutable snapshots.
"""

import re
import json
import yaml
import logging
import dataclasses
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple
from dataclasses import dataclass, field, asdict

from .exceptions import ConfigurationError
from .resolvers.module_resolver import DEFAULT_EXTENSIONS

# editor-style keys accepted for each config field
_ALIASES = {
    'enable': 'enable',
    'deno.enable': 'enable',
    'import_map': 'import_map',
    'importMap': 'import_map',
    'deno.import_map': 'import_map',
    'deno.importMap': 'import_map',
    'dts_files': 'dts_files',
    'dts_file': 'dts_files',
    'dtsFile': 'dts_files',
    'deno.dts_file': 'dts_files',
    'deno.dtsFile': 'dts_files',
    'deno_dir': 'deno_dir',
    'denoDir': 'deno_dir',
    'extensions': 'extensions',
}

_JSONC_TOKENS = re.compile(r'("(?:\\.|[^"\\])*")|//[^\n]*|/\*.*?\*/', re.DOTALL)
_TRAILING_COMMA = re.compile(r',(\s*[}\]])')


def _as_tuple(name: str, value: Any) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if not isinstance(value, (list, tuple)):
        raise ConfigurationError(f"'{name}' must be a string or a list of strings, got {type(value).__name__}")
    return tuple(str(v) for v in value)


@dataclass(frozen=True)
class DenoPluginConfig:
    """Plugin settings."""

    enable: bool = False
    import_map: Optional[str] = None
    dts_files: Tuple[str, ...] = ()
    deno_dir: Optional[str] = None
    extensions: Tuple[str, ...] = field(default_factory=lambda: tuple(DEFAULT_EXTENSIONS))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @staticmethod
    def normalize_settings(data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Map editor-style keys onto field names, dropping unknown keys.

        Raises:
            ConfigurationError: a known key carries a value of the wrong type
        """
        if isinstance(data.get('deno'), dict):
            nested = {f"deno.{k}": v for k, v in data['deno'].items()}
            data = {**data, **nested}

        settings = {}
        for key, value in data.items():
            name = _ALIASES.get(key)
            if name is None:
                continue
            if name in ('dts_files', 'extensions'):
                value = _as_tuple(key, value)
            elif name == 'enable':
                if isinstance(value, str):
                    value = value.strip().lower() in ('true', '1', 'yes', 'on')
                value = bool(value)
            elif value is not None and not isinstance(value, str):
                raise ConfigurationError(f"'{key}' must be a string, got {type(value).__name__}")
            settings[name] = value
        return settings

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DenoPluginConfig':
        """Create from dictionary, filtering unknown keys."""
        valid_keys = {f.name for f in dataclasses.fields(cls)}
        settings = cls.normalize_settings(data)
        return cls(**{k: v for k, v in settings.items() if k in valid_keys})

    def merged(self, data: Dict[str, Any]) -> 'DenoPluginConfig':
        """Copy with the given settings applied on top."""
        return dataclasses.replace(self, **self.normalize_settings(data))


@dataclass(frozen=True)
class ConfigSnapshot:
    """A configuration version; every update produces a new snapshot."""
    version: int
    config: DenoPluginConfig


class ConfigLoader:
    """Loads plugin configuration with defaults."""

    CONFIG_FILES = [
        '.deno-plugin.json',
        '.deno-plugin.yaml',
        '.deno-plugin.yml',
    ]
    EDITOR_SETTINGS = Path('.vscode') / 'settings.json'

    @classmethod
    def load(cls, project_path: Path) -> DenoPluginConfig:
        """
        Load configuration from a project directory.

        Priority:
        1. Plugin config file (.deno-plugin.json / .yaml / .yml)
        2. Editor settings (.vscode/settings.json)
        3. Defaults

        Args:
            project_path: Path to project root

        Returns:
            DenoPluginConfig with loaded settings
        """
        return DenoPluginConfig().merged(cls.load_settings(project_path))

    @classmethod
    def load_settings(cls, project_path: Path) -> Dict[str, Any]:
        """
        Read the project's settings file, same priority as load().

        Returns:
            Normalized settings (field name -> value); empty when no file is found
            or the file cannot be used
        """
        if isinstance(project_path, str):
            project_path = Path(project_path)

        for config_file in cls.CONFIG_FILES:
            config_path = project_path / config_file
            if config_path.exists():
                logging.info(f"Loading config from: {config_file}")
                return cls._load_from_file(config_path)

        settings_path = project_path / cls.EDITOR_SETTINGS
        if settings_path.exists():
            logging.info(f"Loading config from: {cls.EDITOR_SETTINGS}")
            return cls._load_from_file(settings_path)

        logging.debug("No plugin config found, using defaults")
        return {}

    @staticmethod
    def strip_json_comments(content: str) -> str:
        """Remove // and /* */ comments and trailing commas outside of strings."""
        content = _JSONC_TOKENS.sub(lambda m: m.group(1) or '', content)
        return _TRAILING_COMMA.sub(r'\1', content)

    @classmethod
    def _parse(cls, config_path: Path) -> Dict[str, Any]:
        with open(config_path, 'r', encoding='utf-8') as f:
            if config_path.suffix in ['.yaml', '.yml']:
                data = yaml.safe_load(f) or {}
            else:
                data = json.loads(cls.strip_json_comments(f.read()))

        if not isinstance(data, dict):
            raise ConfigurationError("Configuration must be a mapping", config_file=str(config_path))
        return data

    @classmethod
    def _load_from_file(cls, config_path: Path) -> Dict[str, Any]:
        """Load settings from JSON or YAML file."""
        try:
            return DenoPluginConfig.normalize_settings(cls._parse(config_path))
        except (ValueError, RecursionError, yaml.YAMLError) as e:
            logging.error(f"Failed to parse config file {config_path}: {e}")
        except ConfigurationError as e:
            logging.error(f"{e.message}: {config_path}")
        except OSError as e:
            logging.error(f"Failed to load config file {config_path}: {e}")
        return {}


class ConfigurationManager:
    """Holds the current config snapshot and notifies listeners on change."""

    def __init__(self, config: Optional[DenoPluginConfig] = None):
        self._snapshot = ConfigSnapshot(version=0, config=config or DenoPluginConfig())
        self._listeners: List[Callable[[ConfigSnapshot], None]] = []

    @property
    def snapshot(self) -> ConfigSnapshot:
        return self._snapshot

    @property
    def config(self) -> DenoPluginConfig:
        return self._snapshot.config

    def on_updated_config(self, listener: Callable[[ConfigSnapshot], None]) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def dispose():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return dispose

    def update(self, settings: Dict[str, Any]) -> ConfigSnapshot:
        """
        Apply settings on top of the current config and publish a new snapshot.

        Settings with values of the wrong type are rejected as a whole: the error
        is logged and the current snapshot is returned unchanged.
        """
        try:
            config = self._snapshot.config.merged(settings or {})
        except ConfigurationError as e:
            logging.error(f"Ignoring configuration update: {e.message}")
            return self._snapshot
        return self.replace(config)

    def replace(self, config: DenoPluginConfig) -> ConfigSnapshot:
        """Publish a complete config as the next snapshot."""
        snapshot = ConfigSnapshot(version=self._snapshot.version + 1, config=config)
        self._snapshot = snapshot
        logging.info(f"Configuration v{snapshot.version}: {json.dumps(config.to_dict())}")

        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logging.exception("Configuration listener failed")
        return snapshot

