"""
TypeScript language service host wrapper.

DenoLanguageServiceHost implements the host's resolution interface by delegating
to the wrapped host, rewriting what goes in and out so that the compiler sees
Deno modules (remote URLs, import-mapped bare names, extension-less relative
imports) as local files. With the plugin disabled every call passes straight
through.
"""

import os
import copy
import logging
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

from .config_loader import ConfigLoader, ConfigSnapshot, ConfigurationManager, DenoPluginConfig
from .models import PathUtils, ResolvedModule, ResolvedModuleFull
from .resolvers.deno_cache import DenoCache
from .resolvers.import_map import ImportMapCache
from .resolvers.module_resolver import ModuleResolver

logger = logging.getLogger(__name__)

# see https://github.com/denoland/deno/blob/2debbdacb935cfe1eb7bb8d1f40a5063b339d90b/js/compiler.ts#L159-L170
DEFAULT_OPTIONS: Dict[str, Any] = {
    'allowJs': True,
    'checkJs': False,
    'strict': True,
    'esModuleInterop': True,
    'jsx': 'react',
    'module': 'esnext',
    'moduleResolution': 'node',
    'outDir': '$deno$',
    'resolveJsonModule': True,
    'sourceMap': True,
    'stripComments': True,
    'target': 'esnext',
    'noEmit': True,
    'noEmitHelpers': True,
}

# applied last, whatever tsconfig.json says
MUST_OVERWRITE_OPTIONS: Dict[str, Any] = {
    key: DEFAULT_OPTIONS[key]
    for key in ('jsx', 'module', 'moduleResolution', 'resolveJsonModule', 'strict', 'noEmit', 'noEmitHelpers')
}


class LanguageServiceHost(Protocol):
    """The part of the TypeScript language service host the plugin wraps."""

    def get_current_directory(self) -> str: ...

    def get_compilation_settings(self) -> Dict[str, Any]: ...

    def get_script_file_names(self) -> List[str]: ...

    def resolve_module_names(self, module_names: List[str], containing_file: str, *rest) -> List[Optional[Any]]: ...

    def resolve_type_reference_directives(self, names: List[str], containing_file: str, *rest) -> List[Optional[Any]]: ...


def _deep_merge(dest: Dict[str, Any], src: Dict[str, Any]) -> None:
    """Deep-merge src into dest in-place."""
    for k, v in src.items():
        if isinstance(v, dict) and isinstance(dest.get(k), dict):
            _deep_merge(dest[k], v)
        else:
            dest[k] = copy.deepcopy(v)


def resolve_import_map_path(import_map: Optional[str], project_directory: str) -> Optional[str]:
    """Import map location: absolute as configured, or relative to the project."""
    if not import_map:
        return None
    if PathUtils.is_absolute(import_map):
        return PathUtils.to_os_path(import_map)
    return os.path.normpath(os.path.join(project_directory, PathUtils.to_os_path(import_map)))


class DenoLanguageServiceHost:
    """Delegating wrapper over a LanguageServiceHost."""

    def __init__(
        self,
        host: LanguageServiceHost,
        configuration: ConfigurationManager,
        import_map_cache: Optional[ImportMapCache] = None,
        on_refresh: Optional[Callable[[], None]] = None
    ):
        """
        Args:
            host: Wrapped language service host
            configuration: Source of config snapshots and update events
            import_map_cache: Shared import map cache (default: a private one)
            on_refresh: Called after a config change (re-run diagnostics, update the graph)
        """
        self.host = host
        self.configuration = configuration
        self.import_map_cache = import_map_cache or ImportMapCache()
        self.on_refresh = on_refresh
        self.cache = DenoCache(configuration.config.deno_dir)
        self._dispose = configuration.on_updated_config(self._on_updated_config)

    def __getattr__(self, name: str):
        # everything not overridden goes to the wrapped host
        if name == 'host':
            raise AttributeError(name)
        return getattr(self.host, name)

    @property
    def config(self) -> DenoPluginConfig:
        return self.configuration.config

    def close(self) -> None:
        self._dispose()

    def _on_updated_config(self, snapshot: ConfigSnapshot) -> None:
        self.import_map_cache.invalidate()
        if str(self.cache.deno_dir) != str(DenoCache(snapshot.config.deno_dir).deno_dir):
            self.cache = DenoCache(snapshot.config.deno_dir)
        if self.on_refresh is not None:
            self.on_refresh()

    def get_compilation_settings(self) -> Dict[str, Any]:
        project_config = self.host.get_compilation_settings()
        if not self.config.enable:
            return project_config

        settings = copy.deepcopy(DEFAULT_OPTIONS)
        _deep_merge(settings, project_config or {})
        _deep_merge(settings, MUST_OVERWRITE_OPTIONS)
        logger.debug(f"compilationSettings: {settings}")
        return settings

    def get_script_file_names(self) -> List[str]:
        script_file_names = list(self.host.get_script_file_names())
        if not self.config.enable:
            return script_file_names

        project_directory = self.host.get_current_directory()
        for dts_file in self.config.dts_files:
            filepath = dts_file
            if not PathUtils.is_absolute(filepath):
                filepath = os.path.normpath(os.path.join(project_directory, PathUtils.to_os_path(filepath)))
            if filepath not in script_file_names:
                script_file_names.append(filepath)
        return script_file_names

    def _resolve(self, names: Sequence[str], containing_file: str,
                 config: DenoPluginConfig) -> List[Optional[ResolvedModule]]:
        try:
            realpath = getattr(self.host, 'realpath', None)
            real_containing_file = containing_file
            # containing_file may be unix-like on Windows (c:/Users/...)
            if callable(realpath) and containing_file and not containing_file.startswith('untitled:'):
                try:
                    real_containing_file = realpath(containing_file)
                except OSError as e:
                    logger.debug(f"realpath failed for {containing_file}: {e}")

            project_directory = self.host.get_current_directory()
            resolver = ModuleResolver.create(
                real_containing_file,
                import_map_path=resolve_import_map_path(config.import_map, project_directory),
                project_root=project_directory,
                cache=self.cache,
                import_map_cache=self.import_map_cache,
                extensions=config.extensions
            )
            return resolver.resolve_modules(names)
        except Exception:
            logger.exception(f"Module resolution failed for {containing_file}")
            return [None] * len(names)

    def resolve_module_names(self, module_names: List[str], containing_file: str, *rest) -> List[Optional[Any]]:
        config = self.config
        if not config.enable:
            return self.host.resolve_module_names(module_names, containing_file, *rest)

        resolved_modules = self._resolve(module_names, containing_file, config)
        rewritten = [
            resolved.module if resolved else name
            for resolved, name in zip(resolved_modules, module_names)
        ]

        results = []
        for index, result in enumerate(self.host.resolve_module_names(rewritten, containing_file, *rest)):
            if result is None:
                cache_module = resolved_modules[index]
                # import * as React from 'https://dev.jspm.io/react'
                if (
                    cache_module is not None
                    and os.path.isabs(cache_module.filepath)
                    and PathUtils.exists(cache_module.filepath)
                ):
                    result = ResolvedModuleFull(resolved_file_name=cache_module.filepath)
            results.append(result)
        return results

    def resolve_type_reference_directives(self, names: List[str], containing_file: str, *rest) -> List[Optional[Any]]:
        config = self.config
        if not config.enable:
            return self.host.resolve_type_reference_directives(names, containing_file, *rest)

        resolved_modules = self._resolve(names, containing_file, config)
        rewritten = [
            resolved.module if resolved else name
            for resolved, name in zip(resolved_modules, names)
        ]
        return self.host.resolve_type_reference_directives(rewritten, containing_file, *rest)


class DenoPlugin:
    """Plugin entry point: wraps a host and routes configuration changes."""

    PLUGIN_NAME = "typescript-deno-plugin"

    def __init__(self, configuration: Optional[ConfigurationManager] = None):
        self.configuration = configuration or ConfigurationManager()
        self.import_map_cache = ImportMapCache()

    def create(self, host: LanguageServiceHost,
               on_refresh: Optional[Callable[[], None]] = None) -> DenoLanguageServiceHost:
        """Wrap a host, seeding the configuration from the project's settings files."""
        project_directory = host.get_current_directory()
        logger.info(f"Create {self.PLUGIN_NAME} for {project_directory}")

        wrapper = DenoLanguageServiceHost(
            host, self.configuration, self.import_map_cache, on_refresh=on_refresh
        )

        project_settings = ConfigLoader.load_settings(project_directory)
        if project_settings:
            self.configuration.update(project_settings)
        return wrapper

    def on_configuration_changed(self, settings: Dict[str, Any]) -> ConfigSnapshot:
        logger.info(f"onConfigurationChanged: {settings}")
        return self.configuration.update(settings)
