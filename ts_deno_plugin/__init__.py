"""
TypeScript Deno Plugin

Resolves Deno-style imports (remote URLs, import maps, extension-less relative
paths) to local files for a TypeScript language service.
"""

from .models import (
    SpecifierKind, ResolvedModule, ResolvedModuleFull, Position, Range, Location,
    TextDocument, TypeHintComment,
)
from .resolvers import classify, ImportMap, ImportMapCache, DenoCache, ModuleResolver
from .type_hints import scan
from .references import References
from .config_loader import ConfigLoader, ConfigurationManager, DenoPluginConfig
from .plugin import DenoPlugin, DenoLanguageServiceHost

__all__ = [
    'SpecifierKind', 'ResolvedModule', 'ResolvedModuleFull', 'Position', 'Range',
    'Location', 'TextDocument', 'TypeHintComment',
    'classify', 'ImportMap', 'ImportMapCache', 'DenoCache', 'ModuleResolver',
    'scan', 'References',
    'ConfigLoader', 'ConfigurationManager', 'DenoPluginConfig',
    'DenoPlugin', 'DenoLanguageServiceHost',
]
