"""
Resolver package for Deno-style module resolution.
"""

from .specifier import classify
from .import_map import ImportMap, ImportMapCache
from .deno_cache import DenoCache, default_deno_dir
from .module_resolver import ModuleResolver, DEFAULT_EXTENSIONS

__all__ = [
    'classify',
    'ImportMap',
    'ImportMapCache',
    'DenoCache',
    'default_deno_dir',
    'ModuleResolver',
    'DEFAULT_EXTENSIONS',
]
