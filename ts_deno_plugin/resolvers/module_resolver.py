"""
Deno-style module resolver.

Turns the specifiers of one containing file into local files the TypeScript
compiler can read:
- relative imports (./foo, ../bar.ts), with extension and index probing
- remote URLs (https://deno.land/std/mod.ts), through the Deno cache
- bare specifiers (std/fs, react), through the import map
"""

import os
import re
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Sequence
from urllib.parse import urlsplit
from urllib.request import url2pathname

from ..exceptions import CacheMiss, InvalidContainingPath, UnresolvableSpecifier
from ..models import PathUtils, ResolvedModule, SpecifierKind
from .deno_cache import DenoCache
from .import_map import ImportMap, ImportMapCache, resolve as resolve_import_map
from .specifier import classify

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = ('.ts', '.tsx', '.d.ts', '.js', '.jsx', '.mjs')

# bound on chained import map substitutions (a -> b -> a)
MAX_SUBSTITUTIONS = 8

# "untitled:Untitled-1", "vscode-notebook-cell:..."; single letters are drives
_URI_SCHEME = re.compile(r'^[a-zA-Z][a-zA-Z0-9+.-]+:')


class ModuleResolver:
    """Resolves the import specifiers of one containing file."""

    def __init__(
        self,
        containing_file: str,
        import_map: Optional[ImportMap] = None,
        project_root: Optional[str] = None,
        cache: Optional[DenoCache] = None,
        extensions: Sequence[str] = DEFAULT_EXTENSIONS
    ):
        """
        Initialize the resolver for a single resolution batch.

        Args:
            containing_file: File issuing the imports (may be a virtual document)
            import_map: Import map in effect, if any
            project_root: Project directory, used when containing_file is virtual
            cache: Deno cache mapper (default: $DENO_DIR)
            extensions: Extensions probed for extension-less relative imports
        """
        self.project_root = os.path.abspath(PathUtils.to_os_path(project_root or os.getcwd()))
        self.import_map = import_map
        self.cache = cache or DenoCache()
        self.extensions = tuple(extensions)

        self.containing_file = self._effective_containing_file(containing_file)
        if self.containing_file:
            self.containing_dir = os.path.dirname(self.containing_file)
            self.containing_url = self.cache.path_to_url(self.containing_file)
            self.referrer = self.containing_url or PathUtils.to_posix_absolute(self.containing_file)
        else:
            self.containing_dir = self.project_root
            self.containing_url = None
            self.referrer = PathUtils.to_posix_absolute(self.project_root).rstrip('/') + '/'

    @classmethod
    def create(
        cls,
        containing_file: str,
        import_map_path: Optional[str] = None,
        project_root: Optional[str] = None,
        cache: Optional[DenoCache] = None,
        import_map_cache: Optional[ImportMapCache] = None,
        extensions: Sequence[str] = DEFAULT_EXTENSIONS
    ) -> 'ModuleResolver':
        """Build a resolver, loading the import map (through the cache when given)."""
        import_map = None
        if import_map_path:
            if import_map_cache is not None:
                import_map = import_map_cache.get(import_map_path)
            else:
                import_map = ImportMap.load(import_map_path)
        return cls(containing_file, import_map, project_root, cache, extensions)

    def _effective_containing_file(self, containing_file: str) -> Optional[str]:
        if containing_file and containing_file.lower().startswith('file:'):
            return os.path.abspath(url2pathname(urlsplit(containing_file).path))

        if not containing_file or _URI_SCHEME.match(containing_file):
            error = InvalidContainingPath(containing_file, self.project_root)
            logger.debug(error.message)
            return None

        return os.path.abspath(PathUtils.to_os_path(containing_file))

    def resolve_modules(self, specifiers: Iterable[str]) -> List[Optional[ResolvedModule]]:
        """
        Resolve a batch of specifiers.

        Returns:
            One entry per input, in order; None means "defer to the host"
        """
        return [self.resolve_module(specifier) for specifier in specifiers]

    def resolve_module(self, specifier: str) -> Optional[ResolvedModule]:
        """Resolve one specifier; never raises."""
        try:
            return self._resolve(specifier, depth=0)
        except UnresolvableSpecifier as e:
            logger.debug(e.message)
        except Exception:
            logger.exception(f"Unexpected error resolving '{specifier}' from {self.containing_file}")
        return None

    def _resolve(self, specifier: str, depth: int) -> ResolvedModule:
        kind = classify(specifier)

        if kind is SpecifierKind.RELATIVE:
            return self._resolve_relative(specifier)
        if kind is SpecifierKind.ABSOLUTE_URL:
            return self._resolve_url(specifier)
        return self._resolve_bare(specifier, depth)

    def _resolve_relative(self, specifier: str) -> ResolvedModule:
        """Resolve ./foo or ../bar against the containing directory."""
        target = os.path.join(self.containing_dir, PathUtils.to_os_path(specifier))
        found = self._probe(target)
        if found is None:
            raise UnresolvableSpecifier(specifier, self._containing(), "no such file")
        return ResolvedModule(module=specifier, filepath=found)

    def _resolve_url(self, specifier: str) -> ResolvedModule:
        """Resolve a file: URL locally, an http(s) URL through the Deno cache."""
        if specifier.lower().startswith('file:'):
            found = self._probe(url2pathname(urlsplit(specifier).path))
            if found is None:
                raise UnresolvableSpecifier(specifier, self._containing(), "no such file")
            return ResolvedModule(module=specifier, filepath=found)

        filepath = self.cache.url_to_path(specifier)
        if filepath is None:
            raise UnresolvableSpecifier(specifier, self._containing(), "URL has no cache location")

        url = self.cache.canonicalize(specifier)
        if not os.path.isfile(filepath):
            raise CacheMiss(url, filepath, self._containing())
        return ResolvedModule(module=url, filepath=filepath)

    def _resolve_bare(self, specifier: str, depth: int) -> ResolvedModule:
        """Substitute through the import map, then resolve the result."""
        target = resolve_import_map(self.import_map, specifier, self.referrer)

        if target is None:
            if PathUtils.is_absolute(specifier):
                found = self._probe(PathUtils.to_os_path(specifier))
                if found is not None:
                    return ResolvedModule(module=specifier, filepath=found)
            raise UnresolvableSpecifier(specifier, self._containing(), "no import map entry")

        if target == specifier or depth >= MAX_SUBSTITUTIONS:
            raise UnresolvableSpecifier(specifier, self._containing(), "import map substitution loop")

        logger.debug(f"Import map: '{specifier}' -> '{target}'")
        return self._resolve(target, depth + 1)

    def _probe(self, path: str) -> Optional[str]:
        """
        Find the file backing a path.

        Tries the literal path, then path + extension, then path/index + extension.
        """
        candidate = Path(os.path.normpath(path))

        if candidate.is_file():
            return str(candidate)

        for ext in self.extensions:
            with_ext = Path(str(candidate) + ext)
            if with_ext.is_file():
                return str(with_ext)

        if candidate.is_dir():
            for ext in self.extensions:
                index_file = candidate / f"index{ext}"
                if index_file.is_file():
                    return str(index_file)

        return None

    def _containing(self) -> str:
        return self.containing_file or self.project_root
