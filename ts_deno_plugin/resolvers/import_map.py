"""
Import map loading and specifier substitution.

An import map is a JSON document:

    {
      "imports": {"std/": "https://deno.land/std@0.50.0/", "lodash": "./vendor/lodash.ts"},
      "scopes": {"./legacy/": {"std/": "https://deno.land/std@0.40.0/"}}
    }

Lookup rules:
- the scope whose key is the longest prefix of the referrer is selected;
- inside a mapping, keys ending with '/' match every specifier they prefix,
  other keys match only exactly; the longest matching key wins;
- the selected scope is tried first, then the top-level "imports";
- equal-length candidates keep declaration order (first declared wins).
"""

import json
import logging
import posixpath
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple
from urllib.parse import urlsplit
from urllib.request import url2pathname

from ..exceptions import MalformedImportMap
from ..models import PathUtils

logger = logging.getLogger(__name__)

Entries = Tuple[Tuple[str, str], ...]


def _key_matches(key: str, value: str) -> bool:
    if key.endswith('/'):
        return value.startswith(key)
    return key == value


def _longest_match(entries: Entries, value: str) -> Optional[Tuple[str, str]]:
    """Return the (key, target) pair with the longest key matching value."""
    best = None
    for key, target in entries:
        if not _key_matches(key, value):
            continue
        # strict comparison keeps the first declared entry on ties
        if best is None or len(key) > len(best[0]):
            best = (key, target)
    return best


def _normalize_location(value: str, base_dir: Optional[str]) -> str:
    """Turn relative and file: locations into absolute POSIX paths."""
    if value.lower().startswith('file:'):
        local = PathUtils.normalize(url2pathname(urlsplit(value).path))
        return local + '/' if value.endswith('/') and not local.endswith('/') else local

    if base_dir is None:
        return value

    if value.startswith('./') or value.startswith('../'):
        joined = posixpath.normpath(posixpath.join(base_dir, value))
        if value.endswith('/') and not joined.endswith('/'):
            joined += '/'
        return joined

    return value


def _parse_mapping(data: Any, map_path: str, base_dir: Optional[str], where: str) -> Entries:
    if not isinstance(data, dict):
        raise MalformedImportMap(map_path, f"'{where}' must be an object")

    entries = []
    for key, target in data.items():
        if not isinstance(target, str):
            logger.warning(f"Ignoring non-string import map target for '{key}' in {where}")
            continue
        if key.endswith('/') and not target.endswith('/'):
            logger.warning(
                f"Ignoring import map entry '{key}' in {where}: "
                f"target '{target}' must end with '/'"
            )
            continue
        entries.append((key, _normalize_location(target, base_dir)))
    return tuple(entries)


@dataclass(frozen=True)
class ImportMap:
    """Immutable, parsed import map."""

    imports: Entries = ()
    scopes: Tuple[Tuple[str, Entries], ...] = ()
    source: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.imports and not self.scopes

    @classmethod
    def from_dict(cls, data: Any, base_dir: Optional[str] = None,
                  source: Optional[str] = None) -> 'ImportMap':
        """
        Build an import map from a parsed JSON document.

        Args:
            data: Parsed document
            base_dir: Directory relative targets and scopes are resolved against
            source: Map file path (for messages)

        Raises:
            MalformedImportMap: If the document does not have the expected shape
        """
        map_path = source or '<memory>'
        if not isinstance(data, dict):
            raise MalformedImportMap(map_path, "top level must be an object")

        if base_dir is not None:
            base_dir = PathUtils.normalize(base_dir)

        imports = _parse_mapping(data.get('imports', {}), map_path, base_dir, 'imports')

        raw_scopes = data.get('scopes', {})
        if not isinstance(raw_scopes, dict):
            raise MalformedImportMap(map_path, "'scopes' must be an object")

        scopes = []
        for scope_key, mapping in raw_scopes.items():
            entries = _parse_mapping(mapping, map_path, base_dir, f"scopes[{scope_key}]")
            scopes.append((_normalize_location(scope_key, base_dir), entries))

        return cls(imports=imports, scopes=tuple(scopes), source=source)

    @classmethod
    def load(cls, map_file_path: str) -> 'ImportMap':
        """
        Load an import map from disk.

        A missing file, invalid JSON or a document with the wrong shape yields an
        empty map; the failure is logged, never raised.
        """
        path = Path(PathUtils.to_os_path(map_file_path))
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            base_dir = PathUtils.to_posix_absolute(str(path.parent))
            import_map = cls.from_dict(data, base_dir=base_dir, source=str(path))
            logger.info(
                f"Loaded import map {path}: {len(import_map.imports)} imports, "
                f"{len(import_map.scopes)} scopes"
            )
            return import_map
        except FileNotFoundError:
            error = MalformedImportMap(str(path), "file not found")
        except OSError as e:
            error = MalformedImportMap(str(path), str(e))
        except MalformedImportMap as e:
            error = e
        # ValueError covers JSONDecodeError, UnicodeDecodeError and the int digit limit
        except (ValueError, RecursionError) as e:
            error = MalformedImportMap(str(path), f"invalid JSON: {e}")

        logger.warning(f"{error.message}; using an empty import map")
        return cls(source=str(path))

    def select_scope(self, referrer: Optional[str]) -> Optional[Entries]:
        """Return the mapping of the longest scope prefixing the referrer."""
        if not referrer or not self.scopes:
            return None
        match = _longest_match(self.scopes, referrer)
        return match[1] if match else None

    def resolve(self, specifier: str, referrer: Optional[str] = None) -> Optional[str]:
        """
        Substitute a specifier through the map.

        Args:
            specifier: Specifier as written in source
            referrer: Location (URL or absolute POSIX path) of the importing module

        Returns:
            Substituted target, or None if no entry applies
        """
        candidates = []
        scoped = self.select_scope(referrer)
        if scoped:
            candidates.append(scoped)
        candidates.append(self.imports)

        for entries in candidates:
            match = _longest_match(entries, specifier)
            if match is None:
                continue
            key, target = match
            if key == specifier:
                return target
            return target + specifier[len(key):]

        return None


def resolve(import_map: Optional[ImportMap], specifier: str,
            referrer: Optional[str] = None) -> Optional[str]:
    """Substitute a specifier through an optional import map."""
    if import_map is None:
        return None
    return import_map.resolve(specifier, referrer)


class ImportMapCache:
    """
    Import maps keyed by absolute file path.

    The backing mapping is replaced, never mutated, so readers always see a
    complete snapshot. Call invalidate() on configuration change.
    """

    def __init__(self):
        self._maps: Mapping[str, ImportMap] = MappingProxyType({})

    def __len__(self) -> int:
        return len(self._maps)

    def __contains__(self, map_file_path: str) -> bool:
        return PathUtils.to_posix_absolute(map_file_path) in self._maps

    def get(self, map_file_path: str) -> ImportMap:
        key = PathUtils.to_posix_absolute(map_file_path)
        cached = self._maps.get(key)
        if cached is not None:
            return cached

        import_map = ImportMap.load(map_file_path)
        updated: Dict[str, ImportMap] = dict(self._maps)
        updated[key] = import_map
        self._maps = MappingProxyType(updated)
        return import_map

    def invalidate(self, *_args) -> None:
        """Drop every cached map; accepts and ignores a config snapshot argument."""
        if self._maps:
            logger.debug(f"Invalidating {len(self._maps)} cached import maps")
        self._maps = MappingProxyType({})
