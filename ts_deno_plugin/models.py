"""
Data models for the Deno module resolution plugin.
"""

import os
import re
from enum import Enum
from dataclasses import dataclass
from typing import Dict, Any, Optional
from pathlib import Path, PurePosixPath
from urllib.parse import urlsplit
from urllib.request import url2pathname


_WINDOWS_DRIVE = re.compile(r'^[a-zA-Z]:[\\/]')


class PathUtils:
    """Cross-platform path normalization utilities."""

    @staticmethod
    def normalize(path: str) -> str:
        """
        Convert any path to forward slashes for consistency.

        Args:
            path: Path string (may contain backslashes on Windows)

        Returns:
            Path with forward slashes (POSIX style)
        """
        if not path:
            return path
        return path.replace('\\', '/')

    @staticmethod
    def to_os_path(path: str) -> str:
        """
        Convert a path using either separator convention to the current OS form.

        Args:
            path: Path string, possibly unix-like on Windows (c:/Users/...)

        Returns:
            Normalized path with the separator of the running OS
        """
        if not path:
            return path
        return os.path.normpath(path.replace('\\', '/').replace('/', os.sep))

    @staticmethod
    def is_absolute(path: str) -> bool:
        """True for POSIX absolute paths and Windows drive paths on any OS."""
        if not path:
            return False
        return path.startswith('/') or bool(_WINDOWS_DRIVE.match(path)) or os.path.isabs(path)

    @staticmethod
    def to_posix_absolute(path: str) -> str:
        """Absolute path with forward slashes, used as an import map referrer."""
        normalized = PathUtils.normalize(os.path.abspath(PathUtils.to_os_path(path)))
        return str(PurePosixPath(normalized))

    @staticmethod
    def exists(path: str) -> bool:
        """File existence check that never raises."""
        try:
            return Path(path).exists()
        except (OSError, ValueError):
            return False


class SpecifierKind(Enum):
    """Enumeration of import specifier kinds."""
    RELATIVE = "relative"
    ABSOLUTE_URL = "absolute_url"
    BARE = "bare"


@dataclass(frozen=True)
class ResolvedModule:
    """A resolved import: the specifier handed back to the host and its backing file."""
    module: str
    filepath: str


@dataclass(frozen=True)
class ResolvedModuleFull:
    """Resolution result handed to the host when it could not resolve a module itself."""
    resolved_file_name: str
    extension: str = ".js"
    is_external_library_import: bool = False


@dataclass(frozen=True)
class Position:
    """Zero-based line/character position in a document."""
    line: int
    character: int


@dataclass(frozen=True)
class Range:
    """Span between two positions; end is exclusive."""
    start: Position
    end: Position

    @classmethod
    def create(cls, start_line: int, start_character: int,
               end_line: int, end_character: int) -> 'Range':
        return cls(Position(start_line, start_character), Position(end_line, end_character))

    def contains(self, position: Position) -> bool:
        """Inclusive containment check on both lines and characters."""
        return (
            self.start.line <= position.line <= self.end.line
            and self.start.character <= position.character <= self.end.character
        )


@dataclass(frozen=True)
class Location:
    """A navigation target: document URI plus range."""
    uri: str
    range: Range

    def to_dict(self) -> Dict[str, Any]:
        return {
            'uri': self.uri,
            'range': {
                'start': {'line': self.range.start.line, 'character': self.range.start.character},
                'end': {'line': self.range.end.line, 'character': self.range.end.character},
            }
        }


@dataclass(frozen=True)
class TextDocument:
    """An open editor document."""
    uri: str
    text: str

    @property
    def path(self) -> Optional[str]:
        """Filesystem path for file: URIs, None for virtual documents."""
        parts = urlsplit(self.uri)
        if parts.scheme.lower() != 'file':
            return None
        return url2pathname(parts.path)


@dataclass(frozen=True)
class TypeHintComment:
    """A `@deno-types` pragma: the referenced file and the span of its path literal."""
    filepath: str
    content_range: Range
