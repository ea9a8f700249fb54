"""
Deno cache path mapping.

Remote modules are stored by the fetcher under `$DENO_DIR/deps`, mirroring the URL:

    https://deno.land/std/http/server.ts   -> deps/https/deno.land/std/http/server.ts
    http://localhost:4545/mod.ts           -> deps/http/localhost_PORT4545/mod.ts
    https://esm.sh/react?dev               -> deps/https/esm.sh/react_QUERY_dev

The mapping is a pure function of the URL, no lookup table and no filesystem
access, and path_to_url() inverts it exactly for every path url_to_path() produces.
"""

import os
import sys
import logging
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote, unquote, urlsplit, urlunsplit

from ..config import get_config

logger = logging.getLogger(__name__)

DEFAULT_PORTS = {'http': 80, 'https': 443}
SUPPORTED_SCHEMES = tuple(DEFAULT_PORTS)

PORT_MARKER = '_PORT'
QUERY_MARKER = '_QUERY_'
HEADERS_SUFFIX = '.headers.json'


def default_deno_dir() -> str:
    """Deno's cache directory: $DENO_DIR or the platform cache location."""
    env_dir = get_config()['DENO_DIR']
    if env_dir:
        return env_dir

    home = Path.home()
    if sys.platform == 'win32':
        base = os.environ.get('LOCALAPPDATA') or str(home / 'AppData' / 'Local')
    elif sys.platform == 'darwin':
        base = str(home / 'Library' / 'Caches')
    else:
        base = os.environ.get('XDG_CACHE_HOME') or str(home / '.cache')
    return os.path.join(base, 'deno')


def _remove_dot_segments(path: str) -> str:
    segments: List[str] = []
    for segment in path.split('/')[1:]:
        if segment == '.':
            continue
        if segment == '..':
            if segments:
                segments.pop()
            continue
        segments.append(segment)
    return '/' + '/'.join(segments)


class DenoCache:
    """Bidirectional URL <-> cache file path mapping rooted at a Deno dir."""

    def __init__(self, deno_dir: Optional[str] = None):
        """
        Initialize the cache mapper.

        Args:
            deno_dir: Deno directory (default: $DENO_DIR or the platform cache dir)
        """
        self.deno_dir = Path(deno_dir or default_deno_dir())
        self.root = Path(os.path.abspath(self.deno_dir / 'deps'))

    def __repr__(self) -> str:
        return f"DenoCache(root={str(self.root)!r})"

    @staticmethod
    def canonicalize(url: str) -> Optional[str]:
        """
        Canonical form of an http(s) URL.

        Lowercases scheme and host, drops the default port and the fragment,
        and removes dot segments. URLs carrying user-info are rejected.

        Returns:
            Canonical URL string, or None for unsupported or unparseable URLs
        """
        try:
            parts = urlsplit(url)
            port = parts.port
        except ValueError:
            return None

        scheme = parts.scheme.lower()
        if scheme not in SUPPORTED_SCHEMES:
            return None
        if parts.username is not None or parts.password is not None:
            return None

        host = parts.hostname
        if not host or ':' in host:
            return None
        if port == DEFAULT_PORTS[scheme]:
            port = None

        netloc = host if port is None else f"{host}:{port}"
        path = _remove_dot_segments(parts.path or '/')
        return urlunsplit((scheme, netloc, path, parts.query, ''))

    def url_to_path(self, url: str) -> Optional[str]:
        """
        Local cache file path for a remote URL.

        Returns:
            Absolute path under the cache root, or None if the URL is not cacheable
        """
        canonical = self.canonicalize(url)
        if canonical is None:
            return None

        parts = urlsplit(canonical)
        host = parts.hostname
        if PORT_MARKER in host:
            return None

        segments = parts.path.split('/')[1:]
        if not segments or any(s in ('', '.', '..') or '\\' in s for s in segments):
            return None
        if any(QUERY_MARKER in s for s in segments):
            return None

        last = segments[-1]
        if parts.query:
            last = f"{last}{QUERY_MARKER}{quote(parts.query, safe='')}"
        if last.endswith(HEADERS_SUFFIX):
            return None

        host_dir = host if parts.port is None else f"{host}{PORT_MARKER}{parts.port}"
        return str(self.root.joinpath(parts.scheme, host_dir, *segments[:-1], last))

    def contains(self, filepath: str) -> bool:
        """True if the path lies under the cache root."""
        try:
            Path(os.path.abspath(filepath)).relative_to(self.root)
            return True
        except ValueError:
            return False

    def path_to_url(self, filepath: str) -> Optional[str]:
        """
        Remote URL a cache file path represents.

        Returns:
            URL string, or None if the path is outside the cache root or does not
            follow the cache layout
        """
        target = Path(os.path.abspath(filepath))
        try:
            parts = target.relative_to(self.root).parts
        except ValueError:
            return None

        if len(parts) < 3:
            return None

        scheme, host_dir, *segments = parts
        if scheme not in SUPPORTED_SCHEMES:
            return None

        port = None
        host = host_dir
        if PORT_MARKER in host_dir:
            host, _, port_text = host_dir.partition(PORT_MARKER)
            if not port_text.isdigit():
                return None
            port = int(port_text)
        if not host:
            return None

        last = segments[-1]
        query = ''
        if QUERY_MARKER in last:
            last, _, quoted = last.partition(QUERY_MARKER)
            query = unquote(quoted)

        netloc = host if port is None else f"{host}:{port}"
        url = urlunsplit((scheme, netloc, '/' + '/'.join(segments[:-1] + [last]), query, ''))

        # only paths this mapper would itself produce are accepted
        expected = self.url_to_path(url)
        if expected is None or Path(expected) != target:
            logger.debug(f"{filepath} is under the Deno cache but not a mapped module")
            return None
        return url
