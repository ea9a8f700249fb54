"""
Import specifier classification.

Relative (./foo, ../bar), absolute URL (https://deno.land/std/mod.ts) or bare
(lodash, std/fs). Pure string inspection, no I/O.
"""

import re
from urllib.parse import urlsplit

from ..models import SpecifierKind

RECOGNIZED_SCHEMES = frozenset({'http', 'https', 'file'})

_RELATIVE_PREFIX = re.compile(r'^\.{1,2}[\\/]')


def is_relative(specifier: str) -> bool:
    return bool(_RELATIVE_PREFIX.match(specifier))


def is_url(specifier: str) -> bool:
    """True if the specifier is an absolute URL with a recognized scheme."""
    try:
        parts = urlsplit(specifier)
    except ValueError:
        return False
    if parts.scheme.lower() not in RECOGNIZED_SCHEMES:
        return False
    if parts.scheme.lower() == 'file':
        return specifier.lower().startswith('file:')
    return bool(parts.netloc)


def classify(specifier: str) -> SpecifierKind:
    """Determine the kind of an import specifier."""
    if is_relative(specifier):
        return SpecifierKind.RELATIVE
    if is_url(specifier):
        return SpecifierKind.ABSOLUTE_URL
    return SpecifierKind.BARE
