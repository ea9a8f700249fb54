"""
Scanner for `@deno-types` pragma comments.

    // @deno-types="./foo.d.ts"
    import * as foo from "./foo.js";

The pragma names the declaration file that types the import below it. The scanner
records the referenced file and the exact span of the path literal.
"""

import os
import re
from typing import Iterator, Optional
from urllib.parse import urlsplit
from urllib.request import url2pathname

from .models import PathUtils, Range, TypeHintComment
from .resolvers.deno_cache import DenoCache
from .resolvers.specifier import is_url

DENO_TYPES_PATTERN = re.compile(r"^\s*//\s*@deno-types\s*=\s*(?P<quote>[\"'])(?P<path>[^\"'\n]+)(?P=quote)")

# line breaks as editor positions count them; form feeds and U+2028 stay inside a line
LINE_BREAK = re.compile(r"\r\n|\r|\n")


def _target_path(raw: str, document_path: Optional[str], cache: Optional[DenoCache]) -> Optional[str]:
    if is_url(raw):
        if raw.lower().startswith('file:'):
            return url2pathname(urlsplit(raw).path)
        return cache.url_to_path(raw) if cache is not None else raw

    path = PathUtils.to_os_path(raw)
    if PathUtils.is_absolute(raw) or not document_path:
        return path
    return os.path.normpath(os.path.join(os.path.dirname(document_path), path))


def scan(document_text: str, document_path: Optional[str] = None,
         cache: Optional[DenoCache] = None) -> Iterator[TypeHintComment]:
    """
    Yield every `@deno-types` pragma in a document.

    Args:
        document_text: Full document content
        document_path: Document location; relative pragma paths resolve against its directory
        cache: Deno cache mapper used for pragmas naming remote URLs

    Yields:
        TypeHintComment per pragma, in document order
    """
    for line_num, line in enumerate(LINE_BREAK.split(document_text)):
        match = DENO_TYPES_PATTERN.match(line)
        if not match:
            continue

        filepath = _target_path(match.group('path'), document_path, cache)
        if filepath is None:
            continue

        yield TypeHintComment(
            filepath=filepath,
            content_range=Range.create(line_num, match.start('path'), line_num, match.end('path'))
        )
