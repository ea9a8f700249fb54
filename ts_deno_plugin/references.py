"""
Find-references navigation for `@deno-types` pragmas.

A cursor inside the path literal of a pragma navigates to the declaration file it
names. The target is always the start of that file.
"""

import logging
from pathlib import Path
from typing import List, Mapping, Optional

from .models import Location, PathUtils, Position, Range, TextDocument
from .resolvers.deno_cache import DenoCache
from .type_hints import scan

logger = logging.getLogger(__name__)

FILE_START = Range.create(0, 0, 0, 0)


class References:
    """Answers reference requests against a store of open documents."""

    def __init__(self, documents: Mapping[str, TextDocument], cache: Optional[DenoCache] = None):
        self.documents = documents
        self.cache = cache

    def on_references(self, uri: str, position: Position) -> Optional[List[Location]]:
        """Handle a request; None when the document is not open."""
        document = self.documents.get(uri)
        if document is None:
            return None
        return self.find(document, position)

    def find(self, document: TextDocument, position: Position) -> List[Location]:
        locations = []

        for type_comment in scan(document.text, document.path, self.cache):
            if not type_comment.content_range.contains(position):
                continue
            if PathUtils.exists(type_comment.filepath):
                locations.append(Location(Path(type_comment.filepath).absolute().as_uri(), FILE_START))
            else:
                logger.debug(f"@deno-types target {type_comment.filepath} does not exist")

        return locations
