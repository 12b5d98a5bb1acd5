"""
Slug -> project resolution.

The store has no index on projectSlug, so resolution lists every project
document and compares slugs one by one (exact, case-sensitive). This is
O(number of projects) per lookup with no caching; fine for a handful of
projects, a known limit beyond that.
"""

from __future__ import annotations

import logging
from typing import Optional

from coursebook.store import Document, DocumentStore


logger = logging.getLogger(__name__)

PROJECTS = "projects"


def resolve_project_slug(store: DocumentStore, slug: str) -> Optional[Document]:
    """
    Return the first project document whose projectSlug equals `slug`,
    or None if there is none.
    """
    docs = store.list(PROJECTS)
    logger.debug("Scanning %d project(s) for slug %r", len(docs), slug)

    for doc in docs:
        if doc.fields.get("projectSlug") == slug:
            logger.debug("Slug %r -> project %s", slug, doc.id)
            return doc

    logger.info("No project with slug %r", slug)
    return None


class SlugResolver:
    def __init__(self, store: DocumentStore):
        self.store = store

    def resolve(self, slug: str) -> Optional[Document]:
        return resolve_project_slug(self.store, slug)

    def is_taken(self, slug: str, exclude_id: Optional[str] = None) -> bool:
        for doc in self.store.list(PROJECTS):
            if doc.fields.get("projectSlug") == slug and doc.id != exclude_id:
                return True
        return False
