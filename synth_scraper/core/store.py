"""
Document Store
URL-keyed collections for synthesized programs and extraction results, backed by diskcache
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import diskcache

logger = logging.getLogger(__name__)


class DocumentStore:
    """
    Persistent store with three collections

    - programs: url -> {id, url, sourceText, createdAt}   (insert-only)
    - results:  url -> results document, tagged with its status (upsert)
    - meta:     schema bookkeeping used by migrations

    The URL is the cache key, so each collection has a unique index on url.
    """

    COLLECTIONS = ('programs', 'results')

    def __init__(self, store_dir: str = "./store"):
        """
        Initialize Document Store

        Args:
            store_dir: Directory holding one sub-directory per collection
        """
        self.store_dir = Path(store_dir)
        self.store_dir.mkdir(parents=True, exist_ok=True)

        self.programs = diskcache.Cache(str(self.store_dir / 'programs'))
        self.results = diskcache.Cache(str(self.store_dir / 'results'))
        self.meta = diskcache.Cache(str(self.store_dir / 'meta'))

        logger.debug(f" Store opened: {self.store_dir}")

    # programs

    def find_program(self, url: str) -> Optional[Dict[str, Any]]:
        return self.programs.get(url)

    def insert_program(self, url: str, document: Dict[str, Any]) -> bool:
        """
        Insert a program document; never overwrites

        Returns:
            False when a document for this URL already exists
        """
        return self.programs.add(url, document)

    def delete_program(self, url: str) -> bool:
        return self.programs.delete(url)

    # results

    def find_result(self, url: str) -> Optional[Dict[str, Any]]:
        return self.results.get(url)

    def upsert_result(self, url: str, document: Dict[str, Any]) -> None:
        """Replace the results document for url (last write wins)"""
        self.results.set(url, document, tag=document.get('status'))

    def count_results(self) -> int:
        return len(self.results)

    def clear_results(self, status: Optional[str] = None) -> int:
        """Remove all results, or only those recorded with the given status"""
        if status:
            return self.results.evict(status)
        return self.results.clear()

    # maintenance

    def clear(self) -> Dict[str, int]:
        """Empty the programs and results collections"""
        removed = {
            'programs': self.programs.clear(),
            'results': self.results.clear()
        }
        logger.info(f" Cleared {removed['programs']} programs and {removed['results']} results")
        return removed

    @property
    def schema_version(self) -> int:
        return self.meta.get('schema_version', 0)

    @schema_version.setter
    def schema_version(self, version: int) -> None:
        self.meta.set('schema_version', version)

    def stats(self) -> Dict[str, Any]:
        return {
            'directory': str(self.store_dir),
            'schema_version': self.schema_version,
            'programs': len(self.programs),
            'results': len(self.results),
            'volume': self.programs.volume() + self.results.volume()
        }

    def close(self) -> None:
        for cache in (self.programs, self.results, self.meta):
            cache.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
