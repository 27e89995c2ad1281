"""
Result Sink
Persists extracted payloads as JSON files and records per-URL status in the store
"""

import json
import re
import time
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlparse

from .exceptions import PersistenceFailure
from .models import ExecutionStatus
from .store import DocumentStore

logger = logging.getLogger(__name__)


def result_filename(url: str, category: str, timestamp_ms: int) -> str:
    """
    Build '<hostname>_<category>_<timestamp>.json'

    >>> result_filename('https://site.example/blog', 'blog articles', 1700000000000)
    'site.example_blog_articles_1700000000000.json'
    """
    hostname = urlparse(url).hostname or 'unknown-host'
    sanitized_category = re.sub(r'\s+', '_', category.strip())
    sanitized_category = re.sub(r'[^\w.-]', '', sanitized_category) or 'content'
    return f"{hostname}_{sanitized_category}_{timestamp_ms}.json"


class ResultSink:
    """Writes payload artifacts and upserts one results document per URL"""

    def __init__(
        self,
        store: DocumentStore,
        data_dir: Path,
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize Result Sink

        Args:
            store: Document store holding the 'results' collection
            data_dir: Directory for extracted payload files
            clock: Time source in epoch seconds
        """
        self.store = store
        self.data_dir = Path(data_dir)
        self.clock = clock

    def persist(self, url: str, category: str, payload: Any, script_id: Optional[str]) -> Optional[Path]:
        """
        Persist a successful extraction

        Args:
            url: Target URL
            category: Requested content category
            payload: Parsed program output
            script_id: Id of the program that produced it

        Returns:
            Path of the written file, or None when there was nothing to write

        Raises:
            PersistenceFailure: file or store write failed
        """
        if not payload:
            logger.info(f" No payload for {url}, skipping JSON save")
            return None

        now = self.clock()
        file_path = self.data_dir / result_filename(url, category, int(now * 1000))

        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            with open(file_path, 'w', encoding='utf-8') as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceFailure(f"Error saving JSON to {file_path}: {e}", {'url': url}) from e

        logger.info(f" Data saved to {file_path}")

        self._upsert(url, {
            'url': url,
            'category': category,
            'results': payload,
            'scriptId': script_id,
            'status': ExecutionStatus.SUCCESS.value,
            'lastScrapedAt': now
        })
        return file_path

    def record_failure(
        self,
        url: str,
        category: str,
        status: ExecutionStatus,
        script_id: Optional[str] = None,
        error: Optional[str] = None
    ) -> None:
        """Record a no_output/error status against url, replacing any earlier document"""
        self._upsert(url, {
            'url': url,
            'category': category,
            'results': None,
            'scriptId': script_id,
            'status': status.value,
            'lastScrapedAt': self.clock(),
            'error': error
        })

    def _upsert(self, url: str, document: Dict[str, Any]) -> None:
        try:
            self.store.upsert_result(url, document)
        except Exception as e:
            raise PersistenceFailure(f"Store upsert failed for {url}: {e}", {'url': url}) from e
        logger.debug(f"    Upserted results document for {url} (status={document['status']})")
