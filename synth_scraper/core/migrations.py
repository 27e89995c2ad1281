"""
Store migrations
Ordered, reversible schema steps applied to the document store
"""

import logging
from dataclasses import dataclass
from typing import Callable, List

from .store import DocumentStore

logger = logging.getLogger(__name__)


@dataclass
class Migration:
    version: int
    name: str
    up: Callable[[DocumentStore], None]
    down: Callable[[DocumentStore], None]


def _create_collections(store: DocumentStore) -> None:
    store.meta.set('collections', list(DocumentStore.COLLECTIONS))


def _drop_collections(store: DocumentStore) -> None:
    store.clear()
    store.meta.delete('collections')


def _create_status_index(store: DocumentStore) -> None:
    # results are tagged with their status; the tag index makes status eviction cheap
    store.results.create_tag_index()


def _drop_status_index(store: DocumentStore) -> None:
    store.results.drop_tag_index()


MIGRATIONS: List[Migration] = [
    Migration(1, 'create_collections', _create_collections, _drop_collections),
    Migration(2, 'status_index', _create_status_index, _drop_status_index),
]


def migrate(store: DocumentStore, direction: str = 'up') -> List[str]:
    """
    Apply pending migrations ('up') or revert applied ones ('down')

    Args:
        store: Store to migrate
        direction: 'up' or 'down'

    Returns:
        Names of the migrations that ran, in execution order
    """
    if direction not in ('up', 'down'):
        raise ValueError(f"Invalid direction: {direction}. Use 'up' or 'down'")

    ran = []
    current = store.schema_version

    if direction == 'up':
        for migration in MIGRATIONS:
            if migration.version <= current:
                continue
            logger.info(f" Running migration {migration.version:04d}_{migration.name} (up)")
            migration.up(store)
            store.schema_version = migration.version
            ran.append(migration.name)
    else:
        for migration in reversed(MIGRATIONS):
            if migration.version > current:
                continue
            logger.info(f" Running migration {migration.version:04d}_{migration.name} (down)")
            migration.down(store)
            store.schema_version = migration.version - 1
            ran.append(migration.name)

    if not ran:
        logger.info(f" Store already at schema version {current}")
    return ran
