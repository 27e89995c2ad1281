"""
Program Cache
Stores and retrieves synthesized extraction programs by URL for reuse
"""

import logging
from pathlib import Path
from typing import Optional, Dict, Any

from .artifacts import ArtifactPaths
from .models import SynthesizedProgram
from .store import DocumentStore

logger = logging.getLogger(__name__)


class ProgramCache:
    """Manages the one accepted program per URL"""

    def __init__(self, store: DocumentStore, artifacts: ArtifactPaths):
        """
        Initialize Program Cache

        Args:
            store: Document store holding the 'programs' collection
            artifacts: Artifact layout used to materialize programs as files
        """
        self.documents = store
        self.artifacts = artifacts
        self.hits = 0
        self.misses = 0

    def lookup(self, url: str) -> Optional[SynthesizedProgram]:
        """
        Get the accepted program for url

        Args:
            url: Target URL

        Returns:
            SynthesizedProgram or None on a miss
        """
        document = self.documents.find_program(url)
        if document is None:
            self.misses += 1
            logger.info(f" Cache miss: {url}")
            return None

        self.hits += 1
        logger.info(f" Cache hit: {url} (script {document['id'][:8]})")
        return SynthesizedProgram.from_document(document)

    def store(self, url: str, source_text: str) -> SynthesizedProgram:
        """
        Insert a newly accepted program and write it to disk

        Insert-only: when another program was already accepted for this URL
        the existing one wins and is returned instead.

        Args:
            url: Target URL
            source_text: Validated program source

        Returns:
            The accepted SynthesizedProgram for url
        """
        program = SynthesizedProgram(url=url, source_text=source_text)

        if not self.documents.insert_program(url, program.to_document()):
            existing = self.documents.find_program(url)
            logger.warning(f" Program already cached for {url}, keeping script {existing['id'][:8]}")
            program = SynthesizedProgram.from_document(existing)
        else:
            logger.info(f" Cached program: {url} (script {program.id[:8]})")

        self.materialize(program)
        return program

    def materialize(self, program: SynthesizedProgram) -> Path:
        """Write program source to scripts/script_<id>.py if it is not there yet"""
        path = self.script_path(program)
        if not path.exists():
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(program.source_text, encoding='utf-8')
            logger.info(f" Script saved to: {path}")
        return path

    def script_path(self, program: SynthesizedProgram) -> Path:
        return self.artifacts.scripts_dir / f"script_{program.id}.py"

    def invalidate(self, url: str) -> bool:
        """
        Drop the cached program for url so the next pass re-synthesizes

        Returns:
            True if a program was removed
        """
        document = self.documents.find_program(url)
        deleted = self.documents.delete_program(url)
        if deleted:
            logger.info(f" Invalidated cached program for {url}")
            if document:
                stale = self.artifacts.scripts_dir / f"script_{document['id']}.py"
                if stale.exists():
                    stale.unlink()
        return deleted

    def clear(self) -> int:
        removed = self.documents.programs.clear()
        logger.info(f" Cache cleared ({removed} programs)")
        return removed

    def stats(self) -> Dict[str, Any]:
        return {
            'size': len(self.documents.programs),
            'hits': self.hits,
            'misses': self.misses,
            'directory': str(self.documents.store_dir)
        }
