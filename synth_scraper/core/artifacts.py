"""
Artifact layout
Where cleaned markup, generated programs, program output and extracted data live on disk
"""

import logging
from pathlib import Path
from typing import List

logger = logging.getLogger(__name__)

# environment variables through which a generated program learns its input and output files
INPUT_ENV_VAR = 'SYNTH_SCRAPER_INPUT'
OUTPUT_ENV_VAR = 'SYNTH_SCRAPER_OUTPUT'


class ArtifactPaths:
    """
    Fixed, well-known artifact locations under <root>/generated

    html/body.html          cleaned markup of the page being processed (program input)
    scripts/script_<id>.py  materialized programs
    output/extracted.json   file the running program writes (polling target)
    extractedData/*.json    persisted payloads, one per successful run
    """

    MARKUP_FILENAME = 'body.html'
    OUTPUT_FILENAME = 'extracted.json'

    def __init__(self, root: str = "."):
        self.root = Path(root)
        self.generated_dir = self.root / 'generated'
        self.html_dir = self.generated_dir / 'html'
        self.scripts_dir = self.generated_dir / 'scripts'
        self.output_dir = self.generated_dir / 'output'
        self.data_dir = self.generated_dir / 'extractedData'

    @property
    def markup_path(self) -> Path:
        return self.html_dir / self.MARKUP_FILENAME

    @property
    def output_path(self) -> Path:
        return self.output_dir / self.OUTPUT_FILENAME

    @property
    def directories(self) -> List[Path]:
        return [self.html_dir, self.scripts_dir, self.output_dir, self.data_dir]

    def ensure(self) -> None:
        for directory in self.directories:
            directory.mkdir(parents=True, exist_ok=True)

    def save_markup(self, markup: str) -> Path:
        """Overwrite the single markup artifact with the current page"""
        self.html_dir.mkdir(parents=True, exist_ok=True)
        self.markup_path.write_text(markup, encoding='utf-8')
        logger.debug(f" Saved markup ({len(markup):,} chars) to {self.markup_path}")
        return self.markup_path

    def clear_generated(self) -> int:
        """
        Delete every generated file, keeping the directory skeleton

        Returns:
            Number of files removed
        """
        removed = 0
        for directory in self.directories:
            if not directory.exists():
                logger.info(f" Directory not found: {directory}")
                continue
            for path in sorted(directory.rglob('*'), reverse=True):
                if path.is_file():
                    logger.debug(f" Deleting file: {path}")
                    path.unlink()
                    removed += 1
        logger.info(f" Cleared {removed} generated files under {self.generated_dir}")
        return removed
