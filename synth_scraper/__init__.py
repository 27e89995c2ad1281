"""
Synth Scraper
Synthesizes a bespoke extraction program per page, runs it in isolation and caches it by URL
"""

__version__ = "1.0.0"

from .core.pipeline import PipelineOrchestrator
from .core.models import Target, TargetStatus

__all__ = ["PipelineOrchestrator", "Target", "TargetStatus"]
