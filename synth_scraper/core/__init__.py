"""Core pipeline modules"""

from .pipeline import PipelineOrchestrator
from .page_capture import BrowserPageCapture, StaticPageCapture
from .relevance import RelevanceFilter
from .program_cache import ProgramCache
from .synthesizer import ProgramSynthesizer
from .coordinator import ExecutionCoordinator
from .result_sink import ResultSink
from .store import DocumentStore

__all__ = [
    "PipelineOrchestrator",
    "BrowserPageCapture",
    "StaticPageCapture",
    "RelevanceFilter",
    "ProgramCache",
    "ProgramSynthesizer",
    "ExecutionCoordinator",
    "ResultSink",
    "DocumentStore"
]
