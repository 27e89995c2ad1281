"""
Application wiring
Builds every pipeline component from a ScraperConfig and runs one batch
"""

import logging
from typing import Optional

from .config import ScraperConfig
from .core.artifacts import ArtifactPaths
from .core.codegen_client import CodeGenerationClient
from .core.coordinator import ArtifactSignal, ExecutionCoordinator
from .core.migrations import migrate
from .core.models import RunReport
from .core.page_capture import BrowserPageCapture, PageCapture, StaticPageCapture
from .core.pipeline import PipelineOrchestrator, ProgressCallback
from .core.program_cache import ProgramCache
from .core.relevance import RelevanceFilter
from .core.result_sink import ResultSink
from .core.sandbox import ProgramExecutor
from .core.store import DocumentStore
from .core.synthesizer import ProgramSynthesizer

logger = logging.getLogger(__name__)


def build_capture(config: ScraperConfig) -> PageCapture:
    if config.capture_mode == "static":
        return StaticPageCapture(
            timeout=config.capture_timeout,
            snippet_max_chars=config.snippet_max_chars
        )
    return BrowserPageCapture(
        headless=config.headless,
        timeout=config.capture_timeout,
        snippet_max_chars=config.snippet_max_chars
    )


def build_orchestrator(
    config: ScraperConfig,
    store: DocumentStore,
    capture: PageCapture,
    client: Optional[CodeGenerationClient] = None,
    on_progress: Optional[ProgressCallback] = None
) -> PipelineOrchestrator:
    artifacts = ArtifactPaths(str(config.workdir))
    artifacts.ensure()

    client = client or CodeGenerationClient(api_key=config.api_key, model_name=config.model_name)
    synthesizer = ProgramSynthesizer(
        client,
        max_attempts=config.max_attempts,
        rate_limit_attempts=config.rate_limit_attempts,
        backoff_initial=config.backoff_initial,
        backoff_cap=config.backoff_cap
    )
    executor = ProgramExecutor(
        input_path=artifacts.markup_path,
        output_path=artifacts.output_path,
        timeout=config.exec_timeout,
        working_dir=artifacts.generated_dir
    )
    signal = ArtifactSignal(
        artifacts.output_path,
        attempts=config.poll_attempts,
        interval=config.poll_interval
    )

    return PipelineOrchestrator(
        capture=capture,
        relevance=RelevanceFilter(),
        cache=ProgramCache(store, artifacts),
        synthesizer=synthesizer,
        coordinator=ExecutionCoordinator(executor, signal),
        sink=ResultSink(store, artifacts.data_dir),
        artifacts=artifacts,
        force_regenerate=config.force_regenerate,
        on_progress=on_progress
    )


async def run(
    config: ScraperConfig,
    capture: Optional[PageCapture] = None,
    client: Optional[CodeGenerationClient] = None,
    on_progress: Optional[ProgressCallback] = None
) -> RunReport:
    """
    Validate config, open shared resources, process every target, release resources

    Raises:
        ConfigurationFailure: before any target is processed
    """
    config.validate(require_credential=client is None)

    for target in config.targets:
        logger.info(f" Scheduled processing for URL: {target.url} with content type: {target.category}")

    with DocumentStore(str(config.store_dir)) as store:
        migrate(store, 'up')
        async with (capture or build_capture(config)) as opened_capture:
            orchestrator = build_orchestrator(config, store, opened_capture, client, on_progress)
            return await orchestrator.run(config.targets)
