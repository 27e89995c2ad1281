"""
Pipeline Orchestrator
Sequences capture -> relevance -> cached-or-synthesized program -> execution -> persistence per URL

Architecture Flow (one Target at a time, in input order):
1. Capture the page (shared browser/session)
2. Check relevance against the requested category
3. Reuse the cached program, or synthesize + cache a new one
4. Execute the program in the sandbox and collect its output
5. Persist the payload and record the status against the URL
"""

import logging
import time
from typing import Callable, List, Optional

from .artifacts import ArtifactPaths
from .coordinator import ExecutionCoordinator
from .exceptions import (
    CaptureFailure,
    ExecutionFailure,
    PersistenceFailure,
    SynthesisFailure,
)
from .models import (
    ExecutionResult,
    ExecutionStatus,
    RunReport,
    Target,
    TargetOutcome,
    TargetStatus,
)
from .page_capture import PageCapture
from .program_cache import ProgramCache
from .relevance import RelevanceFilter
from .result_sink import ResultSink
from .synthesizer import ProgramSynthesizer

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


class ProgressTracker:
    """Step counter for the whole run; skipped steps still count so progress reaches the total"""

    def __init__(self, total: int, on_progress: Optional[ProgressCallback] = None):
        self.total = total
        self.completed = 0
        self.on_progress = on_progress

    def advance(self, steps: int = 1) -> None:
        if steps <= 0:
            return
        self.completed = min(self.total, self.completed + steps)
        if self.on_progress:
            self.on_progress(self.completed, self.total)


class _TargetSteps:
    """Per-target view on the tracker"""

    def __init__(self, tracker: ProgressTracker, steps_per_target: int):
        self.tracker = tracker
        self.steps_per_target = steps_per_target
        self.done = 0

    def step(self, message: str) -> None:
        self.done += 1
        self.tracker.advance()
        logger.info(f" Step {self.done}/{self.steps_per_target}: {message}")

    def finish(self) -> None:
        self.tracker.advance(self.steps_per_target - self.done)


class PipelineOrchestrator:
    """
    Runs the synthesize-validate-execute-cache pipeline over a batch of Targets

    One Target's failure never aborts the batch: every failure is caught here
    and turned into a terminal TargetStatus.
    """

    STEPS_PER_TARGET = 5

    def __init__(
        self,
        capture: PageCapture,
        relevance: RelevanceFilter,
        cache: ProgramCache,
        synthesizer: ProgramSynthesizer,
        coordinator: ExecutionCoordinator,
        sink: ResultSink,
        artifacts: ArtifactPaths,
        force_regenerate: bool = False,
        on_progress: Optional[ProgressCallback] = None
    ):
        """
        Initialize Pipeline Orchestrator

        Args:
            capture: Page capture adapter (already opened by the caller)
            relevance: Relevance filter
            cache: Program cache keyed by URL
            synthesizer: Program synthesizer
            coordinator: Execution coordinator
            sink: Result sink
            artifacts: Artifact layout (markup input file lives here)
            force_regenerate: Synthesize anew and replace the cached program once the new one is valid
            on_progress: Called with (completed_steps, total_steps) after every step
        """
        self.capture = capture
        self.relevance = relevance
        self.cache = cache
        self.synthesizer = synthesizer
        self.coordinator = coordinator
        self.sink = sink
        self.artifacts = artifacts
        self.force_regenerate = force_regenerate
        self.on_progress = on_progress

    async def run(self, targets: List[Target]) -> RunReport:
        """
        Process every Target sequentially

        Args:
            targets: Targets in the order they must be processed

        Returns:
            RunReport with one outcome per Target
        """
        report = RunReport(total_steps=len(targets) * self.STEPS_PER_TARGET)
        tracker = ProgressTracker(report.total_steps, self.on_progress)

        logger.info(f" Processing {len(targets)} targets...")

        for i, target in enumerate(targets, 1):
            logger.info(f" Processing {i}/{len(targets)}: {target.url} for content type: {target.category}")
            outcome = await self.process(target, tracker)
            report.outcomes.append(outcome)

        report.completed_steps = tracker.completed
        report.finished_at = time.time()

        logger.info(f" Batch complete: {report.summary()}")
        return report

    async def process(self, target: Target, tracker: Optional[ProgressTracker] = None) -> TargetOutcome:
        """Process one Target; never raises"""
        tracker = tracker or ProgressTracker(self.STEPS_PER_TARGET, self.on_progress)
        steps = _TargetSteps(tracker, self.STEPS_PER_TARGET)
        outcome = TargetOutcome(target=target, status=TargetStatus.ERRORED)

        try:
            await self._process(target, outcome, steps)

        except CaptureFailure as e:
            outcome.status = TargetStatus.ERRORED
            outcome.detail = f"capture failure: {e.message}"
            logger.error(f" Capture failure for {target.url}: {e.message}")

        except SynthesisFailure as e:
            outcome.status = TargetStatus.SKIPPED_NO_PROGRAM
            outcome.detail = f"synthesis failure ({e.reason}) after {e.attempts} attempts"
            logger.error(f" Failed to generate a valid program for {target.url}: {e.message}")

        except ExecutionFailure as e:
            if e.kind == ExecutionFailure.TIMEOUT:
                outcome.status = TargetStatus.SKIPPED_NO_OUTPUT
                execution_status = ExecutionStatus.NO_OUTPUT
            else:
                outcome.status = TargetStatus.ERRORED
                execution_status = ExecutionStatus.ERROR
            outcome.detail = f"execution failure ({e.kind}): {e.message}"
            outcome.result = ExecutionResult(
                url=target.url,
                status=execution_status,
                script_id=outcome.script_id,
                error=e.message
            )
            logger.error(f" Execution failure ({e.kind}) for {target.url}: {e.message}")
            self._record_failure(target, execution_status, outcome.script_id, e.message)

        except PersistenceFailure as e:
            outcome.status = TargetStatus.ERRORED
            outcome.detail = f"persistence failure: {e.message}"
            logger.error(f" Persistence failure for {target.url}: {e.message}")

        except Exception as e:
            outcome.status = TargetStatus.ERRORED
            outcome.detail = f"unexpected {type(e).__name__}: {e}"
            logger.exception(f" Error processing {target.url}: {e}")

        finally:
            outcome.steps_completed = steps.done
            steps.finish()

        return outcome

    async def _process(self, target: Target, outcome: TargetOutcome, steps: _TargetSteps) -> None:
        page = await self.capture.capture(target.url)
        steps.step("Capture completed.")

        if not self.relevance.is_relevant(page.raw_markup, target.category):
            outcome.status = TargetStatus.SKIPPED_IRRELEVANT
            outcome.detail = "no relevant content"
            logger.info(f" No relevant content found for content type: {target.category}. Skipping.")
            return
        steps.step("Relevant content check completed.")

        self.artifacts.save_markup(page.raw_markup)

        program = None if self.force_regenerate else self.cache.lookup(target.url)
        if program is None:
            source = await self.synthesizer.synthesize(page.content_snippet, target.category)
            if self.force_regenerate:
                # the old program stays accepted until a replacement validates
                self.cache.invalidate(target.url)
            program = self.cache.store(target.url, source)
        else:
            outcome.from_cache = True
        outcome.script_id = program.id
        script_path = self.cache.materialize(program)
        steps.step("Program ready" + (" (cached)." if outcome.from_cache else " (synthesized)."))

        payload = await self.coordinator.execute(script_path)
        steps.step("Program execution completed.")

        output_path = self.sink.persist(target.url, target.category, payload, program.id)
        if output_path is None:
            outcome.status = TargetStatus.SKIPPED_NO_OUTPUT
            outcome.detail = "program produced an empty payload"
            outcome.result = ExecutionResult(
                url=target.url,
                status=ExecutionStatus.NO_OUTPUT,
                payload=payload,
                script_id=program.id,
                error=outcome.detail
            )
            logger.info(f" No output from program for {target.url}, skipping JSON save")
            self._record_failure(target, ExecutionStatus.NO_OUTPUT, program.id, outcome.detail)
            return

        outcome.status = TargetStatus.PERSISTED
        outcome.output_path = str(output_path)
        outcome.result = ExecutionResult(
            url=target.url,
            status=ExecutionStatus.SUCCESS,
            payload=payload,
            script_id=program.id
        )
        steps.step("Result persisted.")

    def _record_failure(
        self,
        target: Target,
        status: ExecutionStatus,
        script_id: Optional[str],
        error: str
    ) -> None:
        try:
            self.sink.record_failure(target.url, target.category, status, script_id, error)
        except PersistenceFailure as e:
            logger.error(f" Could not record {status.value} for {target.url}: {e.message}")
