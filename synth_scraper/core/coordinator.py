"""
Execution Coordinator
Dispatches an accepted program to the sandbox and waits, bounded, for its output artifact
"""

import json
import logging
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

from .exceptions import ExecutionFailure
from .retry import fixed_delays, retry_until
from .sandbox import ProgramExecutor, SandboxOutput

logger = logging.getLogger(__name__)


class ExecutionState(str, Enum):
    IDLE = "idle"
    DISPATCHED = "dispatched"
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    TIMED_OUT = "timed_out"
    RUNTIME_ERROR = "runtime_error"


class CompletionSignal(ABC):
    """Waits for a program to signal completion; returns the artifact path or None"""

    def reset(self) -> None:
        pass

    @abstractmethod
    async def wait(self) -> Optional[Path]:
        """Block until completion or give up; never unbounded"""


class ArtifactSignal(CompletionSignal):
    """
    Completion signalled by the output file appearing on disk

    Checks every `interval` seconds, at most `attempts` times. Never unbounded.
    """

    def __init__(
        self,
        path: Path,
        attempts: int = 10,
        interval: float = 1.0,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None
    ):
        if attempts < 1:
            raise ValueError(f"attempts must be >= 1, got {attempts}")
        self.path = Path(path)
        self.attempts = attempts
        self.interval = interval
        self.sleep = sleep
        self.checks = 0

    def reset(self) -> None:
        """Remove a stale artifact so an earlier run cannot pass for this one"""
        if self.path.exists():
            self.path.unlink()
            logger.debug(f"    Removed stale artifact {self.path}")
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def _check(self, attempt: int) -> bool:
        self.checks += 1
        found = self.path.exists()
        if not found:
            logger.debug(f"    Output not ready (check {attempt}/{self.attempts})")
        return found

    async def wait(self) -> Optional[Path]:
        self.checks = 0
        outcome = await retry_until(
            self._check,
            max_attempts=self.attempts,
            accept=bool,
            delays=fixed_delays(self.interval),
            sleep=self.sleep,
            label="artifact polling",
            sleep_after_last=False
        )
        return self.path if outcome.accepted else None


class ExecutionCoordinator:
    """
    Runs a program and turns its side effects into a payload

    States: DISPATCHED -> POLLING -> SUCCEEDED | TIMED_OUT | RUNTIME_ERROR
    """

    TRACEBACK_MARKER = 'Traceback (most recent call last)'

    def __init__(self, executor: ProgramExecutor, signal: CompletionSignal):
        """
        Initialize Execution Coordinator

        Args:
            executor: Sandbox that runs program files
            signal: Completion signal telling when the output is ready
        """
        self.executor = executor
        self.signal = signal
        self.state = ExecutionState.IDLE
        self.last_output: Optional[SandboxOutput] = None

    async def execute(self, source_path: Path) -> Any:
        """
        Run one program to completion

        Args:
            source_path: Materialized program file

        Returns:
            Parsed JSON payload written by the program

        Raises:
            ExecutionFailure: kind 'timeout' (no artifact in time) or 'runtime' (program crashed)
        """
        self.signal.reset()
        self.last_output = None

        self.state = ExecutionState.DISPATCHED
        try:
            output = await self.executor.run(source_path)
        except ExecutionFailure as e:
            self.state = (ExecutionState.TIMED_OUT if e.kind == ExecutionFailure.TIMEOUT
                          else ExecutionState.RUNTIME_ERROR)
            raise
        self.last_output = output

        if output.stderr.strip():
            logger.debug(f"    Program stderr:\n{output.stderr.strip()[-2000:]}")

        if self._is_runtime_error(output):
            self.state = ExecutionState.RUNTIME_ERROR
            tail = self._tail(output.stderr)
            raise ExecutionFailure(
                f"Program failed with exit code {output.returncode}: {tail}",
                kind=ExecutionFailure.RUNTIME,
                stderr=output.stderr
            )

        self.state = ExecutionState.POLLING
        artifact = await self.signal.wait()
        if artifact is None:
            self.state = ExecutionState.TIMED_OUT
            raise ExecutionFailure(
                "Output artifact did not appear in time",
                kind=ExecutionFailure.TIMEOUT,
                stderr=output.stderr
            )

        try:
            payload = json.loads(artifact.read_text(encoding='utf-8'))
        except (OSError, ValueError) as e:
            self.state = ExecutionState.RUNTIME_ERROR
            raise ExecutionFailure(
                f"Output artifact is not valid JSON: {e}",
                kind=ExecutionFailure.RUNTIME,
                stderr=output.stderr
            ) from e

        self.state = ExecutionState.SUCCEEDED
        logger.info(f" Program output collected from {artifact.name}")
        return payload

    def _is_runtime_error(self, output: SandboxOutput) -> bool:
        if output.returncode not in (0, None):
            return True
        return self.TRACEBACK_MARKER in output.stderr

    @staticmethod
    def _tail(stderr: str, lines: int = 3) -> str:
        tail = [line for line in stderr.strip().splitlines() if line.strip()][-lines:]
        return ' | '.join(tail) if tail else 'no diagnostics'
