"""
Program Executor
Runs an untrusted generated program as a separate interpreter process

Runs with:
- argument vector, never a shell command line
- scrubbed environment (only PATH and the agreed input/output paths)
- fixed working directory
- dispatch timeout (process is killed when exceeded)
"""

import asyncio
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from .artifacts import INPUT_ENV_VAR, OUTPUT_ENV_VAR
from .exceptions import ExecutionFailure

logger = logging.getLogger(__name__)


@dataclass
class SandboxOutput:
    stdout: str
    stderr: str
    returncode: Optional[int]
    duration_ms: int = 0


class ProgramExecutor:
    """Capability-scoped executor: it can only run a program file against the agreed artifacts"""

    DEFAULT_TIMEOUT = 60  # seconds

    def __init__(
        self,
        input_path: Path,
        output_path: Path,
        timeout: float = DEFAULT_TIMEOUT,
        python_path: Optional[str] = None,
        working_dir: Optional[Path] = None
    ):
        """
        Initialize program executor

        Args:
            input_path: Markup file the program reads
            output_path: JSON file the program is expected to write
            timeout: Maximum seconds a dispatched program may run
            python_path: Interpreter to use (default: current)
            working_dir: Working directory for the process (default: program's directory)
        """
        self.input_path = Path(input_path)
        self.output_path = Path(output_path)
        self.timeout = timeout
        self.python_path = python_path or sys.executable
        self.working_dir = working_dir

    def build_env(self) -> Dict[str, str]:
        return {
            'PATH': os.environ.get('PATH', ''),
            'PYTHONIOENCODING': 'utf-8',
            INPUT_ENV_VAR: str(self.input_path.resolve()),
            OUTPUT_ENV_VAR: str(self.output_path.resolve()),
        }

    async def run(self, source_path: Path) -> SandboxOutput:
        """
        Dispatch a program and collect its streams

        Args:
            source_path: Program file to run

        Returns:
            SandboxOutput with decoded stdout/stderr and the exit code

        Raises:
            ExecutionFailure: the program could not be started, or ran past the timeout
        """
        source_path = Path(source_path)
        cwd = self.working_dir or source_path.parent
        loop = asyncio.get_running_loop()
        started = loop.time()

        logger.info(f" Dispatching {source_path.name}")
        try:
            process = await asyncio.create_subprocess_exec(
                self.python_path,
                str(source_path.resolve()),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(cwd),
                env=self.build_env()
            )
        except OSError as e:
            raise ExecutionFailure(
                f"Could not start {source_path.name}: {e}",
                kind=ExecutionFailure.RUNTIME
            ) from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise ExecutionFailure(
                f"{source_path.name} exceeded {self.timeout}s and was killed",
                kind=ExecutionFailure.TIMEOUT
            )

        duration_ms = int((loop.time() - started) * 1000)
        output = SandboxOutput(
            stdout=stdout.decode('utf-8', errors='replace'),
            stderr=stderr.decode('utf-8', errors='replace'),
            returncode=process.returncode,
            duration_ms=duration_ms
        )
        logger.debug(f"    Exit code {output.returncode} after {duration_ms}ms")
        return output
