"""
Managed Python execution context.

``SandboxExecutor`` owns one interpreter runtime and its lifecycle::

    UNINITIALIZED -> INITIALIZING -> READY
                          |
                          v
                        FAILED  (next execute() retries bootstrap)

Bootstrap is lazy and shared: whoever calls first starts it, and every caller
arriving while it is in flight awaits that same task and sees its outcome.
Runs are serialised so each call's captured output belongs to it alone.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum

from .filesystem import FileRecord
from .languages import is_python
from .runtime import InProcessRuntime, PythonError, PythonRuntime

logger = logging.getLogger(__name__)

NO_OUTPUT_MESSAGE = "Code executed successfully (no output)"
STDERR_TAG = "[Error] "


class ExecutorState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


class ExecutorInitializationError(RuntimeError):
    """The runtime failed to bootstrap. A later call may retry."""


@dataclass
class ExecutionResult:
    """Result from executing Python code."""

    success: bool
    output: str

    def to_dict(self) -> dict:
        return {"success": self.success, "output": self.output}


class SandboxExecutor:
    """
    Lazily-initialized, single-instance Python execution context.

    Create one per process and pass it to whoever needs to run code.

    Example:
        ```python
        executor = SandboxExecutor(WorkerRuntime())
        result = await executor.execute("print('hi')\\n1 + 1")
        print(result.output)  # "hi\\n2"
        ```
    """

    def __init__(self, runtime: PythonRuntime | None = None):
        """
        Initialize executor.

        Args:
            runtime: Interpreter environment (default: InProcessRuntime)
        """
        self.runtime = runtime or InProcessRuntime()
        self._state = ExecutorState.UNINITIALIZED
        self._init_task: asyncio.Task | None = None
        self._run_lock = asyncio.Lock()

    @property
    def state(self) -> ExecutorState:
        return self._state

    async def initialize(self) -> PythonRuntime:
        """Bootstrap the runtime once, or wait for the bootstrap in flight.

        Raises:
            ExecutorInitializationError: If bootstrap failed
        """
        if self._state is ExecutorState.READY:
            return self.runtime

        task = self._init_task
        if task is None:
            self._state = ExecutorState.INITIALIZING
            task = asyncio.get_running_loop().create_task(self._bootstrap())
            self._init_task = task

        try:
            await asyncio.shield(task)
        except Exception as exc:
            raise ExecutorInitializationError(f"Failed to initialize Python runtime: {exc}") from exc
        return self.runtime

    async def _bootstrap(self) -> None:
        logger.info(f"Initializing Python runtime ({type(self.runtime).__name__})...")
        try:
            await self.runtime.bootstrap()
        except Exception:
            self._state = ExecutorState.FAILED
            logger.exception("Failed to initialize Python runtime")
            raise
        else:
            self._state = ExecutorState.READY
            logger.info("Python runtime ready")
        finally:
            self._init_task = None

    async def execute(self, code: str) -> ExecutionResult:
        """Run code and return its captured console output.

        stdout lines are kept as-is, stderr lines are prefixed with "[Error] ",
        and the value of a final expression is appended.

        Raises:
            ExecutorInitializationError: If the runtime could not be bootstrapped
        """
        while True:
            runtime = await self.initialize()
            async with self._run_lock:
                # A run queued ahead of us may have crashed and reset the runtime
                if self._state is not ExecutorState.READY:
                    continue
                return await self._run(runtime, code)

    async def _run(self, runtime: PythonRuntime, code: str) -> ExecutionResult:
        chunks: list[str] = []
        runtime.set_stdout(lambda line: chunks.append(f"{line}\n"))
        runtime.set_stderr(lambda line: chunks.append(f"{STDERR_TAG}{line}\n"))
        try:
            result = await runtime.run_async(code)
        except PythonError as exc:
            return ExecutionResult(success=False, output=str(exc))
        except Exception as exc:
            logger.error(f"Python runtime failed, it will be re-initialized: {exc}")
            await self._reset()
            return ExecutionResult(success=False, output=str(exc))
        finally:
            runtime.set_stdout(None)
            runtime.set_stderr(None)

        if result is not None:
            chunks.append(str(result))
        output = "".join(chunks).strip()
        return ExecutionResult(success=True, output=output or NO_OUTPUT_MESSAGE)

    async def execute_file(self, record: FileRecord) -> ExecutionResult:
        if not is_python(record.filename):
            logger.warning(f"File {record.filename} does not have .py extension")
        return await self.execute(record.code)

    async def _reset(self) -> None:
        try:
            await self.runtime.shutdown()
        except Exception:
            logger.exception("Error shutting down Python runtime")
        self._state = ExecutorState.UNINITIALIZED

    async def shutdown(self) -> None:
        """Release the runtime. The next execute() bootstraps again."""
        if self._init_task is not None:
            try:
                await asyncio.shield(self._init_task)
            except Exception:  # noqa: BLE001 - a failed bootstrap has nothing to release
                pass
        if self._state is ExecutorState.READY:
            await self.runtime.shutdown()
            logger.info("Python runtime shut down")
        self._state = ExecutorState.UNINITIALIZED
