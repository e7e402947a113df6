"""
Python interpreter environments used by the sandbox executor.

A runtime is the external scripting engine: it bootstraps asynchronously,
reports console output line by line to sinks installed by the caller, and runs
code returning the value of a final expression (or raising ``PythonError``).

Two implementations:

- ``InProcessRuntime`` evaluates code in this process with a persistent
  ``__main__`` namespace.
- ``WorkerRuntime`` keeps a long-running ``python -m codeharvest.worker_server``
  subprocess and talks JSON-RPC to it over stdin/stdout, so user code cannot
  touch the host process.
"""

import ast
import asyncio
import builtins
import importlib
import inspect
import io
import json
import linecache
import logging
import os
import sys
import traceback
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from asyncio.subprocess import Process

logger = logging.getLogger(__name__)

Sink = Callable[[str], None]

# Directory that contains the codeharvest package, for the worker's PYTHONPATH
_PACKAGE_PARENT = Path(__file__).resolve().parent.parent


class PythonError(Exception):
    """User code raised. The message is the formatted traceback."""


class WorkerError(RuntimeError):
    """The worker process failed outside of user code."""


def _discard(_line: str) -> None:
    return None


class _LineWriter(io.TextIOBase):
    """File-like object that forwards complete lines to a sink."""

    def __init__(self, sink: Sink):
        super().__init__()
        self._sink = sink
        self._buffer = ""

    def writable(self) -> bool:
        return True

    def write(self, text: str) -> int:
        self._buffer += text
        while "\n" in self._buffer:
            line, _, self._buffer = self._buffer.partition("\n")
            self._sink(line)
        return len(text)

    def flush_pending(self) -> None:
        if self._buffer:
            self._sink(self._buffer)
            self._buffer = ""


class PythonRuntime(ABC):
    """Contract for an interpreter environment."""

    def __init__(self) -> None:
        self._stdout: Sink = _discard
        self._stderr: Sink = _discard

    def set_stdout(self, sink: Sink | None) -> None:
        self._stdout = sink or _discard

    def set_stderr(self, sink: Sink | None) -> None:
        self._stderr = sink or _discard

    @abstractmethod
    async def bootstrap(self) -> None:
        """Prepare the environment. May take seconds; may raise."""

    @abstractmethod
    async def run_async(self, code: str) -> Any:
        """Run code and return the value of its final expression, if any.

        Raises:
            PythonError: If the code raised
        """

    async def shutdown(self) -> None:
        """Release resources. The runtime must be bootstrapped again before use."""


class InProcessRuntime(PythonRuntime):
    """Evaluate code in the current process.

    Features:
    - Variables persist across runs in one ``__main__`` namespace
    - Top-level ``await`` is supported
    - The last expression's value is returned unless the code ends with ``;``
    - Tracebacks only show frames from user code
    """

    filename = "<exec>"

    def __init__(self, preload_modules: Iterable[str] = ()):
        """
        Initialize runtime.

        Args:
            preload_modules: Modules imported into the namespace during bootstrap
        """
        super().__init__()
        self.preload_modules = tuple(preload_modules)
        self.namespace: dict[str, Any] | None = None

    async def bootstrap(self) -> None:
        namespace: dict[str, Any] = {"__name__": "__main__", "__builtins__": builtins}
        for module_name in self.preload_modules:
            await asyncio.to_thread(importlib.import_module, module_name)
            top_level = module_name.partition(".")[0]
            namespace[top_level] = sys.modules[top_level]
        self.namespace = namespace
        logger.debug(f"In-process runtime ready (preloaded: {list(self.preload_modules)})")

    async def shutdown(self) -> None:
        self.namespace = None

    async def run_async(self, code: str) -> Any:
        if self.namespace is None:
            raise RuntimeError("Runtime is not bootstrapped")

        stdout = _LineWriter(self._stdout)
        stderr = _LineWriter(self._stderr)
        try:
            with redirect_stdout(stdout), redirect_stderr(stderr):
                return await self._eval(code)
        except (Exception, SystemExit) as exc:
            raise PythonError(self._format_error(exc)) from exc
        finally:
            stdout.flush_pending()
            stderr.flush_pending()

    async def _eval(self, code: str) -> Any:
        linecache.cache[self.filename] = (len(code), None, code.splitlines(True), self.filename)
        tree = ast.parse(code, filename=self.filename, mode="exec")

        last_expr = None
        if tree.body and isinstance(tree.body[-1], ast.Expr) and not code.rstrip().endswith(";"):
            last_expr = tree.body.pop()

        flags = ast.PyCF_ALLOW_TOP_LEVEL_AWAIT
        await self._run_code(compile(tree, self.filename, "exec", flags=flags))
        if last_expr is None:
            return None
        expression = ast.Expression(body=last_expr.value)
        return await self._run_code(compile(expression, self.filename, "eval", flags=flags))

    async def _run_code(self, code_obj: Any) -> Any:
        result = eval(code_obj, self.namespace)  # noqa: S307 - this is the interpreter
        if code_obj.co_flags & inspect.CO_COROUTINE:
            result = await result
        return result

    def _format_error(self, exc: BaseException) -> str:
        frames = [
            frame
            for frame in traceback.extract_tb(exc.__traceback__)
            if frame.filename == self.filename
        ]
        lines: list[str] = []
        if frames:
            lines.append("Traceback (most recent call last):\n")
            lines.extend(traceback.format_list(frames))
        lines.extend(traceback.format_exception_only(type(exc), exc))
        return "".join(lines).rstrip()


class WorkerRuntime(PythonRuntime):
    """Run code in a long-running Python subprocess via JSON-RPC."""

    def __init__(
        self,
        *,
        ready_timeout: float = 15.0,
        preload_modules: Iterable[str] = (),
        python_executable: str | None = None,
        max_response_bytes: int = 10 * 1024 * 1024,
    ):
        """
        Initialize worker runtime.

        Args:
            ready_timeout: Seconds to wait for the worker to report Ready
            preload_modules: Modules the worker imports before reporting Ready
            python_executable: Interpreter to launch (default: sys.executable)
            max_response_bytes: Largest JSON-RPC response line accepted
        """
        super().__init__()
        self.ready_timeout = ready_timeout
        self.preload_modules = tuple(preload_modules)
        self.python_executable = python_executable or sys.executable
        self.max_response_bytes = max_response_bytes
        self.process: "Process | None" = None
        self.lock = asyncio.Lock()
        self._request_id = 0
        self._stderr_task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self.process is not None and self.process.returncode is None

    def _build_command(self) -> list[str]:
        cmd = [self.python_executable, "-m", "codeharvest.worker_server"]
        for module_name in self.preload_modules:
            cmd.extend(["--preload", module_name])
        return cmd

    def _build_env(self) -> dict[str, str]:
        env = os.environ.copy()
        paths = [str(_PACKAGE_PARENT)]
        if env.get("PYTHONPATH"):
            paths.append(env["PYTHONPATH"])
        env["PYTHONPATH"] = os.pathsep.join(paths)
        return env

    async def bootstrap(self) -> None:
        if self.running:
            return

        logger.info("Starting Python worker...")
        self.process = await asyncio.create_subprocess_exec(
            *self._build_command(),
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=self._build_env(),
            limit=self.max_response_bytes,
        )

        try:
            await asyncio.wait_for(self._wait_ready(), timeout=self.ready_timeout)
        except asyncio.TimeoutError:
            logger.error("Python worker initialization timeout")
            await self.kill()
            raise WorkerError(
                f"Worker failed to initialize within {self.ready_timeout}s"
            ) from None
        except WorkerError:
            await self.kill()
            raise

        self._stderr_task = asyncio.create_task(self._drain_stderr())
        logger.info(f"Python worker ready (PID: {self.process.pid})")

    async def _wait_ready(self) -> None:
        """Wait for the worker to print 'Ready' to stderr."""
        if not self.process or not self.process.stderr:
            raise WorkerError("Process not started")

        seen: list[str] = []
        while True:
            line = await self.process.stderr.readline()
            if not line:
                details = "\n".join(seen[-20:])
                raise WorkerError(f"Worker process terminated during initialization\n{details}")
            if line.strip() == b"Ready":
                return
            seen.append(line.decode("utf-8", errors="replace").rstrip())

    async def _drain_stderr(self) -> None:
        """Keep the stderr pipe from filling up once the worker is running."""
        if not self.process or not self.process.stderr:
            return
        while True:
            line = await self.process.stderr.readline()
            if not line:
                return
            logger.debug(f"[worker] {line.decode('utf-8', errors='replace').rstrip()}")

    async def _request(self, method: str, params: dict[str, Any]) -> dict[str, Any]:
        async with self.lock:
            if not self.running or not self.process:
                raise WorkerError("Worker not running")
            if not self.process.stdin or not self.process.stdout:
                raise WorkerError("Worker streams not available")

            self._request_id += 1
            request = {"jsonrpc": "2.0", "id": self._request_id, "method": method, "params": params}

            try:
                self.process.stdin.write((json.dumps(request) + "\n").encode("utf-8"))
                await self.process.stdin.drain()
                response_line = await self.process.stdout.readline()
            except (OSError, ValueError, asyncio.LimitOverrunError) as exc:
                raise WorkerError(f"Worker communication failed: {exc}") from exc

            if not response_line:
                raise WorkerError("Worker closed stdout")

        try:
            response = json.loads(response_line)
        except json.JSONDecodeError as exc:
            raise WorkerError(f"Malformed worker response: {exc}") from exc

        if "error" in response:
            raise WorkerError(f"Worker error: {response['error']['message']}")
        return response["result"]

    async def run_async(self, code: str) -> Any:
        result = await self._request("execute", {"code": code})

        for stream, text in result.get("events", []):
            if stream == "stderr":
                self._stderr(text)
            else:
                self._stdout(text)

        if result.get("error") is not None:
            raise PythonError(result["error"])
        return result.get("value")

    async def health_check(self) -> dict[str, Any]:
        if not self.running:
            return {"status": "dead", "error": "Process not running"}
        try:
            return await asyncio.wait_for(self._request("health", {}), timeout=5.0)
        except (WorkerError, asyncio.TimeoutError) as exc:
            return {"status": "unhealthy", "error": str(exc)}

    async def kill(self) -> None:
        """Force kill the worker process."""
        if self.process and self.process.returncode is None:
            try:
                self.process.kill()
            except ProcessLookupError:
                pass
            await self.process.wait()

    async def shutdown(self) -> None:
        if self.process is None:
            return

        if self.process.returncode is None:
            if self.process.stdin:
                self.process.stdin.close()
            try:
                await asyncio.wait_for(self.process.wait(), timeout=5.0)
            except asyncio.TimeoutError:
                logger.warning("Python worker did not exit, killing it")
                await self.kill()

        if self._stderr_task is not None:
            self._stderr_task.cancel()
            self._stderr_task = None

        logger.info("Python worker stopped")
        self.process = None
