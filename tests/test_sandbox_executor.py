"""Tests for SandboxExecutor lifecycle and output capture."""

import asyncio

import pytest

from codeharvest.filesystem import FileRecord
from codeharvest.runtime import InProcessRuntime, PythonError, PythonRuntime, WorkerError
from codeharvest.sandbox_executor import (
    NO_OUTPUT_MESSAGE,
    ExecutionResult,
    ExecutorInitializationError,
    ExecutorState,
    SandboxExecutor,
)


class ScriptedRuntime(PythonRuntime):
    """Runtime whose bootstrap and runs are controlled by the test."""

    def __init__(self, fail_bootstraps: int = 0):
        super().__init__()
        self.gate = asyncio.Event()
        self.gate.set()
        self.bootstrap_calls = 0
        self.shutdown_calls = 0
        self.fail_bootstraps = fail_bootstraps
        self.script = []

    async def bootstrap(self) -> None:
        self.bootstrap_calls += 1
        await self.gate.wait()
        if self.bootstrap_calls <= self.fail_bootstraps:
            raise RuntimeError("interpreter download failed")

    async def run_async(self, code: str):
        action = self.script.pop(0) if self.script else None
        if callable(action):
            return await action(self)
        return action

    async def shutdown(self) -> None:
        self.shutdown_calls += 1


class TestInitialization:
    async def test_lazy(self):
        executor = SandboxExecutor(ScriptedRuntime())
        assert executor.state is ExecutorState.UNINITIALIZED

    async def test_single_bootstrap_for_concurrent_calls(self):
        runtime = ScriptedRuntime()
        runtime.gate.clear()
        executor = SandboxExecutor(runtime)

        first = asyncio.create_task(executor.execute("a"))
        second = asyncio.create_task(executor.execute("b"))
        await asyncio.sleep(0.01)

        assert executor.state is ExecutorState.INITIALIZING
        assert not first.done() and not second.done()

        runtime.gate.set()
        results = await asyncio.gather(first, second)

        assert runtime.bootstrap_calls == 1
        assert executor.state is ExecutorState.READY
        assert all(r.success for r in results)

    async def test_waiters_observe_failure(self):
        runtime = ScriptedRuntime(fail_bootstraps=1)
        runtime.gate.clear()
        executor = SandboxExecutor(runtime)

        calls = [asyncio.create_task(executor.execute("x")) for _ in range(3)]
        await asyncio.sleep(0.01)
        runtime.gate.set()
        outcomes = await asyncio.gather(*calls, return_exceptions=True)

        assert runtime.bootstrap_calls == 1
        assert all(isinstance(o, ExecutorInitializationError) for o in outcomes)
        assert executor.state is ExecutorState.FAILED

    async def test_retry_after_failure(self):
        runtime = ScriptedRuntime(fail_bootstraps=1)
        executor = SandboxExecutor(runtime)

        with pytest.raises(ExecutorInitializationError, match="interpreter download failed"):
            await executor.execute("x")

        result = await executor.execute("x")
        assert result.success
        assert runtime.bootstrap_calls == 2
        assert executor.state is ExecutorState.READY

    async def test_initialize_when_ready_is_noop(self):
        runtime = ScriptedRuntime()
        executor = SandboxExecutor(runtime)
        await executor.initialize()
        await executor.initialize()
        assert runtime.bootstrap_calls == 1


class TestExecute:
    async def test_stdout_and_tagged_stderr_in_order(self):
        async def chatter(rt):
            rt._stdout("one")
            rt._stderr("warn")
            rt._stdout("two")
            return None

        runtime = ScriptedRuntime()
        runtime.script = [chatter]
        result = await SandboxExecutor(runtime).execute("...")
        assert result == ExecutionResult(success=True, output="one\n[Error] warn\ntwo")

    async def test_value_appended(self):
        async def value(rt):
            rt._stdout("computing")
            return 42

        runtime = ScriptedRuntime()
        runtime.script = [value]
        result = await SandboxExecutor(runtime).execute("...")
        assert result.output == "computing\n42"

    async def test_falsy_value_still_reported(self):
        runtime = ScriptedRuntime()
        runtime.script = [0]
        assert (await SandboxExecutor(runtime).execute("0")).output == "0"

    async def test_no_output_placeholder(self):
        result = await SandboxExecutor(ScriptedRuntime()).execute("pass")
        assert result == ExecutionResult(success=True, output=NO_OUTPUT_MESSAGE)

    async def test_python_error_becomes_result(self):
        async def boom(rt):
            raise PythonError("NameError: name 'x' is not defined")

        runtime = ScriptedRuntime()
        runtime.script = [boom]
        executor = SandboxExecutor(runtime)

        result = await executor.execute("x")
        assert result == ExecutionResult(False, "NameError: name 'x' is not defined")
        assert executor.state is ExecutorState.READY
        assert (await executor.execute("pass")).success

    async def test_runtime_crash_resets_context(self):
        async def crash(rt):
            raise ConnectionResetError("worker died")

        runtime = ScriptedRuntime()
        runtime.script = [crash]
        executor = SandboxExecutor(runtime)

        result = await executor.execute("x")
        assert not result.success
        assert result.output == "worker died"
        assert executor.state is ExecutorState.UNINITIALIZED
        assert runtime.shutdown_calls == 1

        assert (await executor.execute("pass")).success
        assert runtime.bootstrap_calls == 2

    async def test_queued_call_survives_crash_ahead_of_it(self):
        class DyingRuntime(ScriptedRuntime):
            alive = False

            async def bootstrap(self) -> None:
                await super().bootstrap()
                self.alive = True

            async def run_async(self, code: str):
                if not self.alive:
                    raise WorkerError("Worker not running")
                if code == "crash":
                    raise WorkerError("worker died")
                return "ok"

            async def shutdown(self) -> None:
                await asyncio.sleep(0.05)
                self.alive = False
                await super().shutdown()

        runtime = DyingRuntime()
        executor = SandboxExecutor(runtime)
        await executor.initialize()

        crashed, queued = await asyncio.gather(executor.execute("crash"), executor.execute("fine"))

        assert crashed == ExecutionResult(False, "worker died")
        assert queued == ExecutionResult(True, "ok")
        assert runtime.shutdown_calls == 1
        assert runtime.bootstrap_calls == 2
        assert executor.state is ExecutorState.READY

    async def test_sinks_removed_after_run(self):
        runtime = ScriptedRuntime()
        executor = SandboxExecutor(runtime)
        await executor.execute("pass")
        # Output after the run must not leak into a finished result
        runtime._stdout("late")
        assert (await executor.execute("pass")).output == NO_OUTPUT_MESSAGE

    async def test_concurrent_runs_do_not_interleave(self):
        async def slow(rt):
            rt._stdout("slow-start")
            await asyncio.sleep(0.01)
            rt._stdout("slow-end")

        async def fast(rt):
            rt._stdout("fast")

        runtime = ScriptedRuntime()
        runtime.script = [slow, fast]
        executor = SandboxExecutor(runtime)

        results = await asyncio.gather(executor.execute("slow"), executor.execute("fast"))
        assert sorted(r.output for r in results) == ["fast", "slow-start\nslow-end"]


class TestWithInProcessRuntime:
    async def test_print_and_value(self, executor):
        result = await executor.execute("print('hi')\n1 + 1")
        assert result == ExecutionResult(True, "hi\n2")

    async def test_stderr_tag(self, executor):
        result = await executor.execute("import sys\nprint('bad', file=sys.stderr)")
        assert result.output == "[Error] bad"

    async def test_error_then_success(self, executor):
        failed = await executor.execute("raise RuntimeError('nope')")
        assert not failed.success
        assert "RuntimeError: nope" in failed.output

        ok = await executor.execute("'still works'")
        assert ok == ExecutionResult(True, "still works")

    async def test_execute_file(self, executor):
        result = await executor.execute_file(FileRecord("main.py", "print('from file')", "python"))
        assert result.output == "from file"

    async def test_execute_non_python_file_warns(self, executor, caplog):
        await executor.execute_file(FileRecord("notes.txt", "1", "text"))
        assert "does not have .py extension" in caplog.text

    async def test_shutdown_then_execute(self, executor):
        await executor.execute("x = 1")
        await executor.shutdown()
        assert executor.state is ExecutorState.UNINITIALIZED
        result = await executor.execute("'x' in globals()")
        assert result.output == "False"


def test_result_to_dict():
    assert ExecutionResult(True, "ok").to_dict() == {"success": True, "output": "ok"}
