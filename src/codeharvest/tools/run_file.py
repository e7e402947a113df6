"""
RunPythonFileTool - Execute Python files from the project.
"""

import logging

from langchain_core.callbacks import AsyncCallbackManagerForToolRun
from pydantic import BaseModel, Field

from codeharvest.manager import FileRecordNotFoundError
from codeharvest.sandbox_executor import ExecutorInitializationError
from codeharvest.tools.base import SandboxTool

logger = logging.getLogger(__name__)


class RunPythonFileInput(BaseModel):
    """Input schema for RunPythonFileTool."""

    file_path: str = Field(description="Path to Python file to execute (e.g., main.py, src/app.py)")


class RunPythonFileTool(SandboxTool):
    """
    Tool for executing Python files stored in the thread's project.

    All threads share one interpreter, so names defined by one run are still
    visible to the next.
    """

    name: str = "python_run_file"
    description: str = """Execute a Python file from the project.

Use this to run Python scripts that have been extracted or written before.

Args:
    file_path: Path to the Python file to execute (e.g., main.py, src/analysis.py)

Returns:
    Console output of the run (stderr lines are prefixed with "[Error]")
    and the value of the last expression, if any
"""
    args_schema: type[BaseModel] = RunPythonFileInput

    async def _arun(  # type: ignore[override]
        self,
        file_path: str,
        run_manager: AsyncCallbackManagerForToolRun | None = None,
    ) -> str:
        """Execute a project Python file."""
        thread_id = self._get_thread_id(run_manager)
        # Make sure the session exists so a missing file reads as "not found"
        self.manager.get_or_create_session(thread_id)

        try:
            result = await self.manager.run_file(thread_id, file_path)
        except FileRecordNotFoundError:
            return f"Error: Python file not found: {file_path}\n\nUse list_files to see available files."
        except ExecutorInitializationError as e:
            logger.error(f"python_run_file: {e}")
            return f"Error: Python runtime unavailable: {e}"

        if result.success:
            return f"**Executed:** {file_path}\n\n{result.output}"
        return f"**Executed:** {file_path}\n\nError:\n{result.output}"
