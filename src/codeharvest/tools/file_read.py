"""
FileReadTool - Read a project file.
"""

from langchain_core.callbacks import AsyncCallbackManagerForToolRun
from pydantic import BaseModel, Field

from codeharvest.tools.base import SandboxTool


class FileReadInput(BaseModel):
    """Input schema for FileReadTool."""

    file_path: str = Field(description="Path of the file to read (e.g., src/app.py)")


class FileReadTool(SandboxTool):
    """
    Tool for reading files from the thread's project.
    """

    name: str = "read_file"
    description: str = """Read a file from the project.

Args:
    file_path: Path of the file (e.g., index.html, src/app.py)

Returns:
    File contents as text
"""
    args_schema: type[BaseModel] = FileReadInput

    async def _arun(  # type: ignore[override]
        self,
        file_path: str,
        run_manager: AsyncCallbackManagerForToolRun | None = None,
    ) -> str:
        """Read a project file."""
        record = self._get_filesystem(run_manager).get_file(file_path)
        if record is None:
            return f"Error: File not found: {file_path}"
        return f"File: {record.filename}\nLanguage: {record.language}\n\nContent:\n{record.code}"
