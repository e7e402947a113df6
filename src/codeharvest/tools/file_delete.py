"""
FileDeleteTool - Delete project files.
"""

from langchain_core.callbacks import AsyncCallbackManagerForToolRun
from pydantic import BaseModel, Field

from codeharvest.tools.base import SandboxTool


class FileDeleteInput(BaseModel):
    """Input schema for FileDeleteTool."""

    file_path: str = Field(description="Path to the file to delete (e.g., src/old.js)")


class FileDeleteTool(SandboxTool):
    """
    Tool for deleting files from the thread's project.
    """

    name: str = "delete_file"
    description: str = """Delete a file from the project.

Deletions cannot be undone.

Args:
    file_path: Path to the file to delete (e.g., src/old.js)

Returns:
    Confirmation message
"""
    args_schema: type[BaseModel] = FileDeleteInput

    async def _arun(  # type: ignore[override]
        self,
        file_path: str,
        run_manager: AsyncCallbackManagerForToolRun | None = None,
    ) -> str:
        """Delete a project file."""
        if self._get_filesystem(run_manager).remove_file(file_path):
            return f"Successfully deleted: {file_path}"
        return f"Error: File not found: {file_path}"
