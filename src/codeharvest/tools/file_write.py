"""
FileWriteTool - Create or overwrite a project file.
"""

import logging

from langchain_core.callbacks import AsyncCallbackManagerForToolRun
from pydantic import BaseModel, Field

from codeharvest.tools.base import SandboxTool

logger = logging.getLogger(__name__)


class FileWriteInput(BaseModel):
    """Input schema for FileWriteTool."""

    file_path: str = Field(description="Path where to write the file (e.g., src/config.json)")
    content: str = Field(description="Complete file content")
    language: str | None = Field(
        default=None,
        description="Language tag (inferred from the extension when omitted)",
    )


class FileWriteTool(SandboxTool):
    """
    Tool for writing a single file into the thread's project.

    For several files at once, prefer writing them in a response and calling
    extract_files.
    """

    name: str = "write_file"
    description: str = """Write content to a file in the project.

Creates the file or replaces it entirely if it already exists.

Args:
    file_path: Path where to write (e.g., index.html, src/utils.js)
    content: Complete file content
    language: Optional language tag

Returns:
    Confirmation message
"""
    args_schema: type[BaseModel] = FileWriteInput

    async def _arun(  # type: ignore[override]
        self,
        file_path: str,
        content: str,
        language: str | None = None,
        run_manager: AsyncCallbackManagerForToolRun | None = None,
    ) -> str:
        """Write a project file."""
        if not file_path.strip():
            return "Error: file_path must not be empty"

        record = self._get_filesystem(run_manager).write_file(file_path, content, language)
        logger.info(f"write_file: Wrote {len(content)} chars to {file_path}")
        return f"Successfully wrote {len(content)} chars to {record.filename} ({record.language})"
