"""
FileEditTool - Edit project files using string replacement.
"""

from langchain_core.callbacks import AsyncCallbackManagerForToolRun
from pydantic import BaseModel, Field

from codeharvest.tools.base import SandboxTool


class FileEditInput(BaseModel):
    """Input schema for FileEditTool."""

    file_path: str = Field(description="Path to the file to edit (e.g., src/app.js)")
    old_string: str = Field(description="Unique string to replace (must appear exactly once)")
    new_string: str = Field(description="New string to replace it with")


class FileEditTool(SandboxTool):
    """
    Tool for editing files using string replacement.

    Replaces a unique string in a file. The old_string must appear exactly once
    in the file for the operation to succeed. The file keeps its language.
    """

    name: str = "str_replace"
    description: str = """Edit a project file by replacing a unique string with a new string.

The old_string must appear exactly once in the file. If it appears zero times
or multiple times, the operation will fail.

Args:
    file_path: Path to the file to edit (e.g., src/app.js)
    old_string: Unique string to find and replace (must appear exactly once)
    new_string: New string to replace it with

Returns:
    Confirmation message or error if string not found or not unique

Example:
    file_path: config.py
    old_string: DEBUG = False
    new_string: DEBUG = True
"""
    args_schema: type[BaseModel] = FileEditInput

    async def _arun(  # type: ignore[override]
        self,
        file_path: str,
        old_string: str,
        new_string: str,
        run_manager: AsyncCallbackManagerForToolRun | None = None,
    ) -> str:
        """Edit file using string replacement."""
        vfs = self._get_filesystem(run_manager)

        record = vfs.get_file(file_path)
        if record is None:
            return f"Error: File not found: {file_path}"

        count = record.code.count(old_string)
        if count == 0:
            return f"Error: String not found in {file_path}\n\nSearched for:\n{old_string}"
        elif count > 1:
            return (
                f"Error: String appears {count} times in {file_path} (must be unique)\n\n"
                f"Searched for:\n{old_string}\n\n"
                f"Please provide a longer, more specific string that appears exactly once."
            )

        vfs.update_file(file_path, record.code.replace(old_string, new_string, 1))

        return f"Successfully edited {file_path}\n\nReplaced:\n{old_string}\n\nWith:\n{new_string}"
