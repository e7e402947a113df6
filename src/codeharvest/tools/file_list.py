"""
FileListTool - List project files.
"""

from langchain_core.callbacks import AsyncCallbackManagerForToolRun
from pydantic import BaseModel, Field

from codeharvest.tools.base import SandboxTool


class FileListInput(BaseModel):
    """Input schema for FileListTool."""

    prefix: str = Field(
        default="",
        description="Optional path prefix to filter files (e.g., src/, static/)",
    )


class FileListTool(SandboxTool):
    """
    Tool for listing files in the thread's project.
    """

    name: str = "list_files"
    description: str = """List all files in the project.

Optionally filter by path prefix.

Args:
    prefix: Optional path prefix to filter files (default: all files)

Returns:
    List of files with paths, languages and sizes
"""
    args_schema: type[BaseModel] = FileListInput

    async def _arun(  # type: ignore[override]
        self,
        prefix: str = "",
        run_manager: AsyncCallbackManagerForToolRun | None = None,
    ) -> str:
        """List project files."""
        vfs = self._get_filesystem(run_manager)
        files = [f for f in vfs.list_files() if f.filename.startswith(prefix)]

        if not files:
            return "No files found" if not prefix else f"No files found with prefix: {prefix}"

        lines = [f"Found {len(files)} file(s):\n"]
        for record in files:
            size_kb = len(record.code.encode("utf-8")) / 1024
            lines.append(
                f"  {record.filename}\n"
                f"    Size: {size_kb:.2f} KB\n"
                f"    Language: {record.language}"
            )
        return "\n".join(lines)
