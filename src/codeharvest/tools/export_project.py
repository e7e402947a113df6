"""
ExportProjectTool - Write the project as a ZIP archive.
"""

import logging
from pathlib import Path

from langchain_core.callbacks import AsyncCallbackManagerForToolRun
from pydantic import BaseModel, Field

from codeharvest.archive import archive_filename
from codeharvest.tools.base import SandboxTool

logger = logging.getLogger(__name__)


class ExportProjectInput(BaseModel):
    """Input schema for ExportProjectTool."""

    project_name: str | None = Field(
        default=None,
        description="Archive name without extension (default: the session's project name)",
    )


class ExportProjectTool(SandboxTool):
    """
    Tool for exporting all project files as ``<project>.zip``.

    The archive is written to ``export_dir`` on the host. A ``project_name``
    only names this archive; the session keeps its own project name.
    """

    name: str = "export_project"
    description: str = """Export every project file into a ZIP archive.

Args:
    project_name: Optional archive name (default: the project name)

Returns:
    Path of the written archive
"""
    args_schema: type[BaseModel] = ExportProjectInput
    export_dir: str = "./exports"

    async def _arun(  # type: ignore[override]
        self,
        project_name: str | None = None,
        run_manager: AsyncCallbackManagerForToolRun | None = None,
    ) -> str:
        """Build and write the archive."""
        thread_id = self._get_thread_id(run_manager)
        session = self.manager.get_or_create_session(thread_id)

        if not len(session.filesystem):
            return "Error: The project has no files to export"

        name = project_name or session.project_name
        root = Path(self.export_dir).resolve()
        target = (root / archive_filename(name)).resolve()
        if root not in target.parents:
            logger.warning(f"export_project: Refusing archive name outside export dir: {name}")
            return f"Error: Invalid project name: {name}"

        try:
            data = await self.manager.export_archive(thread_id)
            root.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except Exception as e:
            logger.error(f"export_project: Export failed: {e}")
            return f"Error exporting project: {e}"

        logger.info(f"export_project: Wrote {target} ({len(data)} bytes)")
        return f"Exported {len(session.filesystem)} file(s) to {target}"
