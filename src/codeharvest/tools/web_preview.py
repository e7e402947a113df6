"""
WebPreviewTool - Compose the project's web files into one document.
"""

from langchain_core.callbacks import AsyncCallbackManagerForToolRun
from pydantic import BaseModel, Field

from codeharvest.preview import compose_web_sandbox
from codeharvest.tools.base import SandboxTool


class WebPreviewInput(BaseModel):
    """Input schema for WebPreviewTool."""

    entry: str | None = Field(
        default=None,
        description="HTML file to use as the page (default: the first HTML file)",
    )


class WebPreviewTool(SandboxTool):
    """
    Tool for building a self-contained preview page.

    All CSS files are inlined into the head and all JS files at the end of
    the body of the entry HTML document.
    """

    name: str = "web_preview"
    description: str = """Build a single self-contained HTML page from the project's HTML, CSS and JS files.

Args:
    entry: Optional HTML file to use as the page (default: the first HTML file)

Returns:
    The composed HTML document, or a message if the project has no HTML file
"""
    args_schema: type[BaseModel] = WebPreviewInput

    async def _arun(  # type: ignore[override]
        self,
        entry: str | None = None,
        run_manager: AsyncCallbackManagerForToolRun | None = None,
    ) -> str:
        """Compose the preview document."""
        files = self._get_filesystem(run_manager).list_files()
        document = compose_web_sandbox(files, entry=entry)
        if document is None:
            if entry:
                return f"Error: HTML file not found: {entry}"
            return "No HTML file in the project, nothing to preview"
        return document
