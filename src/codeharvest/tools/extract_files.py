"""
ExtractFilesTool - Pull named files out of model output into the project.
"""

import logging

from langchain_core.callbacks import AsyncCallbackManagerForToolRun
from pydantic import BaseModel, Field

from codeharvest.tools.base import SandboxTool

logger = logging.getLogger(__name__)


class ExtractFilesInput(BaseModel):
    """Input schema for ExtractFilesTool."""

    text: str = Field(
        default="",
        description="Response text to extract from. Leave empty to use your previous message.",
    )


class ExtractFilesTool(SandboxTool):
    """
    Tool for saving the files written in a model response.

    Recognises files labelled with a ``### path`` header above a code block,
    an inline label on the fence (```` ```python:path ````) or a filename
    comment on the first line of the block.

    When no text is given, the last AI message is read from the conversation
    history passed in callback metadata.
    """

    name: str = "extract_files"
    description: str = """Save the files from your previous response into the project.

Write each file as a markdown code block labelled with its path, for example:

### src/app.py
```python
print("hello")
```

Then call this tool. Files with the same path replace earlier versions.

Args:
    text: Optional response text (default: your previous message)

Returns:
    List of saved files
"""
    args_schema: type[BaseModel] = ExtractFilesInput

    async def _arun(  # type: ignore[override]
        self,
        text: str = "",
        run_manager: AsyncCallbackManagerForToolRun | None = None,
    ) -> str:
        """Extract files and store them in the thread's project."""
        thread_id = self._get_thread_id(run_manager)

        try:
            if text:
                files = self.manager.ingest_response(thread_id, text)
            else:
                metadata = run_manager.metadata if run_manager else {}
                messages = (metadata or {}).get("messages", [])
                logger.info(f"extract_files: Received {len(messages)} messages in metadata")
                if not messages:
                    return (
                        "Error: No text given and no conversation history found. "
                        "Pass the response text or make sure the agent passes messages "
                        "in run_manager.metadata."
                    )
                files = self.manager.ingest_messages(thread_id, messages)
        except Exception as e:
            logger.error(f"extract_files: Extraction failed: {e}")
            return f"Error extracting files: {e}"

        if not files:
            return (
                "No files found. Label each code block with its path, "
                "e.g. a '### src/app.py' line right above the block."
            )

        lines = [f"Saved {len(files)} file(s):"]
        lines.extend(f"  {f.filename} ({f.language}, {len(f.code)} chars)" for f in files)
        return "\n".join(lines)
