"""
Base class for all codeharvest tools.
"""

from langchain_core.callbacks import (
    AsyncCallbackManagerForToolRun,
    CallbackManagerForToolRun,
)
from langchain_core.tools import BaseTool
from pydantic import ConfigDict

from codeharvest.filesystem import VirtualFilesystem
from codeharvest.manager import SandboxManager


class SandboxTool(BaseTool):
    """
    Base class for all sandbox tools.

    Provides access to the session manager and thread isolation.

    The thread_id can be provided at initialization or will be read from
    the callback context at runtime (recommended for LangGraph).
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    manager: SandboxManager
    thread_id: str | None = None

    def _run(
        self,
        run_manager: CallbackManagerForToolRun | None = None,
        **kwargs,
    ) -> str:
        """Sync interface - runs async method in event loop."""
        import asyncio

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(self._arun(**kwargs))

        raise RuntimeError(f"{self.name} is running inside an event loop; use ainvoke() instead")

    def _get_thread_id(self, run_manager: AsyncCallbackManagerForToolRun | None = None) -> str:
        """Get thread_id from callback context or use instance default.

        Priority order:
        1. From LangGraph config via callback metadata
        2. From callback tags (alternative location)
        3. From instance thread_id (if set)
        4. Default fallback: "default"
        """
        if run_manager and hasattr(run_manager, "metadata"):
            metadata = run_manager.metadata or {}
            if "configurable" in metadata:
                thread_id = metadata["configurable"].get("thread_id")
                if thread_id:
                    return thread_id

        if run_manager and hasattr(run_manager, "tags"):
            tags = run_manager.tags or []
            for tag in tags:
                if isinstance(tag, str) and tag.startswith("thread_id:"):
                    return tag.split(":", 1)[1]

        if self.thread_id:
            return self.thread_id

        return "default"

    def _get_filesystem(
        self, run_manager: AsyncCallbackManagerForToolRun | None = None
    ) -> VirtualFilesystem:
        thread_id = self._get_thread_id(run_manager)
        return self.manager.get_or_create_session(thread_id).filesystem

    async def _arun(
        self,
        run_manager: AsyncCallbackManagerForToolRun | None = None,
        **kwargs,
    ) -> str:  # type: ignore[override]
        """Async implementation - override in subclasses."""
        raise NotImplementedError("Subclasses must implement _arun")
