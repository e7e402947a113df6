"""
Tool factory for creating codeharvest tools.
"""

from codeharvest.manager import SandboxManager
from codeharvest.tools.base import SandboxTool
from codeharvest.tools.export_project import ExportProjectTool
from codeharvest.tools.extract_files import ExtractFilesTool
from codeharvest.tools.file_delete import FileDeleteTool
from codeharvest.tools.file_edit import FileEditTool
from codeharvest.tools.file_list import FileListTool
from codeharvest.tools.file_read import FileReadTool
from codeharvest.tools.file_write import FileWriteTool
from codeharvest.tools.run_file import RunPythonFileTool
from codeharvest.tools.web_preview import WebPreviewTool


def create_sandbox_tools(
    manager: SandboxManager,
    thread_id: str | None = None,
    include_tools: list[str] | None = None,
    export_dir: str | None = None,
) -> list[SandboxTool]:
    """
    Create a set of sandbox tools for LangGraph.

    Args:
        manager: Session manager holding the project files
        thread_id: Thread ID for session isolation. If None, tools will read
                  thread_id from callback context at runtime (recommended for LangGraph).
                  If provided, tools will use this thread_id for all operations.
        include_tools: List of tool names to include (default: all tools)
                      Options: "extract_files", "list_files", "read_file", "write_file",
                              "str_replace", "delete_file", "python_run_file",
                              "web_preview", "export_project"
        export_dir: Directory export_project writes archives to
                   (default: the tool's own default, "./exports")

    Returns:
        List of configured SandboxTool instances

    Example:
        ```python
        from codeharvest import SandboxManager
        from codeharvest.tools import create_sandbox_tools

        manager = SandboxManager()

        # Create context-aware tools (recommended for LangGraph)
        tools = create_sandbox_tools(manager)

        # Create only specific tools
        tools = create_sandbox_tools(
            manager,
            thread_id="user_123",
            include_tools=["extract_files", "web_preview"],
        )
        ```
    """
    all_tools: dict[str, type[SandboxTool]] = {
        "extract_files": ExtractFilesTool,
        "list_files": FileListTool,
        "read_file": FileReadTool,
        "write_file": FileWriteTool,
        "str_replace": FileEditTool,
        "delete_file": FileDeleteTool,
        "python_run_file": RunPythonFileTool,
        "web_preview": WebPreviewTool,
        "export_project": ExportProjectTool,
    }

    if include_tools is None:
        include_tools = list(all_tools.keys())

    tools = []
    for tool_name in include_tools:
        if tool_name not in all_tools:
            raise ValueError(f"Unknown tool: {tool_name}. Valid tools: {list(all_tools.keys())}")

        tool_class = all_tools[tool_name]
        kwargs = {}
        if tool_class is ExportProjectTool and export_dir is not None:
            kwargs["export_dir"] = export_dir
        tools.append(tool_class(manager=manager, thread_id=thread_id, **kwargs))

    return tools
