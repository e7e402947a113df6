"""
codeharvest tools

LangChain BaseTool implementations for LangGraph integration.
"""

from codeharvest.tools.base import SandboxTool
from codeharvest.tools.export_project import ExportProjectTool
from codeharvest.tools.extract_files import ExtractFilesTool
from codeharvest.tools.factory import create_sandbox_tools
from codeharvest.tools.file_delete import FileDeleteTool
from codeharvest.tools.file_edit import FileEditTool
from codeharvest.tools.file_list import FileListTool
from codeharvest.tools.file_read import FileReadTool
from codeharvest.tools.file_write import FileWriteTool
from codeharvest.tools.run_file import RunPythonFileTool
from codeharvest.tools.web_preview import WebPreviewTool

__all__ = [
    "SandboxTool",
    "ExtractFilesTool",
    "FileListTool",
    "FileReadTool",
    "FileWriteTool",
    "FileEditTool",
    "FileDeleteTool",
    "RunPythonFileTool",
    "WebPreviewTool",
    "ExportProjectTool",
    "create_sandbox_tools",
]
