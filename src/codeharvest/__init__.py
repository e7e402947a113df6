"""codeharvest - Turn labelled code blocks in model output into runnable projects."""

from .archive import build_archive, export_archive, export_file
from .extraction import extract_files, extract_files_from_messages
from .filesystem import FileRecord, VirtualFilesystem
from .manager import SandboxManager
from .preview import compose_web_sandbox
from .runtime import InProcessRuntime, PythonError, PythonRuntime, WorkerRuntime
from .sandbox_executor import ExecutionResult, ExecutorState, SandboxExecutor

__all__ = [
    "FileRecord",
    "VirtualFilesystem",
    "extract_files",
    "extract_files_from_messages",
    "compose_web_sandbox",
    "build_archive",
    "export_archive",
    "export_file",
    "SandboxExecutor",
    "ExecutionResult",
    "ExecutorState",
    "SandboxManager",
    "PythonRuntime",
    "InProcessRuntime",
    "WorkerRuntime",
    "PythonError",
]
__version__ = "0.1.0"
