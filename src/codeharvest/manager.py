"""Project session management for sandbox threads."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from .archive import export_archive
from .extraction import extract_files, extract_files_from_messages
from .filesystem import FileRecord, VirtualFilesystem
from .preview import compose_web_sandbox
from .sandbox_executor import ExecutionResult, SandboxExecutor

logger = logging.getLogger(__name__)


class SessionNotFoundError(Exception):
    """Session does not exist."""


class SessionExpiredError(Exception):
    """Session has expired."""


class FileRecordNotFoundError(LookupError):
    """File does not exist in the session's filesystem."""


@dataclass
class ProjectSession:
    """Files of one conversation thread plus bookkeeping."""

    thread_id: str
    project_name: str
    filesystem: VirtualFilesystem = field(default_factory=VirtualFilesystem)
    created_at: datetime = field(default_factory=datetime.now)
    last_accessed: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "thread_id": self.thread_id,
            "project_name": self.project_name,
            "file_count": len(self.filesystem),
            "created_at": self.created_at.isoformat(),
            "last_accessed": self.last_accessed.isoformat(),
        }


class SandboxManager:
    """Manages project sessions and the shared execution context.

    Handles:
    - Session creation and retrieval per thread id
    - Idle expiration (default 24 hours)
    - Feeding model output into a session's filesystem
    - Preview, archive export and execution on a session's files
    """

    def __init__(
        self,
        executor: SandboxExecutor | None = None,
        *,
        session_ttl: timedelta = timedelta(hours=24),
        default_project_name: str = "project",
    ):
        """Initialize manager.

        Args:
            executor: Execution context shared by all sessions
            session_ttl: Idle time after which a session expires
            default_project_name: Project name for new sessions
        """
        self.executor = executor or SandboxExecutor()
        self.session_ttl = session_ttl
        self.default_project_name = default_project_name
        self._sessions: dict[str, ProjectSession] = {}

    def _is_expired(self, session: ProjectSession) -> bool:
        return session.last_accessed + self.session_ttl < datetime.now()

    def get_or_create_session(
        self, thread_id: str, project_name: str | None = None
    ) -> ProjectSession:
        """Get an existing session or create a new one.

        An expired session is discarded and replaced by a fresh one.
        """
        session = self._sessions.get(thread_id)
        if session is not None and self._is_expired(session):
            logger.info(f"Session {thread_id} expired, starting a new one")
            session = None

        if session is None:
            session = ProjectSession(
                thread_id=thread_id,
                project_name=project_name or self.default_project_name,
            )
            self._sessions[thread_id] = session
            logger.info(f"Created new session for thread {thread_id}")
        elif project_name:
            session.project_name = project_name

        session.last_accessed = datetime.now()
        return session

    def get_session(self, thread_id: str) -> ProjectSession:
        """Get an existing session.

        Raises:
            SessionNotFoundError: If session doesn't exist
            SessionExpiredError: If session has expired
        """
        session = self._sessions.get(thread_id)
        if session is None:
            raise SessionNotFoundError(f"Session {thread_id} not found")
        if self._is_expired(session):
            raise SessionExpiredError(
                f"Session {thread_id} expired at {session.last_accessed + self.session_ttl}"
            )
        session.last_accessed = datetime.now()
        return session

    def ingest_response(self, thread_id: str, text: str) -> list[FileRecord]:
        """Extract files from a complete model response into the session."""
        files = extract_files(text)
        if files:
            self.get_or_create_session(thread_id).filesystem.upsert_all(files)
            logger.info(f"Extracted {len(files)} file(s) into thread {thread_id}")
        return files

    def ingest_messages(self, thread_id: str, messages: Any) -> list[FileRecord]:
        """Extract files from the latest assistant message that has any."""
        files = extract_files_from_messages(messages)
        if files:
            self.get_or_create_session(thread_id).filesystem.upsert_all(files)
            logger.info(f"Extracted {len(files)} file(s) from history into thread {thread_id}")
        return files

    def build_preview(self, thread_id: str, entry: str | None = None) -> str | None:
        session = self.get_session(thread_id)
        return compose_web_sandbox(session.filesystem.list_files(), entry=entry)

    async def export_archive(self, thread_id: str) -> bytes:
        session = self.get_session(thread_id)
        return await export_archive(session.filesystem.list_files(), session.project_name)

    async def run_file(self, thread_id: str, filename: str) -> ExecutionResult:
        """Execute a stored file in the shared execution context.

        Raises:
            FileRecordNotFoundError: If the file doesn't exist
        """
        record = self.get_session(thread_id).filesystem.get_file(filename)
        if record is None:
            raise FileRecordNotFoundError(f"File {filename} not found in thread {thread_id}")
        return await self.executor.execute_file(record)

    def cleanup_expired_sessions(self) -> int:
        """Delete all expired sessions.

        Returns:
            Number of sessions deleted
        """
        expired = [tid for tid, session in self._sessions.items() if self._is_expired(session)]
        for thread_id in expired:
            del self._sessions[thread_id]
        if expired:
            logger.info(f"Cleaned up {len(expired)} expired sessions")
        return len(expired)

    def list_active_sessions(self, limit: int = 100) -> list[ProjectSession]:
        """List non-expired sessions, most recently used first."""
        active = [s for s in self._sessions.values() if not self._is_expired(s)]
        active.sort(key=lambda s: s.last_accessed, reverse=True)
        return active[:limit]

    def delete_session(self, thread_id: str) -> bool:
        return self._sessions.pop(thread_id, None) is not None

    async def shutdown(self) -> None:
        await self.executor.shutdown()
