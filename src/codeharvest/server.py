"""
HTTP server for project sessions.

Provides endpoints for feeding model output in, browsing and editing the
extracted files, previewing the composed web document, downloading the
project archive and running Python files.
"""

import logging

from aiohttp import web

from .archive import archive_filename, export_file
from .filesystem import FileRecord
from .manager import (
    FileRecordNotFoundError,
    SandboxManager,
    SessionExpiredError,
    SessionNotFoundError,
)
from .preview import sandbox_csp

logger = logging.getLogger(__name__)


def _file_summary(record: FileRecord) -> dict:
    return {
        "filename": record.filename,
        "language": record.language,
        "size": len(record.code.encode("utf-8")),
    }


@web.middleware
async def session_errors(request: web.Request, handler):
    """Map session and lookup errors to JSON responses."""
    try:
        return await handler(request)
    except SessionNotFoundError as e:
        return web.json_response({"error": str(e)}, status=404)
    except SessionExpiredError as e:
        return web.json_response({"error": str(e)}, status=410)
    except FileRecordNotFoundError as e:
        return web.json_response({"error": str(e)}, status=404)


class FileServer:
    """HTTP server exposing a SandboxManager."""

    def __init__(
        self,
        manager: SandboxManager,
        host: str = "0.0.0.0",  # nosec B104 - intentional for container deployment
        port: int = 8080,
    ):
        """Initialize file server.

        Args:
            manager: Session manager to serve
            host: Server host (default: 0.0.0.0)
            port: Server port (default: 8080)
        """
        self.manager = manager
        self.host = host
        self.port = port
        self.app = web.Application(middlewares=[session_errors])
        self._setup_routes()
        self.app.on_cleanup.append(self._on_cleanup)

    def _setup_routes(self):
        """Setup HTTP routes."""
        self.app.router.add_get("/health", self.health_check)
        self.app.router.add_get("/files/{thread_id}", self.list_files)
        self.app.router.add_delete("/files/{thread_id}", self.clear_files)
        self.app.router.add_get("/files/{thread_id}/{file_path:.+}", self.serve_file)
        self.app.router.add_put("/files/{thread_id}/{file_path:.+}", self.write_file)
        self.app.router.add_delete("/files/{thread_id}/{file_path:.+}", self.delete_file)
        self.app.router.add_post("/extract/{thread_id}", self.extract)
        self.app.router.add_get("/preview/{thread_id}", self.preview)
        self.app.router.add_get("/archive/{thread_id}", self.archive)
        self.app.router.add_post("/run/{thread_id}/{file_path:.+}", self.run_file)

    async def _on_cleanup(self, app: web.Application) -> None:
        await self.manager.shutdown()

    async def health_check(self, request: web.Request) -> web.Response:
        """Health check endpoint reporting the execution context state."""
        return web.json_response(
            {
                "status": "healthy",
                "service": "codeharvest",
                "executor": self.manager.executor.state.value,
            }
        )

    async def list_files(self, request: web.Request) -> web.Response:
        """List files for a thread.

        URL: GET /files/{thread_id}?prefix=src/
        """
        thread_id = request.match_info["thread_id"]
        prefix = request.query.get("prefix", "")

        session = self.manager.get_session(thread_id)
        files = [
            _file_summary(record)
            for record in session.filesystem.list_files()
            if record.filename.startswith(prefix)
        ]
        return web.json_response({"thread_id": thread_id, "count": len(files), "files": files})

    async def clear_files(self, request: web.Request) -> web.Response:
        thread_id = request.match_info["thread_id"]
        self.manager.get_session(thread_id).filesystem.clear()
        return web.json_response({"thread_id": thread_id, "cleared": True})

    async def serve_file(self, request: web.Request) -> web.Response:
        """Serve a single file.

        URL: GET /files/{thread_id}/{file_path}?disposition=attachment

        Example: GET /files/user_123/src/app.py
        """
        thread_id = request.match_info["thread_id"]
        file_path = request.match_info["file_path"]

        record = self.manager.get_session(thread_id).filesystem.get_file(file_path)
        if record is None:
            return web.json_response(
                {"error": "File not found", "thread_id": thread_id, "file_path": file_path},
                status=404,
            )

        download_name, content, content_type = export_file(record)
        disposition = request.query.get("disposition", "inline")
        headers = {
            "Content-Type": content_type,
            "Content-Disposition": f'{disposition}; filename="{download_name}"',
        }
        return web.Response(body=content, headers=headers)

    async def write_file(self, request: web.Request) -> web.Response:
        """Create or replace a file from the request body.

        URL: PUT /files/{thread_id}/{file_path}?language=python
        """
        thread_id = request.match_info["thread_id"]
        file_path = request.match_info["file_path"]
        code = await request.text()

        session = self.manager.get_or_create_session(thread_id)
        record = session.filesystem.write_file(
            file_path, code, language=request.query.get("language")
        )
        return web.json_response(_file_summary(record))

    async def delete_file(self, request: web.Request) -> web.Response:
        thread_id = request.match_info["thread_id"]
        file_path = request.match_info["file_path"]

        deleted = self.manager.get_session(thread_id).filesystem.remove_file(file_path)
        return web.json_response({"file_path": file_path, "deleted": deleted})

    async def extract(self, request: web.Request) -> web.Response:
        """Extract files from a model response posted as the request body.

        URL: POST /extract/{thread_id}?project=my-app
        """
        thread_id = request.match_info["thread_id"]
        text = await request.text()

        self.manager.get_or_create_session(thread_id, request.query.get("project"))
        files = self.manager.ingest_response(thread_id, text)
        return web.json_response(
            {"thread_id": thread_id, "count": len(files), "files": [f.to_dict() for f in files]}
        )

    async def preview(self, request: web.Request) -> web.Response:
        """Serve the composed web document under a sandbox CSP.

        URL: GET /preview/{thread_id}?entry=index.html
        """
        thread_id = request.match_info["thread_id"]
        document = self.manager.build_preview(thread_id, entry=request.query.get("entry"))
        if document is None:
            return web.json_response(
                {"error": "No HTML document to preview", "thread_id": thread_id}, status=404
            )
        return web.Response(
            text=document,
            content_type="text/html",
            headers={"Content-Security-Policy": sandbox_csp()},
        )

    async def archive(self, request: web.Request) -> web.Response:
        """Download all files as a zip archive.

        URL: GET /archive/{thread_id}?name=my-app
        """
        thread_id = request.match_info["thread_id"]
        session = self.manager.get_session(thread_id)
        name = request.query.get("name") or session.project_name

        try:
            blob = await self.manager.export_archive(thread_id)
        except Exception as e:
            logger.error(f"Error building archive for thread {thread_id}: {e}")
            return web.json_response({"error": str(e)}, status=500)

        return web.Response(
            body=blob,
            headers={
                "Content-Type": "application/zip",
                "Content-Disposition": f'attachment; filename="{archive_filename(name)}"',
            },
        )

    async def run_file(self, request: web.Request) -> web.Response:
        """Execute a stored Python file.

        URL: POST /run/{thread_id}/{file_path}
        """
        thread_id = request.match_info["thread_id"]
        file_path = request.match_info["file_path"]

        try:
            result = await self.manager.run_file(thread_id, file_path)
        except (SessionNotFoundError, SessionExpiredError, FileRecordNotFoundError):
            raise
        except Exception as e:
            logger.error(f"Error running {file_path} for thread {thread_id}: {e}")
            return web.json_response({"error": str(e)}, status=503)

        return web.json_response(result.to_dict())

    async def start(self):
        """Start the server."""
        runner = web.AppRunner(self.app)
        await runner.setup()
        site = web.TCPSite(runner, self.host, self.port)
        await site.start()
        logger.info(f"File server started on http://{self.host}:{self.port}")
        return runner

    def run(self):
        """Run the server (blocking)."""
        web.run_app(self.app, host=self.host, port=self.port)


def create_file_server(
    manager: SandboxManager,
    host: str = "0.0.0.0",  # nosec B104 - intentional for container deployment
    port: int = 8080,
) -> FileServer:
    """Create and configure file server.

    Args:
        manager: Session manager to serve
        host: Server host
        port: Server port

    Returns:
        Configured FileServer instance
    """
    return FileServer(manager, host, port)
