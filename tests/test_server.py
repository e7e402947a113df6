"""
Tests for the HTTP API.
"""

import io
import zipfile
from datetime import datetime, timedelta

import pytest
from aiohttp.test_utils import TestClient, TestServer

from codeharvest.server import FileServer


@pytest.fixture
async def server(manager):
    """Create file server instance."""
    return FileServer(manager, host="127.0.0.1", port=8888)


@pytest.fixture
async def client(server):
    """Create test client."""
    async with TestClient(TestServer(server.app)) as client:
        yield client


@pytest.fixture
def populated(manager, web_response):
    manager.ingest_response("t1", web_response)
    manager.ingest_response("t1", "### main.py\n```python\nprint('hello')\n21 * 2\n```")
    return manager


async def test_health_check(client):
    resp = await client.get("/health")
    assert resp.status == 200

    data = await resp.json()
    assert data["status"] == "healthy"
    assert data["service"] == "codeharvest"
    assert data["executor"] == "uninitialized"


class TestExtract:
    async def test_extract(self, client, manager, web_response):
        resp = await client.post("/extract/t1?project=demo", data=web_response)
        assert resp.status == 200

        data = await resp.json()
        assert data["count"] == 3
        assert [f["filename"] for f in data["files"]] == ["index.html", "style.css", "app.js"]
        assert manager.get_session("t1").project_name == "demo"

    async def test_extract_nothing(self, client):
        resp = await client.post("/extract/t1", data="no code")
        assert (await resp.json())["count"] == 0


class TestFiles:
    async def test_list_files(self, client, populated):
        resp = await client.get("/files/t1")
        data = await resp.json()
        assert data["count"] == 4
        assert {"filename": "style.css", "language": "css", "size": 18} in data["files"]

    async def test_list_files_prefix(self, client, populated):
        resp = await client.get("/files/t1", params={"prefix": "main"})
        data = await resp.json()
        assert [f["filename"] for f in data["files"]] == ["main.py"]

    async def test_unknown_thread(self, client):
        resp = await client.get("/files/nobody")
        assert resp.status == 404
        assert "not found" in (await resp.json())["error"]

    async def test_expired_thread(self, client, populated):
        populated.get_session("t1").last_accessed = datetime.now() - timedelta(days=2)
        resp = await client.get("/files/t1")
        assert resp.status == 410

    async def test_serve_file(self, client, populated):
        resp = await client.get("/files/t1/style.css")
        assert resp.status == 200
        assert resp.headers["Content-Type"].startswith("text/css")
        assert resp.headers["Content-Disposition"] == 'inline; filename="style.css"'
        assert await resp.text() == "h1 { color: red; }"

    async def test_serve_file_as_attachment(self, client, populated):
        resp = await client.get("/files/t1/main.py", params={"disposition": "attachment"})
        assert resp.headers["Content-Disposition"] == 'attachment; filename="main.py"'

    async def test_serve_missing_file(self, client, populated):
        resp = await client.get("/files/t1/nope.txt")
        assert resp.status == 404

    async def test_write_nested_file(self, client, manager):
        resp = await client.put("/files/t2/src/lib/util.js", data="export {}")
        assert resp.status == 200
        assert (await resp.json()) == {"filename": "src/lib/util.js", "language": "javascript", "size": 9}
        assert manager.get_session("t2").filesystem.get_file("src/lib/util.js").code == "export {}"

    async def test_write_with_language(self, client, manager):
        await client.put("/files/t2/Dockerfile", data="FROM python", params={"language": "docker"})
        assert manager.get_session("t2").filesystem.get_file("Dockerfile").language == "docker"

    async def test_delete_file(self, client, populated):
        resp = await client.delete("/files/t1/app.js")
        assert (await resp.json())["deleted"] is True
        resp = await client.delete("/files/t1/app.js")
        assert (await resp.json())["deleted"] is False

    async def test_clear_files(self, client, populated):
        resp = await client.delete("/files/t1")
        assert resp.status == 200
        assert len(populated.get_session("t1").filesystem) == 0


class TestPreview:
    async def test_preview(self, client, populated):
        resp = await client.get("/preview/t1")
        assert resp.status == 200
        assert resp.content_type == "text/html"
        assert resp.headers["Content-Security-Policy"] == "sandbox allow-scripts allow-forms"

        document = await resp.text()
        assert document.index("h1 { color: red; }") < document.index("</head>")
        assert document.index("textContent") < document.index("</body>")

    async def test_preview_without_html(self, client, manager):
        manager.ingest_response("t3", "### a.py\n```python\npass\n```")
        resp = await client.get("/preview/t3")
        assert resp.status == 404


class TestArchive:
    async def test_archive(self, client, populated):
        populated.get_session("t1").project_name = "site"
        resp = await client.get("/archive/t1")
        assert resp.status == 200
        assert resp.headers["Content-Type"] == "application/zip"
        assert resp.headers["Content-Disposition"] == 'attachment; filename="site.zip"'

        with zipfile.ZipFile(io.BytesIO(await resp.read())) as zf:
            assert set(zf.namelist()) == {"index.html", "style.css", "app.js", "main.py"}

    async def test_archive_name_override(self, client, populated):
        resp = await client.get("/archive/t1", params={"name": "custom"})
        assert resp.headers["Content-Disposition"] == 'attachment; filename="custom.zip"'


class TestRun:
    async def test_run_file(self, client, populated):
        resp = await client.post("/run/t1/main.py")
        assert resp.status == 200
        assert await resp.json() == {"success": True, "output": "hello\n42"}

    async def test_run_failing_file(self, client, manager):
        manager.ingest_response("t4", "### bad.py\n```python\nraise KeyError('k')\n```")
        resp = await client.post("/run/t4/bad.py")
        data = await resp.json()
        assert data["success"] is False
        assert "KeyError" in data["output"]

    async def test_run_missing_file(self, client, populated):
        resp = await client.post("/run/t1/missing.py")
        assert resp.status == 404

    async def test_run_reports_executor_state(self, client, populated):
        await client.post("/run/t1/main.py")
        data = await (await client.get("/health")).json()
        assert data["executor"] == "ready"
