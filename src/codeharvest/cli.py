#!/usr/bin/env python3
"""
codeharvest command line interface.

Examples:
  codeharvest extract response.md --out ./site
  codeharvest extract response.md --zip --project todo-app
  codeharvest preview response.md -o preview.html
  codeharvest run response.md main.py
  codeharvest serve --port 8080
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import timedelta
from pathlib import Path

from codeharvest.archive import archive_filename, export_archive
from codeharvest.config import SandboxSettings
from codeharvest.extraction import extract_files
from codeharvest.filesystem import FileRecord
from codeharvest.manager import SandboxManager
from codeharvest.preview import compose_web_sandbox
from codeharvest.sandbox_executor import SandboxExecutor

logger = logging.getLogger(__name__)


def _read_response(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def _extract_or_fail(source: str) -> list[FileRecord]:
    files = extract_files(_read_response(source))
    if not files:
        raise ValueError(f"No labelled code blocks found in {source}")
    return files


def write_tree(files: list[FileRecord], out_dir: Path) -> list[Path]:
    """Write records below out_dir, skipping names that would escape it."""
    root = out_dir.resolve()
    written = []
    for record in files:
        target = (root / record.filename).resolve()
        if root not in target.parents:
            logger.warning(f"Skipping {record.filename}: outside of {root}")
            continue
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(record.code, encoding="utf-8")
        written.append(target)
    return written


async def _extract(args: argparse.Namespace, settings: SandboxSettings) -> int:
    files = _extract_or_fail(args.response)

    if args.zip:
        project = args.project or settings.project_name
        data = await export_archive(files, project)
        target = Path(settings.export_dir) / archive_filename(project)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        print(f"Wrote {target} ({len(files)} files)")
        return 0

    if args.out:
        for path in write_tree(files, Path(args.out)):
            print(path)
        return 0

    for record in files:
        print(f"{record.filename}\t{record.language}\t{len(record.code)}")
    return 0


async def _preview(args: argparse.Namespace, settings: SandboxSettings) -> int:
    files = _extract_or_fail(args.response)
    document = compose_web_sandbox(files, entry=args.entry)
    if document is None:
        raise ValueError("No HTML document to preview")

    if args.output:
        Path(args.output).write_text(document, encoding="utf-8")
        print(f"Wrote {args.output}")
    else:
        sys.stdout.write(document)
    return 0


async def _run(args: argparse.Namespace, settings: SandboxSettings) -> int:
    files = _extract_or_fail(args.response)
    record = next((f for f in files if f.filename == args.filename), None)
    if record is None:
        raise ValueError(f"File {args.filename} not found in {args.response}")

    executor = SandboxExecutor(settings.create_runtime())
    try:
        result = await executor.execute_file(record)
    finally:
        await executor.shutdown()

    print(result.output)
    return 0 if result.success else 1


def _serve(args: argparse.Namespace, settings: SandboxSettings) -> int:
    from codeharvest.server import FileServer

    manager = SandboxManager(
        SandboxExecutor(settings.create_runtime()),
        session_ttl=timedelta(hours=settings.session_ttl_hours),
        default_project_name=settings.project_name,
    )
    FileServer(manager, host=args.host or settings.host, port=args.port or settings.port).run()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="codeharvest",
        description="Turn labelled code blocks in model output into project files.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    extract_parser = subparsers.add_parser("extract", help="Extract files from a response.")
    extract_parser.add_argument("response", help="Response text file ('-' for stdin)")
    target = extract_parser.add_mutually_exclusive_group()
    target.add_argument("--out", help="Write the files below this directory")
    target.add_argument(
        "--zip", action="store_true", help="Write <project>.zip into the export directory"
    )
    extract_parser.add_argument("--project", help="Project name used for the archive")
    extract_parser.set_defaults(func=_extract)

    preview_parser = subparsers.add_parser("preview", help="Compose a single-page preview.")
    preview_parser.add_argument("response", help="Response text file ('-' for stdin)")
    preview_parser.add_argument("-o", "--output", help="Write the document here (default: stdout)")
    preview_parser.add_argument("--entry", help="HTML file to use as the page")
    preview_parser.set_defaults(func=_preview)

    run_parser = subparsers.add_parser("run", help="Run a Python file from a response.")
    run_parser.add_argument("response", help="Response text file ('-' for stdin)")
    run_parser.add_argument("filename", help="Extracted file to run")
    run_parser.set_defaults(func=_run)

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP server.")
    serve_parser.add_argument("--host", help="Bind address (default: CODEHARVEST_HOST)")
    serve_parser.add_argument("--port", type=int, help="Port (default: CODEHARVEST_PORT)")
    serve_parser.set_defaults(func=_serve)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = SandboxSettings.from_env()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    try:
        if args.func is _serve:
            return _serve(args, settings)
        return asyncio.run(args.func(args, settings))
    except Exception as exc:  # noqa: BLE001
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
