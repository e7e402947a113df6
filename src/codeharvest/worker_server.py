"""
Worker process for WorkerRuntime.

Reads one JSON-RPC request per line from stdin and writes one response per
line. The protocol channels are moved off file descriptors 0 and 1 before any
user code runs, so ``print``/``input`` in user code cannot corrupt them:
fd 1 is pointed at stderr and fd 0 at /dev/null.

Methods:
- ``execute`` ``{"code": str}`` -> ``{"events": [[stream, line], ...],
  "value": str | None, "error": str | None}``
- ``health`` -> ``{"status": "ok"}``

Prints ``Ready`` to stderr once bootstrapped.
"""

import argparse
import asyncio
import json
import os
import sys
from typing import Any, TextIO

from .runtime import InProcessRuntime, PythonError


def _detach_protocol_channels() -> tuple[TextIO, TextIO]:
    sys.stdout.flush()
    requests = os.fdopen(os.dup(0), "r", encoding="utf-8")
    responses = os.fdopen(os.dup(1), "w", encoding="utf-8")
    os.dup2(2, 1)
    devnull = os.open(os.devnull, os.O_RDONLY)
    os.dup2(devnull, 0)
    os.close(devnull)
    return requests, responses


async def _execute(runtime: InProcessRuntime, code: str) -> dict[str, Any]:
    events: list[list[str]] = []
    runtime.set_stdout(lambda line: events.append(["stdout", line]))
    runtime.set_stderr(lambda line: events.append(["stderr", line]))

    value = None
    error = None
    try:
        result = await runtime.run_async(code)
        if result is not None:
            value = str(result)
    except PythonError as exc:
        error = str(exc)
    except Exception as exc:  # noqa: BLE001 - str() of a user object failed
        error = f"{type(exc).__name__}: {exc}"
    finally:
        runtime.set_stdout(None)
        runtime.set_stderr(None)

    return {"events": events, "value": value, "error": error}


async def _handle(runtime: InProcessRuntime, request: dict[str, Any]) -> dict[str, Any]:
    method = request.get("method")
    params = request.get("params") or {}
    if method == "execute":
        return await _execute(runtime, str(params.get("code", "")))
    if method == "health":
        return {"status": "ok"}
    raise ValueError(f"Unknown method: {method}")


async def serve(preload_modules: list[str]) -> None:
    requests, responses = _detach_protocol_channels()

    runtime = InProcessRuntime(preload_modules=preload_modules)
    await runtime.bootstrap()
    print("Ready", file=sys.stderr, flush=True)

    loop = asyncio.get_running_loop()
    while True:
        line = await loop.run_in_executor(None, requests.readline)
        if not line:
            break
        if not line.strip():
            continue

        request_id = None
        try:
            request = json.loads(line)
            request_id = request.get("id")
            response = {"jsonrpc": "2.0", "id": request_id, "result": await _handle(runtime, request)}
        except Exception as exc:  # noqa: BLE001 - reported to the parent as a JSON-RPC error
            response = {"jsonrpc": "2.0", "id": request_id, "error": {"code": -32600, "message": str(exc)}}

        responses.write(json.dumps(response) + "\n")
        responses.flush()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="codeharvest-worker")
    parser.add_argument("--preload", action="append", default=[], help="Module to import at startup")
    args = parser.parse_args(argv)
    asyncio.run(serve(args.preload))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
