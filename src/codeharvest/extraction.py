"""
Recover named source files from free-form model output.

Model providers have no single convention for labelling files in a markdown
answer, so three independent matchers run over the same text, strictest
first:

A. header line followed by a fence::

       ### src/app.py
       ```python
       ...
       ```

B. filename carried on the fence opening line (```` ```python:src/app.py ````,
   ```` ```python src/app.py ```` or ```` ```python file=src/app.py ````)

C. first body line is a comment holding the filename
   (``// app.js``, ``/* app.css */``, ``<!-- index.html -->``, ``# app.py``)

Every header-labelled block is kept, even when two headers name the same
file. Inline and comment labels only contribute filenames no earlier match
has claimed.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from typing import Any

from .filesystem import FileRecord
from .languages import DEFAULT_LANGUAGE, language_for_filename

_CODE_FENCE_RE = re.compile(r"```(?P<info>[^\n`]*)\n(?P<body>.*?)```", re.S)
_BARE_LANGUAGE_RE = re.compile(r"[\w+#-]*")
_HEADER_RE = re.compile(r"###[ \t]+(?P<header>[^\n]+)$")
_EXTENSION_RE = re.compile(r"\.[A-Za-z0-9]+$")
_INLINE_INFO_RE = re.compile(r"(?P<language>[\w+#-]+)[: \t]+(?P<name>.+)$")
_INLINE_ATTR_RE = re.compile(r"\b(?:file|path|filename|title)=(?P<value>\"[^\"]*\"|'[^']*'|\S+)")
_COMMENT_LABEL_RE = re.compile(
    r"^\s*(?://|/\*|<!--|#)\s*(?:(?:file(?:name)?|path)\s*:\s*)?"
    r"(?P<name>\S+\.[A-Za-z0-9]+)\s*(?:\*/|-->)?\s*$",
    re.I,
)

Matcher = Callable[[str], list[FileRecord]]


def _iter_fences(text: str) -> Iterable[re.Match[str]]:
    return _CODE_FENCE_RE.finditer(text)


def _bare_language(info: str) -> str | None:
    """Return the fence language token, or None if the info carries more than one."""
    info = info.strip()
    if _BARE_LANGUAGE_RE.fullmatch(info):
        return info
    return None


def _has_extension(name: str) -> bool:
    return bool(_EXTENSION_RE.search(name))


def _header_before(text: str, fence_start: int) -> str | None:
    """Return the filename from a ``###`` line directly above the fence."""
    prefix = text[:fence_start]
    stripped = prefix.rstrip()
    if "\n" not in prefix[len(stripped) :]:
        return None
    line = stripped[stripped.rfind("\n") + 1 :]
    match = _HEADER_RE.search(line)
    if not match:
        return None
    name = match.group("header").strip().strip("`*").strip()
    return name if _has_extension(name) else None


def _parse_inline_name(raw: str) -> str | None:
    raw = raw.strip()
    attr = _INLINE_ATTR_RE.search(raw)
    if attr:
        raw = attr.group("value")
    name = raw.strip("\"'").strip()
    return name if name and _has_extension(name) else None


def match_header_blocks(text: str) -> list[FileRecord]:
    records: list[FileRecord] = []
    for fence in _iter_fences(text):
        if _bare_language(fence.group("info")) is None:
            continue
        filename = _header_before(text, fence.start())
        if filename is None:
            continue
        records.append(
            FileRecord(
                filename=filename,
                code=fence.group("body").strip(),
                language=language_for_filename(filename),
            )
        )
    return records


def match_inline_blocks(text: str) -> list[FileRecord]:
    records: list[FileRecord] = []
    for fence in _iter_fences(text):
        info = _INLINE_INFO_RE.match(fence.group("info").strip())
        if not info:
            continue
        filename = _parse_inline_name(info.group("name"))
        if filename is None:
            continue
        records.append(
            FileRecord(
                filename=filename,
                code=fence.group("body").strip(),
                language=info.group("language"),
            )
        )
    return records


def match_comment_blocks(text: str) -> list[FileRecord]:
    records: list[FileRecord] = []
    for fence in _iter_fences(text):
        language = _bare_language(fence.group("info"))
        if language is None:
            continue
        first_line, _, rest = fence.group("body").partition("\n")
        label = _COMMENT_LABEL_RE.match(first_line)
        if not label:
            continue
        records.append(
            FileRecord(
                filename=label.group("name"),
                code=rest.strip(),
                language=language or DEFAULT_LANGUAGE,
            )
        )
    return records


# Order is precedence: earlier matchers claim filenames first.
MATCHERS: tuple[Matcher, ...] = (
    match_header_blocks,
    match_inline_blocks,
    match_comment_blocks,
)


def reduce_matches(groups: Iterable[list[FileRecord]]) -> list[FileRecord]:
    """Merge per-convention matches into the final ordered result.

    The first group is taken whole. Later groups only add filenames that are
    not yet present, checked in scan order.
    """
    files: list[FileRecord] = []
    seen: set[str] = set()
    for index, group in enumerate(groups):
        for record in group:
            if index > 0 and record.filename in seen:
                continue
            files.append(record)
            seen.add(record.filename)
    return files


def extract_files(text: str | None) -> list[FileRecord]:
    """Extract named files from model output. Never raises on odd input."""
    if not text:
        return []
    return reduce_matches(matcher(text) for matcher in MATCHERS)


def _extract_text_from_item(item: Any) -> str | None:
    if isinstance(item, str):
        return item
    if isinstance(item, dict):
        text = item.get("text") or item.get("content")
        if text:
            return str(text)
    return None


def _normalize_message_content(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = [_extract_text_from_item(item) for item in content]
        return "\n".join(part for part in parts if part)
    if content is None:
        return ""
    return str(content)


def _is_assistant_message(message: Any) -> bool:
    role = None
    if hasattr(message, "type"):
        role = message.type
    elif isinstance(message, dict):
        role = message.get("role") or message.get("type")
    elif isinstance(message, (tuple, list)) and len(message) >= 2:
        role = message[0]
    if role is None:
        return message.__class__.__name__ == "AIMessage"
    return role in {"ai", "assistant"}


def _iter_assistant_texts(messages: Any) -> list[str]:
    """Assistant message texts, most recent first."""
    texts: list[str] = []
    if not messages:
        return texts
    for message in reversed(messages):
        if not _is_assistant_message(message):
            continue
        content = None
        if hasattr(message, "content"):
            content = message.content
        elif isinstance(message, dict):
            content = message.get("content")
        elif isinstance(message, (tuple, list)):
            content = message[1]
        text = _normalize_message_content(content)
        if text:
            texts.append(text)
    return texts


def extract_files_from_messages(messages: Any) -> list[FileRecord]:
    """Extract files from the most recent assistant message that has any.

    Accepts LangChain message objects, ``{"role", "content"}`` dicts and
    ``(role, content)`` tuples; multi-part content lists are joined.
    """
    for text in _iter_assistant_texts(messages):
        files = extract_files(text)
        if files:
            return files
    return []
