"""
Compose a single sandboxed HTML document from project files.

The HTML entry document is taken as-is and every stylesheet and script in the
project is spliced into it as inline ``<style>``/``<script>`` blocks. No
sanitisation happens here: the result must be rendered behind a sandbox
boundary (see ``SANDBOX_PERMISSIONS``).
"""

import html
import logging
import re
from collections.abc import Iterable

from .filesystem import FileRecord
from .languages import file_extension, is_web_document

logger = logging.getLogger(__name__)

SANDBOX_PERMISSIONS: tuple[str, ...] = ("allow-scripts", "allow-forms")

_HEAD_CLOSE_RE = re.compile(r"</head>", re.I)
_BODY_OPEN_RE = re.compile(r"<body", re.I)
_BODY_CLOSE_RE = re.compile(r"</body>", re.I)


def _insert_before(document: str, anchor: re.Pattern[str], block: str) -> str | None:
    match = anchor.search(document)
    if not match:
        return None
    return f"{document[: match.start()]}{block}\n{document[match.start() :]}"


def inject_style(document: str, css: str) -> str:
    """Insert a style block before </head>, else before <body, else at the top."""
    block = f"<style>\n{css}\n</style>"
    for anchor in (_HEAD_CLOSE_RE, _BODY_OPEN_RE):
        injected = _insert_before(document, anchor, block)
        if injected is not None:
            return injected
    return f"{block}\n{document}"


def inject_script(document: str, js: str) -> str:
    """Insert a script block before </body>, else at the end."""
    block = f"<script>\n{js}\n</script>"
    injected = _insert_before(document, _BODY_CLOSE_RE, block)
    if injected is not None:
        return injected
    return f"{document}\n{block}"


def find_entry_document(
    records: Iterable[FileRecord], entry: str | None = None
) -> FileRecord | None:
    """Pick the HTML document to build the preview around.

    Args:
        records: Project files in listing order
        entry: Filename of a specific HTML document to use

    Returns:
        The named document if it exists and is HTML, otherwise the first HTML
        document, or None
    """
    documents = [record for record in records if is_web_document(record.filename)]
    if entry is not None:
        return next((doc for doc in documents if doc.filename == entry), None)
    return documents[0] if documents else None


def compose_web_sandbox(
    records: Iterable[FileRecord], entry: str | None = None
) -> str | None:
    """Build a self-contained preview document.

    Returns None when the project has no HTML document to build around.
    """
    records = list(records)
    document = find_entry_document(records, entry)
    if document is None:
        return None

    content = document.code
    stylesheets = [r for r in records if file_extension(r.filename) == "css"]
    scripts = [r for r in records if file_extension(r.filename) == "js"]

    for stylesheet in stylesheets:
        content = inject_style(content, stylesheet.code)
    for script in scripts:
        content = inject_script(content, script.code)

    logger.debug(
        f"Composed preview from {document.filename} "
        f"with {len(stylesheets)} stylesheet(s) and {len(scripts)} script(s)"
    )
    return content


def sandbox_attribute() -> str:
    return " ".join(SANDBOX_PERMISSIONS)


def sandbox_csp() -> str:
    """Content-Security-Policy value that applies the same sandbox to a response."""
    return f"sandbox {sandbox_attribute()}"


def sandbox_iframe(document: str, title: str = "Preview") -> str:
    """Wrap a composed document in a sandboxed iframe element."""
    return (
        f'<iframe srcdoc="{html.escape(document, quote=True)}" '
        f'sandbox="{sandbox_attribute()}" title="{html.escape(title, quote=True)}"></iframe>'
    )
