"""
Filename extension to language mapping.
"""

EXTENSION_LANGUAGES: dict[str, str] = {
    "js": "javascript",
    "jsx": "jsx",
    "ts": "typescript",
    "tsx": "tsx",
    "py": "python",
    "html": "html",
    "css": "css",
    "scss": "scss",
    "json": "json",
    "md": "markdown",
    "sql": "sql",
    "sh": "bash",
    "bash": "bash",
    "yaml": "yaml",
    "yml": "yaml",
    "xml": "xml",
    "java": "java",
    "c": "c",
    "cpp": "cpp",
    "h": "c",
    "hpp": "cpp",
    "rs": "rust",
    "go": "go",
    "rb": "ruby",
    "php": "php",
    "swift": "swift",
    "kt": "kotlin",
    "vue": "vue",
    "svelte": "svelte",
}

DEFAULT_LANGUAGE = "text"

WEB_DOCUMENT_EXTENSIONS = frozenset({"html", "htm"})


def file_extension(filename: str) -> str:
    """Return the lowercased text after the last dot of the basename, or ""."""
    basename = (filename or "").replace("\\", "/").rsplit("/", 1)[-1]
    if "." not in basename:
        return ""
    return basename.rsplit(".", 1)[-1].lower()


def language_for_filename(filename: str) -> str:
    return EXTENSION_LANGUAGES.get(file_extension(filename), DEFAULT_LANGUAGE)


def is_web_document(filename: str) -> bool:
    return file_extension(filename) in WEB_DOCUMENT_EXTENSIONS


def is_python(filename: str) -> bool:
    return file_extension(filename) == "py"
