from __future__ import annotations

from pathlib import PurePosixPath


PLAINTEXT = "plaintext"

_LANGUAGES: dict[str, str] = {
    "bat": "bat",
    "c": "c",
    "cc": "cpp",
    "cfg": "ini",
    "clj": "clojure",
    "cmd": "bat",
    "conf": "ini",
    "cpp": "cpp",
    "cs": "csharp",
    "css": "css",
    "cxx": "cpp",
    "dart": "dart",
    "diff": "diff",
    "dockerfile": "dockerfile",
    "fs": "fsharp",
    "go": "go",
    "gradle": "groovy",
    "groovy": "groovy",
    "h": "c",
    "hpp": "cpp",
    "htm": "html",
    "html": "html",
    "ini": "ini",
    "java": "java",
    "js": "javascript",
    "json": "json",
    "jsx": "javascriptreact",
    "kt": "kotlin",
    "less": "less",
    "lua": "lua",
    "m": "objective-c",
    "markdown": "markdown",
    "md": "markdown",
    "mjs": "javascript",
    "patch": "diff",
    "php": "php",
    "pl": "perl",
    "properties": "properties",
    "ps1": "powershell",
    "py": "python",
    "r": "r",
    "rb": "ruby",
    "rs": "rust",
    "scala": "scala",
    "scss": "scss",
    "sh": "shellscript",
    "sql": "sql",
    "swift": "swift",
    "toml": "toml",
    "ts": "typescript",
    "tsx": "typescriptreact",
    "txt": PLAINTEXT,
    "vue": "vue",
    "xml": "xml",
    "yaml": "yaml",
    "yml": "yaml",
    "zsh": "shellscript",
}


def infer_language(path: str) -> str:
    """
    Map a file path to a display language id by its extension.

    Unknown extensions map to themselves (lowercased); paths without an
    extension, dotfiles included, are plain text.
    """
    suffix = PurePosixPath(path.replace("\\", "/")).suffix
    if not suffix or suffix == ".":
        return PLAINTEXT
    ext = suffix[1:].lower()
    return _LANGUAGES.get(ext, ext)
