"""File handler module: path validation and encoding-aware read/write.

Provides the file I/O used by the document source.  All functions are
synchronous and side-effect free apart from the file I/O itself.
"""

import os
import tempfile
from pathlib import Path

from charset_normalizer import from_bytes

# =============================================================================
# Path Validation
# =============================================================================


def resolve_source_path(base_dir: Path, relative: str) -> Path:
    """Resolve *relative* against *base_dir*, refusing escapes.

    Args:
        base_dir: Source root directory.
        relative: POSIX-style path relative to *base_dir*.

    Returns:
        Resolved absolute Path (which may not exist).

    Raises:
        ValueError: If *relative* is absolute or resolves outside *base_dir*.
    """
    if not relative or Path(relative).is_absolute():
        raise ValueError(f"Path must be relative to the source root: {relative!r}")
    base_resolved = base_dir.resolve()
    resolved = (base_resolved / relative).resolve()
    if not resolved.is_relative_to(base_resolved):
        raise ValueError(
            f"Path is outside source root: {resolved} not under {base_resolved}"
        )
    return resolved


# =============================================================================
# File Read/Write
# =============================================================================


def read_file_with_encoding(path: Path) -> tuple[str, str]:
    """Read a file with automatic encoding detection.

    Reads raw bytes first, then uses charset-normalizer to detect encoding.
    Defaults to UTF-8 for empty files or when detection fails.

    Args:
        path: Path to the file to read.

    Returns:
        Tuple of (content_string, detected_encoding).
    """
    raw = path.read_bytes()
    if not raw:
        return ("", "utf-8")

    try:
        return (raw.decode("utf-8"), "utf-8")
    except UnicodeDecodeError:
        pass

    result = from_bytes(raw).best()
    if result is None:
        # Detection failed, fall back to utf-8
        encoding = "utf-8"
        content = raw.decode(encoding, errors="replace")
    else:
        encoding = result.encoding
        content = str(result)
    return (content, encoding)


def write_file(path: Path, content: str, encoding: str = "utf-8") -> int:
    """Write content atomically, creating parent directories as needed.

    The content goes to a temp file in the target directory which then
    replaces *path*, so a crash never leaves a truncated document.

    Args:
        path: Path to the output file.
        content: String content to write.
        encoding: Encoding to use (default: utf-8).

    Returns:
        Number of bytes written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    encoded = content.encode(encoding)
    fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(encoded)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
    return len(encoded)
