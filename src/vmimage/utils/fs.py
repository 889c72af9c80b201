"""Filesystem helpers."""

import os
import tempfile
from pathlib import Path
from typing import Union


def atomic_write(path: Path, content: Union[str, bytes], mode: int = 0o644) -> None:
    """Write ``content`` to ``path`` through a temp file and a rename.

    The temp file lives in the destination directory so the final
    ``os.replace`` never crosses filesystems. Readers see either the old
    file or the complete new one. Text is written as UTF-8 with newlines
    untranslated; bytes are written as given.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        if isinstance(content, bytes):
            handle = os.fdopen(fd, "wb")
        else:
            handle = os.fdopen(fd, "w", encoding="utf-8", newline="")
        with handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(temp_name, mode)
        os.replace(temp_name, path)
    except BaseException:
        try:
            os.unlink(temp_name)
        except FileNotFoundError:
            pass
        raise
