"""File access inside the notes vault (an Obsidian vault or a plain folder).

All paths are vault-relative and use forward slashes. Every OS-level failure
is re-raised as FileSystemError so callers handle one exception type.
"""

import logging
import re
import shutil
from pathlib import Path
from typing import List, Union

from mattersync.errors import FileSystemError

log = logging.getLogger(__name__)

_SEPARATORS_RE = re.compile(r"[\\/]+")


def normalize_path(path: str) -> str:
    """Collapse repeated separators and strip leading/trailing slashes."""
    path = _SEPARATORS_RE.sub("/", path.replace("\u00a0", " "))
    path = path.strip("/")
    return path or "/"


def join(*parts: str) -> str:
    return normalize_path("/".join(parts))


class Vault:
    """UTF-8 text file adapter rooted at the vault directory."""

    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root).expanduser()

    def _abs(self, path: str) -> Path:
        path = normalize_path(path)
        if path == "/":
            return self.root
        return self.root / path

    def exists(self, path: str) -> bool:
        return self._abs(path).exists()

    def read(self, path: str) -> str:
        try:
            return self._abs(path).read_text(encoding="utf-8")
        except OSError as e:
            raise FileSystemError(f"Could not read {path}: {e}") from e

    def write(self, path: str, content: str) -> None:
        target = self._abs(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        except OSError as e:
            raise FileSystemError(f"Could not write {path}: {e}") from e
        log.debug("Wrote %s", target)

    def mkdir(self, path: str) -> None:
        try:
            self._abs(path).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FileSystemError(f"Could not create folder {path}: {e}") from e

    def copy(self, src: str, dst: str) -> None:
        target = self._abs(dst)
        if target.exists():
            raise FileSystemError(f"Destination file already exists: {dst}")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(self._abs(src), target)
        except OSError as e:
            raise FileSystemError(f"Could not copy {src} to {dst}: {e}") from e

    def remove(self, path: str) -> None:
        try:
            self._abs(path).unlink()
        except OSError as e:
            raise FileSystemError(f"Could not delete {path}: {e}") from e

    def rmdir(self, path: str) -> None:
        try:
            self._abs(path).rmdir()
        except OSError as e:
            raise FileSystemError(f"Could not delete folder {path}: {e}") from e

    def list(self, path: str) -> List[str]:
        """Return the names of files (not folders) directly inside a folder."""
        folder = self._abs(path)
        if not folder.is_dir():
            return []
        return sorted(p.name for p in folder.iterdir() if p.is_file())

    def is_empty(self, path: str) -> bool:
        folder = self._abs(path)
        return folder.is_dir() and not any(folder.iterdir())
