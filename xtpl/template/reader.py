from __future__ import annotations

from pathlib import Path
from typing import Protocol


class SourceReader(Protocol):
    """Where template sources come from."""

    def read(self, path: Path) -> str: ...

    def exists(self, path: Path) -> bool: ...

    def mtime(self, path: Path) -> float: ...


class FileSystemReader:
    """Reads UTF-8 files from disk; a leading BOM is dropped."""

    def read(self, path: Path) -> str:
        return path.read_text(encoding="utf-8-sig")

    def exists(self, path: Path) -> bool:
        return path.is_file()

    def mtime(self, path: Path) -> float:
        return path.stat().st_mtime


class MemoryReader:
    """In-memory sources, keyed by path. Used for string templates and tests."""

    def __init__(self, files: dict[str, str] | None = None):
        self.files: dict[str, str] = {}
        self.mtimes: dict[str, float] = {}
        for name, text in (files or {}).items():
            self.put(Path(name), text)

    def put(self, path: Path, text: str, mtime: float = 0.0) -> None:
        key = path.as_posix()
        self.files[key] = text[1:] if text.startswith("\ufeff") else text
        self.mtimes[key] = mtime

    def read(self, path: Path) -> str:
        try:
            return self.files[path.as_posix()]
        except KeyError:
            raise FileNotFoundError(str(path)) from None

    def exists(self, path: Path) -> bool:
        return path.as_posix() in self.files

    def mtime(self, path: Path) -> float:
        return self.mtimes.get(path.as_posix(), 0.0)


__all__ = ["SourceReader", "FileSystemReader", "MemoryReader"]
