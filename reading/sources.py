"""
Byte/text source collaborator.

Readers obtain book bytes only through this interface, so tests (and
hosts with their own storage) can substitute an in-memory source.  The
engine never writes book files.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Protocol, Tuple, Union

PathLike = Union[str, Path]


@dataclass(frozen=True)
class FileStat:
    size: int
    modified: datetime


class ByteSource(Protocol):
    def read_bytes(self, path: PathLike) -> bytes: ...

    def stat(self, path: PathLike) -> FileStat: ...


class LocalFileSource:
    """Reads books from the local filesystem."""

    def read_bytes(self, path: PathLike) -> bytes:
        return Path(path).read_bytes()

    def stat(self, path: PathLike) -> FileStat:
        st = Path(path).stat()
        return FileStat(
            size=st.st_size,
            modified=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
        )

    def __repr__(self) -> str:
        return "LocalFileSource()"


class MemorySource:
    """
    In-memory source keyed by path string.

    Useful for hosts that already hold the book bytes (e.g. fetched from
    a database blob) and for tests.
    """

    def __init__(self, files: Optional[Dict[str, bytes]] = None):
        self._files: Dict[str, Tuple[bytes, datetime]] = {}
        for name, data in (files or {}).items():
            self.add(name, data)

    def add(self, path: PathLike, data: bytes) -> None:
        self._files[str(path)] = (data, datetime.now(timezone.utc))

    def read_bytes(self, path: PathLike) -> bytes:
        try:
            return self._files[str(path)][0]
        except KeyError:
            raise FileNotFoundError(f"No such book: {path}") from None

    def stat(self, path: PathLike) -> FileStat:
        data, modified = self._files.get(str(path), (None, None))
        if data is None:
            raise FileNotFoundError(f"No such book: {path}")
        return FileStat(size=len(data), modified=modified)

    def __repr__(self) -> str:
        return f"MemorySource(files={len(self._files)})"


def read_text(source: ByteSource, path: PathLike, encoding: str = "utf-8") -> str:
    """Read a whole file through *source* and decode it, replacing bad bytes."""
    raw = source.read_bytes(path)
    if raw.startswith(b"\xef\xbb\xbf"):
        raw = raw[3:]
    return raw.decode(encoding, errors="replace")
