"""
Format detection and reader construction.
"""

from enum import Enum
from pathlib import Path
from typing import Optional

from ..config import ReaderConfig
from ..errors import FormatUnsupportedError
from ..rendering import RenderingCollaborator
from ..sources import ByteSource, PathLike
from .epub_reader import EPUBReader
from .pdf_reader import PDFReader
from .text_reader import TextReader


class BookFormat(Enum):
    TXT = "txt"
    PDF = "pdf"
    EPUB = "epub"
    MOBI = "mobi"
    AZW3 = "azw3"


_EXTENSIONS = {
    ".txt": BookFormat.TXT,
    ".text": BookFormat.TXT,
    ".pdf": BookFormat.PDF,
    ".epub": BookFormat.EPUB,
    ".mobi": BookFormat.MOBI,
    ".azw3": BookFormat.AZW3,
}

SUPPORTED_FORMATS = frozenset({BookFormat.TXT, BookFormat.PDF, BookFormat.EPUB})


def detect_format(path: PathLike) -> BookFormat:
    """
    Map a file extension to a :class:`BookFormat`.

    Raises:
        FormatUnsupportedError: For unknown extensions.
    """
    suffix = Path(path).suffix.lower()
    try:
        return _EXTENSIONS[suffix]
    except KeyError:
        raise FormatUnsupportedError(f"Unknown book format: '{suffix or path}'") from None


def open_reader(
    path: PathLike,
    source: Optional[ByteSource] = None,
    config: Optional[ReaderConfig] = None,
    renderer: Optional[RenderingCollaborator] = None,
):
    """
    Build the reader for *path*.  The reader is returned unloaded.

    Args:
        path:     Book file.
        source:   Byte source for text and PDF books.
        config:   Shared reader configuration.
        renderer: Rendering collaborator, required for EPUB books.

    Raises:
        FormatUnsupportedError: For formats without a reader, or an EPUB
            without a renderer.
    """
    fmt = detect_format(path)

    if fmt is BookFormat.TXT:
        return TextReader(path, source=source, config=config)
    if fmt is BookFormat.PDF:
        return PDFReader(path, source=source, config=config)
    if fmt is BookFormat.EPUB:
        if renderer is None:
            raise FormatUnsupportedError("EPUB books need a rendering collaborator")
        return EPUBReader(path, renderer=renderer, config=config)

    supported = ", ".join(sorted(f.value for f in SUPPORTED_FORMATS))
    raise FormatUnsupportedError(
        f"Unsupported file format: '{fmt.value}'. Supported: {supported}"
    )


__all__ = [
    "BookFormat",
    "SUPPORTED_FORMATS",
    "detect_format",
    "open_reader",
    "TextReader",
    "PDFReader",
    "EPUBReader",
]
