"""
Format-independent e-book reading engine.

Readers turn book bytes into a navigable Document Model; the free
functions in :mod:`reading.algorithms` work across every reader.
"""

from .algorithms import (
    add_bookmark,
    add_highlight,
    calculate_percentage,
    estimate_reading_time,
    navigate_to_chapter,
    reading_progress,
    restore_progress,
    search,
    split_into_pages,
    table_of_contents,
)
from .config import ReaderConfig
from .contract import PagedSearch, ReaderContract, TableOfContentsSource
from .errors import (
    DocumentLoadError,
    ExtractionError,
    FormatUnsupportedError,
    InvalidPositionError,
    NotLoadedError,
    ReaderError,
    RenderTimeoutError,
    TextExtractionTimeoutError,
)
from .formats import BookFormat, EPUBReader, PDFReader, TextReader, detect_format, open_reader
from .models import Bookmark, Chapter, DocumentModel, Highlight, ReadingProgress, SearchResult, TocEntry
from .position import Position
from .rendering import FragmentRange, RenderedLocation, RenderingCollaborator, RenderingGateway
from .sources import ByteSource, LocalFileSource, MemorySource

__all__ = [
    "Position",
    "DocumentModel",
    "Chapter",
    "SearchResult",
    "Bookmark",
    "Highlight",
    "TocEntry",
    "ReadingProgress",
    "ReaderConfig",
    "ReaderContract",
    "PagedSearch",
    "TableOfContentsSource",
    "TextReader",
    "PDFReader",
    "EPUBReader",
    "BookFormat",
    "detect_format",
    "open_reader",
    "RenderingCollaborator",
    "RenderingGateway",
    "RenderedLocation",
    "FragmentRange",
    "ByteSource",
    "LocalFileSource",
    "MemorySource",
    "search",
    "split_into_pages",
    "calculate_percentage",
    "estimate_reading_time",
    "add_bookmark",
    "add_highlight",
    "navigate_to_chapter",
    "table_of_contents",
    "reading_progress",
    "restore_progress",
    "ReaderError",
    "NotLoadedError",
    "DocumentLoadError",
    "InvalidPositionError",
    "ExtractionError",
    "RenderTimeoutError",
    "TextExtractionTimeoutError",
    "FormatUnsupportedError",
]
