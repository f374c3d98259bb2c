"""
Page-indexed reader for PDF books, backed by PyMuPDF.

Pages are the only addressing scheme.  Page text is extracted lazily
and cached for the lifetime of the loaded document; the Document Model
carries no text of its own.
"""

import logging
import math
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import fitz  # PyMuPDF
from tqdm import tqdm

from ..algorithms import calculate_percentage, search_text
from ..config import ReaderConfig
from ..errors import DocumentLoadError, ExtractionError, InvalidPositionError, NotLoadedError
from ..models import Chapter, DocumentModel, SearchResult, TocEntry
from ..position import Position
from ..sources import ByteSource, LocalFileSource, PathLike

logger = logging.getLogger(__name__)

CHAPTER_ID = "pdf_document"

# PDF info dictionary key -> metadata key
_INFO_KEYS = {
    "title": "title",
    "author": "author",
    "subject": "subject",
    "creator": "creator",
    "producer": "producer",
    "creationDate": "creation_date",
    "modDate": "modification_date",
    "format": "version",
}


class PDFReader:
    """
    Handles PDF loading, page navigation and page text extraction.

    Usage::

        with PDFReader("paper.pdf") as reader:
            reader.load()
            reader.navigate_to_page(3)
            text = reader.current_page_text()
    """

    def __init__(
        self,
        path: PathLike,
        source: Optional[ByteSource] = None,
        config: Optional[ReaderConfig] = None,
    ):
        self.path = Path(path)
        self.source = source or LocalFileSource()
        self.config = config or ReaderConfig()

        self.doc: Optional[fitz.Document] = None
        self._document: Optional[DocumentModel] = None
        self._page_texts: Dict[int, str] = {}
        self._current_page = 1
        self._position = Position(page=1)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def load(self) -> DocumentModel:
        """
        Open the PDF and build its Document Model.

        Raises:
            DocumentLoadError: If the bytes cannot be read or PyMuPDF
                cannot open them.  The reader stays unloaded.
        """
        self.dispose()

        try:
            raw = self.source.read_bytes(self.path)
            doc = fitz.open(stream=raw, filetype="pdf")
        except Exception as e:
            logger.error("Failed to load PDF '%s': %s", self.path, e)
            raise DocumentLoadError(f"Failed to open PDF '{self.path}': {e}") from e

        if doc.page_count == 0:
            doc.close()
            raise DocumentLoadError(f"PDF '{self.path}' has no pages")

        total = doc.page_count
        info = doc.metadata or {}
        metadata = {
            key: info[info_key] for info_key, key in _INFO_KEYS.items() if info.get(info_key)
        }
        metadata.update(format="pdf", encrypted=bool(doc.is_encrypted), page_count=total)

        title = info.get("title") or self.path.stem or "PDF Document"
        chapter = Chapter(
            id=CHAPTER_ID,
            title=title,
            content="",
            word_count=0,
            start_position=Position(page=1, percentage=0.0),
            end_position=Position(page=total, percentage=100.0),
        )

        self.doc = doc
        self._page_texts = {}
        self._current_page = 1
        self._document = DocumentModel(
            title=title,
            author=info.get("author") or None,
            chapters=(chapter,),
            total_pages=total,
            word_count=0,
            metadata=metadata,
        )
        self._position = Position.at_page(1, total)

        logger.info("Loaded PDF '%s': %d pages", self.path.name, total)
        return self._document

    def dispose(self) -> None:
        """Close the PDF and clear all state."""
        if self.doc is not None:
            self.doc.close()
            self.doc = None
        self._document = None
        self._page_texts.clear()
        self._current_page = 1
        self._position = Position(page=1)

    @property
    def is_loaded(self) -> bool:
        return self._document is not None

    @property
    def document(self) -> DocumentModel:
        if self._document is None:
            raise NotLoadedError("Book not loaded")
        return self._document

    @property
    def position(self) -> Position:
        self._require_loaded()
        return self._position

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def current_page(self) -> int:
        self._require_loaded()
        return self._current_page

    def total_pages(self) -> int:
        self._require_loaded()
        return self.doc.page_count

    def navigate_to_page(self, page: int) -> None:
        self._require_loaded()
        total = self.total_pages()
        if not 1 <= page <= total:
            raise InvalidPositionError(
                f"Invalid page number: {page}. Must be between 1 and {total}"
            )
        self._current_page = page
        self._position = Position.at_page(page, total)

    def navigate_to_position(self, position: Position) -> None:
        """Only ``page`` and ``percentage`` are meaningful for a PDF."""
        self._require_loaded()
        if position.page is not None:
            self.navigate_to_page(position.page)
        elif position.percentage is not None:
            total = self.total_pages()
            target = max(1, math.ceil(position.percentage / 100 * total))
            self.navigate_to_page(min(total, target))
        else:
            raise InvalidPositionError(f"PDF cannot navigate to {position!r}")

    # ------------------------------------------------------------------
    # Text access
    # ------------------------------------------------------------------

    def get_page_text(self, page: int) -> str:
        """
        Plain text of one-based *page*, cached after the first call.

        Raises:
            InvalidPositionError: If *page* is out of range.
            ExtractionError: If PyMuPDF fails on the page.
        """
        self._require_loaded()
        if page in self._page_texts:
            return self._page_texts[page]

        total = self.total_pages()
        if not 1 <= page <= total:
            raise InvalidPositionError(f"Page {page} outside [1, {total}]")

        try:
            text = self.doc.load_page(page - 1).get_text()
        except Exception as e:
            raise ExtractionError(f"Text extraction failed on page {page}: {e}") from e

        self._page_texts[page] = text
        logger.debug("Extracted page %d (%d chars)", page, len(text))
        return text

    def current_page_text(self) -> str:
        return self.get_page_text(self._current_page)

    def extract_text(self, start: Position, end: Position) -> str:
        """Page texts from ``start.page`` to ``end.page`` (defaults: 1, start)."""
        first = start.page or 1
        last = end.page or first
        return self._join_pages(first, last, preserve_layout=False, sep="\n")

    def extract_text_from_pages(
        self,
        start_page: int = 1,
        end_page: Optional[int] = None,
        preserve_layout: bool = False,
    ) -> str:
        """
        Text of a page range.

        Args:
            start_page:      First page (one-based).
            end_page:        Last page, inclusive (defaults to the last page).
            preserve_layout: Keep page text verbatim between
                             ``--- Page N ---`` markers instead of running
                             pages together.
        """
        self._require_loaded()
        last = end_page if end_page is not None else self.total_pages()
        return self._join_pages(start_page, last, preserve_layout=preserve_layout, sep=" ")

    def page_size(self, page: int) -> Tuple[float, float]:
        """(width, height) of *page* in points."""
        self._require_loaded()
        total = self.total_pages()
        if not 1 <= page <= total:
            raise InvalidPositionError(f"Page {page} outside [1, {total}]")
        rect = self.doc.load_page(page - 1).rect
        return rect.width, rect.height

    # ------------------------------------------------------------------
    # Search / table of contents
    # ------------------------------------------------------------------

    def search_units(self, query: str) -> List[SearchResult]:
        """Scan every page for *query*; each hit is titled ``Page N``."""
        self._require_loaded()
        total = self.total_pages()
        results: List[SearchResult] = []

        pbar = tqdm(
            range(1, total + 1),
            desc="Searching pages",
            unit="page",
            disable=not self.config.show_progress,
        )
        for page in pbar:
            try:
                text = self.get_page_text(page)
            except ExtractionError as e:
                logger.warning("Skipping page %d in search: %s", page, e)
                continue
            if not text:
                continue

            def position_for(index: int, words_before: int, page=page) -> Position:
                return Position(
                    page=page,
                    percentage=calculate_percentage(page, total),
                    offset=words_before,
                )

            results.extend(
                search_text(
                    text,
                    query,
                    position_for,
                    chapter_title=f"Page {page}",
                    context_chars=self.config.search_context_chars,
                )
            )

        logger.debug("Search for %r matched %d times", query, len(results))
        return results

    def table_of_contents(self) -> List[TocEntry]:
        """The PDF outline as a tree; empty when the PDF has none."""
        self._require_loaded()
        total = self.total_pages()
        outline = self.doc.get_toc(simple=True)

        # (level, entry, children) frames; level 0 is the synthetic root
        root: List[TocEntry] = []
        stack: List[Tuple[int, Optional[dict], List]] = [(0, None, root)]

        def close_frame():
            _, node, children = stack.pop()
            stack[-1][2].append(
                TocEntry(
                    id=node["id"],
                    label=node["label"],
                    position=node["position"],
                    children=tuple(children),
                )
            )

        for i, (level, title, page) in enumerate(outline):
            while stack[-1][0] >= level:
                close_frame()
            page = min(total, max(1, page))
            node = {
                "id": f"toc_{i}",
                "label": title.strip(),
                "position": Position.at_page(page, total),
            }
            stack.append((level, node, []))

        while len(stack) > 1:
            close_frame()

        return root

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _join_pages(self, first: int, last: int, preserve_layout: bool, sep: str) -> str:
        self._require_loaded()
        first = max(1, first)
        last = min(self.total_pages(), last)

        parts = []
        pbar = tqdm(
            range(first, last + 1),
            desc="Extracting text",
            unit="page",
            disable=not self.config.show_progress,
        )
        for page in pbar:
            text = self.get_page_text(page)
            if not text:
                continue
            if preserve_layout:
                parts.append(f"\n--- Page {page} ---\n{text}\n")
            else:
                parts.append(f"{text}{sep}")

        return "".join(parts).strip()

    def _require_loaded(self) -> None:
        if self._document is None:
            raise NotLoadedError("Book not loaded")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.dispose()
        return False

    def __repr__(self) -> str:
        state = f"{self._current_page}/{self.total_pages()}" if self.is_loaded else "unloaded"
        return f"PDFReader('{self.path.name}', {state})"
