"""
Linear/offset reader for plain-text books.

The whole file is read once, cleaned, and paginated into paragraph-sized
pages.  The book has a single chapter spanning every page.
"""

import logging
import math
from pathlib import Path
from typing import List, Optional

from ..algorithms import calculate_percentage, clean_text, count_words, split_into_pages
from ..config import ReaderConfig
from ..errors import DocumentLoadError, InvalidPositionError, NotLoadedError
from ..models import Chapter, DocumentModel
from ..position import Position
from ..sources import ByteSource, LocalFileSource, PathLike, read_text

logger = logging.getLogger(__name__)

CHAPTER_ID = "chapter_1"


class TextReader:
    """
    Paginated access to a ``.txt`` book.

    Pages are one-based externally; the cursor is kept zero-based.

    Usage::

        reader = TextReader("book.txt")
        reader.load()
        reader.navigate_to_position(Position(percentage=50))
        print(reader.current_page_content())
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

        self._document: Optional[DocumentModel] = None
        self._pages: List[str] = []
        self._cursor = 0
        self._position = Position(page=1)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def load(self) -> DocumentModel:
        """
        Read, clean and paginate the file.

        Raises:
            DocumentLoadError: If the file cannot be read.  The reader
                stays unloaded.
        """
        self.dispose()

        try:
            raw = read_text(self.source, self.path, self.config.text_encoding)
        except (OSError, LookupError) as e:
            logger.error("Failed to load text book '%s': %s", self.path, e)
            raise DocumentLoadError(f"Cannot read '{self.path}': {e}") from e

        content = clean_text(raw)
        pages = split_into_pages(content, self.config.words_per_page)
        total = len(pages)
        word_count = count_words(content)

        chapter = Chapter(
            id=CHAPTER_ID,
            title=self.path.stem,
            content=content,
            word_count=word_count,
            start_position=Position(page=1, chapter_id=CHAPTER_ID, percentage=0.0),
            end_position=Position(page=total, chapter_id=CHAPTER_ID, percentage=100.0),
        )

        self._pages = pages
        self._cursor = 0
        self._document = DocumentModel(
            title=self.path.stem,
            chapters=(chapter,),
            total_pages=total,
            word_count=word_count,
            metadata={"format": "txt", "file_name": self.path.name},
        )
        self._position = self._page_position(1)

        logger.info(
            "Loaded text book '%s': %d pages, %d words", self.path.name, total, word_count
        )
        return self._document

    def dispose(self) -> None:
        self._document = None
        self._pages = []
        self._cursor = 0
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
        return self._cursor + 1

    def total_pages(self) -> int:
        self._require_loaded()
        return len(self._pages)

    def navigate_to_page(self, page: int) -> None:
        """
        Raises:
            NotLoadedError: Before ``load()``.
            InvalidPositionError: If *page* is outside ``[1, total_pages]``.
        """
        self._require_loaded()
        total = self.total_pages()
        if not 1 <= page <= total:
            raise InvalidPositionError(f"Page {page} outside [1, {total}]")
        self._cursor = page - 1
        self._position = self._page_position(page)

    def navigate_to_position(self, position: Position) -> None:
        """
        Move to *position*.

        An explicit page wins and is validated.  Otherwise a percentage or
        word offset is converted to a page and clamped into range.
        """
        self._require_loaded()
        total = self.total_pages()

        if position.page is not None:
            self.navigate_to_page(position.page)
            return

        if position.percentage is not None:
            page = max(1, math.ceil(position.percentage / 100 * total))
        elif position.offset is not None:
            page = math.ceil(position.offset / self.config.words_per_page) + 1
        else:
            raise InvalidPositionError(
                f"{position!r} has no page, percentage or offset"
            )

        self.navigate_to_page(min(total, max(1, page)))

    def next_page(self) -> bool:
        """Advance one page. Returns ``False`` at the last page."""
        self._require_loaded()
        if self._cursor + 1 >= self.total_pages():
            return False
        self.navigate_to_page(self.current_page() + 1)
        return True

    def previous_page(self) -> bool:
        """Go back one page. Returns ``False`` at the first page."""
        self._require_loaded()
        if self._cursor == 0:
            return False
        self.navigate_to_page(self.current_page() - 1)
        return True

    # ------------------------------------------------------------------
    # Text access
    # ------------------------------------------------------------------

    def current_page_content(self) -> str:
        self._require_loaded()
        return self._pages[self._cursor]

    def page_progress(self) -> float:
        """Percentage of pages reached, counting the current one."""
        return calculate_percentage(self.current_page(), self.total_pages())

    def extract_text(self, start: Position, end: Position) -> str:
        """
        Text of pages ``start.page`` to ``end.page`` inclusive, joined with
        blank lines.  Missing page numbers default to the first and last page.
        """
        self._require_loaded()
        first = start.page if start.page is not None else 1
        last = end.page if end.page is not None else self.total_pages()
        first = max(1, first)
        last = min(self.total_pages(), last)
        if first > last:
            return ""
        return "\n\n".join(self._pages[first - 1 : last])

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _page_position(self, page: int) -> Position:
        return Position(
            page=page,
            chapter_id=CHAPTER_ID,
            percentage=calculate_percentage(page, self.total_pages()),
            offset=(page - 1) * self.config.words_per_page,
        )

    def _require_loaded(self) -> None:
        if self._document is None:
            raise NotLoadedError("Book not loaded")

    def __repr__(self) -> str:
        state = f"{self.current_page()}/{self.total_pages()}" if self.is_loaded else "unloaded"
        return f"TextReader('{self.path.name}', {state})"
