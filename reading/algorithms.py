"""
Format-independent reading algorithms.

Everything here is written once against the reader protocols in
:mod:`reading.contract` rather than per format: pagination, search,
percentage and reading-time math, bookmark/highlight construction,
table of contents and progress snapshots.
"""

import logging
import math
import re
import uuid
from typing import Callable, List, Optional

from .contract import PagedSearch, ReaderContract, TableOfContentsSource
from .errors import InvalidPositionError, NotLoadedError, ReaderError
from .models import Bookmark, Chapter, Highlight, ReadingProgress, SearchResult, TocEntry
from .position import Position

logger = logging.getLogger(__name__)

DEFAULT_WORDS_PER_PAGE = 250
DEFAULT_READING_WPM = 200
DEFAULT_CONTEXT_CHARS = 50

_RE_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
_RE_HORIZONTAL_WS = re.compile(r"[ \t\f\v ]+")
_RE_BLANK_RUN = re.compile(r"\n{3,}")


# -----------------------------------------------------------------
# Text helpers
# -----------------------------------------------------------------


def count_words(text: str) -> int:
    return len(text.split())


def clean_text(text: str) -> str:
    """
    Normalise whitespace while keeping paragraph structure.

    Collapses runs of spaces/tabs, strips every line, and reduces runs of
    blank lines to a single blank line.
    """
    if not text:
        return ""
    t = text.replace("\r\n", "\n").replace("\r", "\n")
    lines = [_RE_HORIZONTAL_WS.sub(" ", line).strip() for line in t.split("\n")]
    t = "\n".join(lines)
    t = _RE_BLANK_RUN.sub("\n\n", t)
    return t.strip()


# -----------------------------------------------------------------
# Pagination
# -----------------------------------------------------------------


def split_into_pages(text: str, words_per_page: int = DEFAULT_WORDS_PER_PAGE) -> List[str]:
    """
    Split *text* into paragraph-respecting pages of roughly
    *words_per_page* words.

    Paragraphs (blank-line separated) are accumulated into the current
    page.  Before a paragraph is added, if it would push the page past
    *words_per_page* and the page already holds something, the page is
    flushed and the paragraph starts the next one.  A paragraph is never
    split, so a paragraph longer than *words_per_page* becomes a page of
    its own that exceeds the target.

    Returns:
        List of page strings; always at least one (``[""]`` when the text
        has no words).
    """
    if words_per_page < 1:
        raise ValueError("words_per_page must be >= 1")

    pages: List[str] = []
    current: List[str] = []
    current_words = 0

    for paragraph in _RE_PARAGRAPH_BREAK.split(text or ""):
        paragraph = paragraph.strip()
        paragraph_words = count_words(paragraph)
        if paragraph_words == 0:
            continue

        if current_words + paragraph_words > words_per_page and current:
            pages.append("\n\n".join(current))
            current = [paragraph]
            current_words = paragraph_words
        else:
            current.append(paragraph)
            current_words += paragraph_words

    if current:
        pages.append("\n\n".join(current))

    return pages or [""]


# -----------------------------------------------------------------
# Percentage / time math
# -----------------------------------------------------------------


def calculate_percentage(current: float, total: float) -> float:
    """``clamp(current / total * 100, 0, 100)``; ``0`` when *total* is 0."""
    if total == 0:
        return 0.0
    return min(100.0, max(0.0, current / total * 100.0))


def estimate_reading_time(word_count: int, wpm: int = DEFAULT_READING_WPM) -> int:
    """Minutes needed to read *word_count* words, rounded up."""
    if wpm <= 0:
        raise ValueError("wpm must be positive")
    return math.ceil(word_count / wpm)


# -----------------------------------------------------------------
# Search
# -----------------------------------------------------------------


def search_text(
    text: str,
    query: str,
    make_position: Callable[[int, int], Position],
    chapter_title: Optional[str] = None,
    context_chars: int = DEFAULT_CONTEXT_CHARS,
) -> List[SearchResult]:
    """
    Find every case-insensitive occurrence of *query* in *text*.

    The query is matched literally.  *make_position* receives the match's
    character index and the number of words preceding it, and returns
    the Position to attach to the result.
    """
    if not query or not text:
        return []

    pattern = re.compile(re.escape(query), re.IGNORECASE)
    results: List[SearchResult] = []

    for m in pattern.finditer(text):
        start, end = m.start(), m.end()
        context = text[max(0, start - context_chars) : min(len(text), end + context_chars)]
        results.append(
            SearchResult(
                position=make_position(start, count_words(text[:start])),
                context=context.strip(),
                match_text=m.group(0),
                chapter_title=chapter_title,
            )
        )

    return results


def _search_chapter(chapter: Chapter, query: str, context_chars: int) -> List[SearchResult]:
    length = len(chapter.content)

    def position_for(index: int, words_before: int) -> Position:
        return Position(
            chapter_id=chapter.id,
            percentage=calculate_percentage(index, length),
            offset=words_before,
        )

    return search_text(
        chapter.content,
        query,
        position_for,
        chapter_title=chapter.title,
        context_chars=context_chars,
    )


def search(
    reader: ReaderContract,
    query: str,
    context_chars: int = DEFAULT_CONTEXT_CHARS,
) -> List[SearchResult]:
    """
    Search the loaded book for *query*.

    Readers implementing :class:`PagedSearch` search their own pages or
    fragments; otherwise every chapter's text is scanned.  A failed or
    unsupported search yields ``[]`` rather than raising.

    Raises:
        NotLoadedError: If the reader has not been loaded.
    """
    if not reader.is_loaded:
        raise NotLoadedError("Book not loaded")
    if not query or not query.strip():
        return []

    try:
        if isinstance(reader, PagedSearch):
            return reader.search_units(query)

        chapters = [ch for ch in reader.document.chapters if ch.has_text]
        if not chapters:
            logger.info("Search not supported: no chapter text available")
            return []

        results: List[SearchResult] = []
        for chapter in chapters:
            results.extend(_search_chapter(chapter, query, context_chars))
        return results

    except ReaderError as e:
        logger.warning("Search for %r failed, returning no results: %s", query, e)
        return []


# -----------------------------------------------------------------
# Bookmarks / highlights
# -----------------------------------------------------------------


def add_bookmark(
    position: Position,
    title: Optional[str] = None,
    note: Optional[str] = None,
) -> Bookmark:
    """Build a Bookmark with a fresh id. Persisting it is the caller's job."""
    return Bookmark(
        id=f"bookmark_{uuid.uuid4().hex}",
        position=position,
        title=title,
        note=note,
    )


def add_highlight(
    start: Position,
    end: Position,
    color: str,
    note: Optional[str] = None,
) -> Highlight:
    """Build a Highlight with a fresh id. Persisting it is the caller's job."""
    return Highlight(
        id=f"highlight_{uuid.uuid4().hex}",
        start_position=start,
        end_position=end,
        color=color,
        note=note,
    )


# -----------------------------------------------------------------
# Chapters / table of contents
# -----------------------------------------------------------------


def table_of_contents(reader: ReaderContract) -> List[TocEntry]:
    """
    The reader's native navigation tree when it has one, otherwise a
    flat list with one entry per chapter.
    """
    if isinstance(reader, TableOfContentsSource):
        toc = reader.table_of_contents()
        if toc:
            return toc
    return [
        TocEntry(id=ch.id, label=ch.title, position=ch.start_position)
        for ch in reader.document.chapters
    ]


def navigate_to_chapter(reader: ReaderContract, chapter_id: str) -> None:
    """Move *reader* to the start of chapter *chapter_id*."""
    chapter = reader.document.chapter(chapter_id)
    if chapter is None:
        raise InvalidPositionError(f"Chapter {chapter_id!r} not found")
    reader.navigate_to_position(chapter.start_position)


# -----------------------------------------------------------------
# Progress snapshots
# -----------------------------------------------------------------


def reading_progress(reader: ReaderContract, book_id) -> ReadingProgress:
    """Snapshot the reader's position for the persistence collaborator."""
    position = reader.position
    if position.percentage is not None:
        progress = position.percentage
    else:
        progress = calculate_percentage(reader.current_page(), reader.total_pages())
    return ReadingProgress(
        book_id=book_id,
        position_json=position.to_json(),
        total_progress=progress,
    )


def restore_progress(reader: ReaderContract, progress: ReadingProgress) -> None:
    """Navigate *reader* back to a stored progress snapshot."""
    reader.navigate_to_position(progress.position)
