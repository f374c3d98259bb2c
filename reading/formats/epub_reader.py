"""
Fragment-addressed reader for EPUB books.

Structure (metadata, spine, navigation tree) is read with ebooklib.  Layout
is not: the canonical position is a fragment id, and every conversion
between fragment ids, percentages and displayed pages goes through the
rendering collaborator via a :class:`RenderingGateway`.
"""

import logging
import math
from pathlib import Path
from typing import Dict, List, Optional

import ebooklib
from bs4 import BeautifulSoup
from ebooklib import epub

from ..algorithms import calculate_percentage, count_words, search_text
from ..config import ReaderConfig
from ..errors import DocumentLoadError, InvalidPositionError, NotLoadedError
from ..models import Chapter, DocumentModel, SearchResult, TocEntry
from ..position import Position
from ..rendering import FragmentRange, RenderedLocation, RenderingCollaborator, RenderingGateway
from ..sources import PathLike

logger = logging.getLogger(__name__)

_DC_FIELDS = ("language", "publisher", "date", "identifier", "description")


def _dc(book, name: str) -> Optional[str]:
    """First Dublin Core value for *name*, or ``None``."""
    items = book.get_metadata("DC", name)
    if not items:
        return None
    value = items[0][0]
    return value.strip() if isinstance(value, str) and value.strip() else None


def _html_word_count(content: bytes) -> int:
    soup = BeautifulSoup(content, "html.parser")
    return count_words(soup.get_text(" "))


class EPUBReader:
    """
    EPUB navigation on top of an external renderer.

    Args:
        path:     EPUB file on disk (ebooklib reads the archive itself).
        renderer: Collaborator that lays the book out and resolves
                  fragment ids.  Ignored when *gateway* is given.
        config:   Reader configuration; ``render_timeout`` bounds every
                  renderer call.
        gateway:  Pre-built gateway, mainly for sharing one renderer pool.
    """

    def __init__(
        self,
        path: PathLike,
        renderer: Optional[RenderingCollaborator] = None,
        config: Optional[ReaderConfig] = None,
        gateway: Optional[RenderingGateway] = None,
    ):
        if renderer is None and gateway is None:
            raise ValueError("EPUBReader needs a renderer or a gateway")
        self.path = Path(path)
        self.config = config or ReaderConfig()
        self.gateway = gateway or RenderingGateway(renderer, timeout=self.config.render_timeout)

        self._document: Optional[DocumentModel] = None
        self._toc: List[TocEntry] = []
        self._chapter_by_href: Dict[str, str] = {}
        self._location: Optional[RenderedLocation] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def load(self) -> DocumentModel:
        """
        Read metadata, spine and navigation.

        Raises:
            DocumentLoadError: If ebooklib cannot read the archive or the
                spine holds no documents.  The reader stays unloaded.
        """
        self.dispose()
        logger.info("Loading EPUB: %s", self.path)
        try:
            book = epub.read_epub(str(self.path))
        except Exception as e:
            logger.error("Failed to load EPUB '%s': %s", self.path, e)
            raise DocumentLoadError(f"Failed to load EPUB '{self.path}': {e}") from e

        # leaf entries name their document before the sections containing them
        nav_entries = [e for top in self._build_toc(book.toc, {}) for e in top.flatten()]
        nav_entries.sort(key=lambda e: bool(e.children))
        nav_titles: Dict[str, str] = {}
        for entry in nav_entries:
            nav_titles.setdefault(entry.fragment_id.split("#")[0], entry.label)

        # (id, title, href, words) per linear spine document
        spine = []
        for idref, linear in book.spine:
            if linear == "no":
                continue
            item = book.get_item_with_id(idref)
            if item is None or item.get_type() != ebooklib.ITEM_DOCUMENT:
                logger.debug("Skipping non-document spine entry '%s'", idref)
                continue
            href = item.get_name()
            title = nav_titles.get(href) or f"Chapter {len(spine) + 1}"
            spine.append((idref, title, href, _html_word_count(item.get_content())))

        if not spine:
            raise DocumentLoadError(f"EPUB '{self.path}' has no readable documents")

        total_words = sum(words for *_, words in spine)
        chapters = []
        words_before = 0
        for idref, title, href, words in spine:
            start_pct = calculate_percentage(words_before, total_words)
            words_before += words
            end_pct = calculate_percentage(words_before, total_words)
            chapters.append(
                Chapter(
                    id=idref,
                    title=title,
                    content="",
                    word_count=words,
                    start_position=Position(chapter_id=idref, fragment_id=href, percentage=start_pct),
                    end_position=Position(chapter_id=idref, fragment_id=href, percentage=end_pct),
                )
            )

        metadata = {"format": "epub"}
        for name in _DC_FIELDS:
            value = _dc(book, name)
            if value:
                metadata[name] = value

        self._chapter_by_href = {ch.start_position.fragment_id: ch.id for ch in chapters}
        self._toc = self._build_toc(book.toc, self._chapter_by_href)
        self._location = None
        self._document = DocumentModel(
            title=_dc(book, "title") or self.path.stem,
            author=_dc(book, "creator"),
            chapters=tuple(chapters),
            total_pages=max(1, math.ceil(total_words / self.config.words_per_page)),
            word_count=total_words,
            metadata=metadata,
        )

        logger.info(
            "Loaded EPUB '%s': %d chapters, %d words",
            self.path.name,
            len(chapters),
            total_words,
        )
        return self._document

    def dispose(self) -> None:
        self._document = None
        self._toc = []
        self._chapter_by_href = {}
        self._location = None

    def close(self) -> None:
        """Dispose and release the renderer worker pool."""
        self.dispose()
        self.gateway.close()

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
        loc = self._location
        if loc is None:
            return Position(page=1, percentage=0.0)
        return Position(
            page=loc.page,
            percentage=min(100.0, max(0.0, loc.percentage)),
            fragment_id=loc.fragment_id,
            chapter_id=self._chapter_by_href.get((loc.href or "").split("#")[0]),
        )

    @property
    def location(self) -> Optional[RenderedLocation]:
        """Last location reported by the renderer."""
        return self._location

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def current_page(self) -> int:
        self._require_loaded()
        return self._location.page if self._location else 1

    def total_pages(self) -> int:
        self._require_loaded()
        if self._location:
            return self._location.total_pages
        return self._document.total_pages

    def navigate_to_page(self, page: int) -> None:
        self._require_loaded()
        total = self.total_pages()
        if not 1 <= page <= total:
            raise InvalidPositionError(f"Page {page} outside [1, {total}]")
        fragment_id = self.gateway.resolve_percentage_to_fragment(page / total * 100)
        self._display(fragment_id)

    def navigate_to_position(self, position: Position) -> None:
        """
        Fragment id wins, then percentage, then page, then chapter id.
        A bare word offset means nothing to a reflowable book.
        """
        self._require_loaded()
        if position.fragment_id is not None:
            self._display(position.fragment_id)
        elif position.percentage is not None:
            self._display(self.gateway.resolve_percentage_to_fragment(position.percentage))
        elif position.page is not None:
            self.navigate_to_page(position.page)
        elif position.chapter_id is not None:
            self._display(self._chapter(position.chapter_id).start_position.fragment_id)
        else:
            raise InvalidPositionError(f"EPUB cannot navigate to {position!r}")

    # ------------------------------------------------------------------
    # Text access
    # ------------------------------------------------------------------

    def extract_text(self, start: Position, end: Position) -> str:
        self._require_loaded()
        fragment_range = FragmentRange(self._fragment_for(start), self._fragment_for(end))
        return self.gateway.extract_text(fragment_range)

    def search_units(self, query: str) -> List[SearchResult]:
        """Ask the renderer for each chapter's text and scan it."""
        self._require_loaded()
        results: List[SearchResult] = []

        for chapter in self._document.chapters:
            href = chapter.start_position.fragment_id
            text = self.gateway.extract_text(FragmentRange(href, href))
            if not text:
                continue

            start_pct = chapter.start_position.percentage
            span = chapter.end_position.percentage - start_pct

            def position_for(
                index: int,
                words_before: int,
                chapter=chapter,
                length=len(text),
                start_pct=start_pct,
                span=span,
            ) -> Position:
                return Position(
                    chapter_id=chapter.id,
                    fragment_id=chapter.start_position.fragment_id,
                    percentage=start_pct + span * index / length,
                    offset=words_before,
                )

            results.extend(
                search_text(
                    text,
                    query,
                    position_for,
                    chapter_title=chapter.title,
                    context_chars=self.config.search_context_chars,
                )
            )

        return results

    def table_of_contents(self) -> List[TocEntry]:
        self._require_loaded()
        return list(self._toc)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _display(self, fragment_id: str) -> None:
        location = self.gateway.display(fragment_id)
        self._location = location
        logger.debug(
            "Displayed '%s' (page %d/%d)", fragment_id, location.page, location.total_pages
        )

    def _fragment_for(self, position: Position) -> str:
        if position.fragment_id is not None:
            return position.fragment_id
        if position.percentage is not None:
            return self.gateway.resolve_percentage_to_fragment(position.percentage)
        if position.page is not None:
            total = self.total_pages()
            if not 1 <= position.page <= total:
                raise InvalidPositionError(f"Page {position.page} outside [1, {total}]")
            return self.gateway.resolve_percentage_to_fragment(position.page / total * 100)
        if position.chapter_id is not None:
            return self._chapter(position.chapter_id).start_position.fragment_id
        raise InvalidPositionError(f"Cannot resolve {position!r} to a fragment")

    def _chapter(self, chapter_id: str) -> Chapter:
        chapter = self.document.chapter(chapter_id)
        if chapter is None:
            raise InvalidPositionError(f"Chapter '{chapter_id}' not found")
        return chapter

    def _build_toc(self, items, chapter_by_href: Dict[str, str], prefix: str = "nav") -> List[TocEntry]:
        """
        Convert ebooklib's navigation structure into TocEntry nodes.

        Items are ``epub.Link`` leaves or ``(Section | Link, [children])``
        tuples.
        """
        entries: List[TocEntry] = []
        for i, item in enumerate(items):
            node_id = f"{prefix}_{i}"
            if isinstance(item, (tuple, list)) and len(item) == 2:
                head, sub_items = item
                children = tuple(self._build_toc(sub_items, chapter_by_href, node_id))
            else:
                head, children = item, ()

            href = getattr(head, "href", "") or ""
            if not href and children:
                href = children[0].fragment_id or ""
            if not href:
                logger.debug("Skipping navigation entry without target: %r", head)
                continue

            entries.append(
                TocEntry(
                    id=getattr(head, "uid", None) or node_id,
                    label=(getattr(head, "title", "") or "").strip(),
                    position=Position(
                        fragment_id=href,
                        chapter_id=chapter_by_href.get(href.split("#")[0]),
                    ),
                    children=children,
                )
            )
        return entries

    def _require_loaded(self) -> None:
        if self._document is None:
            raise NotLoadedError("Book not loaded")

    def __repr__(self) -> str:
        state = f"{self.current_page()}/{self.total_pages()}" if self.is_loaded else "unloaded"
        return f"EPUBReader('{self.path.name}', {state})"
