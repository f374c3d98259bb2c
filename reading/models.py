"""
Value records produced by the reading engine.

The Document Model is built once by a reader's ``load()`` and never
changes afterwards.  Bookmarks, highlights and progress snapshots are
constructed here but persisted by the caller's repository.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from .position import Position


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Chapter:
    """
    One chapter of a loaded book.

    ``content`` holds the cleaned chapter text for linear formats and is
    empty for fixed-page and fragment-addressed formats, whose text lives
    in the page source or rendering collaborator.
    """

    id: str
    title: str
    content: str
    word_count: int
    start_position: Position
    end_position: Position

    @property
    def has_text(self) -> bool:
        return bool(self.content)


@dataclass(frozen=True)
class DocumentModel:
    """Immutable snapshot of a loaded book."""

    title: str
    chapters: Tuple[Chapter, ...]
    total_pages: int
    word_count: int
    author: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def chapter(self, chapter_id: str) -> Optional[Chapter]:
        """Look up a chapter by id (``None`` if absent)."""
        for ch in self.chapters:
            if ch.id == chapter_id:
                return ch
        return None

    def __repr__(self) -> str:
        return (
            f"DocumentModel('{self.title}', chapters={len(self.chapters)}, "
            f"pages={self.total_pages}, words={self.word_count})"
        )


@dataclass(frozen=True)
class SearchResult:
    position: Position
    context: str  # text around the match
    match_text: str
    chapter_title: Optional[str] = None


@dataclass(frozen=True)
class TocEntry:
    """A node of the table of contents tree."""

    id: str
    label: str
    position: Position
    children: Tuple["TocEntry", ...] = ()

    @property
    def fragment_id(self) -> Optional[str]:
        return self.position.fragment_id

    def flatten(self) -> List["TocEntry"]:
        """This entry followed by all descendants, depth first."""
        flat = [self]
        for child in self.children:
            flat.extend(child.flatten())
        return flat


@dataclass(frozen=True)
class Bookmark:
    id: str
    position: Position
    title: Optional[str] = None
    note: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class Highlight:
    id: str
    start_position: Position
    end_position: Position
    color: str
    note: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class ReadingProgress:
    """
    Progress snapshot handed to the persistence collaborator.

    ``position_json`` is the opaque string form of the reader's Position
    (see :meth:`Position.to_json`).
    """

    book_id: Any
    position_json: str
    total_progress: float
    last_updated: datetime = field(default_factory=_utcnow)

    @property
    def position(self) -> Position:
        return Position.from_json(self.position_json)
