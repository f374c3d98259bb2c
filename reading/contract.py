"""
Capability interfaces every format reader satisfies.

The readers share no base class.  Format-independent behaviour (search,
pagination, percentage math, table of contents) lives as free functions
in :mod:`reading.algorithms` and talks to readers only through these
protocols.
"""

from typing import List, Protocol, runtime_checkable

from .models import DocumentModel, SearchResult, TocEntry
from .position import Position


@runtime_checkable
class ReaderContract(Protocol):
    """The navigation seam between formats."""

    @property
    def is_loaded(self) -> bool: ...

    @property
    def document(self) -> DocumentModel:
        """The loaded Document Model. Raises ``NotLoadedError`` before load."""
        ...

    @property
    def position(self) -> Position:
        """The reader's current Position. Raises ``NotLoadedError`` before load."""
        ...

    def load(self) -> DocumentModel: ...

    def current_page(self) -> int: ...

    def total_pages(self) -> int: ...

    def navigate_to_page(self, page: int) -> None: ...

    def navigate_to_position(self, position: Position) -> None: ...

    def extract_text(self, start: Position, end: Position) -> str: ...

    def dispose(self) -> None: ...


@runtime_checkable
class PagedSearch(Protocol):
    """
    Readers whose chapters carry no text search per page or fragment
    instead of using the generic chapter scan.
    """

    def search_units(self, query: str) -> List[SearchResult]: ...


@runtime_checkable
class TableOfContentsSource(Protocol):
    """Readers with a native navigation structure (EPUB nav, PDF outline)."""

    def table_of_contents(self) -> List[TocEntry]: ...
