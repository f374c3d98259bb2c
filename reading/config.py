"""
Reader configuration.
"""

from dataclasses import dataclass


@dataclass
class ReaderConfig:
    """
    Tuneable parameters shared by the format readers.

    Attributes:
        words_per_page:       Target page size for linear text pagination.
                              Oversized paragraphs still form one page.
        reading_wpm:          Reading speed used by reading-time estimates.
        search_context_chars: Characters kept on each side of a search hit.
        render_timeout:       Upper bound (seconds) for any single call into
                              the rendering collaborator.
        show_progress:        Show tqdm progress bars for page-by-page scans.
        text_encoding:        Encoding used to decode plain-text books.
    """

    words_per_page: int = 250
    reading_wpm: int = 200
    search_context_chars: int = 50
    render_timeout: float = 5.0
    show_progress: bool = False
    text_encoding: str = "utf-8"

    def __post_init__(self):
        if self.words_per_page < 1:
            raise ValueError("words_per_page must be >= 1")
        if self.render_timeout <= 0:
            raise ValueError("render_timeout must be positive")
