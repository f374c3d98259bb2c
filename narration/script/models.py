"""
Data models for segmented speech text.
"""

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class Word:
    """A word token; offsets index the whole segmented text."""

    text: str
    start_index: int
    end_index: int


@dataclass(frozen=True)
class Sentence:
    """
    One unit of speech playback.

    ``text`` is the canonical sentence text.  The pause-annotated form
    sent to a speech driver is derived on demand and never stored here.
    """

    id: str
    text: str
    start_index: int
    end_index: int
    words: Tuple[Word, ...]
    estimated_duration_ms: float

    @property
    def word_count(self) -> int:
        return len(self.words)

    def __repr__(self) -> str:
        preview = self.text[:60].replace("\n", " ")
        return (
            f"Sentence({self.id}, [{self.start_index}:{self.end_index}], "
            f"words={len(self.words)}, ~{self.estimated_duration_ms:.0f}ms, '{preview}')"
        )


@dataclass(frozen=True)
class VoiceParams:
    """Voice parameters handed to the speech driver with every sentence."""

    voice: Optional[str] = None
    language: str = "en-US"
    rate: float = 1.0
    pitch: float = 1.0
    volume: float = 0.8
