"""
Sentence and word segmentation for speech playback.

Splits raw text into :class:`Sentence` units without breaking at
abbreviations ("Dr.", "U.S."), decimals ("3.14") or ellipses ("...").

Boundary detection is a character scan with two states: characters are
accumulated until a terminal mark (``.``, ``!``, ``?``) is seen, at which
point the mark is checked against the rules below.  A mark is *not* a
sentence boundary when:

1. the next non-space character (looking at most three characters
   ahead) is a lowercase letter;
2. the word before the mark, plus the mark, is a known abbreviation
   (case-insensitive; two-word forms such as "et al." included);
3. the mark is ``.`` followed by a digit;
4. the mark is ``.`` followed by another ``.``;
5. the mark is directly followed by a letter, as inside "U.S.".

On a boundary, closing quotes/brackets and further terminal marks
immediately after it stay with the finished sentence.
"""

import re
from enum import Enum, auto
from typing import Iterable, List, Tuple

from bs4 import BeautifulSoup

from .models import Sentence, Word

# -----------------------------------------------------------------
# Tables
# -----------------------------------------------------------------

COMMON_ABBREVIATIONS = (
    "Dr.", "Mr.", "Mrs.", "Ms.", "Prof.", "Sr.", "Jr.", "St.",
    "vs.", "etc.", "i.e.", "e.g.", "cf.", "et al.",
    "U.S.", "U.K.", "U.N.", "E.U.", "N.A.T.O.",
    "a.m.", "p.m.",
    "Inc.", "Corp.", "Ltd.", "Co.",
    "Fig.", "Eq.", "Sec.", "Vol.", "No.",
)

SPEECH_WPM = 150

TERMINAL_MARKS = ".!?"
CLOSING_MARKS = "\"')]}”’»"

# -----------------------------------------------------------------
# Regex patterns
# -----------------------------------------------------------------

_RE_WORD = re.compile(r"\b\w+(?:'\w+)?\b")
_RE_BLANK_RUN = re.compile(r"\n{3,}")
_RE_HORIZONTAL_WS = re.compile(r"[ \t\f\v]+")
_RE_ANY_WS = re.compile(r"\s+")
_RE_PARAGRAPH_GAP = re.compile(r"\n\s*\n")
_RE_SPACE_AROUND_NEWLINE = re.compile(r" *\n *")


class _ScanState(Enum):
    ACCUMULATING = auto()
    CHECK_BOUNDARY = auto()


# -----------------------------------------------------------------
# Text helpers
# -----------------------------------------------------------------


def clean_text(text: str) -> str:
    """Normalise line endings, cap blank-line runs, collapse spaces/tabs."""
    if not text:
        return ""
    t = text.replace("\r\n", "\n").replace("\r", "\n")
    t = _RE_BLANK_RUN.sub("\n\n", t)
    t = _RE_HORIZONTAL_WS.sub(" ", t)
    return t.strip()


def normalize_whitespace(text: str) -> str:
    """
    Tidy whitespace while keeping paragraph breaks: tabs become spaces,
    blank-line runs become one blank line, and spaces next to line breaks
    are dropped.
    """
    t = text.replace("\t", " ")
    t = _RE_PARAGRAPH_GAP.sub("\n\n", t)
    t = re.sub(r" +", " ", t)
    t = _RE_SPACE_AROUND_NEWLINE.sub("\n", t)
    return t.strip()


def extract_readable_text(html: str) -> str:
    """Visible text of an HTML/XHTML fragment, scripts and styles dropped."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    return _RE_ANY_WS.sub(" ", soup.get_text(" ")).strip()


def process_words(sentence: str, start_index: int = 0) -> List[Word]:
    """Tokenise *sentence*; offsets are shifted by *start_index*."""
    return [
        Word(m.group(0), start_index + m.start(), start_index + m.end())
        for m in _RE_WORD.finditer(sentence)
    ]


def estimate_duration_ms(text: str, wpm: int = SPEECH_WPM) -> float:
    """Speaking time for *text* at *wpm* words per minute."""
    return len(text.split()) / wpm * 60_000


# -----------------------------------------------------------------
# Segmenter
# -----------------------------------------------------------------


class TextSegmenter:
    """
    Abbreviation-aware sentence segmenter.

    Args:
        abbreviations: Abbreviations (with their trailing mark) that never
                       end a sentence.
        wpm:           Reference speech rate for duration estimates.
    """

    def __init__(
        self,
        abbreviations: Iterable[str] = COMMON_ABBREVIATIONS,
        wpm: int = SPEECH_WPM,
    ):
        self.abbreviations = frozenset(a.lower() for a in abbreviations)
        self.wpm = wpm
        # characters looked at before a mark; room for the longest entry plus leading quotes
        self._lookback = max((len(a) for a in self.abbreviations), default=0) + 8

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def process_text(self, text: str) -> List[Sentence]:
        """
        Clean *text* and split it into Sentences with word offsets.

        Ids run ``sentence-0 .. sentence-N`` for each call.  Offsets index
        the cleaned text; sentence text is trimmed and its offsets point
        at the trimmed span.
        """
        cleaned = clean_text(text)
        sentences = []
        for start, end in self._sentence_spans(cleaned):
            sentence_text = cleaned[start:end]
            sentences.append(
                Sentence(
                    id=f"sentence-{len(sentences)}",
                    text=sentence_text,
                    start_index=start,
                    end_index=end,
                    words=tuple(process_words(sentence_text, start)),
                    estimated_duration_ms=estimate_duration_ms(sentence_text, self.wpm),
                )
            )
        return sentences

    def detect_sentences(self, text: str) -> List[str]:
        """Trimmed, non-empty sentence strings of *text* (not cleaned)."""
        return [text[start:end] for start, end in self._sentence_spans(text)]

    def split_into_chunks(self, text: str, max_chunk_size: int = 4000) -> List[str]:
        """
        Group sentences into chunks of at most *max_chunk_size* characters.

        A sentence longer than the limit is split at word boundaries.
        """
        chunks: List[str] = []
        current = ""

        for piece in self._raw_pieces(text):
            if len(current) + len(piece) > max_chunk_size:
                if current.strip():
                    chunks.append(current.strip())
                current = ""
                if len(piece) > max_chunk_size:
                    chunks.extend(self._split_long_sentence(piece, max_chunk_size))
                else:
                    current = piece
            else:
                current += piece

        if current.strip():
            chunks.append(current.strip())
        return chunks

    # ------------------------------------------------------------------
    # Boundary scan
    # ------------------------------------------------------------------

    def _boundaries(self, text: str) -> List[int]:
        """End offsets (exclusive) of every sentence, including the tail."""
        ends: List[int] = []
        state = _ScanState.ACCUMULATING
        i, n = 0, len(text)

        while i < n:
            if state is _ScanState.ACCUMULATING:
                if text[i] in TERMINAL_MARKS:
                    state = _ScanState.CHECK_BOUNDARY
                else:
                    i += 1
                continue

            # CHECK_BOUNDARY: text[i] is a terminal mark
            if self._is_boundary(text, i):
                end = i + 1
                while end < n and (text[end] in CLOSING_MARKS or text[end] in TERMINAL_MARKS):
                    end += 1
                ends.append(end)
                i = end
            else:
                i += 1
            state = _ScanState.ACCUMULATING

        if not ends or ends[-1] < n:
            ends.append(n)
        return ends

    def _is_boundary(self, text: str, i: int) -> bool:
        """
        Whether the terminal mark at *i* ends a sentence.

        The lowercase rule looks at the first non-space character within
        the next three, so "apples. bananas" stays one sentence.
        """
        mark = text[i]
        following = text[i + 1 : i + 4]
        nxt = following[:1]

        # directly followed by a letter, as inside "U.S."
        if nxt.isalpha():
            return False

        ahead = following.lstrip()
        if ahead[:1].islower():
            return False

        if mark == "." and (nxt.isdigit() or nxt == "."):
            return False

        if self._ends_with_abbreviation(text, i):
            return False

        return True

    def _ends_with_abbreviation(self, text: str, i: int) -> bool:
        start = max(0, i - self._lookback)
        words = text[start:i].split()
        # a word cut by the window start can't match anything
        if words and start > 0 and not text[start - 1].isspace() and not text[start].isspace():
            words = words[1:]
        if not words:
            return False
        last = words[-1].lstrip("\"'([{“‘«")
        if (last + text[i]).lower() in self.abbreviations:
            return True
        if len(words) >= 2:
            pair = f"{words[-2]} {last}{text[i]}".lower()
            return pair in self.abbreviations
        return False

    def _sentence_spans(self, text: str) -> List[Tuple[int, int]]:
        spans = []
        start = 0
        for end in self._boundaries(text):
            piece = text[start:end]
            stripped = piece.strip()
            if stripped:
                lead = len(piece) - len(piece.lstrip())
                spans.append((start + lead, start + lead + len(stripped)))
            start = end
        return spans

    def _raw_pieces(self, text: str) -> List[str]:
        pieces = []
        start = 0
        for end in self._boundaries(text):
            pieces.append(text[start:end])
            start = end
        return pieces

    @staticmethod
    def _split_long_sentence(sentence: str, max_size: int) -> List[str]:
        chunks: List[str] = []
        current = ""
        for word in sentence.split():
            if current and len(current) + len(word) + 1 > max_size:
                chunks.append(current)
                current = ""
            current = f"{current} {word}" if current else word
        if current:
            chunks.append(current)
        return chunks

    def __repr__(self) -> str:
        return f"TextSegmenter(abbreviations={len(self.abbreviations)}, wpm={self.wpm})"


# -----------------------------------------------------------------
# Module-level conveniences
# -----------------------------------------------------------------

_DEFAULT = TextSegmenter()


def detect_sentences(text: str) -> List[str]:
    return _DEFAULT.detect_sentences(text)


def process_text(text: str) -> List[Sentence]:
    return _DEFAULT.process_text(text)


def split_into_chunks(text: str, max_chunk_size: int = 4000) -> List[str]:
    return _DEFAULT.split_into_chunks(text, max_chunk_size)
