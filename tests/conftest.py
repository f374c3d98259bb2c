"""
Shared fixtures: fake collaborators and small generated books.
"""

import threading
import time
from typing import Callable, Dict, List, Optional

import fitz
import pytest

from narration.driver import SpeechDriver
from reading.rendering import FragmentRange, RenderedLocation
from reading.sources import MemorySource

SAMPLE_TEXT = (
    "Dr. Smith went home. He was tired.\n\n"
    "The price is 3.14 dollars total. Was it worth it? Nobody knew...\n\n"
    "The end!"
)


def paragraph(words: int, token: str = "word") -> str:
    return " ".join([token] * words)


# ------------------------------------------------------------------
# Rendering collaborator
# ------------------------------------------------------------------


class FakeRenderer:
    """
    Renderer over a fixed list of ``(href, text)`` documents.

    Each document is laid out as ``pages_per_doc`` pages.  ``delay``
    makes every call sleep first; ``fail`` makes every call raise.
    """

    def __init__(self, docs, pages_per_doc: int = 2, delay: float = 0.0, fail: bool = False):
        self.docs = list(docs)
        self.pages_per_doc = pages_per_doc
        self.delay = delay
        self.fail = fail
        self.calls: List[tuple] = []
        self._lock = threading.Lock()

    def _enter(self, name, *args):
        with self._lock:
            self.calls.append((name,) + args)
        if self.delay:
            time.sleep(self.delay)
        if self.fail:
            raise RuntimeError(f"renderer failure in {name}")

    def _index(self, fragment_id: str) -> Optional[int]:
        href = fragment_id.split("#")[0]
        for i, (doc_href, _) in enumerate(self.docs):
            if doc_href == href:
                return i
        return None

    def resolve_percentage_to_fragment(self, percentage: float) -> str:
        self._enter("resolve_percentage_to_fragment", percentage)
        idx = min(len(self.docs) - 1, int(percentage / 100 * len(self.docs)))
        return self.docs[idx][0]

    def resolve_fragment_to_percentage(self, fragment_id: str) -> float:
        self._enter("resolve_fragment_to_percentage", fragment_id)
        idx = self._index(fragment_id)
        return None if idx is None else idx / len(self.docs) * 100

    def extract_text(self, fragment_range: FragmentRange) -> str:
        self._enter("extract_text", fragment_range)
        first = self._index(fragment_range.start)
        last = self._index(fragment_range.end)
        if first is None or last is None:
            return ""
        return "\n\n".join(text for _, text in self.docs[first : last + 1])

    def display(self, fragment_id: str) -> Optional[RenderedLocation]:
        self._enter("display", fragment_id)
        idx = self._index(fragment_id)
        if idx is None:
            return None
        total = len(self.docs) * self.pages_per_doc
        return RenderedLocation(
            fragment_id=fragment_id,
            page=idx * self.pages_per_doc + 1,
            total_pages=total,
            percentage=idx / len(self.docs) * 100,
            href=self.docs[idx][0],
        )


@pytest.fixture
def renderer():
    return FakeRenderer(
        [
            ("text/ch1.xhtml", "It was a dark and stormy night. The wind howled."),
            ("text/ch2.xhtml", "Morning came. The storm had passed and the night was over."),
        ]
    )


# ------------------------------------------------------------------
# Speech driver
# ------------------------------------------------------------------


class FakeDriver(SpeechDriver):
    """
    Driver that finishes every utterance immediately.

    ``hooks`` maps a call number (0-based) to a function run instead of
    the automatic ``on_done``; it receives ``(on_done, on_error)``.
    """

    def __init__(self, hooks: Optional[Dict[int, Callable]] = None):
        self.hooks = hooks or {}
        self.spoken: List[str] = []
        self.voices = []
        self.stop_calls = 0

    def speak(self, text, voice, on_done, on_error):
        call = len(self.spoken)
        self.spoken.append(text)
        self.voices.append(voice)
        hook = self.hooks.get(call)
        if hook is not None:
            hook(on_done, on_error)
        else:
            on_done()

    def stop(self):
        self.stop_calls += 1

    @property
    def driver_name(self) -> str:
        return "fake"


@pytest.fixture
def driver():
    return FakeDriver()


# ------------------------------------------------------------------
# Books
# ------------------------------------------------------------------


@pytest.fixture
def sample_text():
    return SAMPLE_TEXT


@pytest.fixture
def memory_source():
    return MemorySource()


def write_pdf(path, page_texts, toc=None):
    """Write a PDF with one page per entry of *page_texts*."""
    doc = fitz.open()
    for text in page_texts:
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text)
    if toc:
        doc.set_toc(toc)
    doc.set_metadata({"title": "Test Document", "author": "Jane Doe"})
    doc.save(str(path))
    doc.close()
    return path


@pytest.fixture
def pdf_path(tmp_path):
    return write_pdf(
        tmp_path / "sample.pdf",
        [
            "First page about whales.",
            "Second page about ships.",
            "Third page, whales again.",
        ],
        toc=[
            [1, "Part One", 1],
            [2, "Whales", 1],
            [2, "Ships", 2],
            [1, "Part Two", 3],
        ],
    )
