import pytest

from reading import algorithms
from reading.algorithms import (
    add_bookmark,
    add_highlight,
    calculate_percentage,
    estimate_reading_time,
    navigate_to_chapter,
    reading_progress,
    restore_progress,
    search,
    search_text,
    table_of_contents,
)
from reading.errors import ExtractionError, InvalidPositionError, NotLoadedError
from reading.formats.text_reader import TextReader
from reading.position import Position


@pytest.fixture
def loaded_reader(memory_source, sample_text):
    memory_source.add("book.txt", sample_text.encode("utf-8"))
    reader = TextReader("book.txt", source=memory_source)
    reader.load()
    return reader


# ------------------------------------------------------------------
# Percentage / reading time
# ------------------------------------------------------------------


def test_percentage_is_monotonic_and_bounded():
    total = 37
    values = [calculate_percentage(p, total) for p in range(1, total + 1)]

    assert all(0 <= v <= 100 for v in values)
    assert values == sorted(values)
    assert values[-1] == 100.0


def test_percentage_edge_cases():
    assert calculate_percentage(5, 0) == 0.0
    assert calculate_percentage(15, 10) == 100.0
    assert calculate_percentage(-1, 10) == 0.0


def test_estimate_reading_time_rounds_up():
    assert estimate_reading_time(0) == 0
    assert estimate_reading_time(200) == 1
    assert estimate_reading_time(201) == 2
    assert estimate_reading_time(500, wpm=250) == 2


# ------------------------------------------------------------------
# Bookmarks / highlights
# ------------------------------------------------------------------


def test_bookmarks_at_same_position_get_distinct_ids():
    pos = Position(page=4)

    first = add_bookmark(pos, title="Here")
    second = add_bookmark(pos, title="Here")

    assert first.id != second.id
    assert first.position == second.position == pos


def test_highlight_keeps_range_and_color():
    start, end = Position(page=1, offset=10), Position(page=1, offset=25)

    hl = add_highlight(start, end, "#FFFF00", note="important")

    assert hl.start_position == start
    assert hl.end_position == end
    assert hl.color == "#FFFF00"
    assert hl.id.startswith("highlight_")
    assert hl.id != add_highlight(start, end, "#FFFF00").id


# ------------------------------------------------------------------
# Search
# ------------------------------------------------------------------


def test_search_text_is_literal_and_case_insensitive():
    text = "Cost (approx.) is 3.14. cost again; COST."
    hits = search_text(text, "cost", lambda i, w: Position(offset=w))

    assert [h.match_text for h in hits] == ["Cost", "cost", "COST"]
    assert [h.position.offset for h in hits] == [0, 4, 6]
    assert search_text(text, "(approx.)", lambda i, w: Position(offset=w))[0].match_text == "(approx.)"


def test_search_text_context_is_bounded():
    text = "x" * 100 + "needle" + "y" * 100
    [hit] = search_text(text, "needle", lambda i, w: Position(offset=w), context_chars=10)

    assert hit.context == "x" * 10 + "needle" + "y" * 10


def test_search_scans_chapter_text(loaded_reader):
    hits = search(loaded_reader, "the")

    assert len(hits) == 2
    first = hits[0]
    assert first.position.chapter_id == "chapter_1"
    assert 0 <= first.position.percentage <= 100
    assert first.chapter_title == "book"
    assert first.match_text.lower() == "the"


def test_search_positions_follow_document_order(loaded_reader):
    hits = search(loaded_reader, "the")
    pcts = [h.position.percentage for h in hits]
    offsets = [h.position.offset for h in hits]

    assert pcts == sorted(pcts)
    assert offsets == sorted(offsets)


def test_search_empty_query_returns_nothing(loaded_reader):
    assert search(loaded_reader, "") == []
    assert search(loaded_reader, "   ") == []


def test_search_before_load_raises(memory_source):
    reader = TextReader("missing.txt", source=memory_source)

    with pytest.raises(NotLoadedError):
        search(reader, "anything")


def test_search_failure_degrades_to_empty(loaded_reader, monkeypatch):
    def broken(*args, **kwargs):
        raise ExtractionError("boom")

    monkeypatch.setattr(algorithms, "_search_chapter", broken)

    assert search(loaded_reader, "the") == []


# ------------------------------------------------------------------
# Chapters / TOC / progress
# ------------------------------------------------------------------


def test_table_of_contents_falls_back_to_chapters(loaded_reader):
    [entry] = table_of_contents(loaded_reader)

    assert entry.id == "chapter_1"
    assert entry.position.page == 1
    assert entry.children == ()


def test_navigate_to_chapter(loaded_reader):
    navigate_to_chapter(loaded_reader, "chapter_1")
    assert loaded_reader.current_page() == 1

    with pytest.raises(InvalidPositionError):
        navigate_to_chapter(loaded_reader, "chapter_99")


def test_progress_snapshot_round_trips_through_reader(memory_source):
    text = "\n\n".join(f"Paragraph {i} " + "word " * 50 for i in range(20))
    memory_source.add("long.txt", text.encode("utf-8"))
    reader = TextReader("long.txt", source=memory_source)
    reader.load()
    reader.navigate_to_page(3)

    progress = reading_progress(reader, book_id=7)
    reader.navigate_to_page(1)
    restore_progress(reader, progress)

    assert progress.book_id == 7
    assert progress.total_progress == pytest.approx(calculate_percentage(3, reader.total_pages()))
    assert reader.current_page() == 3


def test_progress_snapshot_needs_a_loaded_reader(memory_source):
    reader = TextReader("missing.txt", source=memory_source)

    with pytest.raises(NotLoadedError):
        reading_progress(reader, book_id=1)
