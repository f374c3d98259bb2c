import time

import pytest

from narration.script.segmenter import (
    TextSegmenter,
    clean_text,
    detect_sentences,
    estimate_duration_ms,
    extract_readable_text,
    normalize_whitespace,
    process_text,
    process_words,
    split_into_chunks,
)


def test_abbreviation_does_not_end_sentence():
    assert detect_sentences("Dr. Smith went home. He was tired.") == [
        "Dr. Smith went home.",
        "He was tired.",
    ]


def test_decimal_does_not_end_sentence():
    assert detect_sentences("The price is 3.14 dollars total.") == [
        "The price is 3.14 dollars total."
    ]


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Wait... What happened? Nothing!", ["Wait...", "What happened?", "Nothing!"]),
        ("He moved to the U.S. last year.", ["He moved to the U.S. last year."]),
        (
            "See Smith et al. Their work is cited. Then stop.",
            ["See Smith et al. Their work is cited.", "Then stop."],
        ),
        ("Use tools, e.g. hammers. Done.", ["Use tools, e.g. hammers.", "Done."]),
        ("It ended. then it began again.", ["It ended. then it began again."]),
        ("Meet at 5 p.m. Sharp.", ["Meet at 5 p.m. Sharp."]),
    ],
)
def test_false_boundaries_are_skipped(text, expected):
    assert detect_sentences(text) == expected


def test_closing_quotes_and_marks_stay_with_sentence():
    text = 'She asked, "Really?!" He nodded. (It was true.) Fine.'

    assert detect_sentences(text) == [
        'She asked, "Really?!"',
        "He nodded.",
        "(It was true.)",
        "Fine.",
    ]


def test_text_without_terminal_mark_is_one_sentence():
    assert detect_sentences("no punctuation here") == ["no punctuation here"]
    assert detect_sentences("   ") == []


def test_custom_abbreviations():
    seg = TextSegmenter(abbreviations=["Capt."])

    assert seg.detect_sentences("Capt. Ahab sailed. Dr. No stayed.") == [
        "Capt. Ahab sailed.",
        "Dr.",
        "No stayed.",
    ]


def test_process_text_offsets_point_into_cleaned_text():
    raw = "  First   sentence here.\r\n\r\n\r\nSecond one, isn't it?  "
    cleaned = clean_text(raw)

    sentences = process_text(raw)

    assert [s.id for s in sentences] == ["sentence-0", "sentence-1"]
    for s in sentences:
        assert cleaned[s.start_index : s.end_index] == s.text
        for w in s.words:
            assert cleaned[w.start_index : w.end_index] == w.text
    assert [w.text for w in sentences[1].words] == ["Second", "one", "isn't", "it"]


def test_ids_restart_on_every_call():
    assert process_text("One. Two.")[0].id == "sentence-0"
    assert process_text("Three. Four.")[0].id == "sentence-0"


def test_duration_estimate_uses_150_wpm():
    assert estimate_duration_ms("one two three") == pytest.approx(1200.0)
    [sentence] = process_text("A short sentence of six words.")
    assert sentence.estimated_duration_ms == pytest.approx(6 / 150 * 60_000)


def test_process_words_offsets_are_absolute():
    words = process_words("Hi there", start_index=10)

    assert [(w.text, w.start_index, w.end_index) for w in words] == [
        ("Hi", 10, 12),
        ("there", 13, 18),
    ]


def test_clean_text():
    assert clean_text("a\r\nb\rc") == "a\nb\nc"
    assert clean_text("a\n\n\n\n\nb") == "a\n\nb"
    assert clean_text("  a \t\t b  ") == "a b"


def test_normalize_whitespace():
    assert normalize_whitespace("a\t b \n  \n\n c ") == "a b\n\nc"


def test_extract_readable_text_drops_scripts():
    html = (
        "<html><head><style>p {color: red}</style><script>var x = 1;</script></head>"
        "<body><p>Hello &amp; welcome</p><p>to the&nbsp;show</p></body></html>"
    )

    assert extract_readable_text(html) == "Hello & welcome to the show"


def test_split_into_chunks_respects_limit():
    text = " ".join(f"Sentence number {i} is here." for i in range(50))

    chunks = split_into_chunks(text, max_chunk_size=120)

    assert all(len(c) <= 120 for c in chunks)
    assert " ".join(chunks).split() == text.split()


def test_split_into_chunks_breaks_long_sentence_at_words():
    text = " ".join(["word"] * 100) + "."

    chunks = split_into_chunks(text, max_chunk_size=50)

    assert len(chunks) > 1
    assert all(len(c) <= 50 for c in chunks)
    assert all(not c.startswith(" ") for c in chunks)


def test_large_text_segments_in_linear_time():
    text = "Word one two three. " * 20000

    started = time.perf_counter()
    sentences = process_text(text)
    elapsed = time.perf_counter() - started

    assert len(sentences) == 20000
    assert elapsed < 5.0


def test_abbreviation_lookup_ignores_longer_words():
    # "Sinc." and "Xetc." only end in an abbreviation
    assert detect_sentences("It was Sinc. Then it rained.") == ["It was Sinc.", "Then it rained."]
    long_word = "A" * 60
    assert detect_sentences(long_word + " Xetc. Next one.") == [long_word + " Xetc.", "Next one."]


def test_two_word_abbreviation_after_long_text():
    text = "x" * 200 + " as shown by Smith et al. Their data agree."

    assert detect_sentences(text) == [text]


def test_lowercase_after_space_keeps_one_sentence():
    assert detect_sentences("I bought apples. bananas were gone.") == [
        "I bought apples. bananas were gone."
    ]