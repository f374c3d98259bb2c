"""Sentence segmentation and smart-pause annotation for speech playback."""

from .models import Sentence, VoiceParams, Word
from .prosody_rules import PUNCTUATION_PAUSES, add_smart_pauses, get_pause_ms, pause_padding
from .segmenter import (
    COMMON_ABBREVIATIONS,
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

__all__ = [
    "Sentence",
    "Word",
    "VoiceParams",
    "PUNCTUATION_PAUSES",
    "add_smart_pauses",
    "get_pause_ms",
    "pause_padding",
    "COMMON_ABBREVIATIONS",
    "TextSegmenter",
    "clean_text",
    "detect_sentences",
    "estimate_duration_ms",
    "extract_readable_text",
    "normalize_whitespace",
    "process_text",
    "process_words",
    "split_into_chunks",
]
