"""
Speech playback for the reading engine.

Sentence segmentation, smart-pause annotation, and sequential playback
of segmented text through a pluggable speech driver.
"""

from .driver import SpeechDriver, Voice
from .player import (
    PlaybackCallbacks,
    PlaybackState,
    SentenceHighlight,
    SpeechPlayer,
    SpeechPosition,
    SpeechSettings,
)
from .script.models import Sentence, VoiceParams, Word
from .script.segmenter import TextSegmenter

__all__ = [
    "SpeechDriver",
    "Voice",
    "SpeechPlayer",
    "SpeechSettings",
    "PlaybackCallbacks",
    "PlaybackState",
    "SpeechPosition",
    "SentenceHighlight",
    "Sentence",
    "Word",
    "VoiceParams",
    "TextSegmenter",
]
