"""
Sequential sentence playback.

Text is segmented once on load; :meth:`SpeechPlayer.play` then hands one
sentence at a time to a :class:`SpeechDriver` and blocks until the driver
reports completion or error, or until another thread calls ``stop()``,
``pause()`` or a seek.  Driver errors never propagate out of ``play()``:
they are captured into ``state.error`` and reported via ``on_error``.

Usage::

    from narration.player import SpeechPlayer, SpeechSettings, PlaybackCallbacks

    player = SpeechPlayer(driver, SpeechSettings(rate=1.2))
    player.subscribe(PlaybackCallbacks(on_sentence_start=highlight))
    player.load_text(chapter_text)
    player.play()            # blocks; call player.stop() from elsewhere
"""

import logging
import threading
from dataclasses import dataclass, field, replace
from typing import Any, Callable, List, Optional

from .driver import SpeechDriver
from .script.models import Sentence, VoiceParams
from .script.prosody_rules import add_smart_pauses
from .script.segmenter import TextSegmenter

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Configuration
# ------------------------------------------------------------------


@dataclass
class SpeechSettings:
    """
    Tuneable parameters for speech playback.

    Attributes:
        voice:            Driver voice id (``None`` for the driver default).
        language:         BCP-47 language tag.
        rate:             Speech rate multiplier.
        pitch:            Pitch multiplier.
        volume:           Output volume in ``[0, 1]``.
        smart_pauses:     Pad punctuation before handing text to the driver.
        ssml_pauses:      Emit SSML ``<break>`` elements instead of spaces.
        pause_multiplier: Global pause duration scaling.
        highlight_color:  Colour reported with sentence highlights.
        sentence_timeout: Seconds to wait for the driver per sentence
                          (``None`` waits forever).
    """

    voice: Optional[str] = None
    language: str = "en-US"
    rate: float = 1.0
    pitch: float = 1.0
    volume: float = 0.8

    smart_pauses: bool = True
    ssml_pauses: bool = False
    pause_multiplier: float = 1.0

    highlight_color: str = "#FFD700"
    sentence_timeout: Optional[float] = None

    @property
    def voice_params(self) -> VoiceParams:
        return VoiceParams(
            voice=self.voice,
            language=self.language,
            rate=self.rate,
            pitch=self.pitch,
            volume=self.volume,
        )


# ------------------------------------------------------------------
# State
# ------------------------------------------------------------------


@dataclass(frozen=True)
class SpeechPosition:
    sentence_index: int = 0
    word_index: int = 0
    character_index: int = 0


@dataclass
class PlaybackState:
    is_playing: bool = False
    is_paused: bool = False
    current_sentence: int = 0
    total_sentences: int = 0
    position: SpeechPosition = field(default_factory=SpeechPosition)
    error: Optional[str] = None
    progress: float = 0.0  # 0-100
    book_id: Any = None


@dataclass(frozen=True)
class SentenceHighlight:
    sentence_id: str
    start_index: int
    end_index: int
    color: str
    is_active: bool


@dataclass
class PlaybackCallbacks:
    """
    Optional listeners; any field left as ``None`` is not called.

    Sentence callbacks receive ``(sentence, index)``; ``on_error``
    receives the error message.
    """

    on_start: Optional[Callable[[], None]] = None
    on_pause: Optional[Callable[[], None]] = None
    on_resume: Optional[Callable[[], None]] = None
    on_stop: Optional[Callable[[], None]] = None
    on_complete: Optional[Callable[[], None]] = None
    on_sentence_start: Optional[Callable[[Sentence, int], None]] = None
    on_sentence_complete: Optional[Callable[[Sentence, int], None]] = None
    on_position_change: Optional[Callable[[SpeechPosition], None]] = None
    on_progress: Optional[Callable[[float], None]] = None
    on_error: Optional[Callable[[str], None]] = None


# Outcomes of waiting on one sentence
_DONE = "done"
_INTERRUPTED = "interrupted"
_RESTART = "restart"


class _Utterance:
    """Bookkeeping for the sentence currently handed to the driver."""

    def __init__(self):
        self.finished = threading.Event()
        self.outcome: Any = None

    def resolve(self, outcome) -> None:
        if self.outcome is None:
            self.outcome = outcome
            self.finished.set()


# ------------------------------------------------------------------
# Player
# ------------------------------------------------------------------


class SpeechPlayer:
    """
    Plays segmented text through a speech driver, one sentence at a time.

    ``stop()`` is idempotent and keeps the sentences: the player rewinds
    to the start of the current sentence so ``play()`` continues from
    there without re-segmenting.
    """

    def __init__(
        self,
        driver: SpeechDriver,
        settings: Optional[SpeechSettings] = None,
        segmenter: Optional[TextSegmenter] = None,
    ):
        self.driver = driver
        self.settings = settings or SpeechSettings()
        self.segmenter = segmenter or TextSegmenter()

        self._sentences: List[Sentence] = []
        self._state = PlaybackState()
        self._subscribers: List[PlaybackCallbacks] = []
        self._utterance: Optional[_Utterance] = None
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_text(self, text: str, book_id: Any = None) -> List[Sentence]:
        """Segment *text* and reset playback to its first sentence."""
        self.stop()
        sentences = self.segmenter.process_text(text)
        with self._lock:
            self._sentences = sentences
            self._state = PlaybackState(total_sentences=len(sentences), book_id=book_id)
        logger.info("Loaded %d sentences for speech", len(sentences))
        return list(sentences)

    # ------------------------------------------------------------------
    # Transport controls
    # ------------------------------------------------------------------

    def play(self) -> None:
        """
        Speak from the current sentence to the end (or until interrupted).

        Raises:
            RuntimeError: If no text has been loaded.
        """
        with self._lock:
            if not self._sentences:
                raise RuntimeError("No text loaded for speech")
            if self._state.is_playing:
                logger.debug("play() ignored: already playing")
                return
            self._state.is_playing = True
            self._state.is_paused = False
            self._state.error = None

        logger.info("Playback started at sentence %d", self._state.current_sentence)
        self._emit("on_start")
        self._run()

    def pause(self) -> None:
        with self._lock:
            if not self._state.is_playing:
                return
            self._state.is_playing = False
            self._state.is_paused = True
            self._interrupt(_INTERRUPTED)
        self.driver.stop()
        self._emit("on_pause")

    def resume(self) -> None:
        with self._lock:
            if not self._state.is_paused:
                return
            self._state.is_paused = False
        self._emit("on_resume")
        self.play()

    def stop(self) -> None:
        """Halt playback and rewind to the start of the current sentence."""
        with self._lock:
            was_active = self._state.is_playing or self._state.is_paused
            self._state.is_playing = False
            self._state.is_paused = False
            self._state.position = self._position_for(self._state.current_sentence)
            self._interrupt(_INTERRUPTED)
        if was_active:
            self.driver.stop()
            self._emit("on_stop")

    def seek_to_sentence(self, index: int) -> None:
        """
        Jump to sentence *index*.  While playing, speech restarts there.

        Raises:
            IndexError: If *index* is out of range.
        """
        with self._lock:
            if not 0 <= index < len(self._sentences):
                raise IndexError(
                    f"Sentence {index} outside [0, {len(self._sentences) - 1}]"
                )
            self._move_to(index)
            playing = self._state.is_playing
            if playing:
                self._interrupt(_RESTART)
            position = self._state.position
        if playing:
            self.driver.stop()
        self._emit("on_position_change", position)

    def next_sentence(self) -> None:
        """Advance one sentence; past the last one playback completes."""
        with self._lock:
            nxt = self._state.current_sentence + 1
            at_end = nxt >= len(self._sentences)
            playing = self._state.is_playing
        if not at_end:
            self.seek_to_sentence(nxt)
            return
        if playing:
            self.driver.stop()
        self._complete()

    def previous_sentence(self) -> None:
        with self._lock:
            if not self._sentences:
                return
            prev = max(0, self._state.current_sentence - 1)
        self.seek_to_sentence(prev)

    def dispose(self) -> None:
        self.stop()
        with self._lock:
            self._subscribers.clear()
            self._sentences = []
            self._state = PlaybackState()

    # ------------------------------------------------------------------
    # Settings / subscriptions
    # ------------------------------------------------------------------

    def update_settings(self, **changes) -> SpeechSettings:
        """
        Replace settings fields.  A voice change while playing restarts
        the current sentence with the new voice.
        """
        with self._lock:
            self.settings = replace(self.settings, **changes)
            restart = "voice" in changes and self._state.is_playing
            if restart:
                self._interrupt(_RESTART)
        if restart:
            self.driver.stop()
        return self.settings

    def subscribe(self, callbacks: PlaybackCallbacks) -> Callable[[], None]:
        """Register listeners. Returns a function that unregisters them."""
        with self._lock:
            self._subscribers.append(callbacks)

        def unsubscribe() -> None:
            with self._lock:
                if callbacks in self._subscribers:
                    self._subscribers.remove(callbacks)

        return unsubscribe

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def state(self) -> PlaybackState:
        """A copy of the current playback state."""
        with self._lock:
            return replace(self._state)

    @property
    def sentences(self) -> List[Sentence]:
        with self._lock:
            return list(self._sentences)

    @property
    def current_sentence(self) -> Optional[Sentence]:
        with self._lock:
            idx = self._state.current_sentence
            return self._sentences[idx] if idx < len(self._sentences) else None

    def highlights(self) -> List[SentenceHighlight]:
        sentence = self.current_sentence
        if sentence is None:
            return []
        return [
            SentenceHighlight(
                sentence_id=sentence.id,
                start_index=sentence.start_index,
                end_index=sentence.end_index,
                color=self.settings.highlight_color,
                is_active=self._state.is_playing,
            )
        ]

    def speech_text(self, sentence: Sentence) -> str:
        """The text actually handed to the driver for *sentence*."""
        if not self.settings.smart_pauses:
            return sentence.text
        return add_smart_pauses(
            sentence.text,
            pause_multiplier=self.settings.pause_multiplier,
            ssml=self.settings.ssml_pauses,
        )

    # ------------------------------------------------------------------
    # Playback loop
    # ------------------------------------------------------------------

    def _run(self) -> None:
        while True:
            with self._lock:
                if not self._state.is_playing:
                    return
                index = self._state.current_sentence
                sentence = self._sentences[index]
                utterance = _Utterance()
                self._utterance = utterance
                voice = self.settings.voice_params

            self._emit("on_sentence_start", sentence, index)
            logger.debug("Speaking %s", sentence.id)

            try:
                self.driver.speak(
                    self.speech_text(sentence),
                    voice,
                    on_done=lambda u=utterance: self._resolve(u, _DONE),
                    on_error=lambda e, u=utterance: self._resolve(u, e),
                )
            except Exception as e:
                self._resolve(utterance, e)

            if not utterance.finished.wait(self.settings.sentence_timeout):
                self.driver.stop()
                self._resolve(
                    utterance,
                    TimeoutError(
                        f"Speech driver did not finish {sentence.id} "
                        f"within {self.settings.sentence_timeout}s"
                    ),
                )

            outcome = utterance.outcome
            with self._lock:
                if self._utterance is utterance:
                    self._utterance = None

            if outcome == _RESTART:
                continue
            if outcome == _INTERRUPTED:
                return
            if outcome != _DONE:
                self._fail(outcome)
                return

            self._emit("on_sentence_complete", sentence, index)
            if not self._advance(index):
                return

    def _advance(self, finished_index: int) -> bool:
        """Move past a finished sentence. Returns False when playback ends."""
        with self._lock:
            if not self._state.is_playing or self._state.current_sentence != finished_index:
                return self._state.is_playing
            at_end = finished_index + 1 >= len(self._sentences)
            if not at_end:
                self._move_to(finished_index + 1)
                position, progress = self._state.position, self._state.progress

        if at_end:
            self._complete()
            return False
        self._emit("on_position_change", position)
        self._emit("on_progress", progress)
        return True

    def _complete(self) -> None:
        with self._lock:
            self._state.is_playing = False
            self._state.is_paused = False
            self._move_to(0)
            self._interrupt(_INTERRUPTED)
        logger.info("Playback complete")
        self._emit("on_complete")

    def _fail(self, error) -> None:
        message = str(error) or type(error).__name__
        with self._lock:
            self._state.is_playing = False
            self._state.error = message
        logger.error("Speech playback error: %s", message)
        self._emit("on_error", message)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve(self, utterance: _Utterance, outcome) -> None:
        with self._lock:
            utterance.resolve(outcome)

    def _interrupt(self, outcome: str) -> None:
        if self._utterance is not None:
            self._utterance.resolve(outcome)

    def _move_to(self, index: int) -> None:
        self._state.current_sentence = index
        self._state.position = self._position_for(index)
        total = len(self._sentences)
        self._state.progress = index / total * 100 if total else 0.0

    def _position_for(self, index: int) -> SpeechPosition:
        if index < len(self._sentences):
            start = self._sentences[index].start_index
        else:
            start = 0
        return SpeechPosition(sentence_index=index, word_index=0, character_index=start)

    def _emit(self, name: str, *args) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callbacks in subscribers:
            fn = getattr(callbacks, name)
            if fn is None:
                continue
            try:
                fn(*args)
            except Exception:
                logger.exception("Playback callback %s failed", name)

    def __repr__(self) -> str:
        s = self._state
        status = "playing" if s.is_playing else "paused" if s.is_paused else "stopped"
        return (
            f"SpeechPlayer({self.driver.driver_name}, {status}, "
            f"sentence {s.current_sentence}/{s.total_sentences})"
        )
