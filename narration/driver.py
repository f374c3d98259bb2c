"""
Abstract base class for speech drivers.

A driver wraps whatever actually produces sound (a platform speech API,
a cloud voice, a local TTS model).  The player hands it one sentence at
a time and waits for one of the two callbacks.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, List

from .script.models import VoiceParams


@dataclass(frozen=True)
class Voice:
    id: str
    name: str
    language: str
    quality: str = "normal"
    is_default: bool = False


class SpeechDriver(ABC):
    """
    Common interface for all speech drivers used by the player.

    Subclasses must implement :meth:`speak`, :meth:`stop` and
    ``driver_name``.
    """

    @abstractmethod
    def speak(
        self,
        text: str,
        voice: VoiceParams,
        on_done: Callable[[], None],
        on_error: Callable[[Exception], None],
    ) -> None:
        """
        Start speaking *text*.

        May return before speech finishes.  Exactly one of *on_done* or
        *on_error* must be called later, from any thread, unless
        :meth:`stop` interrupts the utterance first.
        """

    @abstractmethod
    def stop(self) -> None:
        """Interrupt the current utterance. Must be safe to call when idle."""

    @property
    @abstractmethod
    def driver_name(self) -> str:
        """Human-readable driver identifier."""

    def available_voices(self) -> List[Voice]:
        """Voices this driver can use. Defaults to none advertised."""
        return []
