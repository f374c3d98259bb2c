"""
Rendering collaborator interface for reflowable documents.

The engine holds no layout knowledge for reflowable formats.  Turning a
percentage into a fragment id (and back), laying out a fragment, and
extracting the text of a fragment range are all delegated to an external
renderer.  Those calls can be slow, so :class:`RenderingGateway` bounds
every one of them with a timeout and replaces (never queues) a pending
identical request.  Each call gets its own daemon thread, so a renderer
call that never returns cannot hold up later ones.
"""

import logging
import threading
from concurrent.futures import CancelledError, Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Callable, Dict, Hashable, Optional, Protocol, Tuple, Type

from .errors import (
    ExtractionError,
    InvalidPositionError,
    RenderTimeoutError,
    TextExtractionTimeoutError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FragmentRange:
    start: str
    end: str


@dataclass(frozen=True)
class RenderedLocation:
    """Where the renderer ended up after displaying a fragment."""

    fragment_id: str
    page: int
    total_pages: int
    percentage: float
    href: Optional[str] = None


class RenderingCollaborator(Protocol):
    """
    What a reflowable-document renderer must provide.

    ``display`` returns ``None`` when the fragment id cannot be resolved.
    Any method may block; the gateway bounds the wait.
    """

    def resolve_percentage_to_fragment(self, percentage: float) -> str: ...

    def resolve_fragment_to_percentage(self, fragment_id: str) -> float: ...

    def extract_text(self, fragment_range: FragmentRange) -> str: ...

    def display(self, fragment_id: str) -> Optional[RenderedLocation]: ...


class RenderingGateway:
    """
    Time-bounded, last-write-wins access to a :class:`RenderingCollaborator`.

    Each call runs on its own daemon thread and the caller waits at most
    ``timeout`` seconds.  If an identical request is still pending (for
    example because the previous one timed out) it is cancelled and its
    result discarded.

    Usage::

        gateway = RenderingGateway(renderer, timeout=5.0)
        fragment = gateway.resolve_percentage_to_fragment(42.0)
        text = gateway.extract_text(FragmentRange(start, end))
    """

    def __init__(
        self,
        renderer: RenderingCollaborator,
        timeout: float = 5.0,
    ):
        self.renderer = renderer
        self.timeout = timeout
        self._closed = False
        self._calls = 0
        self._pending: Dict[Hashable, Future] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Collaborator calls
    # ------------------------------------------------------------------

    def resolve_percentage_to_fragment(self, percentage: float) -> str:
        percentage = min(100.0, max(0.0, float(percentage)))
        try:
            fragment_id = self._call(
                ("pct->fragment", percentage),
                RenderTimeoutError,
                self.renderer.resolve_percentage_to_fragment,
                percentage,
            )
        except RenderTimeoutError:
            raise
        except Exception as e:
            raise InvalidPositionError(
                f"Renderer could not resolve {percentage:.2f}%: {e}"
            ) from e
        if not fragment_id:
            raise InvalidPositionError(f"No fragment at {percentage:.2f}%")
        return fragment_id

    def resolve_fragment_to_percentage(self, fragment_id: str) -> float:
        try:
            percentage = self._call(
                ("fragment->pct", fragment_id),
                RenderTimeoutError,
                self.renderer.resolve_fragment_to_percentage,
                fragment_id,
            )
        except RenderTimeoutError:
            raise
        except Exception as e:
            raise InvalidPositionError(
                f"Renderer could not resolve fragment '{fragment_id}': {e}"
            ) from e
        if percentage is None:
            raise InvalidPositionError(f"Unresolvable fragment '{fragment_id}'")
        return min(100.0, max(0.0, float(percentage)))

    def display(self, fragment_id: str) -> RenderedLocation:
        try:
            location = self._call(
                ("display", fragment_id),
                RenderTimeoutError,
                self.renderer.display,
                fragment_id,
            )
        except RenderTimeoutError:
            raise
        except Exception as e:
            raise InvalidPositionError(
                f"Renderer failed to display '{fragment_id}': {e}"
            ) from e
        if location is None:
            raise InvalidPositionError(f"Unresolvable fragment '{fragment_id}'")
        return location

    def extract_text(self, fragment_range: FragmentRange) -> str:
        try:
            text = self._call(
                ("extract", fragment_range),
                TextExtractionTimeoutError,
                self.renderer.extract_text,
                fragment_range,
            )
        except RenderTimeoutError:
            raise
        except Exception as e:
            raise ExtractionError(
                f"Renderer failed to extract {fragment_range}: {e}"
            ) from e
        return text or ""

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _call(
        self,
        key: Tuple,
        timeout_error: Type[RenderTimeoutError],
        fn: Callable,
        *args,
    ):
        with self._lock:
            if self._closed:
                raise RuntimeError("RenderingGateway is closed")
            previous = self._pending.get(key)
            if previous is not None and not previous.done():
                # a running call can't be interrupted; its result is dropped
                previous.cancel()
                logger.debug("Replacing pending renderer request %s", key)
            future: Future = Future()
            self._pending[key] = future
            self._calls += 1
            thread = threading.Thread(
                target=self._run,
                args=(future, fn, args),
                name=f"renderer-{self._calls}",
                daemon=True,
            )
        thread.start()

        try:
            return future.result(timeout=self.timeout)
        except FutureTimeoutError:
            logger.warning(
                "Renderer request %s timed out after %.1fs", key, self.timeout
            )
            raise timeout_error(
                f"Renderer did not answer {key[0]} within {self.timeout:.1f}s"
            ) from None
        except CancelledError:
            raise timeout_error(
                f"Renderer request {key[0]} superseded by a newer one"
            ) from None
        finally:
            with self._lock:
                if future.done() and self._pending.get(key) is future:
                    del self._pending[key]

    @staticmethod
    def _run(future: Future, fn: Callable, args: Tuple) -> None:
        """Background thread: run one renderer call into *future*."""
        if not future.set_running_or_notify_cancel():
            return
        try:
            result = fn(*args)
        except Exception as e:
            future.set_exception(e)
        else:
            future.set_result(result)

    @property
    def pending_requests(self) -> int:
        with self._lock:
            return sum(1 for f in self._pending.values() if not f.done())

    def close(self) -> None:
        """Stop accepting requests; running calls are abandoned."""
        with self._lock:
            self._closed = True
            for future in self._pending.values():
                future.cancel()
            self._pending.clear()

    def __repr__(self) -> str:
        return f"RenderingGateway(timeout={self.timeout}s)"
