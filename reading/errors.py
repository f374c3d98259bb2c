"""
Error taxonomy for the reading engine.

Callers branch on the exception *type*; messages are meant for logs,
not for display.
"""


class ReaderError(Exception):
    """Base class for every error raised by the reading engine."""


class NotLoadedError(ReaderError):
    """An operation was attempted before ``load()`` completed."""


class DocumentLoadError(ReaderError):
    """The document could not be loaded; the reader stays unloaded."""


class InvalidPositionError(ReaderError, ValueError):
    """
    A navigation target is outside ``[1, total_pages]``, uses an
    addressing scheme the reader does not support, or names a fragment
    the renderer cannot resolve.
    """


class ExtractionError(ReaderError):
    """The rendering collaborator (or page source) reported a failure."""


class RenderTimeoutError(ReaderError):
    """The rendering collaborator did not answer within the time bound."""


class TextExtractionTimeoutError(RenderTimeoutError):
    """A text-extraction request to the renderer timed out."""


class FormatUnsupportedError(ReaderError):
    """No reader exists for the requested book format."""
