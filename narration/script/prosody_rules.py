"""
Smart-pause rules: punctuation → pause duration, and the annotation pass
that turns a sentence into the text actually handed to a speech driver.

All values are tuneable defaults.  ``pause_multiplier`` scales every
duration on top of the table.
"""

import re
from typing import Dict
from xml.sax.saxutils import escape

# -----------------------------------------------------------------
# Default pause table (milliseconds)
# -----------------------------------------------------------------

PUNCTUATION_PAUSES: Dict[str, int] = {
    ".": 500,
    "!": 500,
    "?": 500,
    "...": 600,
    "…": 600,
    ";": 300,
    ":": 300,
    ",": 200,
    "\n": 400,  # line break
    "\n\n": 800,  # paragraph break
    "—": 300,  # em dash
    "–": 200,  # en dash
}

QUOTE_PAUSE: int = 200
QUOTE_MARKS = "\"“”"

# Spaces are a crude pause; drivers tend to collapse long runs anyway
MAX_PAUSE_SPACES = 5

# Longest alternatives first so "\n\n" and "..." win over "\n" and "."
_RE_PAUSE_POINT = re.compile(r"\n\n|\n|\.\.\.|…|[.!?;:,]|[—–]|[\"“”]")

_LINE_BREAKS = ("\n", "\n\n")
_FLANKED = "—–" + QUOTE_MARKS


def get_pause_ms(mark: str, pause_multiplier: float = 1.0) -> int:
    """Pause after *mark* in milliseconds, scaled by *pause_multiplier*."""
    base = QUOTE_PAUSE if mark in QUOTE_MARKS else PUNCTUATION_PAUSES.get(mark, 0)
    return int(round(base * pause_multiplier))


def pause_padding(duration_ms: int, ssml: bool = False) -> str:
    """
    Padding standing in for a pause of *duration_ms*.

    Plain mode uses ``duration_ms // 100`` spaces (capped); SSML mode
    emits a ``<break>`` element.
    """
    if ssml:
        return f'<break time="{duration_ms}ms"/>'
    return " " * min(duration_ms // 100, MAX_PAUSE_SPACES)


def add_smart_pauses(text: str, pause_multiplier: float = 1.0, ssml: bool = False) -> str:
    """
    Annotate *text* with pauses keyed to its punctuation, in one pass.

    Punctuation keeps its character and is followed by padding, line
    breaks are replaced by padding, and dashes and quotation marks are
    padded on both sides.  With ``ssml=True`` the rest of the text is
    XML-escaped so the result can be wrapped in ``<speak>`` by the driver.
    """
    if not text:
        return ""

    out = []
    last = 0
    for m in _RE_PAUSE_POINT.finditer(text):
        gap = text[last : m.start()]
        out.append(escape(gap) if ssml else gap)

        mark = m.group(0)
        pad = pause_padding(get_pause_ms(mark, pause_multiplier), ssml)
        shown = escape(mark) if ssml else mark
        if mark in _LINE_BREAKS:
            out.append(pad)
        elif mark in _FLANKED:
            out.append(f"{pad}{shown}{pad}")
        else:
            out.append(f"{shown}{pad}")
        last = m.end()

    tail = text[last:]
    out.append(escape(tail) if ssml else tail)
    return "".join(out)
