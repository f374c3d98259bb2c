"""
Position value type shared by every format reader.

A Position addresses a location in a book through one or more of four
schemes: page number, percentage through the book, raw word offset, or
an opaque fragment id understood by the rendering collaborator.  An
optional chapter id narrows the location to a chapter.

Positions are immutable.  Readers *replace* their current Position on
navigation; nothing ever mutates one in place.
"""

import json
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from .errors import InvalidPositionError

# Python attribute -> JSON key
_JSON_KEYS = {
    "page": "page",
    "chapter_id": "chapterId",
    "percentage": "percentage",
    "offset": "offset",
    "fragment_id": "fragmentId",
}


@dataclass(frozen=True)
class Position:
    """A location in a book. At least one field must be set."""

    page: Optional[int] = None
    chapter_id: Optional[str] = None
    percentage: Optional[float] = None
    offset: Optional[int] = None
    fragment_id: Optional[str] = None

    def __post_init__(self):
        if all(getattr(self, name) is None for name in _JSON_KEYS):
            raise InvalidPositionError("Position must set at least one field")
        if self.percentage is not None and not 0.0 <= self.percentage <= 100.0:
            raise InvalidPositionError(
                f"Percentage {self.percentage} outside [0, 100]"
            )

    # ------------------------------------------------------------------
    # Convenience constructors
    # ------------------------------------------------------------------

    @classmethod
    def at_page(cls, page: int, total_pages: int = 0) -> "Position":
        """Position for *page*, with the derived percentage when *total_pages* is known."""
        from .algorithms import calculate_percentage

        if total_pages > 0:
            return cls(page=page, percentage=calculate_percentage(page, total_pages))
        return cls(page=page)

    def with_fields(self, **changes) -> "Position":
        """Return a copy with *changes* applied (validation re-runs)."""
        return replace(self, **changes)

    # ------------------------------------------------------------------
    # Serialisation
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Flat dict holding only the fields that are set, camelCase keys."""
        return {
            key: getattr(self, attr)
            for attr, key in _JSON_KEYS.items()
            if getattr(self, attr) is not None
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Position":
        if not isinstance(data, dict):
            raise InvalidPositionError(f"Position data must be an object, got {data!r}")
        unknown = set(data) - set(_JSON_KEYS.values())
        if unknown:
            raise InvalidPositionError(f"Unknown position fields: {sorted(unknown)}")
        kwargs = {attr: data.get(key) for attr, key in _JSON_KEYS.items()}
        if kwargs["percentage"] is not None:
            kwargs["percentage"] = float(kwargs["percentage"])
        return cls(**kwargs)

    @classmethod
    def from_json(cls, raw: str) -> "Position":
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise InvalidPositionError(f"Malformed position JSON: {e}") from e
        return cls.from_dict(data)

    def __repr__(self) -> str:
        fields = ", ".join(f"{k}={v!r}" for k, v in self.to_dict().items())
        return f"Position({fields})"
