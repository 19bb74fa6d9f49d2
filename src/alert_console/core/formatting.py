"""Display formatting for backend timestamps."""

from __future__ import annotations

from typing import Optional

from dateutil import parser as date_parser

DISPLAY_FORMAT = "%d %b %Y, %H:%M"


def format_timestamp(value: Optional[str]) -> str:
    """
    Render a backend timestamp as e.g. "19 Oct 2026, 14:05".

    Missing values render as "N/A"; anything that does not parse is
    returned unchanged.
    """
    if not value:
        return "N/A"
    try:
        parsed = date_parser.isoparse(value.strip().replace(" ", "T", 1))
    except (ValueError, OverflowError):
        try:
            parsed = date_parser.parse(value)
        except (ValueError, OverflowError):
            return value
    return parsed.strftime(DISPLAY_FORMAT)
