"""
Layout Reconstruction
=====================
PDF text extraction yields positioned fragments with no line structure.
Fragments are grouped into lines by vertical position: a jump larger than
the tolerance starts a new line, everything else is concatenated as-is
(fragments on one visual line already carry their own spacing).
"""

import math
from dataclasses import dataclass
from typing import Iterable, Sequence

LINE_TOLERANCE = 3


@dataclass(frozen=True)
class PositionedFragment:
    """One span of recovered text and its vertical placement on the page."""
    text: str
    y: float


def round_position(y: float) -> int:
    """Round half up, so 100.5 and 101.4 both land on 101."""
    return int(math.floor(y + 0.5))


def reconstruct_page(fragments: Iterable[PositionedFragment], tolerance: float = LINE_TOLERANCE) -> str:
    """Rebuild one page's lines. No trailing line break is added."""
    parts = []
    last_y = None
    for fragment in fragments:
        if not fragment.text:
            continue
        y = round_position(fragment.y)
        if last_y is not None and abs(y - last_y) > tolerance:
            parts.append("\n")
        parts.append(fragment.text)
        last_y = y
    return "".join(parts)


def reconstruct_text(pages: Iterable[Sequence[PositionedFragment]], tolerance: float = LINE_TOLERANCE) -> str:
    """
    Flatten a whole document into logical text.

    Pages are processed in order and each one is terminated with a line
    break; vertical continuity never carries over between pages.
    """
    return "".join(reconstruct_page(page, tolerance) + "\n" for page in pages)
