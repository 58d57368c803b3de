"""Greedy word-wrap and centered multi-line text rendering.

``wrap_lines`` is independent of Pillow so it can be exercised with any
width function; ``draw_wrapped_text`` is the Pillow-backed primitive used by
the image composer.
"""

from __future__ import annotations

from collections.abc import Callable

from PIL import ImageDraw, ImageFont

Measure = Callable[[str], float]
Fill = str | tuple[int, ...]


def wrap_lines(text: str, max_width: float, measure: Measure) -> list[str]:
    """Split ``text`` into lines no wider than ``max_width``.

    Words are appended while the prospective line still fits. A word that
    would overflow starts a new line, unless the current line is empty, in
    which case it stays (a single word wider than ``max_width`` is kept whole).
    """
    lines: list[str] = []
    current: list[str] = []
    for word in text.split():
        prospective = " ".join([*current, word])
        if measure(prospective) > max_width and current:
            lines.append(" ".join(current))
            current = [word]
        else:
            current.append(word)
    if current:
        lines.append(" ".join(current))
    return lines


def draw_wrapped_text(
    draw: ImageDraw.ImageDraw,
    text: str,
    x: float,
    y: float,
    max_width: float,
    line_height: float,
    font: ImageFont.FreeTypeFont | ImageFont.ImageFont,
    fill: Fill,
) -> float:
    """Draw ``text`` wrapped and centered on ``x``; return the vertical space used.

    Line ``i`` sits on the baseline ``y + i * line_height``.
    """
    lines = wrap_lines(text, max_width, lambda s: draw.textlength(s, font=font))
    for index, line in enumerate(lines):
        draw.text((x, y + index * line_height), line, font=font, fill=fill, anchor="ms")
    return len(lines) * line_height
