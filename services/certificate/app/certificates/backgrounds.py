"""Certificate background resolution.

Backgrounds come from an ordered list of attempts; the first one that
produces an image wins. Template attempts may fail (missing file, CDN
unreachable, corrupt image) and the chain moves on. The procedural
background always succeeds.
"""

from __future__ import annotations

import io
import logging
import math
from pathlib import Path
from typing import Protocol

import httpx
from PIL import Image, ImageDraw, ImageOps, UnidentifiedImageError

logger = logging.getLogger(__name__)

Size = tuple[int, int]
RGB = tuple[int, int, int]

# Palette shared with the text overlay
ACCENT: RGB = (0, 255, 135)
GRADIENT_STOPS: tuple[RGB, RGB, RGB] = ((10, 10, 10), (26, 26, 26), (10, 10, 10))

GRID_CELL = 60
GRID_ALPHA = 14
# (x, y, radius) as fractions of the canvas width/height
GLOWS: tuple[tuple[float, float, float], ...] = ((0.18, 0.22, 0.32), (0.82, 0.78, 0.32))
GLOW_ALPHA = 48
OUTER_BORDER_INSET = 30
OUTER_BORDER_WIDTH = 12
INNER_BORDER_INSET = 56
INNER_BORDER_WIDTH = 3
ORNAMENT_INSET = 90
ORNAMENT_TICK = 70


class BackgroundAttempt(Protocol):
    name: str

    def load(self, size: Size) -> Image.Image | None: ...


def _fit(image: Image.Image, size: Size) -> Image.Image:
    """Full-bleed: stretch the template to the canvas."""
    image = image.convert("RGBA")
    if image.size != size:
        image = image.resize(size, Image.LANCZOS)
    return image


class LocalTemplateAttempt:
    name = "local-template"

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self, size: Size) -> Image.Image | None:
        if not self.path.is_file():
            return None
        try:
            with Image.open(self.path) as image:
                return _fit(image, size)
        except (OSError, UnidentifiedImageError):
            logger.warning("Local certificate template unreadable: %s", self.path, exc_info=True)
            return None


class RemoteTemplateAttempt:
    name = "remote-template"

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._transport = transport

    def load(self, size: Size) -> Image.Image | None:
        if not self.url:
            return None
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.get(self.url)
                response.raise_for_status()
            with Image.open(io.BytesIO(response.content)) as image:
                return _fit(image, size)
        except httpx.HTTPError as exc:
            logger.warning("Remote certificate template fetch failed (%s): %s", self.url, exc)
            return None
        except (OSError, UnidentifiedImageError):
            logger.warning("Remote certificate template is not an image: %s", self.url)
            return None


class ProceduralBackgroundAttempt:
    name = "procedural"

    def load(self, size: Size) -> Image.Image:
        return render_procedural_background(size)


def resolve_background(attempts: list[BackgroundAttempt], size: Size) -> Image.Image:
    for attempt in attempts:
        image = attempt.load(size)
        if image is not None:
            logger.debug("Certificate background from %s", attempt.name)
            return image
    # Chains normally end with the procedural attempt; guard against ones that don't.
    return render_procedural_background(size)


# ---------------------------------------------------------------------------
# Procedural background
# ---------------------------------------------------------------------------


def _diagonal_gradient(size: Size, stops: tuple[RGB, RGB, RGB]) -> Image.Image:
    """Three-stop gradient from the top-left to the bottom-right corner."""
    width, height = size
    # linear_gradient runs black (top) to white (bottom); rotated it runs left to right
    horizontal = Image.linear_gradient("L").rotate(90).resize(size)
    vertical = Image.linear_gradient("L").resize(size)
    # Projection onto the (width, height) diagonal, normalised to 0..255
    weight = height * height / (width * width + height * height)
    ramp = Image.blend(horizontal, vertical, weight)
    start, middle, end = stops
    return ImageOps.colorize(ramp, black=start, white=end, mid=middle).convert("RGBA")


def _grid_layer(size: Size) -> Image.Image:
    layer = Image.new("RGBA", size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(layer)
    width, height = size
    color = (*ACCENT, GRID_ALPHA)
    for x in range(0, width, GRID_CELL):
        draw.line([(x, 0), (x, height)], fill=color, width=1)
    for y in range(0, height, GRID_CELL):
        draw.line([(0, y), (width, y)], fill=color, width=1)
    return layer


def _glow_layer(size: Size) -> Image.Image:
    layer = Image.new("RGBA", size, (0, 0, 0, 0))
    width, height = size
    for fx, fy, fr in GLOWS:
        radius = int(fr * width)
        # radial_gradient is dark at the centre; invert so the glow fades outwards
        mask = ImageOps.invert(Image.radial_gradient("L")).resize((2 * radius, 2 * radius))
        mask = mask.point(lambda v: v * GLOW_ALPHA // 255)
        glow = Image.new("RGBA", mask.size, (*ACCENT, 0))
        glow.putalpha(mask)
        layer.paste(glow, (int(fx * width) - radius, int(fy * height) - radius), glow)
    return layer


def _rotate(dx: float, dy: float, degrees: float) -> tuple[float, float]:
    rad = math.radians(degrees)
    return (
        dx * math.cos(rad) - dy * math.sin(rad),
        dx * math.sin(rad) + dy * math.cos(rad),
    )


def _draw_corner_ornament(
    draw: ImageDraw.ImageDraw, cx: float, cy: float, degrees: float,
) -> None:
    """Dot, ring and two ticks running along the adjacent borders.

    Drawn for the top-left corner at 0°; the other corners rotate it.
    """
    draw.ellipse([cx - 6, cy - 6, cx + 6, cy + 6], fill=(*ACCENT, 255))
    draw.ellipse([cx - 18, cy - 18, cx + 18, cy + 18], outline=(*ACCENT, 200), width=2)
    for ux, uy in ((1, 0), (0, 1)):
        dx, dy = _rotate(ux, uy, degrees)
        start = (cx + dx * 28, cy + dy * 28)
        end = (cx + dx * (28 + ORNAMENT_TICK), cy + dy * (28 + ORNAMENT_TICK))
        draw.line([start, end], fill=(*ACCENT, 220), width=3)


def _frame_layer(size: Size) -> Image.Image:
    layer = Image.new("RGBA", size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(layer)
    width, height = size
    draw.rectangle(
        [OUTER_BORDER_INSET, OUTER_BORDER_INSET,
         width - OUTER_BORDER_INSET, height - OUTER_BORDER_INSET],
        outline=(*ACCENT, 255), width=OUTER_BORDER_WIDTH,
    )
    draw.rectangle(
        [INNER_BORDER_INSET, INNER_BORDER_INSET,
         width - INNER_BORDER_INSET, height - INNER_BORDER_INSET],
        outline=(*ACCENT, 160), width=INNER_BORDER_WIDTH,
    )
    corners = (
        (ORNAMENT_INSET, ORNAMENT_INSET, 0),
        (width - ORNAMENT_INSET, ORNAMENT_INSET, 90),
        (width - ORNAMENT_INSET, height - ORNAMENT_INSET, 180),
        (ORNAMENT_INSET, height - ORNAMENT_INSET, 270),
    )
    for cx, cy, degrees in corners:
        _draw_corner_ornament(draw, cx, cy, degrees)
    return layer


def render_procedural_background(size: Size) -> Image.Image:
    image = _diagonal_gradient(size, GRADIENT_STOPS)
    for layer in (_grid_layer(size), _glow_layer(size), _frame_layer(size)):
        image = Image.alpha_composite(image, layer)
    return image
