"""Font registration for certificate rendering.

Fonts are resolved once at process start into a ``FontSet``. Missing font
files are not fatal: the set records ``available=False`` and every role
falls back to Pillow's bundled scalable font. Without a script face the
composer slants the fallback face itself.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

from PIL import ImageFont

logger = logging.getLogger(__name__)

# Candidate file names per role, first existing file wins.
FONT_CANDIDATES: dict[str, tuple[str, ...]] = {
    "regular": ("Poppins-Regular.ttf", "DejaVuSans.ttf"),
    "semibold": ("Poppins-SemiBold.ttf", "Poppins-Bold.ttf", "DejaVuSans-Bold.ttf"),
    "bold": ("Poppins-Bold.ttf", "DejaVuSans-Bold.ttf"),
    "script": (
        "GreatVibes-Regular.ttf",
        "DancingScript-Bold.ttf",
        "Poppins-BoldItalic.ttf",
        "DejaVuSans-BoldOblique.ttf",
    ),
    "mono": ("JetBrainsMono-Regular.ttf", "DejaVuSansMono.ttf"),
}

# Roles that borrow another role's face when none of their own files exist.
ROLE_FALLBACKS: dict[str, str] = {
    "semibold": "bold",
    "script": "bold",
    "mono": "regular",
}

AnyFont = ImageFont.FreeTypeFont | ImageFont.ImageFont


@dataclass(frozen=True)
class FontSet:
    """Resolved font files by role; ``available`` is False when nothing was found."""

    paths: dict[str, Path] = field(default_factory=dict)

    @property
    def available(self) -> bool:
        return bool(self.paths)

    def has_role(self, role: str) -> bool:
        return role in self.paths

    def get(self, role: str, size: int) -> AnyFont:
        path = self.paths.get(role)
        if path is None and role in ROLE_FALLBACKS:
            path = self.paths.get(ROLE_FALLBACKS[role])
        if path is None:
            path = self.paths.get("regular")
        if path is None:
            return _default_font(size)
        return _truetype(str(path), size)


@lru_cache(maxsize=128)
def _truetype(path: str, size: int) -> AnyFont:
    return ImageFont.truetype(path, size)


@lru_cache(maxsize=64)
def _default_font(size: int) -> AnyFont:
    return ImageFont.load_default(size=size)


def load_fonts(fonts_dir: str | Path | None) -> FontSet:
    """Resolve the certificate fonts found in ``fonts_dir``."""
    if not fonts_dir:
        logger.warning("No certificate fonts directory configured, using default font")
        return FontSet()

    base = Path(fonts_dir)
    paths: dict[str, Path] = {}
    for role, candidates in FONT_CANDIDATES.items():
        for name in candidates:
            candidate = base / name
            if not candidate.is_file():
                continue
            try:
                ImageFont.truetype(str(candidate), 12)
            except OSError:
                logger.warning("Unreadable font file %s", candidate, exc_info=True)
                continue
            paths[role] = candidate
            break

    if not paths:
        logger.warning("No certificate fonts found in %s, using default font", base)
    else:
        logger.info("Loaded certificate fonts: %s", ", ".join(sorted(paths)))
    return FontSet(paths=paths)
