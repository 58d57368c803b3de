"""Certificate image composer using Pillow.

Pure utility: no DB or FastAPI imports.
Renders a 1920x1080 PNG: resolved background, then the text overlay.
"""

from __future__ import annotations

import io
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

import qrcode
from PIL import Image, ImageDraw

from app.certificates.backgrounds import (
    ACCENT,
    BackgroundAttempt,
    LocalTemplateAttempt,
    ProceduralBackgroundAttempt,
    RemoteTemplateAttempt,
    resolve_background,
)
from app.certificates.fonts import AnyFont, FontSet
from app.certificates.text_layout import draw_wrapped_text
from app.config import Settings

CANVAS_WIDTH = 1920
CANVAS_HEIGHT = 1080
CANVAS_SIZE = (CANVAS_WIDTH, CANVAS_HEIGHT)

MAX_SKILLS = 5
SKILL_SEPARATOR = "  •  "
TEXT_MAX_WIDTH = 1400

WHITE = (255, 255, 255)
MUTED = (187, 187, 187)
DARK = (10, 10, 10)

# Baselines (px from top)
BRAND_Y = 165
SUBTITLE_Y = 225
DIVIDER_Y = 255
AWARDED_Y = 330
NAME_Y = 430
FOR_Y = 495
COURSE_Y = 565
COURSE_LINE_HEIGHT = 62
SKILLS_GAP = 44
SKILLS_LINE_HEIGHT = 34
BADGE_CENTER_Y = 810
BADGE_HEIGHT = 64
BADGE_PADDING = 40
FOOTER_Y = 965
FOOTER_LEFT_X = 200
FOOTER_RIGHT_X = 1720
QR_SIZE = 120
OBLIQUE_SHEAR = 0.2


@dataclass(frozen=True)
class RenderPayload:
    """All data needed to render a certificate image."""

    student_name: str
    course_title: str
    category: str | None
    skills: list[str] = field(default_factory=list)
    instructor: str = "Instructor"
    completed_date: datetime | None = None
    certificate_number: str = ""
    grade: str = ""
    final_score: Decimal | float = 0
    total_hours: Decimal | float = 0
    total_lessons: int = 0
    verification_url: str | None = None


def format_long_date(value: datetime) -> str:
    """``October 19, 2026``"""
    return f"{value:%B} {value.day}, {value.year}"


def format_score(score: Decimal | float) -> str:
    return f"{float(score):g}"


def split_skills(
    skills: list[str], max_width: float, measure: Callable[[str], float],
) -> list[str]:
    """Join up to five skills on one line, or break 3 + 2 when the line is too wide."""
    items = [s for s in skills if s][:MAX_SKILLS]
    if not items:
        return []
    joined = SKILL_SEPARATOR.join(items)
    if measure(joined) <= max_width or len(items) <= 3:
        return [joined]
    return [SKILL_SEPARATOR.join(items[:3]), SKILL_SEPARATOR.join(items[3:])]


def oblique_text_layer(
    size: tuple[int, int],
    xy: tuple[float, float],
    text: str,
    font: AnyFont,
    fill: tuple[int, int, int],
    shear: float = OBLIQUE_SHEAR,
) -> Image.Image:
    """Transparent layer with ``text`` anchored at ``xy`` (middle/baseline), slanted right."""
    layer = Image.new("RGBA", size, (0, 0, 0, 0))
    ImageDraw.Draw(layer).text(xy, text, font=font, fill=fill, anchor="ms")
    # Output (x, y) samples input (x + shear * (y - baseline), y)
    return layer.transform(
        size,
        Image.Transform.AFFINE,
        (1, shear, -shear * xy[1], 0, 1, 0),
        resample=Image.Resampling.BICUBIC,
    )


def _qr_image(url: str, size: int) -> Image.Image:
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=6,
        border=2,
    )
    qr.add_data(url)
    qr.make(fit=True)
    buf = io.BytesIO()
    qr.make_image(fill_color="black", back_color="white").save(buf, format="PNG")
    buf.seek(0)
    with Image.open(buf) as img:
        return img.convert("RGBA").resize((size, size), Image.NEAREST)


class ImageComposer:
    """Draws certificates on top of the first background the attempt chain yields."""

    def __init__(
        self,
        fonts: FontSet,
        attempts: list[BackgroundAttempt] | None = None,
        *,
        brand_name: str = "LIZARD ACADEMY",
    ) -> None:
        self.fonts = fonts
        self.attempts = attempts if attempts is not None else [ProceduralBackgroundAttempt()]
        self.brand_name = brand_name

    # -- public ---------------------------------------------------------------

    def compose(self, payload: RenderPayload) -> bytes:
        image = resolve_background(self.attempts, CANVAS_SIZE)
        image = Image.alpha_composite(image, self._watermark_layer())
        draw = ImageDraw.Draw(image)
        cx = CANVAS_WIDTH / 2

        self._draw_title_block(draw, cx)
        self._draw_recipient(image, draw, cx, payload)
        bottom = self._draw_course_block(draw, cx, payload)
        self._draw_grade_badge(draw, cx, bottom, payload)
        self._draw_footer(image, draw, cx, payload)
        if payload.verification_url:
            qr = _qr_image(payload.verification_url, QR_SIZE)
            image.alpha_composite(
                qr, (FOOTER_RIGHT_X - QR_SIZE, FOOTER_Y - 70 - QR_SIZE),
            )

        buf = io.BytesIO()
        image.convert("RGB").save(buf, format="PNG", optimize=True)
        return buf.getvalue()

    # -- layers ---------------------------------------------------------------

    def _watermark_layer(self) -> Image.Image:
        layer = Image.new("RGBA", CANVAS_SIZE, (0, 0, 0, 0))
        glyph = "".join(word[0] for word in self.brand_name.split())[:2] or "*"
        ImageDraw.Draw(layer).text(
            (CANVAS_WIDTH / 2, CANVAS_HEIGHT / 2),
            glyph,
            font=self.fonts.get("bold", 520),
            fill=(255, 255, 255, 10),
            anchor="mm",
        )
        return layer

    def _fit_font(
        self, draw: ImageDraw.ImageDraw, text: str, role: str, size: int, min_size: int,
    ) -> AnyFont:
        font = self.fonts.get(role, size)
        while size > min_size and draw.textlength(text, font=font) > TEXT_MAX_WIDTH:
            size -= 4
            font = self.fonts.get(role, size)
        return font

    def _draw_title_block(self, draw: ImageDraw.ImageDraw, cx: float) -> None:
        draw.text(
            (cx, BRAND_Y), self.brand_name,
            font=self.fonts.get("bold", 72), fill=ACCENT, anchor="ms",
        )
        draw.text(
            (cx, SUBTITLE_Y), "CERTIFICATE OF COMPLETION",
            font=self.fonts.get("regular", 30), fill=WHITE, anchor="ms",
        )
        draw.line([(cx - 260, DIVIDER_Y), (cx + 260, DIVIDER_Y)], fill=ACCENT, width=3)

    def _draw_script(
        self, image: Image.Image, draw: ImageDraw.ImageDraw,
        xy: tuple[float, float], text: str, font: AnyFont,
    ) -> None:
        if self.fonts.has_role("script"):
            draw.text(xy, text, font=font, fill=ACCENT, anchor="ms")
            return
        image.alpha_composite(oblique_text_layer(image.size, xy, text, font, ACCENT))

    def _draw_recipient(
        self, image: Image.Image, draw: ImageDraw.ImageDraw, cx: float, payload: RenderPayload,
    ) -> None:
        draw.text(
            (cx, AWARDED_Y), "Awarded to",
            font=self.fonts.get("regular", 26), fill=MUTED, anchor="ms",
        )
        self._draw_script(
            image, draw, (cx, NAME_Y), payload.student_name,
            self._fit_font(draw, payload.student_name, "script", 96, 48),
        )
        draw.text(
            (cx, FOR_Y), "for successfully completing",
            font=self.fonts.get("regular", 26), fill=MUTED, anchor="ms",
        )

    def _draw_course_block(
        self, draw: ImageDraw.ImageDraw, cx: float, payload: RenderPayload,
    ) -> float:
        """Course title, category and skills; returns the last baseline drawn."""
        title_height = draw_wrapped_text(
            draw, payload.course_title, cx, COURSE_Y, TEXT_MAX_WIDTH,
            COURSE_LINE_HEIGHT, self.fonts.get("bold", 52), WHITE,
        )
        y = COURSE_Y + title_height
        bottom = COURSE_Y + max(title_height - COURSE_LINE_HEIGHT, 0)

        if payload.category:
            draw.text(
                (cx, y), payload.category.upper(),
                font=self.fonts.get("semibold", 26), fill=ACCENT, anchor="ms",
            )
            bottom = y
            y += SKILLS_GAP

        skills_font = self.fonts.get("regular", 24)
        lines = split_skills(
            payload.skills, TEXT_MAX_WIDTH,
            lambda s: draw.textlength(s, font=skills_font),
        )
        for index, line in enumerate(lines):
            line_y = y + index * SKILLS_LINE_HEIGHT
            draw.text((cx, line_y), line, font=skills_font, fill=(204, 204, 204), anchor="ms")
            bottom = line_y
        return bottom

    def _draw_grade_badge(
        self, draw: ImageDraw.ImageDraw, cx: float, above: float, payload: RenderPayload,
    ) -> None:
        label = f"{payload.grade} - {format_score(payload.final_score)}%"
        font = self.fonts.get("bold", 32)
        width = draw.textlength(label, font=font) + 2 * BADGE_PADDING
        center_y = max(BADGE_CENTER_Y, above + 20 + BADGE_HEIGHT / 2)
        draw.rectangle(
            [cx - width / 2, center_y - BADGE_HEIGHT / 2,
             cx + width / 2, center_y + BADGE_HEIGHT / 2],
            fill=ACCENT,
        )
        draw.text((cx, center_y), label, font=font, fill=DARK, anchor="mm")

    def _draw_footer(
        self, image: Image.Image, draw: ImageDraw.ImageDraw, cx: float, payload: RenderPayload,
    ) -> None:
        label_font = self.fonts.get("regular", 22)

        # Left: completion date
        draw.text(
            (FOOTER_LEFT_X, FOOTER_Y - 40), "Completed",
            font=label_font, fill=MUTED, anchor="ls",
        )
        if payload.completed_date is not None:
            draw.text(
                (FOOTER_LEFT_X, FOOTER_Y), format_long_date(payload.completed_date),
                font=self.fonts.get("bold", 30), fill=WHITE, anchor="ls",
            )

        # Centre: instructor signature
        self._draw_script(
            image, draw, (cx, FOOTER_Y - 10), payload.instructor, self.fonts.get("script", 44),
        )
        draw.line([(cx - 200, FOOTER_Y + 8), (cx + 200, FOOTER_Y + 8)], fill=MUTED, width=2)
        draw.text((cx, FOOTER_Y + 40), "Instructor", font=label_font, fill=MUTED, anchor="ms")

        # Right: certificate number
        draw.text(
            (FOOTER_RIGHT_X, FOOTER_Y - 40), "Certificate No.",
            font=label_font, fill=MUTED, anchor="rs",
        )
        draw.text(
            (FOOTER_RIGHT_X, FOOTER_Y), payload.certificate_number,
            font=self.fonts.get("mono", 28), fill=WHITE, anchor="rs",
        )


def build_background_attempts(settings: Settings) -> list[BackgroundAttempt]:
    return [
        LocalTemplateAttempt(settings.certificate_template_path),
        RemoteTemplateAttempt(
            settings.certificate_template_url, timeout=settings.http_timeout_secs,
        ),
        ProceduralBackgroundAttempt(),
    ]
