import io
from datetime import datetime, timezone
from decimal import Decimal

import httpx
from PIL import Image, ImageDraw

from app.certificates.backgrounds import (
    LocalTemplateAttempt,
    ProceduralBackgroundAttempt,
    RemoteTemplateAttempt,
    render_procedural_background,
    resolve_background,
)
from app.certificates.fonts import FontSet, load_fonts
from app.certificates.image_composer import (
    CANVAS_SIZE,
    ImageComposer,
    RenderPayload,
    build_background_attempts,
    format_long_date,
    format_score,
    oblique_text_layer,
)

SMALL = (480, 270)


def _png(size=(64, 32), color=(200, 0, 0)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


class _Recording:
    def __init__(self, name: str, result=None) -> None:
        self.name = name
        self.result = result
        self.calls = 0

    def load(self, size):
        self.calls += 1
        return self.result


def _payload(**overrides) -> RenderPayload:
    values = {
        "student_name": "Ada Lovelace",
        "course_title": "Intro to Solidity",
        "category": "Blockchain",
        "skills": ["Solidity", "Smart Contracts", "EVM"],
        "instructor": "Gavin Wood",
        "completed_date": datetime(2026, 10, 19, tzinfo=timezone.utc),
        "certificate_number": "LA-2026-0A1B2C",
        "grade": "Excellent",
        "final_score": Decimal("92"),
        "total_hours": Decimal("1.5"),
        "total_lessons": 12,
        "verification_url": "https://academy.test/verify/LA-2026-0A1B2C",
    }
    values.update(overrides)
    return RenderPayload(**values)


def test_compose_renders_full_hd_png(composer) -> None:
    png = composer.compose(_payload())
    assert png.startswith(b"\x89PNG")
    with Image.open(io.BytesIO(png)) as image:
        assert image.size == (1920, 1080)
        assert image.mode == "RGB"


def test_compose_handles_long_title_many_skills_and_no_fonts(tmp_path) -> None:
    template = tmp_path / "certificate-template.png"
    template.write_bytes(_png())
    composer = ImageComposer(FontSet(), [LocalTemplateAttempt(template)])
    payload = _payload(
        student_name="Maximiliana Theodora Wilhelmina von Lichtenstein-Habsburg",
        course_title=" ".join(["Decentralized Finance Protocol Engineering"] * 4),
        skills=["DeFi", "Lending", "AMMs", "Oracles", "Governance", "Auditing"],
        category=None,
        verification_url=None,
    )
    with Image.open(io.BytesIO(composer.compose(payload))) as image:
        assert image.size == CANVAS_SIZE


def test_local_template_missing_or_corrupt_returns_none(tmp_path) -> None:
    assert LocalTemplateAttempt(tmp_path / "missing.png").load(SMALL) is None
    broken = tmp_path / "broken.png"
    broken.write_bytes(b"not an image")
    assert LocalTemplateAttempt(broken).load(SMALL) is None


def test_local_template_is_stretched_to_canvas(tmp_path) -> None:
    template = tmp_path / "template.png"
    template.write_bytes(_png())
    image = LocalTemplateAttempt(template).load(SMALL)
    assert image is not None
    assert image.size == SMALL
    assert image.mode == "RGBA"


def test_remote_template_fetched_over_http() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(200, content=_png()))
    attempt = RemoteTemplateAttempt("https://assets.test/certificate-template.png", transport=transport)
    image = attempt.load(SMALL)
    assert image is not None
    assert image.size == SMALL


def test_remote_template_failures_return_none() -> None:
    not_found = httpx.MockTransport(lambda request: httpx.Response(404))
    garbage = httpx.MockTransport(lambda request: httpx.Response(200, content=b"<html>"))
    url = "https://assets.test/certificate-template.png"
    assert RemoteTemplateAttempt(url, transport=not_found).load(SMALL) is None
    assert RemoteTemplateAttempt(url, transport=garbage).load(SMALL) is None
    assert RemoteTemplateAttempt("").load(SMALL) is None


def test_resolve_background_stops_at_first_success() -> None:
    first = _Recording("first")
    second = _Recording("second", Image.new("RGBA", SMALL))
    third = _Recording("third", Image.new("RGBA", SMALL))
    image = resolve_background([first, second, third], SMALL)
    assert image is second.result
    assert (first.calls, second.calls, third.calls) == (1, 1, 0)


def test_resolve_background_falls_back_to_procedural() -> None:
    image = resolve_background([_Recording("local"), _Recording("remote")], SMALL)
    assert image.size == SMALL


def test_procedural_background_is_never_blank() -> None:
    image = ProceduralBackgroundAttempt().load(SMALL)
    assert image.size == SMALL
    colors = image.getcolors(maxcolors=SMALL[0] * SMALL[1])
    assert colors is not None and len(colors) > 1
    assert render_procedural_background(SMALL).mode == "RGBA"


def test_background_chain_order_from_settings(settings) -> None:
    attempts = build_background_attempts(settings)
    assert [a.name for a in attempts] == ["local-template", "remote-template", "procedural"]


def test_load_fonts_without_files_uses_default(tmp_path) -> None:
    fonts = load_fonts(tmp_path)
    assert not fonts.available
    assert not fonts.has_role("script")
    assert fonts.get("script", 40) is not None
    assert not load_fonts("").available


def test_formatting_helpers() -> None:
    assert format_long_date(datetime(2026, 10, 19)) == "October 19, 2026"
    assert format_long_date(datetime(2026, 3, 1)) == "March 1, 2026"
    assert format_score(Decimal("92.00")) == "92"
    assert format_score(87.5) == "87.5"


def _alpha_bbox(image: Image.Image):
    return image.getchannel("A").getbbox()


def test_oblique_layer_leans_right() -> None:
    font = FontSet().get("script", 80)
    upright = Image.new("RGBA", (400, 200), (0, 0, 0, 0))
    ImageDraw.Draw(upright).text((200, 150), "IIII", font=font, fill=(255, 255, 255), anchor="ms")
    slanted = oblique_text_layer((400, 200), (200, 150), "IIII", font, (255, 255, 255))

    upright_box = _alpha_bbox(upright)
    slanted_box = _alpha_bbox(slanted)
    assert slanted_box[2] > upright_box[2]
    assert abs(slanted_box[3] - upright_box[3]) <= 2


def test_script_text_is_slanted_without_script_face() -> None:
    fonts = FontSet()
    assert not fonts.has_role("script")
    font = fonts.get("script", 80)

    canvas = Image.new("RGBA", (400, 200), (0, 0, 0, 0))
    ImageComposer(fonts)._draw_script(canvas, ImageDraw.Draw(canvas), (200, 150), "IIII", font)

    expected = oblique_text_layer((400, 200), (200, 150), "IIII", font, (0, 255, 135))
    assert _alpha_bbox(canvas) == _alpha_bbox(expected)
