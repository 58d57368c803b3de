from PIL import Image, ImageDraw

from app.certificates.fonts import FontSet
from app.certificates.image_composer import SKILL_SEPARATOR, split_skills
from app.certificates.text_layout import draw_wrapped_text, wrap_lines


def _chars(text: str) -> float:
    return float(len(text))


def test_wrap_keeps_short_text_on_one_line() -> None:
    assert wrap_lines("Intro to Solidity", 100, _chars) == ["Intro to Solidity"]


def test_wrap_breaks_when_next_word_overflows() -> None:
    assert wrap_lines("aaa bbb ccc", 7, _chars) == ["aaa bbb", "ccc"]


def test_wrap_lines_never_exceed_width_unless_single_word() -> None:
    text = "Advanced Decentralized Finance Protocol Engineering and Security Auditing"
    lines = wrap_lines(text, 20, _chars)
    assert " ".join(lines) == text
    for line in lines:
        assert len(line) <= 20 or " " not in line


def test_wrap_keeps_overlong_word_whole() -> None:
    assert wrap_lines("supercalifragilistic x", 5, _chars) == ["supercalifragilistic", "x"]


def test_wrap_collapses_whitespace_and_handles_empty() -> None:
    assert wrap_lines("  a   b  ", 10, _chars) == ["a b"]
    assert wrap_lines("", 10, _chars) == []


def test_draw_wrapped_text_returns_height_used() -> None:
    image = Image.new("RGB", (400, 200))
    draw = ImageDraw.Draw(image)
    font = FontSet().get("regular", 20)

    one = draw_wrapped_text(draw, "Short", 200, 50, 380, 30, font, "white")
    assert one == 30

    words = " ".join(["certificate"] * 12)
    height = draw_wrapped_text(draw, words, 200, 50, 150, 30, font, "white")
    expected_lines = wrap_lines(words, 150, lambda s: draw.textlength(s, font=font))
    assert len(expected_lines) > 1
    assert height == len(expected_lines) * 30


def test_split_skills_single_line_when_it_fits() -> None:
    assert split_skills(["Solidity", "EVM"], 100, _chars) == [f"Solidity{SKILL_SEPARATOR}EVM"]


def test_split_skills_breaks_three_then_two() -> None:
    skills = ["one", "two", "three", "four", "five", "six"]
    lines = split_skills(skills, 10, _chars)
    assert lines == [
        SKILL_SEPARATOR.join(["one", "two", "three"]),
        SKILL_SEPARATOR.join(["four", "five"]),
    ]


def test_split_skills_ignores_blank_entries() -> None:
    assert split_skills(["", "EVM", ""], 100, _chars) == ["EVM"]
    assert split_skills([], 100, _chars) == []
