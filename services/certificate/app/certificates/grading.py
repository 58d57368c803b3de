"""Score → grade label.

Pure utility: no DB or FastAPI imports.
"""

from __future__ import annotations

# Checked top-down; the first threshold the score reaches wins.
GRADE_THRESHOLDS: tuple[tuple[float, str], ...] = (
    (95, "Outstanding"),
    (85, "Excellent"),
    (75, "Good"),
)

# No lower tier is defined: anything under the last threshold is still "Good".
DEFAULT_GRADE = "Good"


def calculate_grade(score: float) -> str:
    for threshold, label in GRADE_THRESHOLDS:
        if score >= threshold:
            return label
    return DEFAULT_GRADE
