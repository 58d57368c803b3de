#!/usr/bin/env python3
"""
Render a sample certificate PNG locally, with no database or storage.

Uses the same font and background settings as the service (.env is honoured),
so it is the quickest way to check a new template or font set.

Usage:
    cd lizard-academy-certificates
    python -m scripts.render_sample_certificate --out sample-certificate.png
"""
from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "services" / "certificate"))
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "shared"))

from app.certificates.fonts import load_fonts
from app.certificates.grading import calculate_grade
from app.certificates.image_composer import ImageComposer, RenderPayload, build_background_attempts
from app.certificates.service import build_verification_url, generate_certificate_number
from app.config import Settings


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--out", default="sample-certificate.png")
    parser.add_argument("--name", default="Ada Lovelace")
    parser.add_argument("--course", default="Intro to Solidity: Smart Contracts from First Principles")
    parser.add_argument("--score", type=Decimal, default=Decimal("92"))
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    settings = Settings()
    composer = ImageComposer(
        load_fonts(settings.certificate_fonts_dir),
        build_background_attempts(settings),
        brand_name=settings.brand_name,
    )
    number = generate_certificate_number(settings.certificate_number_prefix)
    payload = RenderPayload(
        student_name=args.name,
        course_title=args.course,
        category="Blockchain",
        skills=["Solidity", "Smart Contracts", "EVM", "Hardhat", "Security"],
        instructor="Gavin Wood",
        completed_date=datetime.now(timezone.utc),
        certificate_number=number,
        grade=calculate_grade(float(args.score)),
        final_score=args.score,
        total_hours=Decimal("5.5"),
        total_lessons=24,
        verification_url=build_verification_url(settings.frontend_url, number),
    )
    out = Path(args.out)
    out.write_bytes(composer.compose(payload))
    print(f"Wrote {out} ({number})")


if __name__ == "__main__":
    main()
