"""In-place visual touches for PDF documents.

Existing PDF content is never rewritten: the overlay adds a tinted page
background beneath the content, a few decorative marks on page one and, on
the free tier, a watermark line.
"""

from collections.abc import Sequence
from dataclasses import dataclass

import pymupdf

from enhancer.documents.exceptions import DocumentReadError

BACKGROUND_TINT = (0.95, 0.95, 0.97)
BACKGROUND_OPACITY = 0.5
DECORATION_COLOR = (0.31, 0.27, 0.89)
DECORATION_OPACITY = 0.2
DECORATION_RADIUS = 20
MAX_PDF_DECORATIONS = 2
WATERMARK_COLOR = (0.5, 0.5, 0.5)
WATERMARK_OPACITY = 0.5
WATERMARK_FONT_SIZE = 12


@dataclass(frozen=True)
class PdfOverlay:
    """Decoration positions are fractions (0..1) of the page size."""

    tint_background: bool = False
    decorations: tuple[tuple[float, float], ...] = ()
    watermark: str | None = None


def apply_overlay(pdf_bytes: bytes, overlay: PdfOverlay) -> bytes:
    """Return a new PDF with the overlay applied to every page.

    Raises:
        DocumentReadError: if the PDF cannot be opened or saved.
    """
    try:
        with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
            for index, page in enumerate(doc):
                if overlay.tint_background:
                    _tint(page)
                if index == 0:
                    _decorate(page, overlay.decorations[:MAX_PDF_DECORATIONS])
                if overlay.watermark:
                    _watermark(page, overlay.watermark)
            return doc.tobytes(garbage=3, deflate=True)
    except Exception as exc:
        raise DocumentReadError(f"PDF overlay failed: {exc}") from exc


def _tint(page: pymupdf.Page) -> None:
    page.draw_rect(
        page.rect,
        color=None,
        fill=BACKGROUND_TINT,
        fill_opacity=BACKGROUND_OPACITY,
        overlay=False,
    )


def _decorate(page: pymupdf.Page, positions: Sequence[tuple[float, float]]) -> None:
    width, height = page.rect.width, page.rect.height
    for fx, fy in positions:
        center = pymupdf.Point(fx * width, fy * height)
        page.draw_circle(
            center,
            DECORATION_RADIUS,
            color=None,
            fill=DECORATION_COLOR,
            fill_opacity=DECORATION_OPACITY,
        )


def _watermark(page: pymupdf.Page, text: str) -> None:
    width, height = page.rect.width, page.rect.height
    page.insert_text(
        pymupdf.Point(width / 2 - 100, height - 30),
        text,
        fontsize=WATERMARK_FONT_SIZE,
        fontname="helv",
        color=WATERMARK_COLOR,
        fill_opacity=WATERMARK_OPACITY,
    )
