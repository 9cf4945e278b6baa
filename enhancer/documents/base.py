from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class PdfSnapshot:
    """First-page render plus whole-document facts."""

    page_png: bytes
    text: str
    page_count: int
    width: float
    height: float
    image_count: int


class BasePdfReader(ABC):
    """Contract for all PDF reading adapters."""

    @abstractmethod
    def read(self, pdf_bytes: bytes, dpi: int) -> PdfSnapshot:
        """Render the first page and extract text and page facts.

        Args:
            pdf_bytes: Raw PDF file content.
            dpi: Resolution for the first-page render.

        Returns:
            PdfSnapshot with a PNG of page one, the text of every page
            joined by newlines, and page size in points.

        Raises:
            DocumentReadError: if the PDF cannot be read for any reason.
        """
