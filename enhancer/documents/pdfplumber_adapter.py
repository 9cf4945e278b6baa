import io

import pdfplumber

from enhancer.documents.base import BasePdfReader, PdfSnapshot
from enhancer.documents.exceptions import DocumentReadError


class PdfPlumberAdapter(BasePdfReader):
    """Reads PDFs using pdfplumber."""

    def read(self, pdf_bytes: bytes, dpi: int) -> PdfSnapshot:
        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                if not pdf.pages:
                    raise DocumentReadError("PDF has no pages")
                first = pdf.pages[0]
                rendered = first.to_image(resolution=dpi).original
                buffer = io.BytesIO()
                rendered.convert("RGB").save(buffer, format="PNG")
                pages = [page.extract_text() or "" for page in pdf.pages]
                return PdfSnapshot(
                    page_png=buffer.getvalue(),
                    text="\n".join(pages).strip(),
                    page_count=len(pdf.pages),
                    width=float(first.width),
                    height=float(first.height),
                    image_count=sum(len(page.images) for page in pdf.pages),
                )
        except DocumentReadError:
            raise
        except Exception as exc:
            raise DocumentReadError(f"pdfplumber read failed: {exc}") from exc
