import pymupdf

from enhancer.documents.base import BasePdfReader, PdfSnapshot
from enhancer.documents.exceptions import DocumentReadError


class PyMuPdfAdapter(BasePdfReader):
    """Reads PDFs using PyMuPDF."""

    def read(self, pdf_bytes: bytes, dpi: int) -> PdfSnapshot:
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                if doc.page_count == 0:
                    raise DocumentReadError("PDF has no pages")
                first = doc[0]
                page_png = first.get_pixmap(dpi=dpi).tobytes("png")
                pages = [page.get_text() for page in doc]
                image_count = sum(len(page.get_images(full=True)) for page in doc)
                return PdfSnapshot(
                    page_png=page_png,
                    text="\n".join(pages).strip(),
                    page_count=doc.page_count,
                    width=float(first.rect.width),
                    height=float(first.rect.height),
                    image_count=image_count,
                )
        except DocumentReadError:
            raise
        except Exception as exc:
            raise DocumentReadError(f"pymupdf read failed: {exc}") from exc
