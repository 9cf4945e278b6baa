import pytest

from enhancer.documents.base import BasePdfReader
from enhancer.documents.exceptions import DocumentReadError
from enhancer.documents.images import open_image
from enhancer.documents.pdfplumber_adapter import PdfPlumberAdapter
from enhancer.documents.pymupdf_adapter import PyMuPdfAdapter


@pytest.fixture(params=[PdfPlumberAdapter, PyMuPdfAdapter], ids=["pdfplumber", "pymupdf"])
def reader(request: pytest.FixtureRequest) -> BasePdfReader:
    return request.param()


class TestPdfReaders:
    def test_read_returns_text(self, reader: BasePdfReader, sample_pdf_bytes: bytes) -> None:
        snapshot = reader.read(sample_pdf_bytes, 72)
        assert "Hello PDF World" in snapshot.text

    def test_read_multi_page(self, reader: BasePdfReader, multi_page_pdf_bytes: bytes) -> None:
        snapshot = reader.read(multi_page_pdf_bytes, 72)
        assert "Page one content" in snapshot.text
        assert "Page two content" in snapshot.text
        assert snapshot.page_count == 2

    def test_page_size_in_points(self, reader: BasePdfReader, sample_pdf_bytes: bytes) -> None:
        snapshot = reader.read(sample_pdf_bytes, 72)
        assert snapshot.width == pytest.approx(612, abs=1)
        assert snapshot.height == pytest.approx(792, abs=1)

    def test_renders_first_page_as_png(self, reader: BasePdfReader, sample_pdf_bytes: bytes) -> None:
        snapshot = reader.read(sample_pdf_bytes, 72)
        page = open_image(snapshot.page_png)
        assert page.format == "PNG"
        assert page.width == pytest.approx(612, abs=2)

    def test_empty_pdf_has_empty_text(self, reader: BasePdfReader, empty_pdf_bytes: bytes) -> None:
        snapshot = reader.read(empty_pdf_bytes, 72)
        assert snapshot.text == ""
        assert snapshot.image_count == 0

    def test_raises_on_invalid_bytes(self, reader: BasePdfReader) -> None:
        with pytest.raises(DocumentReadError):
            reader.read(b"not a pdf", 72)
