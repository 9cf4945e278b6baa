import io

import pytest
from PIL import Image

from enhancer.documents.exceptions import DocumentReadError
from enhancer.documents.images import dominant_color, encode, open_image, thumbnail
from enhancer.documents.loader import DocumentLoader
from enhancer.documents.pymupdf_adapter import PyMuPdfAdapter
from enhancer.documents.text import classify_lines
from enhancer.pipeline.models import FileType


def _png(width: int = 200, height: int = 100, color: tuple[int, int, int] = (30, 60, 200)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


class TestClassifyLines:
    def test_first_short_line_is_title(self) -> None:
        text = classify_lines("Fractions Worksheet\nPart One\n" + "x" * 120)
        assert text.title == "Fractions Worksheet"
        assert text.headings == ("Part One",)
        assert len(text.body_text) == 1

    def test_short_lowercase_line_is_caption(self) -> None:
        text = classify_lines("Title\nfigure 1")
        assert text.captions == ("figure 1",)

    def test_blank_text(self) -> None:
        text = classify_lines("  \n\n")
        assert text.title is None
        assert text.body_text == ()


class TestDocumentLoader:
    def test_loads_image(self) -> None:
        loader = DocumentLoader(PyMuPdfAdapter())

        loaded = loader.load(_png(), FileType.PNG)

        assert loaded.metadata.dimensions.width == 200
        assert loaded.metadata.has_images is True
        assert loaded.extracted_text.title is None
        assert open_image(loaded.page_png).mode == "RGB"

    def test_loads_pdf(self, sample_pdf_bytes: bytes) -> None:
        loader = DocumentLoader(PyMuPdfAdapter(), dpi=72)

        loaded = loader.load(sample_pdf_bytes, FileType.PDF)

        assert loaded.extracted_text.title == "Hello PDF World"
        assert loaded.metadata.page_count == 1
        assert loaded.metadata.file_size == len(sample_pdf_bytes)

    def test_invalid_image_raises(self) -> None:
        loader = DocumentLoader(PyMuPdfAdapter())

        with pytest.raises(DocumentReadError, match="Cannot decode image"):
            loader.load(b"garbage", FileType.PNG)


class TestImageHelpers:
    def test_dominant_color_of_flat_image(self) -> None:
        assert dominant_color(open_image(_png(color=(255, 255, 255)))) == "#F0F0F0"

    def test_thumbnail_is_fixed_size(self) -> None:
        thumb = open_image(thumbnail(open_image(_png(1000, 200))))
        assert thumb.size == (400, 300)

    def test_encode_jpeg_drops_alpha(self) -> None:
        rgba = Image.new("RGBA", (10, 10), (0, 0, 0, 0))
        assert open_image(encode(rgba, "jpg")).mode == "RGB"
