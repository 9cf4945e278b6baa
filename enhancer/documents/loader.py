from dataclasses import dataclass

from enhancer.documents.base import BasePdfReader
from enhancer.documents.images import analysis_png, dominant_color, open_image
from enhancer.documents.text import classify_lines
from enhancer.engines.geometry import Size
from enhancer.logging.logger import Log
from enhancer.pipeline.models import DocumentMetadata, ExtractedText, FileType


@dataclass(frozen=True)
class LoadedDocument:
    page_png: bytes
    extracted_text: ExtractedText
    metadata: DocumentMetadata
    dominant_color: str


class DocumentLoader:
    """Turns stored document bytes into what the analysis prompts need."""

    def __init__(self, pdf_reader: BasePdfReader, dpi: int = 110) -> None:
        self._pdf_reader = pdf_reader
        self._dpi = dpi

    def load(self, data: bytes, file_type: FileType) -> LoadedDocument:
        """Raises DocumentReadError if the document cannot be decoded."""
        if file_type.is_pdf:
            return self._load_pdf(data)
        return self._load_image(data)

    def _load_pdf(self, data: bytes) -> LoadedDocument:
        snapshot = self._pdf_reader.read(data, self._dpi)
        page = open_image(snapshot.page_png)
        Log.info(
            f"Rendered PDF page 1 of {snapshot.page_count} "
            f"({snapshot.width:.0f}x{snapshot.height:.0f} pt)"
        )
        return LoadedDocument(
            page_png=analysis_png(page),
            extracted_text=classify_lines(snapshot.text),
            metadata=DocumentMetadata(
                dimensions=Size(snapshot.width, snapshot.height),
                file_size=len(data),
                has_images=snapshot.image_count > 0,
                image_count=snapshot.image_count,
                page_count=snapshot.page_count,
            ),
            dominant_color=dominant_color(page),
        )

    def _load_image(self, data: bytes) -> LoadedDocument:
        image = open_image(data)
        # raster documents carry no text layer
        return LoadedDocument(
            page_png=analysis_png(image),
            extracted_text=ExtractedText(),
            metadata=DocumentMetadata(
                dimensions=Size(float(image.width), float(image.height)),
                file_size=len(data),
                has_images=True,
                image_count=1,
            ),
            dominant_color=dominant_color(image),
        )
