"""Export backend: page text and page images using PyMuPDF."""

import io
import logging
import zipfile
from typing import Dict, List

import pymupdf

from .base import Backend, Handler, first_pdf, open_pdf
from ..config import get_config
from ..converters.text_formatter import FORMATS, TextFormatter
from ..models import InputFile
from ..utils.options import lenient_float

logger = logging.getLogger(__name__)

EXPORT_FILENAMES = {
    "text": "export.txt",
    "markdown": "export.md",
    "html": "export.html",
}


class ExportBackend(Backend):
    """Backend for exporting PDF pages as text documents or PNG images."""

    SUPPORTED_OPERATIONS = ["pdf_text", "pdf_images"]

    def __init__(self):
        self.formatter = TextFormatter()

    def handlers(self) -> Dict[str, Handler]:
        return {
            "pdf_text": self._pdf_to_text,
            "pdf_images": self._pdf_to_images,
        }

    def _pdf_to_text(self, files: List[InputFile], options: Dict[str, str]):
        output_format = options.get("format", "text").strip().lower()
        if output_format not in FORMATS:
            logger.info(f"Unknown export format '{output_format}', using text")
            output_format = "text"

        doc = open_pdf(first_pdf(files).data)
        try:
            pages = [self._page_text(page) for page in doc]
        finally:
            doc.close()

        content = self.formatter.convert(pages, output_format)
        metadata = {
            "filename": EXPORT_FILENAMES[output_format],
            "pages": str(len(pages)),
            "characters": str(len(content)),
        }
        return content.encode("utf-8"), output_format, metadata

    def _page_text(self, page) -> str:
        """Text of one page with its lines joined by single spaces."""
        lines = page.get_text("text").splitlines()
        return " ".join(line.strip() for line in lines if line.strip())

    def _pdf_to_images(self, files: List[InputFile], options: Dict[str, str]):
        scale = lenient_float(options, "scale", get_config().operations.render_scale)
        if scale <= 0:
            raise ValueError("Scale must be greater than zero.")

        buffer = io.BytesIO()
        doc = open_pdf(first_pdf(files).data)
        try:
            matrix = pymupdf.Matrix(scale, scale)
            with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
                for page in doc:
                    try:
                        pix = page.get_pixmap(matrix=matrix)
                    except Exception as e:
                        logger.error(f"Rendering page {page.number + 1} failed: {e}")
                        raise RuntimeError(f"Error rendering page {page.number + 1}") from e
                    archive.writestr(f"page-{page.number + 1}.png", pix.tobytes("png"))
            page_count = len(doc)
        finally:
            doc.close()

        metadata = {
            "filename": "pages.zip",
            "pages": str(page_count),
            "scale": str(scale),
        }
        return buffer.getvalue(), "zip", metadata
