"""Whole-document operations: merge, compress, watermark, flatten, images to PDF."""

import logging
from typing import Dict, List

import pymupdf

from .base import Backend, Handler, first_pdf, open_pdf, save_pdf
from ..config import get_config
from ..models import InputFile
from ..utils.options import lenient_int

logger = logging.getLogger(__name__)

WATERMARK_COLOR = (0.5, 0.5, 0.5)
WATERMARK_ANGLE = 45
# Rough horizontal advance per character used to centre the watermark.
WATERMARK_CHAR_OFFSET = 10


def compress_level(options: Dict[str, str]) -> int:
    """Compression level from the options, clamped to 1-9."""
    level = lenient_int(options, "level", get_config().operations.default_compress_level)
    return max(1, min(9, level))


class DocumentOperationsBackend(Backend):
    """Backend for operations that act on whole documents."""

    SUPPORTED_OPERATIONS = ["merge", "compress", "watermark", "flatten", "images_pdf"]

    def handlers(self) -> Dict[str, Handler]:
        return {
            "merge": self._merge,
            "compress": self._compress,
            "watermark": self._watermark,
            "flatten": self._flatten,
            "images_pdf": self._images_to_pdf,
        }

    def _merge(self, files: List[InputFile], options: Dict[str, str]):
        pdfs = [f for f in files if f.is_pdf]
        if len(pdfs) < 2:
            raise ValueError("Need at least 2 PDFs to merge.")

        merged = pymupdf.open()
        try:
            for pdf in pdfs:
                source = open_pdf(pdf.data)
                try:
                    merged.insert_pdf(source)
                except Exception as e:
                    logger.error(f"Merging {pdf.filename} failed: {e}")
                    raise RuntimeError("Error merging PDFs. Please try again.") from e
                finally:
                    source.close()
            total_pages = len(merged)
            output_data = save_pdf(merged, garbage=3, deflate=True)
        finally:
            merged.close()

        metadata = {
            "filename": "merged.pdf",
            "documents_merged": str(len(pdfs)),
            "total_pages": str(total_pages),
        }
        return output_data, "pdf", metadata

    def _compress(self, files: List[InputFile], options: Dict[str, str]):
        level = compress_level(options)
        pdf = first_pdf(files)

        doc = open_pdf(pdf.data)
        try:
            doc.set_metadata({})
            output_data = save_pdf(
                doc,
                garbage=4 if level >= 5 else 3,
                deflate=True,
                deflate_images=level >= 5,
                deflate_fonts=level >= 5,
                clean=level >= 7,
                use_objstms=1 if level < 5 else 0,
            )
        finally:
            doc.close()

        metadata = {
            "filename": "compressed.pdf",
            "level": str(level),
            "original_size": str(len(pdf.data)),
            "compressed_size": str(len(output_data)),
        }
        return output_data, "pdf", metadata

    def _watermark(self, files: List[InputFile], options: Dict[str, str]):
        text = options.get("text", "").strip()
        if not text:
            raise ValueError("Enter watermark text.")
        config = get_config().operations

        doc = open_pdf(first_pdf(files).data)
        try:
            for page in doc:
                rect = page.rect
                origin = pymupdf.Point(
                    rect.width / 2 - len(text) * WATERMARK_CHAR_OFFSET, rect.height / 2
                )
                try:
                    page.insert_text(
                        origin,
                        text,
                        fontsize=config.watermark_font_size,
                        fontname="helv",
                        color=WATERMARK_COLOR,
                        fill_opacity=config.watermark_opacity,
                        stroke_opacity=config.watermark_opacity,
                        morph=(origin, pymupdf.Matrix(-WATERMARK_ANGLE)),
                    )
                except Exception as e:
                    logger.error(f"Watermarking page {page.number + 1} failed: {e}")
                    raise RuntimeError(f"Error adding watermark: {e}") from e
            output_data = save_pdf(doc)
        finally:
            doc.close()

        return output_data, "pdf", {"filename": "watermarked.pdf", "watermark": text}

    def _flatten(self, files: List[InputFile], options: Dict[str, str]):
        doc = open_pdf(first_pdf(files).data)
        flattened = False
        try:
            if doc.is_form_pdf:
                try:
                    doc.bake(annots=True, widgets=True)
                    flattened = True
                except Exception as e:
                    logger.warning(f"Form flatten failed, saving unchanged: {e}")
            else:
                logger.info("No form fields to flatten")
            output_data = save_pdf(doc, garbage=3, deflate=True)
        finally:
            doc.close()

        return output_data, "pdf", {"filename": "flattened.pdf", "flattened": str(flattened).lower()}

    def _images_to_pdf(self, files: List[InputFile], options: Dict[str, str]):
        images = [f for f in files if f.is_image]
        if not images:
            raise ValueError("Please add JPG/PNG images for this tool.")

        doc = pymupdf.open()
        try:
            for image in images:
                try:
                    pix = pymupdf.Pixmap(image.data)
                    page = doc.new_page(width=pix.width, height=pix.height)
                    page.insert_image(page.rect, stream=image.data)
                except Exception as e:
                    logger.error(f"Embedding image {image.filename} failed: {e}")
                    raise ValueError(f"Could not read image {image.filename}") from e
            output_data = save_pdf(doc, garbage=3, deflate=True)
        finally:
            doc.close()

        return output_data, "pdf", {"filename": "images.pdf", "images": str(len(images))}
