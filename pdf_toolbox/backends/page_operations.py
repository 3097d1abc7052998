"""Page-level operations driven by page-range expressions."""

import logging
from typing import Any, Dict, List, Optional, Set, Tuple

import pymupdf

from .base import Backend, Handler, first_pdf, open_pdf, save_pdf
from ..config import get_config
from ..models import InputFile
from ..utils.options import lenient_int
from ..utils.page_filter import count_page_range, parse_page_range

logger = logging.getLogger(__name__)

PAGE_NUMBER_MARGIN = 20
PAGE_NUMBER_COLOR = (0.6, 0.6, 0.6)


def _parse_selection(text: str) -> List[int]:
    limit = get_config().operations.max_selected_pages
    if count_page_range(text) > limit:
        raise ValueError(f"Too many pages selected: at most {limit} per run.")
    return parse_page_range(text)


def check_in_range(pages, source_pages: int, failure: str) -> None:
    """Raise the operation's failure when a selected index is past the last page."""
    highest = max(pages)
    if highest >= source_pages:
        logger.error(
            f"Selection of {len(pages)} page(s) reaches page {highest + 1}, "
            f"document has {source_pages}"
        )
        raise RuntimeError(failure)


def require_selection(options: Dict[str, str], missing: str, empty: str) -> List[int]:
    """Parse the "pages" option, raising the given messages when it yields nothing."""
    text = options.get("pages", "").strip()
    if not text:
        raise ValueError(missing)
    pages = _parse_selection(text)
    if not pages:
        raise ValueError(empty)
    return pages


def optional_selection(options: Dict[str, str], empty: str) -> Optional[Set[int]]:
    """Parse an optional "pages" option; None means every page."""
    text = options.get("pages", "").strip()
    if not text:
        return None
    pages = _parse_selection(text)
    if not pages:
        raise ValueError(empty)
    return set(pages)


class PageOperationsBackend(Backend):
    """Backend for split, reorder, delete, rotate and page numbering."""

    SUPPORTED_OPERATIONS = ["split", "reorder", "delete_pages", "rotate", "page_numbers"]

    def handlers(self) -> Dict[str, Handler]:
        return {
            "split": self._split,
            "reorder": self._reorder,
            "delete_pages": self._delete_pages,
            "rotate": self._rotate,
            "page_numbers": self._page_numbers,
        }

    def _split(self, files: List[InputFile], options: Dict[str, str]):
        pages = require_selection(
            options, "Enter page numbers to split.", "No valid pages to split."
        )
        return self._copy_pages(
            first_pdf(files), pages, "split.pdf",
            "Error splitting PDF. Check page numbers and try again.",
        )

    def _reorder(self, files: List[InputFile], options: Dict[str, str]):
        pages = require_selection(
            options, "Enter the new page order.", "No valid pages to reorder."
        )
        return self._copy_pages(
            first_pdf(files), pages, "reordered.pdf",
            "Error reordering pages. Check page numbers and try again.",
        )

    def _copy_pages(
        self, pdf: InputFile, pages: List[int], filename: str, failure: str
    ) -> Tuple[bytes, str, Dict[str, Any]]:
        """Build a document from the selected pages, in order, repeats included."""
        doc = open_pdf(pdf.data)
        try:
            source_pages = len(doc)
            check_in_range(pages, source_pages, failure)
            try:
                doc.select(pages)
            except Exception as e:
                logger.error(f"Selecting {len(pages)} page(s) failed on {source_pages}-page document: {e}")
                raise RuntimeError(failure) from e
            output_data = save_pdf(doc, garbage=3, deflate=True)
        finally:
            doc.close()

        metadata = {
            "filename": filename,
            "source_pages": str(source_pages),
            "pages_selected": str(len(pages)),
        }
        return output_data, "pdf", metadata

    def _delete_pages(self, files: List[InputFile], options: Dict[str, str]):
        pages = require_selection(
            options, "Enter page numbers to delete.", "No valid pages to delete."
        )
        to_delete = sorted(set(pages))

        doc = open_pdf(first_pdf(files).data)
        try:
            source_pages = len(doc)
            failure = "Error deleting pages. Check page numbers and try again."
            check_in_range(to_delete, source_pages, failure)
            if len(to_delete) == source_pages:
                raise ValueError("Cannot delete every page of the document.")
            try:
                doc.delete_pages(to_delete)
            except Exception as e:
                logger.error(f"Deleting {len(to_delete)} page(s) failed: {e}")
                raise RuntimeError(failure) from e
            output_data = save_pdf(doc, garbage=3, deflate=True)
        finally:
            doc.close()

        metadata = {
            "filename": "pages-removed.pdf",
            "source_pages": str(source_pages),
            "pages_deleted": str(len(to_delete)),
        }
        return output_data, "pdf", metadata

    def _rotate(self, files: List[InputFile], options: Dict[str, str]):
        try:
            rotation = int(options.get("rotation", "90").strip() or "90")
        except ValueError:
            raise ValueError("Rotation must be a whole number of degrees.")
        if rotation % 90:
            raise ValueError("Rotation must be a multiple of 90 degrees.")
        targets = optional_selection(options, "No valid pages to rotate.")

        doc = open_pdf(first_pdf(files).data)
        try:
            failure = "Error rotating pages. Check page numbers and try again."
            if targets is not None:
                check_in_range(targets, len(doc), failure)
            indices = sorted(targets) if targets is not None else range(len(doc))
            try:
                for idx in indices:
                    doc[idx].set_rotation(rotation % 360)
            except Exception as e:
                logger.error(f"Rotating pages failed: {e}")
                raise RuntimeError(failure) from e
            output_data = save_pdf(doc)
        finally:
            doc.close()

        metadata = {
            "filename": "rotated.pdf",
            "rotation": str(rotation % 360),
            "pages_rotated": str(len(indices)),
        }
        return output_data, "pdf", metadata

    def _page_numbers(self, files: List[InputFile], options: Dict[str, str]):
        start = lenient_int(options, "start", 1)
        targets = optional_selection(options, "No valid pages to number.")
        size = get_config().operations.page_number_font_size

        doc = open_pdf(first_pdf(files).data)
        stamped = 0
        try:
            for idx, page in enumerate(doc):
                if targets is not None and idx not in targets:
                    continue
                text = str(start + idx)
                width = page.rect.width
                text_width = pymupdf.get_text_length(text, fontname="helv", fontsize=size)
                page.insert_text(
                    pymupdf.Point((width - text_width) / 2, page.rect.height - PAGE_NUMBER_MARGIN),
                    text,
                    fontsize=size,
                    fontname="helv",
                    color=PAGE_NUMBER_COLOR,
                )
                stamped += 1
            output_data = save_pdf(doc)
        finally:
            doc.close()

        metadata = {
            "filename": "paged.pdf",
            "start": str(start),
            "pages_numbered": str(stamped),
        }
        return output_data, "pdf", metadata
