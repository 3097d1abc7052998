"""Tests for operation dispatch and request validation."""

import pymupdf
import pytest

from pdf_toolbox.config import reload_config
from pdf_toolbox.models import InputFile, OperationRequest, Severity
from pdf_toolbox.service import ToolboxService


def create_test_pdf(page_count=3):
    """Create a simple multi-page test PDF."""
    doc = pymupdf.open()
    for i in range(page_count):
        page = doc.new_page()
        page.insert_text(pymupdf.Point(72, 72), f"Page {i + 1}", fontsize=12)
    pdf_bytes = doc.tobytes()
    doc.close()
    return pdf_bytes


def pdf_file(name="test.pdf", page_count=3):
    return InputFile(name, create_test_pdf(page_count))


class TestDispatch:
    """Tests for the action -> backend table."""

    def setup_method(self):
        self.service = ToolboxService()

    def test_all_operations_registered(self):
        assert self.service.supported_operations() == sorted([
            "merge", "split", "compress", "watermark", "pdf_text", "pdf_images",
            "images_pdf", "reorder", "page_numbers", "flatten", "delete_pages", "rotate",
        ])

    def test_health(self):
        health = self.service.health()
        assert health["healthy"] is True
        assert health["version"] == ToolboxService.VERSION
        assert "split" in health["supported_operations"]

    def test_unknown_action(self):
        result = self.service.run(OperationRequest.create("explode", [pdf_file()]))
        assert not result.success
        assert result.error_code == "INVALID_OPERATION"
        assert result.status.severity == Severity.ERROR


class TestRun:
    """Tests for ToolboxService.run."""

    def setup_method(self):
        self.service = ToolboxService()

    def test_split_success(self):
        request = OperationRequest.create("split", [pdf_file()], {"pages": "1-2"})
        result = self.service.run(request)

        assert result.success
        assert result.filename == "split.pdf"
        assert result.media_type == "application/pdf"
        assert result.status.severity == Severity.SUCCESS
        assert result.status.message == "Split complete, saved as split.pdf"
        assert "filename" not in result.metadata
        assert result.metadata["pages_selected"] == "2"
        assert isinstance(result.processing_time_ms, int)

    def test_notifier_receives_progress_then_result(self):
        seen = []
        request = OperationRequest.create("reorder", [pdf_file()], {"pages": "3,2,1"})
        result = self.service.run(request, notify=seen.append)

        assert result.success
        assert [s.severity for s in seen] == [Severity.INFO, Severity.SUCCESS]
        assert seen[0].message == "Reordering pages..."

    def test_empty_selection_is_validation_error(self):
        seen = []
        request = OperationRequest.create("split", [pdf_file()], {"pages": "0,abc"})
        result = self.service.run(request, notify=seen.append)

        assert not result.success
        assert result.error_code == "VALIDATION_ERROR"
        assert result.status.message == "No valid pages to split."
        assert seen[-1].severity == Severity.ERROR

    def test_out_of_range_page_is_processing_failure(self):
        request = OperationRequest.create("split", [pdf_file(page_count=2)], {"pages": "5"})
        result = self.service.run(request)

        assert not result.success
        assert result.error_code == "PROCESSING_FAILED"
        assert result.data == b""

    def test_wide_range_rejected_before_processing(self):
        request = OperationRequest.create("split", [pdf_file(page_count=2)], {"pages": "1-20000000"})
        result = self.service.run(request)

        assert result.error_code == "VALIDATION_ERROR"
        assert result.status.message == "Too many pages selected: at most 10000 per run."

    def test_selected_page_limit_from_environment(self, monkeypatch):
        monkeypatch.setenv("MAX_SELECTED_PAGES", "3")
        reload_config()
        try:
            wide = self.service.run(
                OperationRequest.create("split", [pdf_file()], {"pages": "1-3,1"})
            )
            narrow = self.service.run(
                OperationRequest.create("split", [pdf_file()], {"pages": "1-3"})
            )
        finally:
            monkeypatch.delenv("MAX_SELECTED_PAGES")
            reload_config()

        assert wide.status.message == "Too many pages selected: at most 3 per run."
        assert narrow.success

    def test_delete_beyond_document_is_processing_failure(self):
        request = OperationRequest.create("delete_pages", [pdf_file(page_count=2)], {"pages": "1-5"})
        result = self.service.run(request)

        assert result.error_code == "PROCESSING_FAILED"
        assert result.status.message.startswith("Error deleting pages")

    def test_compress_progress_names_level(self):
        seen = []
        request = OperationRequest.create("compress", [pdf_file()], {"level": "6"})
        result = self.service.run(request, notify=seen.append)

        assert result.success
        assert seen[0].message == "Compressing PDF (level 6)..."

    def test_compress_progress_uses_default_level(self):
        seen = []
        self.service.run(OperationRequest.create("compress", [pdf_file()]), notify=seen.append)
        assert seen[0].message == "Compressing PDF (level 3)..."

    def test_no_files(self):
        result = self.service.run(OperationRequest.create("compress", []))
        assert result.error_code == "VALIDATION_ERROR"
        assert result.status.message == "Upload PDFs first."

    def test_unsupported_files_only(self):
        notes = InputFile("notes.txt", b"hello")
        result = self.service.run(OperationRequest.create("compress", [notes]))
        assert result.status.message == "Please add valid PDF or image files."

    def test_pdf_required(self):
        image = InputFile("photo.png", b"\x89PNG", "image/png")
        result = self.service.run(OperationRequest.create("flatten", [image]))
        assert result.status.message == "No PDF found in selection."

    def test_merge_needs_two(self):
        result = self.service.run(OperationRequest.create("merge", [pdf_file()]))
        assert result.error_code == "VALIDATION_ERROR"
        assert result.status.message == "Need at least 2 PDFs to merge."

    def test_unsupported_files_dropped(self):
        files = [pdf_file("a.pdf", 1), InputFile("notes.txt", b"hi"), pdf_file("b.pdf", 2)]
        result = self.service.run(OperationRequest.create("merge", files))

        assert result.success
        assert result.metadata["documents_merged"] == "2"
        assert result.metadata["total_pages"] == "3"

    def test_text_export_media_type(self):
        request = OperationRequest.create("pdf_text", [pdf_file()], {"format": "markdown"})
        result = self.service.run(request)

        assert result.media_type == "text/markdown"
        assert result.filename == "export.md"


class TestModels:
    """Tests for request and file types."""

    def test_content_type_guessed_from_name(self):
        assert InputFile("doc.pdf", b"").is_pdf
        assert InputFile("photo.JPG", b"").is_image
        assert not InputFile("notes.txt", b"").is_pdf

    def test_request_options_are_strings(self):
        request = OperationRequest.create("compress", [], {"level": 5, "skip": None})
        assert request.options == {"level": "5"}
        assert request.files == ()

    def test_request_is_hashable(self):
        request = OperationRequest.create("split", [], {"pages": "1"})
        assert hash(request) == hash(OperationRequest.create("split", [], {"pages": "2"}))

    def test_request_options_are_read_only(self):
        options = {"pages": "1"}
        request = OperationRequest.create("split", [], options)
        with pytest.raises(TypeError):
            request.options["pages"] = "2"
        options["pages"] = "3"
        assert request.options["pages"] == "1"
