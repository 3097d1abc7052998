"""Operation dispatch for the PDF toolbox."""

import time
import logging
from typing import Callable, Dict, List, Optional

from .backends.base import Backend
from .backends.document_operations import DocumentOperationsBackend, compress_level
from .backends.export import ExportBackend
from .backends.page_operations import PageOperationsBackend
from .config import get_config
from .models import (
    MEDIA_TYPES,
    OperationRequest,
    OperationResult,
    Severity,
    StatusMessage,
)

logger = logging.getLogger(__name__)

Notifier = Callable[[StatusMessage], None]

# Operations that accept uploads without any PDF among them.
NO_PDF_REQUIRED = {"merge", "images_pdf"}

PROGRESS_MESSAGES = {
    "merge": "Merging PDFs...",
    "split": "Splitting PDF...",
    "compress": "Compressing PDF...",
    "watermark": "Adding watermark...",
    "pdf_text": "Extracting text...",
    "pdf_images": "Rendering pages to images...",
    "images_pdf": "Building PDF from images...",
    "reorder": "Reordering pages...",
    "page_numbers": "Adding page numbers...",
    "flatten": "Flattening forms...",
    "delete_pages": "Deleting pages...",
    "rotate": "Rotating pages...",
}

DONE_MESSAGES = {
    "merge": "Merged",
    "split": "Split complete",
    "compress": "Compressed",
    "watermark": "Watermark added",
    "pdf_text": "Exported",
    "pdf_images": "Exported pages as PNG images",
    "images_pdf": "Images combined",
    "reorder": "Reordered",
    "page_numbers": "Page numbers added",
    "flatten": "Flattened",
    "delete_pages": "Pages deleted",
    "rotate": "Rotated",
}


class ToolboxService:
    """Validates requests and routes each action to the backend that runs it."""

    VERSION = "0.1.0"

    def __init__(self, backends: Optional[List[Backend]] = None):
        self.backends: List[Backend] = backends if backends is not None else [
            PageOperationsBackend(),
            DocumentOperationsBackend(),
            ExportBackend(),
        ]
        self.dispatch: Dict[str, Backend] = {}
        for backend in self.backends:
            for operation in backend.SUPPORTED_OPERATIONS:
                self.dispatch.setdefault(operation, backend)

        logger.info(f"PDF Toolbox Service v{self.VERSION} initialized")
        logger.info(f"Registered {len(self.backends)} backends, {len(self.dispatch)} operations")

    def supported_operations(self) -> List[str]:
        return sorted(self.dispatch)

    def supports(self, operation: str) -> bool:
        return operation in self.dispatch

    def health(self) -> Dict[str, object]:
        return {
            "healthy": True,
            "version": self.VERSION,
            "supported_operations": self.supported_operations(),
        }

    def run(
        self,
        request: OperationRequest,
        notify: Optional[Notifier] = None,
    ) -> OperationResult:
        """
        Run one operation and describe the outcome.

        Validation problems and engine failures are reported in the result
        rather than raised. The notifier, when given, receives the progress
        message before the backend runs and the final status afterwards.
        """
        start_time = time.time()
        operation = request.action

        def elapsed_ms() -> int:
            return int((time.time() - start_time) * 1000)

        def failure(code: str, message: str) -> OperationResult:
            status = StatusMessage(message, Severity.ERROR)
            if notify is not None:
                notify(status)
            return OperationResult(
                success=False,
                status=status,
                error_code=code,
                processing_time_ms=elapsed_ms(),
            )

        backend = self.dispatch.get(operation)
        if backend is None:
            error_msg = f"Operation '{operation}' is not supported"
            logger.error(error_msg)
            return failure("INVALID_OPERATION", error_msg)

        try:
            files = self._accepted_files(request)
        except ValueError as e:
            logger.info(f"Rejected {operation}: {e}")
            return failure("VALIDATION_ERROR", str(e))

        logger.info(
            f"Processing: operation={operation}, files={len(files)}, "
            f"size={sum(len(f.data) for f in files)} bytes"
        )
        if notify is not None:
            notify(StatusMessage(self._progress_message(request), Severity.INFO))

        try:
            output_data, output_format, metadata = backend.process(
                files, operation, dict(request.options)
            )
        except ValueError as e:
            logger.info(f"Validation failed for {operation}: {e}")
            return failure("VALIDATION_ERROR", str(e))
        except Exception as e:
            logger.error(f"Processing failed: {e}", exc_info=True)
            return failure("PROCESSING_FAILED", str(e) or "Something went wrong. Please try again.")

        processing_time_ms = elapsed_ms()
        filename = metadata.pop("filename")
        logger.info(
            f"Completed in {processing_time_ms}ms: "
            f"output_size={len(output_data)} bytes, format={output_format}"
        )

        status = StatusMessage(
            f"{DONE_MESSAGES.get(operation, 'Done')}, saved as {filename}", Severity.SUCCESS
        )
        if notify is not None:
            notify(status)

        return OperationResult(
            success=True,
            status=status,
            data=output_data,
            filename=filename,
            media_type=MEDIA_TYPES.get(output_format, "application/octet-stream"),
            metadata={str(k): str(v) for k, v in metadata.items()},
            processing_time_ms=processing_time_ms,
        )

    def _progress_message(self, request: OperationRequest) -> str:
        if request.action == "compress":
            return f"Compressing PDF (level {compress_level(request.options)})..."
        return PROGRESS_MESSAGES.get(request.action, "Working...")

    def _accepted_files(self, request: OperationRequest):
        """Keep PDF and image uploads, checking the counts the action needs."""
        if not request.files:
            raise ValueError("Upload PDFs first.")

        max_files = get_config().operations.max_files
        if len(request.files) > max_files:
            raise ValueError(f"Too many files: at most {max_files} per run.")

        accepted = [f for f in request.files if f.is_pdf or f.is_image]
        if not accepted:
            raise ValueError("Please add valid PDF or image files.")
        dropped = len(request.files) - len(accepted)
        if dropped:
            logger.info(f"Ignoring {dropped} upload(s) that are neither PDF nor image")

        if request.action not in NO_PDF_REQUIRED and not any(f.is_pdf for f in accepted):
            raise ValueError("No PDF found in selection.")
        return accepted
