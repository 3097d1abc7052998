"""Base backend interface for PDF toolbox operations."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Sequence, Tuple

import pymupdf

from ..models import InputFile

logger = logging.getLogger(__name__)

Handler = Callable[[List[InputFile], Dict[str, str]], Tuple[bytes, str, Dict[str, Any]]]


class Backend(ABC):
    """Abstract base class for PDF toolbox backends."""

    SUPPORTED_OPERATIONS: List[str] = []

    def supports(self, operation: str, format: str = "") -> bool:
        """
        Check if this backend can handle the specified operation.

        Args:
            operation: The operation name (e.g., "split", "merge")
            format: Optional format hint (e.g., "pdf")

        Returns:
            True if this backend supports the operation, False otherwise
        """
        return operation in self.SUPPORTED_OPERATIONS

    @abstractmethod
    def handlers(self) -> Dict[str, Handler]:
        """Map each supported operation name to the method that runs it."""

    def process(
        self,
        files: List[InputFile],
        operation: str,
        options: Dict[str, str]
    ) -> Tuple[bytes, str, Dict[str, Any]]:
        """
        Run the specified operation over the uploaded files.

        Args:
            files: Uploaded PDFs and images, in upload order
            operation: Operation to perform
            options: Operation-specific options

        Returns:
            Tuple of (output_data, format, metadata)
            - output_data: Processed output bytes
            - format: Output format (e.g., "pdf", "zip", "html")
            - metadata: Additional information, always including "filename"

        Raises:
            ValueError: If operation is not supported or invalid options
            RuntimeError: If processing fails
        """
        if not self.supports(operation):
            raise ValueError(f"Operation '{operation}' not supported")
        return self.handlers()[operation](files, options)


def first_pdf(files: Sequence[InputFile]) -> InputFile:
    """Return the first PDF upload; the single-document tools work on it."""
    for f in files:
        if f.is_pdf:
            return f
    raise ValueError("No PDF found in selection.")


def open_pdf(data: bytes) -> pymupdf.Document:
    """Open PDF bytes with the engine, rejecting anything it cannot read."""
    try:
        return pymupdf.open(stream=data, filetype="pdf")
    except Exception:
        raise ValueError("Invalid or corrupted PDF file")


def save_pdf(doc: pymupdf.Document, **options) -> bytes:
    """Serialize a document, turning engine errors into processing failures."""
    try:
        return doc.tobytes(**options)
    except Exception as e:
        logger.error(f"Saving PDF failed: {e}")
        raise RuntimeError(f"Saving PDF failed: {e}") from e
