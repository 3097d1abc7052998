"""HTTP server for the PDF toolbox using FastAPI."""

import asyncio
import base64
import logging
from typing import Any, Dict, List

from fastapi import FastAPI, File, HTTPException, Request, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel, Field

from .config import configure_logging, get_config
from .models import InputFile, OperationRequest, OperationResult
from .service import ToolboxService

configure_logging()
logger = logging.getLogger(__name__)

ERROR_STATUS = {
    "INVALID_OPERATION": 400,
    "VALIDATION_ERROR": 400,
    "PROCESSING_FAILED": 500,
}


# Pydantic models
class FilePayload(BaseModel):
    """One base64-encoded input file."""
    filename: str = Field(..., description="Original file name, used to guess the type")
    data: str = Field(..., description="Base64-encoded file data")
    content_type: str = Field("", description="MIME type; guessed from filename if empty")


class ProcessRequest(BaseModel):
    """Request body for POST /process (base64 mode)."""
    operation: str = Field(..., description="Operation: split, merge, compress, ...")
    files: List[FilePayload] = Field(default_factory=list)
    options: Dict[str, str] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    """Response body for GET /health."""
    status: str = "ok"
    operations: List[str]
    version: str = ToolboxService.VERSION


def _error(status_code: int, code: str, message: str, **details) -> HTTPException:
    error: Dict[str, Any] = {"code": code, "message": message}
    if details:
        error["details"] = details
    return HTTPException(
        status_code=status_code,
        detail={"success": False, "error": error},
    )


def _check_size(files: List[InputFile]) -> None:
    config = get_config()
    max_bytes = config.operations.max_file_size_mb * 1024 * 1024
    for f in files:
        if len(f.data) > max_bytes:
            raise _error(
                400,
                "FILE_TOO_LARGE",
                f"{f.filename} exceeds {config.operations.max_file_size_mb}MB limit",
            )


def _raise_for_failure(result: OperationResult, service: ToolboxService) -> None:
    if result.success:
        return
    details = {}
    if result.error_code == "INVALID_OPERATION":
        details["supported_operations"] = service.supported_operations()
    raise _error(
        ERROR_STATUS.get(result.error_code, 500),
        result.error_code,
        result.status.message,
        **details,
    )


def create_app(service: ToolboxService = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="PDF Toolbox Service",
        description="Merge, split, compress, watermark, export and reorder PDFs using PyMuPDF",
        version=ToolboxService.VERSION,
    )

    service = service or ToolboxService()

    @app.get("/health", response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        health = service.health()
        return HealthResponse(
            status="ok" if health["healthy"] else "unavailable",
            operations=health["supported_operations"],
            version=health["version"],
        )

    @app.get("/ready")
    async def readiness_check():
        return {"status": "ready"}

    @app.post("/process")
    async def process_document(request: ProcessRequest) -> Dict[str, Any]:
        """Run an operation on base64-encoded files, returning base64 output."""
        files = []
        for payload in request.files:
            try:
                data = base64.b64decode(payload.data, validate=True)
            except Exception as e:
                raise _error(400, "INVALID_BASE64", f"{payload.filename}: {e}")
            files.append(InputFile(payload.filename, data, payload.content_type))
        _check_size(files)

        op_request = OperationRequest.create(request.operation, files, request.options)
        result = await asyncio.to_thread(service.run, op_request)
        _raise_for_failure(result, service)

        return {
            "success": True,
            "result": base64.b64encode(result.data).decode("ascii"),
            "filename": result.filename,
            "format": result.media_type,
            "metadata": result.metadata,
            "status": result.status.to_dict(),
            "processing_time_ms": result.processing_time_ms,
        }

    @app.post("/api/{operation}")
    async def run_operation(
        operation: str,
        request: Request,
        files: List[UploadFile] = File(...),
    ):
        """Run an operation on multipart uploads; other form fields become options."""
        if not service.supports(operation):
            raise _error(
                400,
                "INVALID_OPERATION",
                f"Operation '{operation}' is not supported",
                supported_operations=service.supported_operations(),
            )

        inputs = [
            InputFile(upload.filename or "upload", await upload.read(), upload.content_type or "")
            for upload in files
        ]
        _check_size(inputs)

        form = await request.form()
        options = {key: value for key, value in form.multi_items() if isinstance(value, str)}

        op_request = OperationRequest.create(operation, inputs, options)
        result = await asyncio.to_thread(service.run, op_request)
        _raise_for_failure(result, service)

        return Response(
            content=result.data,
            media_type=result.media_type,
            headers={
                "Content-Disposition": f'attachment; filename="{result.filename}"',
                "X-Status-Message": result.status.message,
                "X-Status-Severity": result.status.severity.value,
                "X-Processing-Time-Ms": str(result.processing_time_ms),
            },
        )

    return app


# Create app instance for uvicorn
app = create_app()


def run_server(host: str = None, port: int = None):
    """Run the HTTP server."""
    import uvicorn
    config = get_config()
    host = host or config.server.host
    port = port or config.server.port
    logger.info(f"Starting HTTP server on {host}:{port}")
    uvicorn.run(
        "pdf_toolbox.http_server:app",
        host=host,
        port=port,
        log_level=config.logging.level.lower(),
    )


if __name__ == "__main__":
    run_server()
