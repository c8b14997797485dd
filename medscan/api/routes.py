import logging
from typing import Optional

from fastapi import APIRouter, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from medscan.api.schemas import AnalyzeResponse, HealthResponse, ValidateResponse
from medscan.inference.catalog import SCAN_REQUIREMENTS
from medscan.inference.pipeline import ScanAnalyzer
from medscan.inference.types import ScanUpload

logger = logging.getLogger(__name__)

router = APIRouter()

SUPPORTED_FORMATS = ["DICOM (.dcm, .dicom)", "JPG", "PNG"]


def _analyzer(request: Request) -> ScanAnalyzer:
    return request.app.state.analyzer


async def _read_upload(request: Request, file: UploadFile, last_modified: Optional[int]):
    """Returns a ScanUpload, or a 413 JSONResponse when the body is over the limit."""
    limit = request.app.state.settings.max_upload_bytes
    data = await file.read(limit + 1)
    if len(data) > limit:
        logger.warning("Rejected %s: larger than %d bytes", file.filename, limit)
        return JSONResponse(
            status_code=413,
            content={
                "status": "error",
                "result": {
                    "error": "File too large",
                    "message": f"Please upload a file smaller than {limit // (1024 * 1024)}MB.",
                },
            },
        )
    return ScanUpload(
        name=file.filename or "upload",
        data=data,
        content_type=file.content_type or "application/octet-stream",
        last_modified=last_modified or 0,
    )


@router.get("/")
async def index():
    return {
        "status": "ok",
        "message": "Heuristic medical scan analyzer (demo only, not a diagnostic device)",
        "docs": "/docs",
        "endpoints": {
            "GET /health": "service health check",
            "GET /config": "active analyzer thresholds",
            "GET /analyze": "usage help for the analysis endpoint",
            "POST /analyze": "analyze an uploaded scan via multipart/form-data",
            "POST /validate-image": "check whether an image looks like a medical scan",
        },
    }


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse()


@router.get("/config")
async def get_config(request: Request):
    return {"status": "ok", "config": _analyzer(request).config.model_dump()}


@router.get("/analyze")
async def analyze_help():
    return {
        "status": "ready",
        "detail": "Use POST multipart/form-data to /analyze to run the analysis.",
        "fields": {
            "file": "image upload (required): " + ", ".join(SUPPORTED_FORMATS),
            "last_modified": "integer epoch milliseconds (optional)",
        },
        "example_curl": "curl -X POST http://localhost:8000/analyze -F 'file=@/path/to/chest_xray.png'",
    }


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze(
    request: Request,
    file: UploadFile = File(...),
    last_modified: Optional[int] = Form(None),
):
    upload = await _read_upload(request, file, last_modified)
    if isinstance(upload, JSONResponse):
        return upload
    # DecodeError is turned into a 422 by the app-level handler
    result = await run_in_threadpool(_analyzer(request).analyze, upload)
    return AnalyzeResponse(status="ok", message=result.summary, result=result.to_dict())


@router.post("/validate-image", response_model=ValidateResponse, response_model_exclude_none=True)
async def validate_image(request: Request, file: UploadFile = File(...)):
    """Pre-upload check: runs the validity rules without generating a report."""
    upload = await _read_upload(request, file, None)
    if isinstance(upload, JSONResponse):
        return upload
    chars, classification = await run_in_threadpool(_analyzer(request).screen, upload)
    response = ValidateResponse(
        valid=classification.is_valid_medical_scan,
        filename=upload.name,
        failed_checks=list(classification.failed_checks),
        characteristics=chars.to_dict(full=True),
    )
    if not response.valid:
        response.reason = "Image does not appear to be a valid medical scan"
        response.requirements = [SCAN_REQUIREMENTS[c] for c in classification.failed_checks]
    return response
