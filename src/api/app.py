"""FastAPI application for the ID document scanning API.

Provides REST endpoints for single and batch document scans, template
listing, and health checks.
"""

import functools
import shutil
import time
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Annotated

from fastapi import FastAPI, File, HTTPException, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from starlette.concurrency import run_in_threadpool

from src.ocr.document_processor import DocumentProcessor, DocumentResult
from src.utils.config import load_config
from src.utils.exceptions import ImageLoadError, WorkerAcquisitionError
from src.utils.logger import get_logger

from .schemas import (
    AnchorResponse,
    BatchItemResponse,
    BatchScanResponse,
    HealthResponse,
    ImageQualityResponse,
    PoolStatsResponse,
    QualityReportResponse,
    RegionResponse,
    ROIResponse,
    ScanResponse,
    TemplateInfo,
    TemplatesResponse,
)

logger = get_logger(__name__)

API_VERSION = "1.0.0"


@functools.lru_cache(maxsize=1)
def _get_components() -> DocumentProcessor:
    """Build the shared processor, whose worker pool serves all requests.

    Returns:
        Document processor with its template registry and worker pool.
    """
    return DocumentProcessor(load_config())


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    yield
    if _get_components.cache_info().currsize:
        _get_components().close()
        _get_components.cache_clear()


app = FastAPI(
    title="ID Document Scanner API",
    description="Locate anchors and field regions on identity documents",
    version=API_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_ALLOWED_CONTENT_TYPES = {
    "image/png",
    "image/jpeg",
    "image/tiff",
    "image/webp",
    "image/bmp",
    "application/octet-stream",
}


def _to_response(result: DocumentResult, processing_time: float) -> ScanResponse:
    """Convert a pipeline result to the API response schema."""
    return ScanResponse(
        success=True,
        document_id=str(uuid.uuid4()),
        template=result.template_name or "",
        image_quality=ImageQualityResponse(**asdict(result.image_quality)),
        anchors=[
            AnchorResponse(
                anchor=key,
                text=anchor.text,
                keyword=anchor.keyword,
                confidence=anchor.confidence,
                position=RegionResponse(
                    x=round(anchor.position.x),
                    y=round(anchor.position.y),
                    width=round(anchor.position.width),
                    height=round(anchor.position.height),
                ),
            )
            for key, anchor in result.anchors.items()
        ],
        rois=[
            ROIResponse(
                field_name=key,
                x=roi.x,
                y=roi.y,
                width=roi.width,
                height=roi.height,
                anchor=roi.anchor,
                anchor_position=RegionResponse(**asdict(roi.anchor_position)),
            )
            for key, roi in result.rois.items()
        ],
        quality=QualityReportResponse(**result.quality.to_dict()),
        processing_time_ms=processing_time,
    )


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return system health status."""
    stats = _get_components().pool.stats()
    return HealthResponse(
        status="healthy",
        version=API_VERSION,
        tesseract_available=shutil.which("tesseract") is not None,
        pool=PoolStatsResponse(**asdict(stats)),
    )


@app.post("/scan", response_model=ScanResponse)
async def scan_document(
    file: Annotated[UploadFile, File(...)],
    template: Annotated[str, Query()],
) -> ScanResponse:
    """Locate anchors and field regions on an uploaded document image.

    Args:
        file: Uploaded image file (PNG, JPEG, TIFF, WebP or BMP).
        template: Name of the document template to apply.

    Returns:
        Anchors, ROIs and detection quality for the document.
    """
    start_time = time.time()

    if file.content_type and file.content_type not in _ALLOWED_CONTENT_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type: {file.content_type}",
        )

    try:
        processor = _get_components()
        resolved = processor.resolve_template(template)
        if resolved is None:
            raise HTTPException(status_code=404, detail=f"Unknown template: {template}")

        content = await file.read()
        result = await run_in_threadpool(
            processor.process, content, resolved, file.filename or "document"
        )
        return _to_response(result, (time.time() - start_time) * 1000)

    except HTTPException:
        raise
    except ImageLoadError as exc:
        logger.warning("Rejected unreadable upload %s: %s", file.filename, exc)
        raise HTTPException(
            status_code=422, detail=f"Could not read image, please re-upload: {exc}"
        ) from exc
    except WorkerAcquisitionError as exc:
        logger.error("OCR worker unavailable: %s", exc)
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except Exception as exc:
        logger.error("Scan failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc


@app.post("/scan/batch", response_model=BatchScanResponse)
async def scan_batch(
    files: Annotated[list[UploadFile], File(...)],
    template: Annotated[str, Query()],
) -> BatchScanResponse:
    """Scan multiple uploaded document images with one template.

    Args:
        files: List of uploaded image files.
        template: Name of the document template to apply.

    Returns:
        Batch scan results with per-file outcomes.
    """
    results: list[BatchItemResponse] = []
    successful = 0

    for file in files:
        try:
            result = await scan_document(file, template)
            results.append(
                BatchItemResponse(filename=file.filename or "unknown", result=result)
            )
            successful += 1
        except HTTPException as exc:
            results.append(
                BatchItemResponse(filename=file.filename or "unknown", error=exc.detail)
            )

    return BatchScanResponse(
        success=successful > 0,
        total_documents=len(files),
        successful=successful,
        failed=len(files) - successful,
        results=results,
    )


@app.get("/templates", response_model=TemplatesResponse)
async def list_templates() -> TemplatesResponse:
    """List the document templates available for scanning."""
    registry = _get_components().templates
    return TemplatesResponse(
        templates=[
            TemplateInfo(
                name=name,
                description=template.description,
                anchors=list(template.anchors),
                fields=list(template.fields),
            )
            for name, template in registry.templates.items()
        ]
    )
