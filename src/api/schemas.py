"""Pydantic request/response schemas for the FastAPI endpoints."""

from pydantic import BaseModel


class RegionResponse(BaseModel):
    """Integer pixel rectangle."""

    x: int
    y: int
    width: int
    height: int


class AnchorResponse(BaseModel):
    """Response schema for a detected anchor."""

    anchor: str
    text: str
    keyword: str
    confidence: float
    position: RegionResponse


class ROIResponse(BaseModel):
    """Response schema for a field region in full-resolution pixels."""

    field_name: str
    x: int
    y: int
    width: int
    height: int
    anchor: str
    anchor_position: RegionResponse


class QualityReportResponse(BaseModel):
    """Response schema for anchor detection quality."""

    quality: float
    detected: list[str]
    missing: list[str]
    is_valid: bool


class ImageQualityResponse(BaseModel):
    """Response schema for image brightness, contrast and size."""

    width: int
    height: int
    brightness: int
    contrast: int
    resolution: int
    aspect_ratio: float


class ScanResponse(BaseModel):
    """Response schema for a document scan request."""

    success: bool
    document_id: str
    template: str
    image_quality: ImageQualityResponse
    anchors: list[AnchorResponse]
    rois: list[ROIResponse]
    quality: QualityReportResponse
    processing_time_ms: float


class BatchItemResponse(BaseModel):
    """Response schema for a single item in a batch scan."""

    filename: str
    result: ScanResponse | None = None
    error: str | None = None


class BatchScanResponse(BaseModel):
    """Response schema for batch scanning of multiple documents."""

    success: bool
    total_documents: int
    successful: int
    failed: int
    results: list[BatchItemResponse]


class TemplateInfo(BaseModel):
    """Information about a supported document template."""

    name: str
    description: str
    anchors: list[str]
    fields: list[str]


class TemplatesResponse(BaseModel):
    """Response schema listing available document templates."""

    templates: list[TemplateInfo]


class PoolStatsResponse(BaseModel):
    """Response schema for OCR worker pool occupancy."""

    size: int
    created: int
    idle: int
    busy: int
    closed: bool


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    tesseract_available: bool
    pool: PoolStatsResponse
