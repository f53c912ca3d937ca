"""
Marksheet router
- Batch upload of marksheet images -> Gemini extraction -> class average
- Dashboard data and PDF export for the selected record (class average or one student)
"""

import logging
from typing import List, Literal, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import Response

from config.settings import settings
from dependencies.services import get_batch_store, get_extractor, get_pdf_service
from schemas.common import ErrorResponse, SuccessEnvelope
from schemas.dashboard import ClassOverview, SelectedDashboard
from schemas.marksheets import (
    AggregateSelection,
    BatchAnalysis,
    BatchSummary,
    IndividualSelection,
    ReportRequest,
)
from services.batch_service import run_batch_analysis
from services.batch_store import BatchStore
from services.dashboard_service import (
    build_class_overview,
    build_selected_dashboard,
    resolve_selection,
    selection_title,
)
from services.llm.base import ImagePayload, MarksheetExtractor
from services.pdf_service import PDFService, report_filename

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/marksheets", tags=["marksheets"])


# ==========================================================
# [Upload] validation
# ==========================================================
async def _read_images(files: Optional[List[UploadFile]]) -> List[ImagePayload]:
    if not files:
        raise HTTPException(status_code=400, detail="Upload at least one marksheet image")
    if len(files) > settings.MAX_BATCH_IMAGES:
        raise HTTPException(
            status_code=400,
            detail=f"Too many files: {len(files)} (max {settings.MAX_BATCH_IMAGES})",
        )

    images = []
    for f in files:
        content_type = (f.content_type or "").lower()
        if not content_type.startswith("image/"):
            raise HTTPException(status_code=415, detail=f"Not an image: {f.filename} ({content_type or 'unknown'})")

        data = await f.read()
        if len(data) > settings.max_upload_bytes:
            raise HTTPException(
                status_code=413,
                detail=f"{f.filename} exceeds {settings.MAX_UPLOAD_MB}MB",
            )
        images.append(ImagePayload(data=data, mime_type=content_type, filename=f.filename))
    return images


# ==========================================================
# [Batch] analyze / list / get
# ==========================================================
@router.post(
    "/analyze",
    response_model=SuccessEnvelope[BatchAnalysis],
    responses={502: {"model": ErrorResponse, "description": "Every image failed"}},
)
async def analyze_marksheets(
    files: Optional[List[UploadFile]] = File(default=None),
    extractor: MarksheetExtractor = Depends(get_extractor),
    store: BatchStore = Depends(get_batch_store),
):
    """
    Analyze a batch of marksheet images
    - every image is extracted concurrently; failed images are counted, not fatal
    - default view of the result is the class average
    - all images failed -> 502 BATCH_FAILED
    """
    images = await _read_images(files)
    logger.info(f"Batch analysis requested: {len(images)} images")

    batch = await run_batch_analysis(images, extractor)
    store.save(batch)

    return SuccessEnvelope(data=batch, message=batch.message)


@router.get("", response_model=SuccessEnvelope[List[BatchSummary]])
def list_batches(store: BatchStore = Depends(get_batch_store)):
    summaries = [
        BatchSummary(
            batch_id=b.batch_id,
            created_at=b.created_at,
            student_count=len(b.results),
            failure_count=b.failure_count,
        )
        for b in store.all()
    ]
    return SuccessEnvelope(data=summaries)


@router.get("/{batch_id}", response_model=SuccessEnvelope[BatchAnalysis])
def get_batch(batch_id: str, store: BatchStore = Depends(get_batch_store)):
    batch = store.get(batch_id)
    return SuccessEnvelope(data=batch, message=batch.message)


# ==========================================================
# [Dashboard]
# ==========================================================
@router.get("/{batch_id}/overview", response_model=SuccessEnvelope[ClassOverview])
def get_class_overview(batch_id: str, store: BatchStore = Depends(get_batch_store)):
    batch = store.get(batch_id)
    return SuccessEnvelope(data=build_class_overview(batch))


@router.get("/{batch_id}/dashboard", response_model=SuccessEnvelope[SelectedDashboard])
def get_dashboard(
    batch_id: str,
    view: Literal["aggregate", "individual"] = Query("aggregate"),
    index: Optional[int] = Query(default=None, ge=0),
    store: BatchStore = Depends(get_batch_store),
):
    batch = store.get(batch_id)

    if view == "individual":
        if index is None:
            raise HTTPException(status_code=422, detail="index is required when view=individual")
        selection = IndividualSelection(index=index)
    else:
        selection = AggregateSelection()

    return SuccessEnvelope(data=build_selected_dashboard(batch, selection))


# ==========================================================
# [PDF] performance report
# ==========================================================
@router.post("/{batch_id}/report")
def download_report(
    batch_id: str,
    req: ReportRequest,
    store: BatchStore = Depends(get_batch_store),
    pdf_service: PDFService = Depends(get_pdf_service),
):
    batch = store.get(batch_id)
    record = resolve_selection(batch, req.selection)

    pdf_content = pdf_service.generate_report_pdf(
        record,
        title=selection_title(batch, req.selection),
        snapshot=req.snapshot,
    )

    filename = report_filename(record)
    return Response(
        content=pdf_content,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}",
            "Cache-Control": "no-store",
        },
    )
