from __future__ import annotations

import math
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from .errors import GenerationError, PersistenceError, ValidationError
from .models import Summary
from .pipeline import Pipeline
from .schemas import (
    EnrichmentResult,
    JobStatus,
    Pagination,
    PaperListResponse,
    PaperOut,
    ScrapeRequest,
    ScrapeResponse,
    SummaryOut,
    SummaryResponse,
)

router = APIRouter()


def get_pipeline(request: Request) -> Pipeline:
    return request.app.state.pipeline


def _summary_out(summary: Summary) -> SummaryOut:
    return SummaryOut.model_validate(summary, from_attributes=True)


@router.post("/scrape", response_model=ScrapeResponse)
async def start_scrape(
    body: ScrapeRequest, pipeline: Pipeline = Depends(get_pipeline)
) -> ScrapeResponse:
    try:
        started, message, status = pipeline.ingestion.start(body.mode, body.days)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from None
    return ScrapeResponse(message=message, started=started, status=status)


@router.get("/scrape/status", response_model=JobStatus)
def scrape_status(pipeline: Pipeline = Depends(get_pipeline)) -> JobStatus:
    return pipeline.tracker.snapshot()


@router.post("/summaries/generate-all", response_model=EnrichmentResult)
async def generate_all_summaries(
    limit: Optional[int] = Query(default=None, ge=1),
    newest_first: bool = True,
    pipeline: Pipeline = Depends(get_pipeline),
) -> EnrichmentResult:
    try:
        return await pipeline.enrichment.run(limit=limit, newest_first=newest_first)
    except PersistenceError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from None


@router.post("/papers/{paper_id}/summary", response_model=SummaryResponse)
async def create_summary(
    paper_id: str, pipeline: Pipeline = Depends(get_pipeline)
) -> SummaryResponse:
    try:
        summary, created = await pipeline.enrichment.summarize_one(paper_id)
    except LookupError:
        raise HTTPException(status_code=404, detail="Paper not found") from None
    except GenerationError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from None
    message = None if created else "Summary already exists"
    return SummaryResponse(message=message, summary=_summary_out(summary))


@router.get("/papers/{paper_id}/summary", response_model=SummaryResponse)
def read_summary(
    paper_id: str, pipeline: Pipeline = Depends(get_pipeline)
) -> SummaryResponse:
    summary = pipeline.store.latest_summary(paper_id)
    if summary is None:
        raise HTTPException(status_code=404, detail="Summary not found")
    return SummaryResponse(summary=_summary_out(summary))


@router.get("/papers", response_model=PaperListResponse)
def list_papers(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    sort_by: str = Query(default="date", pattern="^(date|upvotes)$"),
    sort_order: str = Query(default="desc", pattern="^(asc|desc)$"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    pipeline: Pipeline = Depends(get_pipeline),
) -> PaperListResponse:
    papers, total = pipeline.store.list_papers(
        start_date=start_date,
        end_date=end_date,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    return PaperListResponse(
        papers=[PaperOut.model_validate(p, from_attributes=True) for p in papers],
        pagination=Pagination(
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit) if total else 0,
        ),
    )
