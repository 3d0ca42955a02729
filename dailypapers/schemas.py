from __future__ import annotations

from datetime import date, datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

ScrapeMode = Literal["fixed-days", "since-last"]


class JobResult(BaseModel):
    total_items: int = 0
    days_processed: int = 0


class JobProgress(BaseModel):
    current_day: int = 0
    total_days: int = 0
    current_batch: int = 0
    total_batches: int = 0
    items_so_far: int = 0
    current_date: Optional[date] = None
    logs: List[str] = Field(default_factory=list)


class JobStatus(BaseModel):
    is_running: bool = False
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    last_error: Optional[str] = None
    mode: Optional[ScrapeMode] = None
    days_requested: Optional[int] = None
    last_result: Optional[JobResult] = None
    progress: Optional[JobProgress] = None


class ScrapeRequest(BaseModel):
    mode: str = "fixed-days"
    days: Optional[int] = None


class ScrapeResponse(BaseModel):
    message: str
    started: bool
    status: JobStatus


class ItemError(BaseModel):
    paper_id: str
    error: str


class EnrichmentResult(BaseModel):
    total: int = 0
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    errors: List[ItemError] = Field(default_factory=list)


class PaperOut(BaseModel):
    id: str
    title: str
    abstract: str
    published_date: date
    url: str
    upvotes: int
    has_summary: bool
    created_at: datetime
    updated_at: datetime


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int


class PaperListResponse(BaseModel):
    papers: List[PaperOut]
    pagination: Pagination


class SummaryOut(BaseModel):
    id: str
    paper_id: str
    tldr: List[str]
    key_innovation: List[str]
    practical_applications: List[str]
    limitations_future_work: List[str]
    key_terms: Dict[str, str]
    created_at: datetime
    updated_at: datetime


class SummaryResponse(BaseModel):
    message: Optional[str] = None
    summary: SummaryOut
