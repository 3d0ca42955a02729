from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Dict, List

from sqlalchemy import Column, DateTime
from sqlalchemy.types import JSON
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _timestamp() -> datetime:
    # Aware UTC on write; SQLite hands values back naive
    return Field(default_factory=utcnow, sa_type=DateTime(timezone=True), nullable=False)


class Paper(SQLModel, table=True):
    __tablename__ = "papers"

    # Source identifier (arXiv id), stable across re-ingestion
    id: str = Field(primary_key=True)
    title: str
    abstract: str = ""
    published_date: date = Field(index=True)
    url: str
    upvotes: int = 0
    created_at: datetime = _timestamp()
    updated_at: datetime = _timestamp()
    has_summary: bool = Field(default=False, index=True)


class Summary(SQLModel, table=True):
    __tablename__ = "summaries"

    id: str = Field(primary_key=True)
    paper_id: str = Field(foreign_key="papers.id", index=True)
    tldr: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    key_innovation: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    practical_applications: List[str] = Field(
        default_factory=list, sa_column=Column(JSON)
    )
    limitations_future_work: List[str] = Field(
        default_factory=list, sa_column=Column(JSON)
    )
    key_terms: Dict[str, str] = Field(default_factory=dict, sa_column=Column(JSON))
    created_at: datetime = _timestamp()
    updated_at: datetime = _timestamp()


# Columns refreshed when an already-stored paper is ingested again
PAPER_MUTABLE_COLUMNS = ("title", "abstract", "url", "upvotes", "updated_at")
