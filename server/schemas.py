from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class RecordSummary(BaseModel):
    identifier: str
    number: int
    title: str
    date: Optional[datetime] = None
    status: str


class RecordDetail(RecordSummary):
    body: str


class RecordList(BaseModel):
    count: int
    records: List[RecordSummary]


class SearchResultItem(BaseModel):
    """A projected search hit.

    ``identifier`` and ``date`` are always empty here: the index does not
    store them.
    """
    identifier: str
    number: int
    title: str
    date: Optional[datetime] = None
    status: str
    score: float
    highlights: Dict[str, List[str]]


class SearchResponse(BaseModel):
    query: str
    total: int
    took_ms: float
    results: List[SearchResultItem]


class LoadErrorItem(BaseModel):
    source: str
    error_type: str
    message: str


class HealthResponse(BaseModel):
    status: str
    time: str
    documents: int
    skipped: int


class DetailedHealthResponse(HealthResponse):
    base_dir: str
    errors: List[LoadErrorItem]
    system: Dict[str, Any]
