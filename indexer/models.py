"""Data models shared by the loader, the index and the search path."""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class Document(BaseModel):
    """A single decision record.

    ``identifier`` is the file name the record was loaded from. Documents
    rebuilt from search hits leave ``identifier``, ``date`` and ``body`` at
    their defaults because the index does not store them.
    """
    model_config = ConfigDict(frozen=True)

    identifier: str = Field(default="", description="File name of the backing record")
    number: int = Field(default=0, description="Sequence number from the header")
    title: str = Field(default="", description="Display title")
    date: Optional[datetime] = Field(default=None, description="Decision date")
    status: str = Field(default="", description="Status such as accepted or proposed")
    body: str = Field(default="", description="Free text following the header")

    @property
    def key(self) -> str:
        """Case-normalized index key."""
        return normalize_key(self.identifier)


def normalize_key(identifier: str) -> str:
    return identifier.lower()


@dataclass
class RecordLoadError:
    """A record that was skipped during corpus loading."""
    source: str
    error_type: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {
            'source': self.source,
            'error_type': self.error_type,
            'message': self.message
        }


@dataclass
class SearchHit:
    """One ranked match returned by the query engine."""
    key: str
    score: float
    fields: Dict[str, object]
    highlights: Dict[str, List[str]] = field(default_factory=dict)
    spans: Dict[str, List[Tuple[int, int]]] = field(default_factory=dict)


@dataclass
class SearchResult:
    """Outcome of a query: total matches plus the ranked hits."""
    query: str
    total: int
    hits: List[SearchHit]
    took: float = 0.0
