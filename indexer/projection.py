"""Maps raw search hits back to Document values.

Only the stored fields (number, title, status) survive the trip through the
index. Identifier, date and body stay at their defaults on this path.
"""

import logging
from typing import Any, List, Mapping, Union

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .errors import ProjectionError
from .models import Document, SearchHit

logger = logging.getLogger(__name__)


class HitFields(BaseModel):
    """Schema the stored fields of a hit must satisfy."""
    model_config = ConfigDict(extra='ignore', strict=True)

    number: Union[int, float]
    title: str
    status: str

    @field_validator('number')
    @classmethod
    def _integral(cls, value: Union[int, float]) -> int:
        if isinstance(value, float):
            if not value.is_integer():
                raise ValueError("number is not integral")
            return int(value)
        return value


def project_hit(fields: Union[SearchHit, Mapping[str, Any]]) -> Document:
    """Turn the stored fields of one hit into a Document.

    Raises:
        ProjectionError: If a required field is missing or has the wrong type
    """
    if isinstance(fields, SearchHit):
        fields = fields.fields
    if not isinstance(fields, Mapping):
        raise ProjectionError(f"hit fields must be a mapping, got {type(fields).__name__}")

    try:
        decoded = HitFields.model_validate(dict(fields))
    except ValidationError as e:
        names = sorted({str(err['loc'][0]) for err in e.errors() if err['loc']})
        raise ProjectionError(f"invalid hit fields: {', '.join(names)}") from e

    return Document(number=int(decoded.number), title=decoded.title, status=decoded.status)


def project_hits(hits: List[Union[SearchHit, Mapping[str, Any]]]) -> List[Document]:
    return [project_hit(hit) for hit in hits]
