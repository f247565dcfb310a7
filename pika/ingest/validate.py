"""
Schema boundary for model-extracted assignments.

Raw JSON from an LLM is checked against a strict schema before anything is
turned into an Assignment. Validation failures surface as
SyllabusValidationError with pydantic's error list attached.
"""

import re
from datetime import datetime, timedelta
from typing import Annotated, Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, TypeAdapter, ValidationError

from pika.errors import SyllabusValidationError
from pika.models.entities import Assignment, AssignmentType
from pika.utils.dates import is_iso_date_only


Number = Union[StrictInt, StrictFloat]

DEFAULT_HOURS = {
    AssignmentType.EXAM: 6.0,
    AssignmentType.PROJECT: 10.0,
    AssignmentType.HOMEWORK: 2.0,
}

_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}
_MDY_RE = re.compile(r"\b(\d{1,2})[/-](\d{1,2})(?:[/-](\d{2,4}))?\b")
_MONTH_NAME_RE = re.compile(r"\b([A-Za-z]{3,9})\.?\s+(\d{1,2})(?:\s*,?\s*(\d{4}))?\b")


class LlmAssignment(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, allow_inf_nan=False)

    name: str = Field(..., min_length=1)
    type: AssignmentType
    weight: Number
    score: Optional[Annotated[Number, Field(ge=0, le=100)]] = None
    due_date: str = Field(..., min_length=1)
    estimated_hours: Number


LlmAssignments = TypeAdapter(Annotated[List[LlmAssignment], Field(min_length=1)])


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def infer_year(month: int, day: int, now: datetime) -> int:
    """Current year, unless that date passed more than 30 days ago."""
    try:
        candidate = datetime(now.year, month, day, 23, 59, 59, 999000)
    except ValueError:
        return now.year
    if candidate - now < -timedelta(days=30):
        return now.year + 1
    return now.year


def _iso_or_none(year: int, month: int, day: int) -> Optional[str]:
    candidate = f"{year:04d}-{month:02d}-{day:02d}"
    return candidate if is_iso_date_only(candidate) else None


def coerce_due_date(raw: str, now: Optional[datetime] = None) -> str:
    """
    Coerce a loosely formatted due date into YYYY-MM-DD.

    Accepts ISO dates, MM/DD[/YY[YY]] and "Mon DD[, YYYY]". Missing years are
    inferred with infer_year; anything unrecognizable becomes today's date.
    """
    now = now or datetime.now()
    today = now.strftime("%Y-%m-%d")
    trimmed = (raw or "").strip()
    if is_iso_date_only(trimmed):
        return trimmed

    mdy = _MDY_RE.search(trimmed)
    if mdy:
        month, day = int(mdy.group(1)), int(mdy.group(2))
        year = int(mdy.group(3)) if mdy.group(3) else None
        if year is not None and year < 100:
            year += 2000
        if year is None:
            year = infer_year(month, day, now)
        return _iso_or_none(year, month, day) or today

    named = _MONTH_NAME_RE.search(trimmed)
    if named:
        month = _MONTHS.get(named.group(1)[:3].lower())
        if month is None:
            return today
        day = int(named.group(2))
        year = int(named.group(3)) if named.group(3) else infer_year(month, day, now)
        return _iso_or_none(year, month, day) or today

    return today


def _unwrap(raw: Any) -> Any:
    # json_object response modes force a wrapper object around the array
    if isinstance(raw, dict) and isinstance(raw.get("assignments"), list):
        return raw["assignments"]
    return raw


def normalize_assignments(raw: Any, now: Optional[datetime] = None) -> List[Assignment]:
    """
    Validate model output and convert it into assignments.

    Raises:
        SyllabusValidationError: the payload does not match the schema
    """
    try:
        parsed = LlmAssignments.validate_python(_unwrap(raw))
    except ValidationError as e:
        raise SyllabusValidationError(
            "LLM output did not match the assignment schema",
            e.errors(include_url=False, include_context=False),
        ) from e

    now = now or datetime.now()
    out: List[Assignment] = []
    for item in parsed:
        hours = float(item.estimated_hours) or DEFAULT_HOURS[item.type]
        out.append(Assignment.create(
            name=item.name.strip(),
            type=item.type,
            weight=_clamp(float(item.weight), 0.0, 100.0),
            due_date=coerce_due_date(item.due_date, now),
            estimated_hours=max(0.0, hours),
            score=None if item.score is None else _clamp(float(item.score), 0.0, 100.0),
        ))
    return out
