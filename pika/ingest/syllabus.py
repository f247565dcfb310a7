"""
Local syllabus text parser.

Recognizes two line formats without any model call:

    Calculus Homework 4 | homework | 5% | 2026-01-13 | 3 [| score]
    Biology Exam 1 (25%) - due 2026-02-05 - 6h

Lines that match neither format are ignored.
"""

import re
from typing import List, Optional

from pika.models.entities import Assignment, AssignmentType
from pika.utils.dates import is_iso_date_only


SYLLABUS_EXAMPLE = """Calculus Homework 4 | homework | 5% | 2026-01-13 | 3
CS Project Milestone | project | 20% | 2026-01-17 | 10
Biology Exam 1 | exam | 25% | 2026-01-22 | 6 | 88"""

_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")
_ISO_IN_TEXT_RE = re.compile(r"\b(20\d{2})-(\d{2})-(\d{2})\b")
_PAREN_PERCENT_RE = re.compile(r"\(([^)]*%)\)")
_PERCENT_RE = re.compile(r"\b(\d+(?:\.\d+)?)\s*%")
_HOURS_RE = re.compile(r"\b(\d+(?:\.\d+)?)\s*h(?:ours?|rs?)?\b", re.IGNORECASE)
_PAREN_RE = re.compile(r"\s*\(.*?\)\s*")

_TYPE_KEYWORDS = (
    (AssignmentType.EXAM, re.compile(r"\b(exam|midterm|final|quiz)", re.IGNORECASE)),
    (AssignmentType.HOMEWORK, re.compile(r"\b(hw|homework|problem set|pset)", re.IGNORECASE)),
    (AssignmentType.PROJECT, re.compile(r"\b(project|milestone|capstone)", re.IGNORECASE)),
)


def parse_type(raw: str) -> Optional[AssignmentType]:
    for kind, pattern in _TYPE_KEYWORDS:
        if pattern.search(raw):
            return kind
    return None


def pick_number(raw: str) -> Optional[float]:
    match = _NUMBER_RE.search(raw or "")
    return float(match.group(0)) if match else None


def find_iso_date(raw: str) -> Optional[str]:
    match = _ISO_IN_TEXT_RE.search(raw)
    if not match:
        return None
    candidate = "-".join(match.groups())
    return candidate if is_iso_date_only(candidate) else None


def _clamp_score(score: Optional[float]) -> Optional[float]:
    if score is None:
        return None
    return max(0.0, min(100.0, score))


def _parse_pipe_line(line: str) -> Optional[Assignment]:
    parts = [p.strip() for p in line.split("|")]
    parts += [""] * (6 - len(parts))
    name = parts[0]
    kind = parse_type(parts[1]) if parts[1] else None
    weight = pick_number(parts[2])
    due = find_iso_date(parts[3])
    hours = pick_number(parts[4])
    score = pick_number(parts[5]) if parts[5] else None

    if not name or kind is None or weight is None or due is None or hours is None:
        return None
    return Assignment.create(
        name=name,
        type=kind,
        weight=max(0.0, weight),
        due_date=due,
        estimated_hours=max(0.0, hours),
        score=_clamp_score(score),
    )


def _parse_loose_line(line: str) -> Optional[Assignment]:
    paren = _PAREN_PERCENT_RE.search(line)
    weight = pick_number(paren.group(1)) if paren else None
    if weight is None:
        percent = _PERCENT_RE.search(line)
        weight = float(percent.group(1)) if percent else None
    due = find_iso_date(line)
    hours_match = _HOURS_RE.search(line)
    hours = float(hours_match.group(1)) if hours_match else None

    if weight is None or due is None or hours is None:
        return None

    # "Name - due ... - 6h": keep the leading segment as the name
    name = _PAREN_RE.sub(" ", line).split(" - ")[0].strip()
    if not name:
        return None
    return Assignment.create(
        name=name,
        type=parse_type(line) or AssignmentType.HOMEWORK,
        weight=max(0.0, weight),
        due_date=due,
        estimated_hours=max(0.0, hours),
    )


def parse_syllabus_text(text: str) -> List[Assignment]:
    """Extract assignments from pasted syllabus text, one per matching line."""
    out: List[Assignment] = []
    for raw_line in (text or "").splitlines():
        line = raw_line.strip()
        if not line:
            continue
        parsed = _parse_pipe_line(line) if "|" in line else None
        if parsed is None:
            parsed = _parse_loose_line(line)
        if parsed is not None:
            out.append(parsed)
    return out
