from dataclasses import dataclass
from typing import List, Optional, Sequence

from pika.models.entities import Assignment, AssignmentType


@dataclass(frozen=True)
class GradeSummary:
    goal: float
    total_weight: float
    scored_weight: float
    remaining_weight: float
    points: float  # sum of weight * score over scored assignments
    current: Optional[float]
    needed: Optional[float]
    needed_label: str


@dataclass(frozen=True)
class TypeBreakdown:
    type: AssignmentType
    count: int
    scored_weight: float
    average: Optional[float]


def _weight(a: Assignment) -> float:
    return float(a.weight or 0)


def needed_label(needed: Optional[float], remaining_weight: float) -> str:
    if needed is None:
        return "All assignments are scored." if remaining_weight == 0 else "—"
    if needed > 100:
        return "Not possible (needs > 100%)."
    if needed < 0:
        return "Goal already guaranteed."
    return f"{round(needed, 1)}%"


def grade_summary(assignments: Sequence[Assignment], goal: float) -> GradeSummary:
    """
    Project the final grade from weighted scores.

    The current grade is the weighted average of scored work. The needed
    average is what the unscored weight must average for the overall grade
    to reach ``goal``.
    """
    total_weight = sum(_weight(a) for a in assignments)
    scored = [a for a in assignments if a.score is not None]
    scored_weight = sum(_weight(a) for a in scored)
    points = sum(_weight(a) * a.score for a in scored)
    current = points / scored_weight if scored_weight > 0 else None

    remaining_weight = max(0.0, total_weight - scored_weight)
    needed = (goal * total_weight - points) / remaining_weight if remaining_weight > 0 else None

    return GradeSummary(
        goal=goal,
        total_weight=total_weight,
        scored_weight=scored_weight,
        remaining_weight=remaining_weight,
        points=points,
        current=current,
        needed=needed,
        needed_label=needed_label(needed, remaining_weight),
    )


def grades_by_type(assignments: Sequence[Assignment]) -> List[TypeBreakdown]:
    out = []
    for kind in (AssignmentType.EXAM, AssignmentType.HOMEWORK, AssignmentType.PROJECT):
        group = [a for a in assignments if a.type == kind]
        scored = [a for a in group if a.score is not None]
        scored_weight = sum(_weight(a) for a in scored)
        points = sum(_weight(a) * a.score for a in scored)
        out.append(TypeBreakdown(
            type=kind,
            count=len(group),
            scored_weight=scored_weight,
            average=points / scored_weight if scored_weight > 0 else None,
        ))
    return out
