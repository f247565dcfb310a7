from dataclasses import asdict
from typing import Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from pika.models.entities import (
    Assignment,
    AssignmentType,
    FocusWindow,
    NotificationSettings,
    PlannerSettings,
    clamp_session_minutes,
)
from pika.storage.database import AssignmentModel, SettingModel


PLANNER_KEY = "planner"
NOTIFICATIONS_KEY = "notifications"


class AssignmentRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, assignment_id: str) -> Optional[Assignment]:
        model = self.db.query(AssignmentModel).filter(AssignmentModel.id == assignment_id).first()
        if not model:
            return None
        return self._model_to_assignment(model)

    def list_all(self) -> List[Assignment]:
        models = self.db.query(AssignmentModel).order_by(AssignmentModel.created_at, AssignmentModel.id).all()
        return [self._model_to_assignment(m) for m in models]

    def save(self, assignment: Assignment) -> None:
        existing = self.db.query(AssignmentModel).filter(AssignmentModel.id == assignment.id).first()
        if existing:
            existing.name = assignment.name
            existing.type = assignment.type.value
            existing.weight = assignment.weight
            existing.score = assignment.score
            existing.due_date = assignment.due_date
            existing.estimated_hours = assignment.estimated_hours
        else:
            self.db.add(self._assignment_to_model(assignment))
        self.db.commit()

    def replace_all(self, assignments: Sequence[Assignment]) -> None:
        self.db.query(AssignmentModel).delete()
        for a in assignments:
            self.db.add(self._assignment_to_model(a))
        self.db.commit()

    def set_score(self, assignment_id: str, score: Optional[float]) -> bool:
        model = self.db.query(AssignmentModel).filter(AssignmentModel.id == assignment_id).first()
        if not model:
            return False
        model.score = score
        self.db.commit()
        return True

    def delete(self, assignment_id: str) -> bool:
        deleted = self.db.query(AssignmentModel).filter(AssignmentModel.id == assignment_id).delete()
        self.db.commit()
        return deleted > 0

    @staticmethod
    def _assignment_to_model(a: Assignment) -> AssignmentModel:
        return AssignmentModel(
            id=a.id,
            name=a.name,
            type=a.type.value,
            weight=a.weight,
            score=a.score,
            due_date=a.due_date,
            estimated_hours=a.estimated_hours,
            created_at=a.created_at,
        )

    @staticmethod
    def _model_to_assignment(model: AssignmentModel) -> Assignment:
        return Assignment(
            id=model.id,
            name=model.name,
            type=AssignmentType(model.type),
            weight=model.weight,
            score=model.score,
            due_date=model.due_date,
            estimated_hours=model.estimated_hours,
            created_at=model.created_at,
        )


def planner_settings_to_json(settings: PlannerSettings) -> Dict:
    return {
        "session_minutes": settings.session_minutes,
        "focus_windows": {
            str(day): [{"start": w.start, "end": w.end} for w in windows]
            for day, windows in sorted(settings.focus_windows.items())
        },
    }


def planner_settings_from_json(data: Dict) -> PlannerSettings:
    windows = {
        int(day): tuple(FocusWindow(start=w.get("start", ""), end=w.get("end", "")) for w in items)
        for day, items in (data.get("focus_windows") or {}).items()
    }
    return PlannerSettings(
        session_minutes=clamp_session_minutes(data.get("session_minutes", 60)),
        focus_windows=windows,
    )


class SettingsRepository:
    def __init__(self, db: Session):
        self.db = db

    def _get(self, key: str) -> Optional[Dict]:
        model = self.db.query(SettingModel).filter(SettingModel.key == key).first()
        return None if model is None else model.value

    def _put(self, key: str, value: Dict) -> None:
        model = self.db.query(SettingModel).filter(SettingModel.key == key).first()
        if model:
            model.value = value
        else:
            self.db.add(SettingModel(key=key, value=value))
        self.db.commit()

    def get_planner_settings(self, default_session_minutes: int = 60) -> PlannerSettings:
        raw = self._get(PLANNER_KEY)
        if raw is None:
            return PlannerSettings.default(default_session_minutes)
        return planner_settings_from_json(raw)

    def save_planner_settings(self, settings: PlannerSettings) -> None:
        self._put(PLANNER_KEY, planner_settings_to_json(settings))

    def get_notification_settings(self) -> NotificationSettings:
        raw = self._get(NOTIFICATIONS_KEY)
        if raw is None:
            return NotificationSettings()
        return NotificationSettings(**raw)

    def save_notification_settings(self, settings: NotificationSettings) -> None:
        self._put(NOTIFICATIONS_KEY, asdict(settings))
