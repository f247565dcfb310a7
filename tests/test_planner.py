from datetime import datetime, timedelta

import pytest

from conftest import make_assignment
from pika.engine.planner import (
    build_weekly_plan,
    effort_minutes,
    overflow_day_index,
    scheduled_minutes_by_assignment,
    total_overflow_minutes,
)
from pika.errors import InvalidDueDateError, PlannerConfigError
from pika.models.entities import EventKind, FocusWindow, PlannerSettings
from pika.utils.dates import parse_iso_date_only


def study_events(plans, assignment_id=None):
    return [
        e for d in plans for e in d.events
        if e.kind == EventKind.STUDY and (assignment_id is None or e.assignment_id == assignment_id)
    ]


class TestWeeklyPlanScenarios:
    """End-to-end allocation scenarios on a fixed Monday-morning clock."""

    def test_ten_hours_spread_over_weekday_evenings(self, project_due_friday, weekday_evenings, now):
        """10h due Friday with two 60-min evening slots Mon-Fri fills every slot, no overflow."""
        plans = build_weekly_plan([project_due_friday], weekday_evenings, now)

        assert len(plans) == 7
        for day in plans[:5]:
            sessions = [e for e in day.events if e.kind == EventKind.STUDY]
            assert [e.minutes for e in sessions] == [60, 60]
            assert [e.start.hour for e in sessions] == [18, 19]
        assert sum(e.minutes for e in study_events(plans)) == 600
        assert total_overflow_minutes(plans) == 0

    def test_no_windows_overflow_lands_on_last_day(self, no_windows, now):
        """Due beyond the horizon with no windows: nothing placed, overflow on day 6."""
        a = make_assignment("late", "2026-10-29", 1)
        plans = build_weekly_plan([a], no_windows, now)

        assert all(d.events == [] for d in plans)
        assert [d.overflow_minutes for d in plans] == [0, 0, 0, 0, 0, 0, 60]

    def test_due_today_late_evening(self, now):
        """Due today at 23:00: sessions only before the deadline, marker ends 23:59."""
        settings = PlannerSettings(session_minutes=60, focus_windows={1: (FocusWindow("20:00", "23:00"),)})
        a = make_assignment("tonight", "2026-10-19", 5)
        late = now.replace(hour=23)

        plans = build_weekly_plan([a], settings, late)

        today = plans[0]
        sessions = [e for e in today.events if e.kind == EventKind.STUDY]
        assert [e.start.hour for e in sessions] == [20, 21, 22]
        assert all(e.start <= late for e in sessions)
        marker = today.events[-1]
        assert marker.kind == EventKind.DUE
        assert marker.end == datetime(2026, 10, 19, 23, 59)
        assert marker.start == datetime(2026, 10, 19, 23, 44)
        assert today.overflow_minutes == 120
        assert all(not d.events for d in plans[1:])

    def test_window_running_up_to_midnight(self, now):
        """A 23:00-23:59 window with 15-min sessions stops at the last slot that fits before the deadline."""
        settings = PlannerSettings(session_minutes=15, focus_windows={1: (FocusWindow("23:00", "23:59"),)})
        a = make_assignment("tonight", "2026-10-19", 1)

        plans = build_weekly_plan([a], settings, now)

        due = parse_iso_date_only(a.due_date)
        sessions = study_events(plans)
        assert [e.start.strftime("%H:%M") for e in sessions] == ["23:00", "23:15", "23:30"]
        assert all(e.start < due and e.end <= due for e in sessions)
        markers = [e for d in plans for e in d.events if e.kind == EventKind.DUE]
        assert len(markers) == 1
        assert markers[0].start.date() == sessions[0].start.date() == due.date()
        assert markers[0] in plans[0].events
        assert plans[0].overflow_minutes == 15

    def test_session_longer_than_remaining_window(self, now):
        """45-min sessions in a 09:00-10:00 window give one slot, trailing 15 min unused."""
        settings = PlannerSettings(session_minutes=45, focus_windows={1: (FocusWindow("09:00", "10:00"),)})
        a = make_assignment("a", "2026-10-19", 2)

        plans = build_weekly_plan([a], settings, now)

        sessions = study_events(plans)
        assert len(sessions) == 1
        assert sessions[0].start == datetime(2026, 10, 19, 9, 0)
        assert sessions[0].end == datetime(2026, 10, 19, 9, 45)
        assert plans[0].overflow_minutes == 120 - 45


class TestAllocationPolicy:
    """Ordering, cutoff and skip rules of the greedy allocator."""

    def test_earliest_deadline_claims_first_slots(self, weekday_evenings, now):
        """Input order does not matter: the earlier due date gets Monday's slots."""
        later = make_assignment("later", "2026-10-23", 2)
        sooner = make_assignment("sooner", "2026-10-20", 2)

        plans = build_weekly_plan([later, sooner], weekday_evenings, now)

        monday = [e.assignment_id for e in plans[0].events if e.kind == EventKind.STUDY]
        assert monday == ["sooner", "sooner"]
        tuesday = [e.assignment_id for e in plans[1].events if e.kind == EventKind.STUDY]
        assert tuesday == ["later", "later"]

    def test_no_study_after_due_date(self, weekday_evenings, now):
        """An assignment due Tuesday never spills into Wednesday's free slots."""
        a = make_assignment("a", "2026-10-20", 8)

        plans = build_weekly_plan([a], weekday_evenings, now)

        due = parse_iso_date_only(a.due_date)
        sessions = study_events(plans, "a")
        assert len(sessions) == 4
        assert all(e.start < due for e in sessions)
        assert plans[1].overflow_minutes == 8 * 60 - 240

    def test_split_slot_leftover_goes_to_next_assignment(self, now):
        """A half-used slot's tail is offered to the next assignment in deadline order."""
        settings = PlannerSettings(session_minutes=60, focus_windows={1: (FocusWindow("18:00", "20:00"),)})
        short = make_assignment("short", "2026-10-19", 0.5)
        longer = make_assignment("longer", "2026-10-20", 1)

        plans = build_weekly_plan([longer, short], settings, now)

        spans = [(e.assignment_id, e.start.strftime("%H:%M"), e.end.strftime("%H:%M")) for e in study_events(plans)]
        assert spans == [
            ("short", "18:00", "18:30"),
            ("longer", "18:30", "19:00"),
            ("longer", "19:00", "19:30"),
        ]

    def test_overdue_assignment_is_skipped(self, weekday_evenings, now):
        """Assignments due before today get no sessions, overflow or marker."""
        a = make_assignment("old", "2026-10-18", 4)

        plans = build_weekly_plan([a], weekday_evenings, now)

        assert all(d.events == [] for d in plans)
        assert total_overflow_minutes(plans) == 0

    def test_zero_effort_gets_marker_only(self, weekday_evenings, now):
        a = make_assignment("quiz", "2026-10-21", 0)

        plans = build_weekly_plan([a], weekday_evenings, now)

        assert study_events(plans) == []
        assert [e.kind for e in plans[2].events] == [EventKind.DUE]

    def test_negative_effort_is_skipped(self, weekday_evenings, now):
        a = make_assignment("neg", "2026-10-21", -3)

        plans = build_weekly_plan([a], weekday_evenings, now)

        assert study_events(plans) == []
        assert total_overflow_minutes(plans) == 0

    def test_due_markers_only_inside_horizon(self, weekday_evenings, now, mixed_assignments):
        plans = build_weekly_plan(mixed_assignments, weekday_evenings, now)

        markers = [e.assignment_id for d in plans for e in d.events if e.kind == EventKind.DUE]
        assert markers == ["hw1", "proj"]

    def test_events_sorted_by_start(self, weekday_evenings, now, mixed_assignments):
        plans = build_weekly_plan(mixed_assignments, weekday_evenings, now)

        for day in plans:
            starts = [e.start for e in day.events]
            assert starts == sorted(starts)

    def test_horizon_starts_at_local_midnight(self, no_windows):
        plans = build_weekly_plan([], no_windows, datetime(2026, 10, 21, 15, 37))

        assert plans[0].date == datetime(2026, 10, 21)
        assert plans[6].date == datetime(2026, 10, 27)

    def test_overlapping_windows_do_not_double_book(self, now):
        settings = PlannerSettings(
            session_minutes=30,
            focus_windows={1: (FocusWindow("19:00", "21:00"), FocusWindow("18:00", "19:30"), FocusWindow("bad", "20:00"))},
        )
        a = make_assignment("a", "2026-10-19", 2)
        b = make_assignment("b", "2026-10-19", 2)

        plans = build_weekly_plan([a, b], settings, now)

        sessions = sorted(study_events(plans), key=lambda e: e.start)
        assert len(sessions) == 6  # 18:00-21:00 in 30-minute slots
        for first, second in zip(sessions, sessions[1:]):
            assert first.end <= second.start


class TestPlannerInvariants:
    """Properties that hold for any input."""

    @pytest.fixture
    def busy_week(self):
        return [
            make_assignment("a", "2026-10-20", 3.25),
            make_assignment("b", "2026-10-22", 7),
            make_assignment("c", "2026-10-19", 1.5),
            make_assignment("d", "2026-11-02", 12),
            make_assignment("e", "2026-10-25", 0.01),
        ]

    @pytest.fixture
    def settings(self):
        windows = {
            0: (FocusWindow("10:00", "12:00"),),
            1: (FocusWindow("07:00", "08:20"), FocusWindow("18:00", "20:00")),
            2: (FocusWindow("18:00", "19:00"),),
            3: (FocusWindow("18:00", "21:00"), FocusWindow("20:30", "22:00")),
            5: (FocusWindow("16:00", "18:00"),),
            6: (FocusWindow("09:00", "13:00"),),
        }
        return PlannerSettings(session_minutes=50, focus_windows=windows)

    def test_conservation_of_effort(self, busy_week, settings, now):
        """Scheduled plus overflow minutes equals each assignment's rounded estimate."""
        plans = build_weekly_plan(busy_week, settings, now)
        scheduled = scheduled_minutes_by_assignment(plans)

        assert sum(scheduled.values()) + total_overflow_minutes(plans) == sum(
            effort_minutes(a.estimated_hours) for a in busy_week
        )
        horizon_start = plans[0].date
        for a in busy_week:
            due = parse_iso_date_only(a.due_date)
            idx = overflow_day_index(due, horizon_start)
            unplaced = effort_minutes(a.estimated_hours) - scheduled.get(a.id, 0)
            assert unplaced >= 0
            assert plans[idx].overflow_minutes >= unplaced

    def test_no_overlapping_study_sessions(self, busy_week, settings, now):
        plans = build_weekly_plan(busy_week, settings, now)

        for day in plans:
            sessions = sorted((e for e in day.events if e.kind == EventKind.STUDY), key=lambda e: e.start)
            for first, second in zip(sessions, sessions[1:]):
                assert first.end <= second.start

    def test_sessions_start_before_due_instant(self, busy_week, settings, now):
        plans = build_weekly_plan(busy_week, settings, now)
        due_by_id = {a.id: parse_iso_date_only(a.due_date) for a in busy_week}

        for e in study_events(plans):
            assert e.start < due_by_id[e.assignment_id]

    def test_deterministic(self, busy_week, settings, now):
        assert build_weekly_plan(busy_week, settings, now) == build_weekly_plan(list(busy_week), settings, now)

    def test_input_is_not_mutated(self, busy_week, settings, now):
        snapshot = list(busy_week)
        build_weekly_plan(busy_week, settings, now)
        assert busy_week == snapshot


class TestPlannerErrors:
    """Contract violations that propagate to the caller."""

    def test_unparseable_due_date_raises(self, weekday_evenings, now):
        with pytest.raises(InvalidDueDateError):
            build_weekly_plan([make_assignment("x", "next friday", 2)], weekday_evenings, now)

    def test_session_length_out_of_range_raises(self, now):
        with pytest.raises(PlannerConfigError):
            build_weekly_plan([], PlannerSettings(session_minutes=10), now)

    def test_clamped_settings_are_accepted(self, now):
        settings = PlannerSettings().with_session_minutes(5)
        assert settings.session_minutes == 15
        assert len(build_weekly_plan([], settings, now)) == 7


class TestHelpers:
    def test_effort_rounds_half_up(self):
        assert effort_minutes(1.5) == 90
        assert effort_minutes(0.01) == 1
        assert effort_minutes(0) == 0
        assert effort_minutes(float("nan")) == 0

    def test_overflow_index_clamped(self):
        start = datetime(2026, 10, 19)
        assert overflow_day_index(start + timedelta(hours=5), start) == 0
        assert overflow_day_index(start + timedelta(days=3, hours=23), start) == 3
        assert overflow_day_index(start + timedelta(days=30), start) == 6
