from datetime import date

from schoolday.models.enums import DayOfWeek
from schoolday.models.timetable_slot import TimetableSlot
from schoolday.services.conflict_service import ConflictDetector, ScheduledWindow, ScopeKey
from schoolday.services.time_window import TimeWindow


def _scheduled(ref, start, end, *, room="204", class_id=1, day="MONDAY", full_date=None):
    window = TimeWindow.from_values(start, end, day_of_week=day, full_date=full_date)
    scope = ScopeKey.for_window(window, branch_id=1, class_id=class_id, room_number=room, academic_year_id=1)
    return ScheduledWindow(ref=ref, scope=scope, window=window)


def test_overlap_in_same_scope_is_a_conflict():
    existing = [_scheduled("a", "09:00", "10:00")]
    candidate = _scheduled("b", "09:30", "10:30")

    result = ConflictDetector().find_conflicts(candidate.window, candidate.scope, existing)

    assert result
    assert result.slot_ids == ["a"]


def test_room_and_class_are_part_of_the_scope():
    existing = [_scheduled("a", "09:00", "10:00", room="204")]
    other_room = _scheduled("b", "09:00", "10:00", room="205")
    other_class = _scheduled("c", "09:00", "10:00", class_id=2)

    detector = ConflictDetector()
    assert not detector.find_conflicts(other_room.window, other_room.scope, existing)
    assert not detector.find_conflicts(other_class.window, other_class.scope, existing)


def test_room_comparison_ignores_case_and_whitespace():
    existing = [_scheduled("a", "09:00", "10:00", room="Lab-1")]
    candidate = _scheduled("b", "09:15", "09:45", room="  lab-1 ")

    assert ConflictDetector().find_conflicts(candidate.window, candidate.scope, existing)


def test_dated_and_recurring_slots_do_not_share_a_scope():
    recurring = [_scheduled("a", "09:00", "10:00", day="FRIDAY")]
    dated = _scheduled("b", "09:00", "10:00", full_date=date(2024, 9, 6))

    assert dated.window.day_of_week == DayOfWeek.FRIDAY
    assert not ConflictDetector().find_conflicts(dated.window, dated.scope, recurring)


def test_excluded_refs_are_ignored():
    existing = [_scheduled("a", "09:00", "10:00")]
    candidate = _scheduled("b", "09:00", "10:00")

    assert not ConflictDetector().find_conflicts(candidate.window, candidate.scope, existing, exclude_ids=["a"])


def test_check_persisted_reads_active_slots_only(db_session, school):
    def slot(start, end, *, active=True, room="204"):
        return TimetableSlot(
            branch_id=school.sci,
            class_id=school.grade_10a,
            academic_year_id=school.year,
            day_of_week=DayOfWeek.MONDAY,
            start_time=start,
            end_time=end,
            room_number=room,
            subject_id=school.physics,
            teacher_ids=[school.john],
            is_active=active,
        )

    active = slot("09:00", "10:00")
    inactive = slot("10:00", "11:00", active=False)
    db_session.add_all([active, inactive])
    db_session.commit()

    detector = ConflictDetector()
    window = TimeWindow.from_values("09:30", "10:30", day_of_week="MONDAY")
    scope = ScopeKey.for_window(
        window, branch_id=school.sci, class_id=school.grade_10a, room_number="204 ", academic_year_id=school.year
    )

    result = detector.check_persisted(db_session, window, scope)
    assert result.slot_ids == [active.id]
    assert not detector.check_persisted(db_session, window, scope, exclude_ids=[active.id])
