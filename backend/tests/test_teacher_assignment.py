import logging

from schoolday.services.teacher_assignment import TeacherAutoAssigner, dedupe


def test_dedupe_keeps_first_occurrence_order():
    assert dedupe(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]


def test_resolves_active_teaching_assignments_only(db_session, school):
    assigner = TeacherAutoAssigner(db_session)

    # Jane supervises physics and John's chemistry assignment is inactive.
    assert assigner.resolve(class_id=school.grade_10a, subject_id=school.physics, academic_year_id=school.year) == [
        school.john
    ]
    assert assigner.resolve(
        class_id=school.grade_10a, subject_id=school.chemistry, academic_year_id=school.year
    ) == [school.jane]


def test_explicit_teachers_bypass_lookup(db_session, school):
    assigner = TeacherAutoAssigner(db_session)

    resolved = assigner.resolve(
        class_id=school.grade_10a,
        subject_id=school.physics,
        academic_year_id=school.year,
        explicit=[school.alice, school.alice, school.jane],
    )

    assert resolved == [school.alice, school.jane]


def test_unstaffed_subject_resolves_empty_and_logs(db_session, school, caplog):
    assigner = TeacherAutoAssigner(db_session)

    with caplog.at_level(logging.WARNING, logger="schoolday.services.teacher_assignment"):
        resolved = assigner.resolve(class_id=school.grade_10a, subject_id=school.maths, academic_year_id=school.year)

    assert resolved == []
    assert "SLOT NEEDS STAFFING" in caplog.text
