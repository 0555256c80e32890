import pytest

from course_store import (
    DEMO_COURSES,
    CourseStore,
    NoCoursesError,
    recompute_prediction,
    seed_demo_courses,
)
from gpa_predictor_api import CourseRecord, calculate_predictions, to_course_records


@pytest.fixture
def store():
    return CourseStore()


def test_create_assigns_increasing_ids(store):
    first = store.create_course("Calculus", 4, "B", "Semester 1")
    second = store.create_course("Physics", 3, "A-", "Semester 1")
    assert (first.id, second.id) == (1, 2)
    assert first.program == "software_engineering"
    assert store.get_courses() == [first, second]


def test_delete_course(store):
    kept = store.create_course("Calculus", 4, "B", "Semester 1")
    removed = store.create_course("Physics", 3, "A-", "Semester 1")
    store.delete_course(removed.id)
    assert store.get_courses() == [kept]

    # unknown id is a no-op
    store.delete_course(999)
    assert store.get_courses() == [kept]


def test_ids_not_reused_after_delete(store):
    course = store.create_course("Calculus", 4, "B", "Semester 1")
    store.delete_course(course.id)
    assert store.create_course("Physics", 3, "A", "Semester 1").id == 2


def test_prediction_slot_starts_empty(store):
    assert store.get_prediction() is None


def test_recompute_rejects_empty_store(store):
    with pytest.raises(NoCoursesError):
        recompute_prediction(store)
    assert store.get_prediction() is None


def test_recompute_stores_single_prediction(store):
    store.create_course("Calculus", 3, "A", "Semester 1")
    store.create_course("Physics", 4, "B+", "Semester 1")

    prediction = recompute_prediction(store)
    assert store.get_prediction() is prediction
    assert prediction.linear_regression_gpa == 3.75
    assert prediction.random_forest_gpa == 3.85


def test_recompute_replaces_previous_prediction(store):
    store.create_course("Calculus", 3, "A", "Semester 1")
    first = recompute_prediction(store)

    store.create_course("Physics", 4, "F", "Semester 2")
    second = recompute_prediction(store)

    assert store.get_prediction() is second
    assert second != first


def test_recompute_is_idempotent(store):
    store.create_course("Calculus", 3, "A", "Semester 1")
    store.create_course("Physics", 4, "B+", "Semester 1")
    first = recompute_prediction(store)
    second = recompute_prediction(store)
    assert first == second
    assert store.get_prediction() == first


def test_to_course_records_maps_grades_in_order(store):
    store.create_course("Calculus", 3, "A-", "Semester 1")
    store.create_course("Physics", 4, "D+", "Semester 2")
    assert to_course_records(store.get_courses()) == [
        CourseRecord(credits=3, grade_point=3.7, semester="Semester 1"),
        CourseRecord(credits=4, grade_point=1.3, semester="Semester 2"),
    ]


def test_seed_demo_courses(store):
    assert seed_demo_courses(store) is True
    courses = store.get_courses()
    assert [c.name for c in courses] == [c["name"] for c in DEMO_COURSES]
    assert store.get_prediction() == calculate_predictions(to_course_records(courses))


def test_seed_skips_non_empty_store(store):
    store.create_course("Calculus", 3, "A", "Semester 1")
    assert seed_demo_courses(store) is False
    assert len(store.get_courses()) == 1
    assert store.get_prediction() is None
