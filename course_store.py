"""
In-memory course storage and the single current prediction.

Holds the student's course rows and at most one PredictionResult. Each
recompute replaces the stored prediction; no history is kept.
"""

import logging
import threading
from dataclasses import dataclass
from typing import List, Optional

from gpa_predictor_api import PredictionResult, calculate_predictions, to_course_records

logger = logging.getLogger(__name__)

DEFAULT_PROGRAM = "software_engineering"

DEMO_COURSES = [
    {"name": "Introduction to AI", "credits": 3, "grade": "A", "semester": "Semester 1"},
    {"name": "Data Structures", "credits": 4, "grade": "B+", "semester": "Semester 1"},
    {"name": "Web Development", "credits": 3, "grade": "A-", "semester": "Semester 2"},
    {"name": "Database Design", "credits": 4, "grade": "A", "semester": "Semester 2"},
    {"name": "Software Engineering", "credits": 3, "grade": "B+", "semester": "Semester 3"},
]


class NoCoursesError(ValueError):
    """Raised when a prediction is requested but no courses are stored"""


@dataclass(frozen=True)
class StoredCourse:
    id: int
    name: str
    credits: int
    grade: str
    semester: str
    program: str = DEFAULT_PROGRAM


class CourseStore:
    """Course table plus a single-slot prediction cell"""

    def __init__(self):
        self._lock = threading.Lock()
        self._courses: List[StoredCourse] = []
        self._next_id = 1
        self._prediction: Optional[PredictionResult] = None

    def get_courses(self) -> List[StoredCourse]:
        with self._lock:
            return list(self._courses)

    def create_course(
        self,
        name: str,
        credits: int,
        grade: str,
        semester: str,
        program: str = DEFAULT_PROGRAM
    ) -> StoredCourse:
        with self._lock:
            course = StoredCourse(
                id=self._next_id,
                name=name,
                credits=credits,
                grade=grade,
                semester=semester,
                program=program,
            )
            self._next_id += 1
            self._courses.append(course)
        logger.debug("Created course %d (%s)", course.id, course.name)
        return course

    def delete_course(self, course_id: int) -> None:
        """Remove a course by id. Unknown ids are ignored."""
        with self._lock:
            self._courses = [c for c in self._courses if c.id != course_id]

    def get_prediction(self) -> Optional[PredictionResult]:
        with self._lock:
            return self._prediction

    def set_prediction(self, prediction: PredictionResult) -> PredictionResult:
        """Replace the stored prediction"""
        with self._lock:
            self._prediction = prediction
        return prediction


def recompute_prediction(store: CourseStore) -> PredictionResult:
    """
    Run the prediction pipeline over the stored courses and keep the result.

    Raises:
        NoCoursesError: if the store holds no courses
    """
    courses = store.get_courses()
    if not courses:
        raise NoCoursesError("Add courses first")

    prediction = calculate_predictions(to_course_records(courses))
    logger.info(
        "Recomputed prediction over %d courses (linear=%.2f, forest=%.2f)",
        len(courses), prediction.linear_regression_gpa, prediction.random_forest_gpa
    )
    return store.set_prediction(prediction)


def seed_demo_courses(store: CourseStore) -> bool:
    """
    Fill an empty store with the demo courses and compute a first prediction.

    Returns:
        True if the store was seeded, False if it already had courses
    """
    if store.get_courses():
        return False

    for course in DEMO_COURSES:
        store.create_course(**course)
    recompute_prediction(store)
    logger.info("Seeded store with %d demo courses", len(DEMO_COURSES))
    return True
