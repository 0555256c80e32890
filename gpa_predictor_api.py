"""
GPA Prediction Engine
=====================
Predicts cumulative GPA from a student's completed courses using two
deterministic models (a linear formula and a five-tree "random forest"),
reconciles them into a confidence-scored recommendation, and interprets the
result as academic standing, trend and next-semester projection.

Every function here is pure: same courses in, same numbers out.
"""

import logging
from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal
from types import MappingProxyType
from typing import Callable, Dict, Iterable, List, Sequence, Tuple

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

# -------------------------
# CONFIGURATION
# -------------------------

GPA_MIN = 0.0
GPA_MAX = 4.0

# Letter grade -> grade point
GRADE_SCALE = MappingProxyType({
    "A+": 4.0,
    "A": 4.0,
    "A-": 3.7,
    "B+": 3.5,
    "B": 3.0,
    "B-": 2.7,
    "C+": 2.5,
    "C": 2.0,
    "C-": 1.7,
    "D+": 1.3,
    "D": 1.0,
    "F": 0.0,
})

HIGH_GRADE_THRESHOLD = 3.7  # A- and above
LOW_GRADE_THRESHOLD = 1.0   # D and below
COURSES_PER_SEMESTER = 5

MODEL_LINEAR = "linear"
MODEL_RANDOM_FOREST = "random_forest"
MODEL_COMPLEXITY_THRESHOLD = 1.5

ACCURACY_FLOOR = 70
ACCURACY_CEILING = 99
CONFIDENCE_FLOOR = 0.5

NEUTRAL_GPA = 3.0

# Evaluated top-down, first match wins. The last rung is strict (gpa > 0).
STANDING_LADDER = (
    (3.8, "Excellent (Honors)"),
    (3.5, "Very Good"),
    (3.0, "Good"),
    (2.5, "Satisfactory"),
    (2.0, "Acceptable"),
)
STANDING_NEEDS_IMPROVEMENT = "Needs Improvement"
STANDING_NO_DATA = "No Data"

# (strict lower bound on second-half minus first-half average, label)
TREND_LADDER = (
    (0.1, "Improving - Strong upward trend"),
    (0.02, "Stable - Consistent performance"),
    (-0.1, "Slight Decline - Minor challenges"),
)
TREND_DECLINING = "Declining - Needs attention"
TREND_INSUFFICIENT = "Insufficient data"


# -------------------------
# DATA TYPES
# -------------------------

@dataclass(frozen=True)
class CourseRecord:
    """
    One completed course as seen by the engine.

    Attributes:
        credits: Credit hours (positive integer)
        grade_point: Grade point on the 0-4 scale
        semester: Informational label, not used by any formula
    """
    credits: int
    grade_point: float
    semester: str = ""


@dataclass(frozen=True)
class FeatureVector:
    total_credits: float = 0.0
    total_quality_points: float = 0.0
    course_count: int = 0
    average_grade: float = 0.0
    grade_variance: float = 0.0
    grade_consistency: float = 0.0
    credit_balance: float = 0.0
    high_grade_count: int = 0
    low_grade_count: int = 0
    semester_count: int = 0

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass(frozen=True)
class PredictionResult:
    """Output of a full prediction run. A new instance is built on every run."""
    linear_regression_gpa: float
    random_forest_gpa: float
    better_model: str
    accuracy: int
    confidence_score: float
    academic_standing: str
    trend_analysis: str
    next_semester_prediction: float

    def to_dict(self) -> Dict:
        return asdict(self)


# -------------------------
# GRADE CONVERSION
# -------------------------

def grade_to_point(letter_grade: str) -> float:
    """Convert a letter grade to its grade point. Unknown letters count as 0.0"""
    return GRADE_SCALE.get(letter_grade, 0.0)


def clamp_gpa(value: float) -> float:
    return float(np.clip(value, GPA_MIN, GPA_MAX))


def round_half_up(value: float, digits: int = 2) -> float:
    """
    Round the exact binary value of a float with ties going up,
    so 2.125 becomes 2.13 (round() would give 2.12).
    """
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(float(value)).quantize(quantum, rounding=ROUND_HALF_UP))


# -------------------------
# FEATURE EXTRACTION
# -------------------------

def _course_frame(courses: Iterable[CourseRecord]) -> pd.DataFrame:
    """Tabulate courses as a DataFrame with credits and grade_point columns"""
    return pd.DataFrame(
        [(c.credits, c.grade_point) for c in courses],
        columns=["credits", "grade_point"],
        dtype=float,
    )


def extract_features(courses: Sequence[CourseRecord]) -> FeatureVector:
    """
    Summarize a course list into the fixed feature set used by both models.

    Args:
        courses: Completed courses. Order does not affect any feature.

    Returns:
        FeatureVector (all zeros when courses is empty)
    """
    if len(courses) == 0:
        return FeatureVector()

    df = _course_frame(courses)
    credits = df["credits"]
    grades = df["grade_point"]

    course_count = len(df)
    total_credits = float(credits.sum())
    total_quality_points = float((grades * credits).sum())
    average_grade = float(grades.mean())

    # Population variance (ddof=0)
    grade_variance = float(np.mean((grades - average_grade) ** 2))
    grade_consistency = max(0.0, 1.0 - np.sqrt(grade_variance) / 2)

    avg_credit_per_course = total_credits / course_count
    credit_deviation = float((credits - avg_credit_per_course).abs().mean())
    credit_balance = max(0.0, 1.0 - credit_deviation / avg_credit_per_course)

    high_grade_count = int((grades >= HIGH_GRADE_THRESHOLD).sum())
    low_grade_count = int((grades <= LOW_GRADE_THRESHOLD).sum())

    # Coarse proxy: semester labels are not consulted
    semester_count = -(-course_count // COURSES_PER_SEMESTER)

    return FeatureVector(
        total_credits=total_credits,
        total_quality_points=total_quality_points,
        course_count=course_count,
        average_grade=average_grade,
        grade_variance=grade_variance,
        grade_consistency=float(grade_consistency),
        credit_balance=float(credit_balance),
        high_grade_count=high_grade_count,
        low_grade_count=low_grade_count,
        semester_count=semester_count,
    )


# -------------------------
# MODEL 1: LINEAR REGRESSION
# -------------------------

def predict_with_linear_regression(courses: Sequence[CourseRecord]) -> float:
    """
    Credit-weighted GPA with two small corrections:
    a credit-balance bonus (up to +0.05) and a consistency penalty (up to -0.03).
    """
    if len(courses) == 0:
        return 0.0

    features = extract_features(courses)

    base_gpa = features.total_quality_points / features.total_credits
    credit_balance_bonus = features.credit_balance * 0.05
    consistency_penalty = (1 - features.grade_consistency) * 0.03

    predicted = base_gpa + credit_balance_bonus - consistency_penalty
    return round_half_up(clamp_gpa(predicted))


# -------------------------
# MODEL 2: RANDOM FOREST (five fixed trees)
# -------------------------

def tree_weighted_consistency(features: FeatureVector) -> float:
    """Weighted GPA inflated by grade consistency"""
    weighted_gpa = features.total_quality_points / features.total_credits
    return weighted_gpa * (1 + features.grade_consistency * 0.1)


def tree_course_volume(features: FeatureVector) -> float:
    """Average grade inflated by course volume (capped at +20%)"""
    course_volume_bonus = min(0.2, features.course_count * 0.02)
    return features.average_grade * (1 + course_volume_bonus)


def tree_grade_ratio(features: FeatureVector) -> float:
    """Average grade shifted by the net share of high vs. low grades"""
    grade_ratio = (features.high_grade_count - features.low_grade_count) / features.course_count
    return features.average_grade + grade_ratio * 0.3


def tree_credit_balance(features: FeatureVector) -> float:
    return features.credit_balance * features.average_grade * 1.1


def tree_consistency_bonus(features: FeatureVector) -> float:
    return features.average_grade + features.grade_consistency * 0.15


FOREST_TREES: Tuple[Tuple[str, Callable[[FeatureVector], float]], ...] = (
    ("weighted_consistency", tree_weighted_consistency),
    ("course_volume", tree_course_volume),
    ("grade_ratio", tree_grade_ratio),
    ("credit_balance", tree_credit_balance),
    ("consistency_bonus", tree_consistency_bonus),
)


def random_forest_tree_outputs(courses: Sequence[CourseRecord]) -> Dict[str, float]:
    """Raw (unclamped, unrounded) output of each tree, keyed by tree name"""
    if len(courses) == 0:
        return {name: 0.0 for name, _ in FOREST_TREES}

    features = extract_features(courses)
    return {name: float(tree(features)) for name, tree in FOREST_TREES}


def predict_with_random_forest(courses: Sequence[CourseRecord]) -> float:
    """Average of the five trees, clamped to the GPA range"""
    if len(courses) == 0:
        return 0.0

    tree_outputs = random_forest_tree_outputs(courses)
    forest_gpa = np.mean(list(tree_outputs.values()))
    return round_half_up(clamp_gpa(forest_gpa))


# -------------------------
# MODEL RECONCILIATION
# -------------------------

def compare_models(
    courses: Sequence[CourseRecord],
    linear_gpa: float,
    forest_gpa: float
) -> Dict:
    """
    Score agreement between the two models and pick the better one.

    Closer agreement means higher accuracy and confidence. The random forest
    is preferred when the record is noisy, large or unevenly loaded.

    Returns:
        Dict with better_model, accuracy (int percent) and confidence_score
    """
    difference = abs(linear_gpa - forest_gpa)

    base_accuracy = float(np.clip(95 - difference * 20, ACCURACY_FLOOR, ACCURACY_CEILING))
    # Round half up
    accuracy = int(base_accuracy + 0.5)

    confidence_score = max(CONFIDENCE_FLOOR, 1 - difference / 2)

    features = extract_features(courses)
    complexity = (
        np.sqrt(features.grade_variance)
        + features.course_count * 0.1
        + (1 - features.credit_balance) * 0.5
    )
    better_model = MODEL_RANDOM_FOREST if complexity > MODEL_COMPLEXITY_THRESHOLD else MODEL_LINEAR

    logger.debug(
        "compare_models: difference=%.4f complexity=%.4f better=%s",
        difference, complexity, better_model
    )

    return {
        "better_model": better_model,
        "accuracy": accuracy,
        "confidence_score": float(confidence_score),
    }


# -------------------------
# INTERPRETATION
# -------------------------

def get_academic_standing(gpa: float) -> str:
    for threshold, label in STANDING_LADDER:
        if gpa >= threshold:
            return label
    if gpa > 0:
        return STANDING_NEEDS_IMPROVEMENT
    return STANDING_NO_DATA


def analyze_trend(courses: Sequence[CourseRecord]) -> str:
    """
    Compare the average grade point of the second half of the record with
    the first half. Courses are split by position (first half gets the extra
    course when the count is odd), so callers must pass them in
    chronological order.
    """
    if len(courses) < 2:
        return TREND_INSUFFICIENT

    midpoint = -(-len(courses) // 2)
    first_half = [c.grade_point for c in courses[:midpoint]]
    second_half = [c.grade_point for c in courses[midpoint:]]

    first_half_avg = float(np.mean(first_half))
    second_half_avg = float(np.mean(second_half)) if second_half else first_half_avg

    trend_diff = second_half_avg - first_half_avg

    for threshold, label in TREND_LADDER:
        if trend_diff > threshold:
            return label
    return TREND_DECLINING


def predict_next_semester(courses: Sequence[CourseRecord], current_gpa: float) -> float:
    """
    Project next-semester GPA from the current one.

    Very consistent records keep their GPA, moderately consistent ones drift
    with their average grade, volatile ones regress toward NEUTRAL_GPA.
    The result is not clamped.
    """
    features = extract_features(courses)

    if features.grade_consistency > 0.85:
        projected = current_gpa
    elif features.grade_consistency > 0.7:
        trend = features.average_grade - NEUTRAL_GPA
        projected = current_gpa + trend * 0.05
    else:
        projected = current_gpa * 0.7 + NEUTRAL_GPA * 0.3

    return round_half_up(projected)


# -------------------------
# DASHBOARD HELPERS
# -------------------------

def calculate_gpa(courses: Sequence[CourseRecord]) -> Dict:
    """Plain credit-weighted GPA plus the totals behind it"""
    if len(courses) == 0:
        return {"gpa": 0.0, "total_credits": 0, "total_points": 0.0}

    df = _course_frame(courses)
    total_credits = float(df["credits"].sum())
    total_points = float((df["grade_point"] * df["credits"]).sum())
    gpa = total_points / total_credits if total_credits > 0 else 0.0

    return {
        "gpa": round_half_up(gpa),
        "total_credits": int(total_credits),
        "total_points": round_half_up(total_points),
    }


def get_progress_percentage(total_credits: float, required_credits: float = 120) -> float:
    """Share of required credits earned, as a percentage in [0, 100]"""
    if required_credits <= 0:
        return 100.0
    return float(np.clip(total_credits / required_credits * 100, 0, 100))


# -------------------------
# MAIN PREDICTION API
# -------------------------

def calculate_predictions(courses: Sequence[CourseRecord]) -> PredictionResult:
    """
    Run the full pipeline: both models, reconciliation and interpretation.

    Args:
        courses: Completed courses in chronological order. Must not be empty;
            rejecting empty input is the caller's job.

    Returns:
        PredictionResult
    """
    linear_gpa = predict_with_linear_regression(courses)
    forest_gpa = predict_with_random_forest(courses)

    comparison = compare_models(courses, linear_gpa, forest_gpa)

    average_gpa = (linear_gpa + forest_gpa) / 2

    result = PredictionResult(
        linear_regression_gpa=linear_gpa,
        random_forest_gpa=forest_gpa,
        better_model=comparison["better_model"],
        accuracy=comparison["accuracy"],
        confidence_score=round_half_up(comparison["confidence_score"]),
        academic_standing=get_academic_standing(average_gpa),
        trend_analysis=analyze_trend(courses),
        next_semester_prediction=predict_next_semester(courses, average_gpa),
    )

    logger.debug("calculate_predictions: %d courses -> %s", len(courses), result)
    return result


def to_course_records(rows: Iterable) -> List[CourseRecord]:
    """
    Convert stored course rows (anything with credits, grade and semester
    attributes) into CourseRecords, keeping their order.
    """
    return [
        CourseRecord(
            credits=row.credits,
            grade_point=grade_to_point(row.grade),
            semester=row.semester,
        )
        for row in rows
    ]


# -------------------------
# EXAMPLE USAGE
# -------------------------

if __name__ == "__main__":
    import json

    example_courses = [
        CourseRecord(credits=3, grade_point=4.0, semester="Semester 1"),
        CourseRecord(credits=4, grade_point=3.5, semester="Semester 1"),
        CourseRecord(credits=3, grade_point=3.7, semester="Semester 2"),
        CourseRecord(credits=4, grade_point=4.0, semester="Semester 2"),
        CourseRecord(credits=3, grade_point=3.5, semester="Semester 3"),
    ]

    print(json.dumps(calculate_predictions(example_courses).to_dict(), indent=2))
