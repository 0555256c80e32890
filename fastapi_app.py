"""
GPA Prediction API (FastAPI Version)
====================================
HTTP layer for the GPA prediction engine: course management, the single
current prediction, and a stateless prediction endpoint.

Usage:
    uvicorn fastapi_app:app --reload
"""

import logging
import os
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Annotated, List, Literal

from fastapi import Depends, FastAPI, HTTPException, Response, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import AfterValidator, BaseModel, Field
import uvicorn

from course_store import CourseStore, NoCoursesError, recompute_prediction, seed_demo_courses
from gpa_predictor_api import (
    GRADE_SCALE,
    CourseRecord,
    calculate_gpa,
    calculate_predictions,
    extract_features,
    get_progress_percentage,
    grade_to_point,
    round_half_up,
    to_course_records,
)

logger = logging.getLogger(__name__)

# -------------------------
# CONFIGURATION
# -------------------------

API_HOST = os.getenv("GPA_API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("GPA_API_PORT", "8000"))
SEED_DEMO_DATA = os.getenv("GPA_SEED_DEMO_DATA", "1") == "1"
LOG_LEVEL = os.getenv("GPA_LOG_LEVEL", "INFO")
REQUIRED_CREDITS = int(os.getenv("GPA_REQUIRED_CREDITS", "120"))
CORS_ORIGINS = [o.strip() for o in os.getenv("GPA_CORS_ORIGINS", "*").split(",")]

# -------------------------
# Pydantic Models (Data Validation)
# -------------------------

def _check_grade(value: str) -> str:
    if value not in GRADE_SCALE:
        raise ValueError(f"Unknown grade '{value}', expected one of {list(GRADE_SCALE)}")
    return value


LetterGrade = Annotated[str, AfterValidator(_check_grade)]


class CourseInput(BaseModel):
    name: str = Field(..., min_length=1, examples=["Data Structures"])
    credits: int = Field(..., ge=1, description="Credit hours")
    grade: LetterGrade = Field(..., examples=["B+"])
    semester: str = Field(..., min_length=1, examples=["Semester 1"])
    program: str = Field("software_engineering")


class CourseOut(BaseModel):
    id: int
    name: str
    credits: int
    grade: str
    semester: str
    program: str


class CourseRecordInput(BaseModel):
    credits: int = Field(..., ge=1)
    grade: LetterGrade = Field(..., examples=["A-"])
    semester: str = ""


class PredictionRequest(BaseModel):
    courses: List[CourseRecordInput] = Field(..., description="Courses in chronological order")


class PredictionOut(BaseModel):
    linear_regression_gpa: float
    random_forest_gpa: float
    better_model: Literal["linear", "random_forest"]
    accuracy: int
    confidence_score: float
    academic_standing: str
    trend_analysis: str
    next_semester_prediction: float


class FeaturesOut(BaseModel):
    total_credits: float
    total_quality_points: float
    course_count: int
    average_grade: float
    grade_variance: float
    grade_consistency: float
    credit_balance: float
    high_grade_count: int
    low_grade_count: int
    semester_count: int


class SummaryOut(BaseModel):
    gpa: float
    total_credits: int
    total_points: float
    required_credits: int
    progress_percentage: float

# -------------------------
# FastAPI App Setup
# -------------------------

store = CourseStore()


def get_store() -> CourseStore:
    return store


@asynccontextmanager
async def lifespan(app: FastAPI):
    if SEED_DEMO_DATA:
        seed_demo_courses(store)
    yield


app = FastAPI(
    title="GPA Prediction API",
    description="Two-model GPA prediction with academic standing and trend analysis.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -------------------------
# Endpoints
# -------------------------

@app.get("/")
def root():
    """Health check and API info"""
    return {
        "service": "GPA Prediction API",
        "status": "active",
        "version": "1.0.0",
        "docs_url": "/docs"
    }


@app.get("/api/courses", response_model=List[CourseOut])
def list_courses(store: CourseStore = Depends(get_store)):
    return [asdict(course) for course in store.get_courses()]


@app.post("/api/courses", response_model=CourseOut, status_code=status.HTTP_201_CREATED)
def create_course(course: CourseInput, store: CourseStore = Depends(get_store)):
    created = store.create_course(**course.model_dump())
    return asdict(created)


@app.delete("/api/courses/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_course(course_id: int, store: CourseStore = Depends(get_store)):
    store.delete_course(course_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.get("/api/predictions", response_model=PredictionOut)
def get_prediction(store: CourseStore = Depends(get_store)):
    prediction = store.get_prediction()
    if prediction is None:
        raise HTTPException(status_code=404, detail="No predictions yet")
    return prediction.to_dict()


@app.post("/api/predictions/calculate", response_model=PredictionOut)
def calculate_stored_prediction(store: CourseStore = Depends(get_store)):
    """Recompute the prediction from the stored courses, replacing the previous one"""
    try:
        prediction = recompute_prediction(store)
    except NoCoursesError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception:
        logger.exception("Prediction error")
        raise HTTPException(status_code=500, detail="Failed to calculate predictions")
    return prediction.to_dict()


@app.get("/api/features", response_model=FeaturesOut)
def get_features(store: CourseStore = Depends(get_store)):
    return extract_features(to_course_records(store.get_courses())).to_dict()


@app.get("/api/summary", response_model=SummaryOut)
def get_summary(store: CourseStore = Depends(get_store)):
    stats = calculate_gpa(to_course_records(store.get_courses()))
    return {
        **stats,
        "required_credits": REQUIRED_CREDITS,
        "progress_percentage": round_half_up(
            get_progress_percentage(stats["total_credits"], REQUIRED_CREDITS)
        ),
    }


@app.post("/predict", response_model=PredictionOut)
def predict_gpa(request: PredictionRequest):
    """
    Predict GPA for the courses in the request body without touching the store.
    """
    if not request.courses:
        raise HTTPException(status_code=400, detail="Add courses first")

    courses = [
        CourseRecord(credits=c.credits, grade_point=grade_to_point(c.grade), semester=c.semester)
        for c in request.courses
    ]
    return calculate_predictions(courses).to_dict()


if __name__ == "__main__":
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    logger.info("Starting GPA Prediction API on %s:%d", API_HOST, API_PORT)
    uvicorn.run("fastapi_app:app", host=API_HOST, port=API_PORT, reload=True)
